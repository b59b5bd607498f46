import logging
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from ..errors import EmptyInput, InvalidInputCardinality
from .encoding import as_frame, encode_records
from .model_registry import ModelRegistry, get_model_spec, get_registry, list_model_specs, spec_for_strategy

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "xgboost"

HIGH_SENSITIVITY_BELOW = -2.3
RESISTANT_ABOVE = 2.3

HIGH_SENSITIVITY = "High Sensitivity"
MODERATE = "Moderate"
RESISTANT = "Resistant"

OUTPUT_COLUMNS = ["Predicted_LN_IC50", "Predicted_IC50", "Sensitivity_Status", "Model_Used"]


# --------- helpers (module-level, no nesting) ---------

def classify_sensitivity(ln_ic50: Any) -> np.ndarray:
    """Map LN_IC50 values to sensitivity labels; first match wins, +-2.3 itself is Moderate."""
    values = np.asarray(ln_ic50, dtype=float)
    return np.select(
        [values < HIGH_SENSITIVITY_BELOW, values > RESISTANT_ABOVE],
        [HIGH_SENSITIVITY, RESISTANT],
        default=MODERATE,
    )


def annotate(frame: pd.DataFrame, raw_predictions: Any, model_name: str) -> pd.DataFrame:
    """Append the four derived prediction columns after the caller's columns."""
    ln_ic50 = np.round(np.asarray(raw_predictions, dtype=float).reshape(-1), 4)
    if ln_ic50.shape[0] != len(frame):
        raise ValueError(f"Model returned {ln_ic50.shape[0]} predictions for {len(frame)} rows.")

    results = frame.drop(columns=[c for c in OUTPUT_COLUMNS if c in frame.columns])
    results["Predicted_LN_IC50"] = ln_ic50
    results["Predicted_IC50"] = np.round(np.exp(ln_ic50), 4)
    results["Sensitivity_Status"] = classify_sensitivity(ln_ic50)
    results["Model_Used"] = model_name
    return results


def _resolve_registry(registry: Optional[ModelRegistry]) -> ModelRegistry:
    return registry if registry is not None else get_registry()


# --------- main service ---------

def encode_features(records: Any, strategy: Any = "mixed", registry: Optional[ModelRegistry] = None) -> pd.DataFrame:
    """
    Encode raw records for the model trained with `strategy`.

    The feature schema is taken from the model that uses the strategy
    ("mixed" -> xgboost, "onehot_only" -> ridge).
    """
    registry = _resolve_registry(registry)
    spec = spec_for_strategy(strategy)
    return encode_records(records, spec.strategy, registry.encoding_maps, registry.feature_names(spec.name))


def predict_internal(frame: pd.DataFrame, model: str = DEFAULT_MODEL, registry: Optional[ModelRegistry] = None) -> pd.DataFrame:
    """
    Encode, predict and annotate an already validated batch.

    Parameters
    ----------
    frame : DataFrame
        Raw records; extra columns are carried through.
    model : str
        "xgboost" or "ridge".
    registry : ModelRegistry, optional
        Source of encoding maps and models; defaults to the shared registry
        for Config.RESOURCES_DIR.

    Returns
    -------
    DataFrame
        `frame` columns followed by Predicted_LN_IC50, Predicted_IC50,
        Sensitivity_Status and Model_Used, in input row order.
    """
    spec = get_model_spec(model)
    registry = _resolve_registry(registry)
    loaded = registry.get(spec.name)

    matrix = encode_records(frame, spec.strategy, registry.encoding_maps, loaded.feature_names)
    raw = loaded.adapter.predict(matrix)
    logger.debug("Predicted %d rows with %s", len(frame), spec.name)
    return annotate(frame, raw, spec.name)


def predict_single_sensitivity(record: Any, model: str = DEFAULT_MODEL, registry: Optional[ModelRegistry] = None) -> pd.DataFrame:
    """Predict one cell line / drug pair. Anything but exactly one row is rejected."""
    spec = get_model_spec(model)
    frame = as_frame(record)
    if len(frame) != 1:
        raise InvalidInputCardinality(
            f"predict_single_sensitivity expects exactly 1 row of data, got {len(frame)}. "
            "Use predict_batch_sensitivity for multiple rows."
        )
    return predict_internal(frame, spec.name, registry)


def predict_batch_sensitivity(records: Any, model: str = DEFAULT_MODEL, registry: Optional[ModelRegistry] = None) -> pd.DataFrame:
    """Predict many cell line / drug pairs at once."""
    spec = get_model_spec(model)
    frame = as_frame(records)
    if len(frame) < 1:
        raise EmptyInput("Input data is empty.")
    return predict_internal(frame, spec.name, registry)


def get_available_models(registry: Optional[ModelRegistry] = None) -> List[Dict[str, Any]]:
    """
    Static description of the selectable models.

    reported_test_R2 comes from the model's metadata file when the registry
    (the shared one by default) has it; otherwise it is None.
    """
    registry = _resolve_registry(registry)
    models = []
    for spec in list_model_specs():
        models.append(
            {
                "name": spec.name,
                "description": spec.description,
                "reported_test_R2": registry.reported_r2(spec.name),
                "recommended_use_case": spec.recommended_use_case,
            }
        )
    return models
