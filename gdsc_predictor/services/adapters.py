import json
import logging
import pickle
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd
import xgboost as xgb

from ..errors import SchemaMismatch

logger = logging.getLogger(__name__)


# --------- helpers (module-level, no nesting) ---------

def as_values(matrix: Any) -> np.ndarray:
    """2-D float array from an encoded DataFrame or array-like."""
    if isinstance(matrix, pd.DataFrame):
        return matrix.to_numpy(dtype=float)
    values = np.asarray(matrix, dtype=float)
    if values.ndim == 1:
        values = values.reshape(1, -1)
    return values


def check_matrix_columns(matrix: Any, feature_names: Sequence[str], source: str) -> None:
    """A DataFrame handed to a model must carry the schema columns in schema order."""
    if isinstance(matrix, pd.DataFrame) and list(matrix.columns) != list(feature_names):
        raise SchemaMismatch(
            f"{source}: matrix columns differ from schema "
            f"(first columns {list(matrix.columns)[:3]}, expected {list(feature_names)[:3]})."
        )


def check_feature_order(artifact_names: Optional[Sequence[str]], feature_names: Sequence[str], source: str) -> None:
    """Fail loudly when an artifact's own feature order disagrees with the schema."""
    if not artifact_names:
        return
    if list(artifact_names) != list(feature_names):
        missing = [n for n in feature_names if n not in set(artifact_names)]
        extra = [n for n in artifact_names if n not in set(feature_names)]
        raise SchemaMismatch(
            f"{source}: feature order differs from schema "
            f"(missing={missing[:5]}, extra={extra[:5]}, n_artifact={len(artifact_names)}, n_schema={len(feature_names)})."
        )


def find_linear_model(objects: Iterable[Any]) -> Any:
    """
    Pick the linear model out of whatever a pickle held.

    Candidates are scanned in order; the first exposing fitted coefficients
    (`coef_` + `intercept_`) or a `coefficients` entry wins. Names are never
    relied on.
    """
    for obj in objects:
        if hasattr(obj, "coef_") and hasattr(obj, "intercept_"):
            return obj
        if isinstance(obj, dict) and "coefficients" in obj:
            return obj
    return None


def _candidates(loaded: Any) -> List[Any]:
    if isinstance(loaded, dict) and "coefficients" not in loaded:
        return list(loaded.values())
    if isinstance(loaded, (list, tuple)):
        return list(loaded)
    return [loaded]


# --------- adapters ---------

class XGBoostAdapter:
    """Gradient-boosted tree ensemble evaluated by the xgboost runtime."""

    def __init__(self, booster: xgb.Booster, feature_names: Sequence[str]):
        self.feature_names = tuple(feature_names)
        check_feature_order(booster.feature_names, self.feature_names, "xgboost booster")
        self.booster = booster

    @classmethod
    def from_file(cls, path: Path, feature_names: Sequence[str]) -> "XGBoostAdapter":
        booster = xgb.Booster()
        booster.load_model(str(path))
        logger.info("Loaded xgboost booster from %s (%d features)", path, booster.num_features())
        return cls(booster, feature_names)

    def predict(self, matrix: Any) -> np.ndarray:
        check_matrix_columns(matrix, self.feature_names, "xgboost")
        values = as_values(matrix)
        dmatrix = xgb.DMatrix(values, feature_names=self.booster.feature_names)
        return np.asarray(self.booster.predict(dmatrix), dtype=float).reshape(-1)


class RidgeAdapter:
    """Linear model: prediction = matrix @ coefficients + intercept."""

    def __init__(self, coefficients: Sequence[float], intercept: float, feature_names: Sequence[str]):
        self.feature_names = tuple(feature_names)
        self.coefficients = np.asarray(coefficients, dtype=float).reshape(-1)
        self.intercept = float(intercept)
        if self.coefficients.shape[0] != len(self.feature_names):
            raise SchemaMismatch(
                f"ridge: {self.coefficients.shape[0]} coefficients for {len(self.feature_names)} features."
            )

    @classmethod
    def from_artifact(cls, artifact: Any, feature_names: Sequence[str], source: str = "ridge") -> "RidgeAdapter":
        """
        Build from a self-describing dict or a fitted estimator.

        Dict form: {"coefficients": [...] | {name: coef}, "intercept": b, "feature_names": [...]}
        Estimator form: anything with coef_, intercept_ and optionally feature_names_in_.
        """
        if isinstance(artifact, dict):
            if "coefficients" not in artifact:
                raise SchemaMismatch(f"{source}: artifact has no 'coefficients' entry.")
            coefs = artifact["coefficients"]
            intercept = artifact.get("intercept", 0.0)
            if isinstance(coefs, dict):
                unknown = [n for n in coefs if n not in set(feature_names)]
                if unknown:
                    raise SchemaMismatch(f"{source}: coefficients for unknown features {unknown[:5]}.")
                coefs = [float(coefs.get(n, 0.0)) for n in feature_names]
            else:
                check_feature_order(artifact.get("feature_names"), feature_names, source)
        else:
            names = getattr(artifact, "feature_names_in_", None)
            check_feature_order(None if names is None else list(names), feature_names, source)
            coefs = np.asarray(artifact.coef_, dtype=float).reshape(-1)
            intercept = np.asarray(artifact.intercept_, dtype=float).reshape(-1)[0]
        return cls(coefs, intercept, feature_names)

    @classmethod
    def from_file(cls, path: Path, feature_names: Sequence[str]) -> "RidgeAdapter":
        path = Path(path)
        if path.suffix == ".json":
            with open(path, "r", encoding="utf-8") as f:
                artifact = json.load(f)
        else:
            with open(path, "rb") as pf:
                loaded = pickle.load(pf)
            artifact = find_linear_model(_candidates(loaded))
            if artifact is None:
                raise SchemaMismatch(f"No linear model found among objects in {path.name}.")
        adapter = cls.from_artifact(artifact, feature_names, source=path.name)
        logger.info("Loaded ridge model from %s (%d features)", path, len(adapter.feature_names))
        return adapter

    def predict(self, matrix: Any) -> np.ndarray:
        check_matrix_columns(matrix, self.feature_names, "ridge")
        values = as_values(matrix)
        if values.shape[1] != self.coefficients.shape[0]:
            raise SchemaMismatch(
                f"ridge: matrix has {values.shape[1]} columns, model expects {self.coefficients.shape[0]}."
            )
        return values @ self.coefficients + self.intercept
