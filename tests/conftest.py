"""
Shared test fixtures for the gdsc_predictor test suite.

Provides reusable fixtures for:
- Small encoding maps and feature schemas for both models
- A resources directory with real artifacts (tiny xgboost booster, ridge JSON)
- Stub adapters for deterministic orchestration tests
- A Flask test client
"""

import json
from pathlib import Path
from typing import Any, Dict, List

import numpy as np
import pytest
import xgboost as xgb

from gdsc_predictor import create_app
from gdsc_predictor.config import Config
from gdsc_predictor.services.encoding import EncodingMaps
from gdsc_predictor.services.model_registry import MODEL_SPECS, LoadedModel, ModelRegistry


# ============================================================================
# ENCODING MAPS
# ============================================================================

ONEHOT_MAPPING: Dict[str, List[str]] = {
    "Tissue": ["breast", "lung", "skin", "urogenital_system"],
    "Sub_Tissue": ["breast", "lung_NSCLC", "melanoma", "kidney"],
    "Cancer_Type": ["BRCA", "LUAD", "SKCM", "KIRC"],
    "MSI_Status": ["MSS/MSI-L", "MSI-H"],
    "Drug_Target": ["TOP1", "EGFR", "BRAF", "MTOR"],
    "Target_Pathway": ["DNA replication", "EGFR signaling", "ERK MAPK signaling", "PI3K/MTOR signaling"],
}

FREQUENCY_MAPS: Dict[str, Dict[str, float]] = {
    "Tissue": {"breast": 1520, "lung": 4210, "skin": 1890, "urogenital_system": 2030},
    "Drug_Target": {"TOP1": 830, "EGFR": 2460, "BRAF": 610, "MTOR": 1150},
}

TARGET_MAPS: Dict[str, Dict[str, Any]] = {
    "Cancer_Type": {
        "global_mean": 2.61,
        "categories": {"BRCA": 2.85, "LUAD": 2.74, "SKCM": 2.12, "KIRC": 2.93},
    },
    "Target_Pathway": {
        "global_mean": 2.58,
        "categories": {
            "DNA replication": 1.02,
            "EGFR signaling": 3.11,
            "ERK MAPK signaling": 2.35,
            "PI3K/MTOR signaling": 2.47,
        },
    },
}

ONEHOT_FEATURES: List[str] = [
    "Tissue_breast",
    "Tissue_lung",
    "Tissue_skin",
    "Sub_Tissue_breast",
    "Sub_Tissue_lung_NSCLC",
    "Sub_Tissue_melanoma",
    "Cancer_Type_BRCA",
    "Cancer_Type_LUAD",
    "Cancer_Type_SKCM",
    "MSI_Status_MSS.MSI.L",
    "Drug_Target_TOP1",
    "Drug_Target_EGFR",
    "Drug_Target_BRAF",
    "Target_Pathway_DNA.replication",
    "Target_Pathway_EGFR.signaling",
    "Target_Pathway_ERK.MAPK.signaling",
]

# Lookup encodings first, one-hot reversed, Tissue_skin left out on purpose,
# plus an engineered column the encoder never produces.
MIXED_FEATURES: List[str] = (
    ["Tissue_FreqEnc", "Drug_Target_FreqEnc", "Cancer_Type_TargetEnc", "Target_Pathway_TargetEnc"]
    + [f for f in reversed(ONEHOT_FEATURES) if f != "Tissue_skin"]
    + ["Drug_Target_PARP1"]
)

RIDGE_INTERCEPT = 1.0
RIDGE_COEFFICIENTS: Dict[str, float] = {
    "Tissue_breast": -0.4,
    "Tissue_lung": 0.3,
    "Tissue_skin": 0.1,
    "Sub_Tissue_breast": -0.2,
    "Sub_Tissue_lung_NSCLC": 0.25,
    "Sub_Tissue_melanoma": -0.15,
    "Cancer_Type_BRCA": -0.3,
    "Cancer_Type_LUAD": 0.2,
    "Cancer_Type_SKCM": -0.1,
    "MSI_Status_MSS.MSI.L": 0.05,
    "Drug_Target_TOP1": -2.1,
    "Drug_Target_EGFR": 0.9,
    "Drug_Target_BRAF": -1.2,
    "Target_Pathway_DNA.replication": -0.6,
    "Target_Pathway_EGFR.signaling": 0.4,
    "Target_Pathway_ERK.MAPK.signaling": -0.35,
}


@pytest.fixture
def encoding_maps() -> EncodingMaps:
    return EncodingMaps(onehot=ONEHOT_MAPPING, frequency=FREQUENCY_MAPS, target=TARGET_MAPS)


# ============================================================================
# SAMPLE RECORDS
# ============================================================================

@pytest.fixture
def breast_record() -> Dict[str, str]:
    return {
        "Tissue": "breast",
        "Sub_Tissue": "breast",
        "Cancer_Type": "BRCA",
        "MSI_Status": "MSS/MSI-L",
        "Drug_Target": "TOP1",
        "Target_Pathway": "DNA replication",
    }


@pytest.fixture
def lung_record() -> Dict[str, str]:
    return {
        "Tissue": "lung",
        "Sub_Tissue": "lung_NSCLC",
        "Cancer_Type": "LUAD",
        "MSI_Status": "MSS/MSI-L",
        "Drug_Target": "EGFR",
        "Target_Pathway": "EGFR signaling",
    }


@pytest.fixture
def melanoma_record() -> Dict[str, str]:
    return {
        "Tissue": "skin",
        "Sub_Tissue": "melanoma",
        "Cancer_Type": "SKCM",
        "MSI_Status": "MSI-H",
        "Drug_Target": "BRAF",
        "Target_Pathway": "ERK MAPK signaling",
    }


# ============================================================================
# RESOURCES DIRECTORY
# ============================================================================

def write_json(path: Path, payload: Any) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def train_tiny_booster(feature_names: List[str]) -> xgb.Booster:
    rng = np.random.default_rng(1234)
    n = 96
    X = rng.integers(0, 2, size=(n, len(feature_names))).astype(float)
    X[:, :4] = rng.uniform(0.0, 3.0, size=(n, 4))
    y = X @ rng.normal(0.0, 1.0, size=len(feature_names)) + 1.5
    dtrain = xgb.DMatrix(X, label=y, feature_names=list(feature_names))
    params = {"max_depth": 3, "eta": 0.3, "objective": "reg:squarederror", "seed": 1234}
    return xgb.train(params, dtrain, num_boost_round=10)


@pytest.fixture
def resources_dir(tmp_path) -> Path:
    """Directory holding every artifact the registry reads."""
    base = tmp_path / "resources"
    base.mkdir()
    write_json(base / "onehot_mapping_robust.json", ONEHOT_MAPPING)
    write_json(base / "frequency_encoding_maps_robust.json", FREQUENCY_MAPS)
    write_json(base / "target_encoding_maps_robust.json", TARGET_MAPS)
    write_json(base / "xgb_onehot_freq_target_meta.json", {"feature_names": MIXED_FEATURES, "reported_test_R2": 0.5})
    write_json(base / "ridge_onehot_only_meta.json", {"feature_names": ONEHOT_FEATURES})
    train_tiny_booster(MIXED_FEATURES).save_model(str(base / "xgb_onehot_freq_target.json"))
    write_json(
        base / "ridge_onehot_only.json",
        {
            "coefficients": [RIDGE_COEFFICIENTS[f] for f in ONEHOT_FEATURES],
            "intercept": RIDGE_INTERCEPT,
            "feature_names": ONEHOT_FEATURES,
        },
    )
    return base


@pytest.fixture
def registry(resources_dir) -> ModelRegistry:
    return ModelRegistry(resources_dir)


# ============================================================================
# STUBS
# ============================================================================

class StubAdapter:
    """Returns canned predictions and records every matrix it sees."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = []

    def predict(self, matrix):
        self.calls.append(matrix)
        return np.asarray(self.values[: len(matrix)], dtype=float)


@pytest.fixture
def stub_registry(encoding_maps):
    """Factory: registry whose xgboost model returns the given raw predictions."""

    def _make(values, model: str = "xgboost"):
        adapter = StubAdapter(values)
        features = MIXED_FEATURES if model == "xgboost" else ONEHOT_FEATURES
        loaded = LoadedModel(spec=MODEL_SPECS[model], adapter=adapter, feature_names=tuple(features), metadata={})
        return ModelRegistry(encoding_maps=encoding_maps, models={model: loaded}), adapter

    return _make


# ============================================================================
# FLASK
# ============================================================================

@pytest.fixture
def app(resources_dir):
    config = type("TestConfig", (Config,), {"RESOURCES_DIR": str(resources_dir), "TESTING": True})
    return create_app(config)


@pytest.fixture
def client(app):
    return app.test_client()
