import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from ..errors import ResourceNotFound, SchemaMismatch, UnknownModel
from .adapters import RidgeAdapter, XGBoostAdapter
from .encoding import EncodingMaps, EncodingStrategy, load_encoding_maps
from .resources import PathLike, find_resource, read_json_resource

logger = logging.getLogger(__name__)

Adapter = Union[XGBoostAdapter, RidgeAdapter]


@dataclass(frozen=True)
class ModelSpec:
    name: str
    strategy: EncodingStrategy
    artifacts: Tuple[str, ...]  # preference order
    metadata: str
    description: str
    recommended_use_case: str


MODEL_SPECS: Dict[str, ModelSpec] = {
    "xgboost": ModelSpec(
        name="xgboost",
        strategy=EncodingStrategy.MIXED,
        artifacts=("xgb_onehot_freq_target.json",),
        metadata="xgb_onehot_freq_target_meta.json",
        description="Efficiency Specialist: gradient-boosted trees on mixed one-hot, frequency and target encodings.",
        recommended_use_case="Default choice. Best speed/accuracy trade-off for drugs and cell lines seen in training.",
    ),
    "ridge": ModelSpec(
        name="ridge",
        strategy=EncodingStrategy.ONEHOT_ONLY,
        artifacts=("ridge_onehot_only.json", "ridge_onehot_only.pkl"),
        metadata="ridge_onehot_only_meta.json",
        description="Generalization Specialist: ridge regression on one-hot encodings only.",
        recommended_use_case="Novel drugs not in the training panel (leave-one-drug-out RMSE ~1.18).",
    ),
}


def get_model_spec(name: Any) -> ModelSpec:
    spec = MODEL_SPECS.get(str(name).strip().lower()) if name is not None else None
    if spec is None:
        raise UnknownModel(f"Model '{name}' not found. Available: {', '.join(MODEL_SPECS)}.")
    return spec


def spec_for_strategy(strategy: Any) -> ModelSpec:
    strategy = EncodingStrategy.parse(strategy)
    return next(s for s in MODEL_SPECS.values() if s.strategy is strategy)


def feature_names_from_metadata(metadata: Dict[str, Any], source: str) -> Tuple[str, ...]:
    names = metadata.get("feature_names") or metadata.get("feature_names_in") or []
    if not names:
        raise SchemaMismatch(f"{source} has no feature_names.")
    if len(set(names)) != len(names):
        raise SchemaMismatch(f"{source} lists duplicate feature names.")
    return tuple(str(n) for n in names)


@dataclass(frozen=True)
class LoadedModel:
    spec: ModelSpec
    adapter: Adapter
    feature_names: Tuple[str, ...]
    metadata: Dict[str, Any]


def load_model(spec: ModelSpec, resources_dir: PathLike, metadata: Optional[Dict[str, Any]] = None) -> LoadedModel:
    """Load one model artifact together with its schema metadata."""
    if metadata is None:
        metadata = read_json_resource(resources_dir, spec.metadata)
    feature_names = feature_names_from_metadata(metadata, spec.metadata)
    path = find_resource(resources_dir, *spec.artifacts)
    if spec.strategy is EncodingStrategy.MIXED:
        adapter: Adapter = XGBoostAdapter.from_file(path, feature_names)
    else:
        adapter = RidgeAdapter.from_file(path, feature_names)
    return LoadedModel(spec=spec, adapter=adapter, feature_names=feature_names, metadata=metadata)


class ModelRegistry:
    """
    Process-wide, load-once holder of encoding maps, schemas and model adapters.

    Everything is read lazily from `resources_dir` on first use under a lock,
    then served read-only. Tests can inject `encoding_maps`, `schemas` and
    `models` directly and leave `resources_dir` unset.
    """

    def __init__(
        self,
        resources_dir: Optional[PathLike] = None,
        encoding_maps: Optional[EncodingMaps] = None,
        schemas: Optional[Dict[str, Dict[str, Any]]] = None,
        models: Optional[Dict[str, Any]] = None,
    ):
        self.resources_dir = Path(resources_dir).resolve() if resources_dir is not None else None
        self._encoding_maps = encoding_maps
        self._metadata: Dict[str, Dict[str, Any]] = dict(schemas or {})
        self._models: Dict[str, LoadedModel] = {}
        self._lock = threading.RLock()
        for name, entry in (models or {}).items():
            self._models[get_model_spec(name).name] = entry

    def _require_dir(self, name: str) -> Path:
        if self.resources_dir is None:
            raise ResourceNotFound(name)
        return self.resources_dir

    @property
    def encoding_maps(self) -> EncodingMaps:
        with self._lock:
            if self._encoding_maps is None:
                self._encoding_maps = load_encoding_maps(self._require_dir("encoding maps"))
            return self._encoding_maps

    def metadata(self, name: Any) -> Dict[str, Any]:
        spec = get_model_spec(name)
        with self._lock:
            if spec.name not in self._metadata:
                self._metadata[spec.name] = read_json_resource(self._require_dir(spec.metadata), spec.metadata)
            return self._metadata[spec.name]

    def feature_names(self, name: Any) -> Tuple[str, ...]:
        spec = get_model_spec(name)
        with self._lock:
            loaded = self._models.get(spec.name)
        if loaded is not None:
            return loaded.feature_names
        return feature_names_from_metadata(self.metadata(spec.name), spec.metadata)

    def schema_for(self, strategy: Any) -> Tuple[str, ...]:
        return self.feature_names(spec_for_strategy(strategy).name)

    def get(self, name: Any) -> LoadedModel:
        spec = get_model_spec(name)
        with self._lock:
            loaded = self._models.get(spec.name)
            if loaded is None:
                loaded = load_model(spec, self._require_dir(spec.artifacts[0]), self.metadata(spec.name))
                self._models[spec.name] = loaded
            return loaded

    def reported_r2(self, name: Any) -> Optional[float]:
        """Test R^2 recorded in the model's metadata file, if shipped."""
        try:
            value = self.metadata(name).get("reported_test_R2")
        except ResourceNotFound:
            return None
        return None if value is None else float(value)


_registries: Dict[Path, ModelRegistry] = {}
_registries_lock = threading.Lock()


def get_registry(resources_dir: Optional[PathLike] = None) -> ModelRegistry:
    """Shared registry for a resources directory (defaults to Config.RESOURCES_DIR)."""
    if resources_dir is None:
        from ..config import Config

        resources_dir = Config.RESOURCES_DIR
    key = Path(resources_dir).resolve()
    with _registries_lock:
        registry = _registries.get(key)
        if registry is None:
            registry = ModelRegistry(key)
            _registries[key] = registry
        return registry


def list_model_specs() -> List[ModelSpec]:
    return list(MODEL_SPECS.values())
