"""Tests for resource resolution and the load-once model registry."""

import json
import pickle
import threading

import pytest

from conftest import MIXED_FEATURES, ONEHOT_FEATURES
from gdsc_predictor.errors import ResourceNotFound, SchemaMismatch, UnknownModel
from gdsc_predictor.services.adapters import RidgeAdapter, XGBoostAdapter
from gdsc_predictor.services.encoding import EncodingStrategy
from gdsc_predictor.services.model_registry import (
    ModelRegistry,
    feature_names_from_metadata,
    get_model_spec,
    get_registry,
    spec_for_strategy,
)
from gdsc_predictor.services.resources import find_resource, read_json_resource, resolve_resource


class TestResources:
    def test_resolve_existing(self, resources_dir):
        path = resolve_resource(resources_dir, "onehot_mapping_robust.json")
        assert path.is_file()

    def test_missing_resource(self, resources_dir):
        with pytest.raises(ResourceNotFound) as exc:
            read_json_resource(resources_dir, "does_not_exist.json")
        assert exc.value.name == "does_not_exist.json"
        assert isinstance(exc.value, FileNotFoundError)

    def test_find_resource_prefers_first(self, resources_dir):
        (resources_dir / "ridge_onehot_only.pkl").write_bytes(b"")
        path = find_resource(resources_dir, "ridge_onehot_only.json", "ridge_onehot_only.pkl")
        assert path.name == "ridge_onehot_only.json"

    def test_find_resource_none_present(self, tmp_path):
        with pytest.raises(ResourceNotFound):
            find_resource(tmp_path, "a.json", "a.pkl")


class TestCatalog:
    def test_strategy_per_model(self):
        assert get_model_spec("xgboost").strategy is EncodingStrategy.MIXED
        assert get_model_spec("Ridge").strategy is EncodingStrategy.ONEHOT_ONLY
        assert spec_for_strategy("onehot_only").name == "ridge"
        assert spec_for_strategy("mixed").name == "xgboost"

    def test_unknown_model(self):
        with pytest.raises(UnknownModel):
            get_model_spec("random_forest")

    def test_metadata_without_feature_names(self):
        with pytest.raises(SchemaMismatch):
            feature_names_from_metadata({"model": "xgb"}, "meta.json")

    def test_metadata_duplicate_feature_names(self):
        with pytest.raises(SchemaMismatch):
            feature_names_from_metadata({"feature_names": ["a", "b", "a"]}, "meta.json")

    def test_metadata_feature_names_in_accepted(self):
        assert feature_names_from_metadata({"feature_names_in": ["a", "b"]}, "meta.json") == ("a", "b")


class TestModelRegistry:
    def test_loads_both_models(self, registry):
        xgb_model = registry.get("xgboost")
        ridge_model = registry.get("ridge")
        assert isinstance(xgb_model.adapter, XGBoostAdapter)
        assert isinstance(ridge_model.adapter, RidgeAdapter)
        assert xgb_model.feature_names == tuple(MIXED_FEATURES)
        assert ridge_model.feature_names == tuple(ONEHOT_FEATURES)

    def test_models_loaded_once(self, registry):
        assert registry.get("ridge") is registry.get("ridge")
        assert registry.encoding_maps is registry.encoding_maps

    def test_concurrent_first_use_loads_once(self, registry):
        seen = []

        def worker():
            seen.append(registry.get("xgboost"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len({id(m) for m in seen}) == 1

    def test_schema_for_strategy(self, registry):
        assert registry.schema_for("mixed") == tuple(MIXED_FEATURES)
        assert registry.schema_for("onehot_only") == tuple(ONEHOT_FEATURES)

    def test_missing_model_artifact(self, resources_dir):
        (resources_dir / "xgb_onehot_freq_target.json").unlink()
        registry = ModelRegistry(resources_dir)
        with pytest.raises(ResourceNotFound):
            registry.get("xgboost")
        # the other model is unaffected
        assert registry.get("ridge").feature_names == tuple(ONEHOT_FEATURES)

    def test_missing_encoding_map(self, resources_dir):
        (resources_dir / "target_encoding_maps_robust.json").unlink()
        with pytest.raises(ResourceNotFound):
            ModelRegistry(resources_dir).encoding_maps

    def test_ridge_falls_back_to_pickle(self, resources_dir):
        artifact = json.loads((resources_dir / "ridge_onehot_only.json").read_text(encoding="utf-8"))
        (resources_dir / "ridge_onehot_only.json").unlink()
        with open(resources_dir / "ridge_onehot_only.pkl", "wb") as f:
            pickle.dump({"ridge_fit": artifact}, f)
        loaded = ModelRegistry(resources_dir).get("ridge")
        assert loaded.adapter.intercept == artifact["intercept"]

    def test_schema_mismatch_between_meta_and_artifact(self, resources_dir):
        meta = {"feature_names": list(reversed(ONEHOT_FEATURES))}
        (resources_dir / "ridge_onehot_only_meta.json").write_text(json.dumps(meta), encoding="utf-8")
        with pytest.raises(SchemaMismatch):
            ModelRegistry(resources_dir).get("ridge")

    def test_registry_without_resources(self, encoding_maps):
        registry = ModelRegistry(encoding_maps=encoding_maps)
        with pytest.raises(ResourceNotFound):
            registry.get("ridge")
        assert registry.reported_r2("ridge") is None

    def test_injected_schema(self, encoding_maps):
        registry = ModelRegistry(encoding_maps=encoding_maps, schemas={"ridge": {"feature_names": ONEHOT_FEATURES}})
        assert registry.schema_for("onehot_only") == tuple(ONEHOT_FEATURES)


class TestSharedRegistry:
    def test_same_directory_same_registry(self, resources_dir):
        assert get_registry(resources_dir) is get_registry(str(resources_dir))

    def test_different_directories(self, resources_dir, tmp_path):
        assert get_registry(resources_dir) is not get_registry(tmp_path)
