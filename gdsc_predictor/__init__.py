# gdsc_predictor/__init__.py
from flask import Flask, redirect, url_for
from flasgger import Swagger
from apispec import APISpec
from apispec.ext.marshmallow import MarshmallowPlugin

from .config import Config
from .errors import (
    EmptyInput,
    InvalidInput,
    InvalidInputCardinality,
    PredictorError,
    ResourceNotFound,
    SchemaMismatch,
    UnknownModel,
)
from .services.encoding import EncodingMaps, EncodingStrategy, TargetMap, encode_records
from .services.model_registry import ModelRegistry, get_registry
from .services.predict import (
    classify_sensitivity,
    encode_features,
    get_available_models,
    predict_batch_sensitivity,
    predict_single_sensitivity,
)
from .routes.predict import bp as predict_bp
from .routes.meta import bp as meta_bp

from .schemas.predict import (
    EncodeRequestSchema,
    EncodeResponseSchema,
    PredictBatchResponseSchema,
    PredictBatchSchema,
    PredictItemSchema,
    PredictResponseSchema,
    PredictionResultSchema,
    RecordSchema,
)
from .schemas.meta import HealthResponseSchema, ModelInfoSchema, ModelListItemSchema, ModelListResponseSchema

from flask_cors import CORS
from logging.config import dictConfig


def create_app(config_object=None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
            }
        },
        "root": {
            "level": app.config["LOG_LEVEL"],
            "handlers": ["console"],
        },
    })
    app.logger.info("Logging initialized at %s", app.config["LOG_LEVEL"])

    cors_origins = app.config.get("CORS_ORIGINS")
    CORS(
        app,
        resources={
            r"/api*": {"origins": cors_origins},
            r"/models*": {"origins": cors_origins},
            r"/model_info*": {"origins": cors_origins},
            r"/health*": {"origins": cors_origins},
        },
    )

    app.extensions["default_model_name"] = app.config["DEFAULT_MODEL_NAME"]
    registry = get_registry(app.config["RESOURCES_DIR"])
    # Encoding maps are shared by both models; a missing map is a deployment error
    maps = registry.encoding_maps
    app.logger.info("Encoding maps ready from %s (%d one-hot columns)", registry.resources_dir, len(maps.onehot))
    app.extensions["registry"] = registry

    # Register blueprints
    app.register_blueprint(predict_bp, url_prefix="/api")
    app.register_blueprint(meta_bp)

    # Build OpenAPI template with apispec + MarshmallowPlugin
    plugin = MarshmallowPlugin()

    desc = """
Drug-sensitivity prediction API for GDSC cell line / drug pairs.

Overview
• Purpose: predict LN_IC50 from six categorical descriptors with a gradient-boosted (xgboost) or ridge model.
• Inputs/Outputs: Tissue, Sub_Tissue, Cancer_Type, MSI_Status, Drug_Target, Target_Pathway (any may be missing). \
Returns Predicted_LN_IC50, Predicted_IC50, Sensitivity_Status and Model_Used.

Key Endpoints
• GET  /health             — liveness check
• GET  /models             — list of available models
• GET  /model_info         — strategy, feature names, description
• GET  /api/schema         — input columns, encoded feature order and example payload
• POST /api/encode         — encoded feature matrix for a strategy
• POST /api/predict        — exactly one record
• POST /api/predict/batch  — one or more records

Usage Notes
• Content-Type must be **application/json**.
• Unseen category values are accepted and encoded as unknown.
"""

    spec = APISpec(
        title="GDSC Sensitivity Predictor API",
        version="1.0.0",
        openapi_version="2.0",  # Flasgger’s UI expects swagger 2.0 structure
        plugins=[plugin],
        info={"description": desc},
    )

    # Component schemas
    spec.components.schema("Record", schema=RecordSchema)
    spec.components.schema("PredictItem", schema=PredictItemSchema)
    spec.components.schema("PredictBatch", schema=PredictBatchSchema)
    spec.components.schema("PredictionResult", schema=PredictionResultSchema)
    spec.components.schema("PredictResponse", schema=PredictResponseSchema)
    spec.components.schema("PredictBatchResponse", schema=PredictBatchResponseSchema)
    spec.components.schema("EncodeRequest", schema=EncodeRequestSchema)
    spec.components.schema("EncodeResponse", schema=EncodeResponseSchema)
    spec.components.schema("HealthResponse", schema=HealthResponseSchema)
    spec.components.schema("ModelInfo", schema=ModelInfoSchema)
    spec.components.schema("ModelListItem", schema=ModelListItemSchema)
    spec.components.schema("ModelListResponse", schema=ModelListResponseSchema)

    # Swagger UI config
    swagger_config = {
        "headers": [],
        "specs": [
            {
                "endpoint": "apispec",
                "route": "/apispec.json",
                "rule_filter": lambda rule: True,
                "model_filter": lambda tag: True,
            }
        ],
        "static_url_path": "/flasgger_static",
        "swagger_ui": True,
        "specs_route": "/apidocs/",
    }

    template = spec.to_dict()
    template.setdefault("basePath", "/")
    template.setdefault("schemes", ["http"])

    Swagger(app, config=swagger_config, template=template)

    @app.route("/")
    def index():
        return redirect(url_for("flasgger.apidocs"))

    return app


__all__ = [
    "Config",
    "create_app",
    "EmptyInput",
    "EncodingMaps",
    "EncodingStrategy",
    "InvalidInput",
    "InvalidInputCardinality",
    "ModelRegistry",
    "PredictorError",
    "ResourceNotFound",
    "SchemaMismatch",
    "TargetMap",
    "UnknownModel",
    "classify_sensitivity",
    "encode_features",
    "encode_records",
    "get_available_models",
    "get_registry",
    "predict_batch_sensitivity",
    "predict_single_sensitivity",
]
