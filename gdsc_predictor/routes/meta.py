import logging
from flask import Blueprint, current_app, jsonify, request
from flasgger import swag_from

from ..errors import PredictorError, UnknownModel
from ..services.model_registry import get_model_spec
from ..services.predict import get_available_models

# Set up logger
logger = logging.getLogger(__name__)

bp = Blueprint("meta", __name__)


@bp.get("/health")
@swag_from(
    {
        "tags": ["meta"],
        "responses": {
            200: {
                "description": "Service is alive",
                "schema": {
                    "type": "object",
                    "properties": {"status": {"type": "string", "example": "ok"}},
                    "required": ["status"],
                },
                "examples": {
                    "application/json": {"status": "ok"}
                },
            }
        },
    }
)
def health():
    return jsonify({"status": "ok"})


@bp.get("/model_info")
@swag_from(
    {
        "tags": ["meta"],
        "parameters": [
            {
                "name": "model",
                "in": "query",
                "type": "string",
                "required": False,
                "description": "Model to get information about (xgboost | ridge). Defaults to the configured default model.",
            }
        ],
        "responses": {
            200: {
                "description": "Catalog entry, encoding strategy and feature schema of the requested model",
                "schema": {"$ref": "#/definitions/ModelInfo"},
                "examples": {
                    "application/json": {
                        "model": "ridge",
                        "model_info": {
                            "name": "ridge",
                            "strategy": "onehot_only",
                            "description": "Generalization Specialist: ridge regression on one-hot encodings only.",
                            "feature_names": ["Tissue_breast", "Tissue_lung", "MSI_Status_MSS.MSI.L"],
                            "training_features": 3,
                        },
                    }
                },
            },
            404: {"description": "Model not found"},
            500: {"description": "Internal server error: couldn't get model info"},
        },
    }
)
def model_info():
    """
    Get the catalog entry and feature schema of a model.
    If no 'model' query param is provided, describes the default model.
    """
    model = request.args.get("model") or current_app.extensions.get("default_model_name")
    try:
        spec = get_model_spec(model)
        registry = current_app.extensions["registry"]
        feature_names = list(registry.feature_names(spec.name))
        return jsonify(
            {
                "model": spec.name,
                "model_info": {
                    "name": spec.name,
                    "strategy": spec.strategy.value,
                    "description": spec.description,
                    "recommended_use_case": spec.recommended_use_case,
                    "reported_test_R2": registry.reported_r2(spec.name),
                    "feature_names": feature_names,
                    "training_features": len(feature_names),
                },
            }
        )
    except UnknownModel as e:
        return jsonify({"error": str(e)}), 404
    except PredictorError:
        logger.exception("Error getting model info")
        return jsonify({"error": "Internal server error: couldn't get model info"}), 500


@bp.get("/models")
@swag_from(
    {
        "tags": ["meta"],
        "responses": {
            200: {
                "description": "List of available models",
                "schema": {"$ref": "#/definitions/ModelListResponse"},
                "examples": {
                    "application/json": {
                        "models": [
                            {
                                "name": "xgboost",
                                "description": "Efficiency Specialist: gradient-boosted trees on mixed one-hot, frequency and target encodings.",
                                "reported_test_R2": None,
                                "recommended_use_case": "Default choice.",
                            },
                            {
                                "name": "ridge",
                                "description": "Generalization Specialist: ridge regression on one-hot encodings only.",
                                "reported_test_R2": None,
                                "recommended_use_case": "Novel drugs not in the training panel.",
                            },
                        ]
                    }
                },
            },
            500: {"description": "Internal server error"},
        },
    }
)
def list_models():
    """
    List the selectable models.
    Returns: {"models": [{name, description, reported_test_R2, recommended_use_case}, ...]}
    """
    try:
        models = get_available_models(current_app.extensions.get("registry"))
        return jsonify({"models": models}), 200
    except Exception as e:
        logger.exception("Error listing models")
        return jsonify({"error": f"Error getting model list: {e}"}), 500
