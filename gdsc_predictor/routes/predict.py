from flask import Blueprint, current_app, request, jsonify
import logging
from flasgger import swag_from
from marshmallow import ValidationError

import pandas as pd

from ..errors import InvalidInput, PredictorError, UnknownModel
from ..schemas.predict import EXAMPLE_RECORD, EncodeRequestSchema, PredictBatchSchema, PredictItemSchema
from ..services.model_registry import get_model_spec
from ..services.predict import encode_features, predict_batch_sensitivity, predict_single_sensitivity

bp = Blueprint("predict", __name__)

logger = logging.getLogger("predict")


def frame_to_records(frame: pd.DataFrame) -> list[dict]:
    """JSON-safe rows (NaN -> None)."""
    return frame.astype(object).where(frame.notna(), None).to_dict(orient="records")


def load_body(schema):
    """Parse the JSON body with `schema`; returns (data, error_response)."""
    if not request.is_json:
        return None, (jsonify({"error": "Content-Type must be application/json"}), 415)
    payload = request.get_json(silent=True)
    if payload is None:
        return None, (jsonify({"error": "Invalid JSON body"}), 400)
    try:
        return schema.load(payload), None
    except ValidationError as e:
        return None, (jsonify({"error": "Invalid request body", "messages": e.messages}), 400)


def run_prediction(fn):
    """Call a prediction service and map predictor errors to HTTP responses."""
    try:
        return fn(), None
    except UnknownModel as e:
        return None, (jsonify({"error": str(e)}), 404)
    except InvalidInput as e:
        return None, (jsonify({"error": str(e)}), 400)
    except PredictorError as e:
        logger.exception("Prediction failed: %s", e)
        return None, (jsonify({"error": f"Prediction failed: {e}"}), 500)


@bp.post("/predict")
@swag_from(
    {
        "tags": ["ml"],
        "consumes": ["application/json"],
        "parameters": [
            {
                "in": "body",
                "name": "body",
                "required": True,
                "schema": {"$ref": "#/definitions/PredictItem"},
            }
        ],
        "responses": {
            200: {
                "description": "Prediction for exactly one cell line / drug pair",
                "schema": {"$ref": "#/definitions/PredictResponse"},
            },
            400: {"description": "Bad Request"},
            404: {"description": "Model Not Found"},
            415: {"description": "Unsupported Media Type"},
            500: {"description": "Internal Server Error"},
        },
    }
)
def predict():
    logger.debug("Headers: %s", dict(request.headers))

    data, error = load_body(PredictItemSchema())
    if error:
        return error

    model = data.get("model") or current_app.extensions["default_model_name"]
    registry = current_app.extensions["registry"]
    results, error = run_prediction(lambda: predict_single_sensitivity(data["record"], model, registry))
    if error:
        return error

    return jsonify({"result": frame_to_records(results)[0]}), 200


@bp.post("/predict/batch")
@swag_from(
    {
        "tags": ["ml"],
        "consumes": ["application/json"],
        "parameters": [
            {
                "in": "body",
                "name": "body",
                "required": True,
                "schema": {"$ref": "#/definitions/PredictBatch"},
            }
        ],
        "responses": {
            200: {
                "description": "One prediction per input record, in input order",
                "schema": {"$ref": "#/definitions/PredictBatchResponse"},
            },
            400: {"description": "Bad Request (including an empty records list)"},
            404: {"description": "Model Not Found"},
            415: {"description": "Unsupported Media Type"},
            500: {"description": "Internal Server Error"},
        },
    }
)
def predict_batch():
    data, error = load_body(PredictBatchSchema())
    if error:
        return error

    model = data.get("model") or current_app.extensions["default_model_name"]
    registry = current_app.extensions["registry"]
    results, error = run_prediction(lambda: predict_batch_sensitivity(data["records"], model, registry))
    if error:
        return error

    return jsonify({"results": frame_to_records(results)}), 200


@bp.post("/encode")
@swag_from(
    {
        "tags": ["ml"],
        "summary": "Encode raw records into the numeric matrix a model consumes",
        "consumes": ["application/json"],
        "parameters": [
            {
                "in": "body",
                "name": "body",
                "required": True,
                "schema": {"$ref": "#/definitions/EncodeRequest"},
            }
        ],
        "responses": {
            200: {"description": "Encoded matrix", "schema": {"$ref": "#/definitions/EncodeResponse"}},
            400: {"description": "Bad Request"},
            415: {"description": "Unsupported Media Type"},
            500: {"description": "Internal Server Error"},
        },
    }
)
def encode():
    data, error = load_body(EncodeRequestSchema())
    if error:
        return error

    registry = current_app.extensions["registry"]
    matrix, error = run_prediction(lambda: encode_features(data["records"], data["strategy"], registry))
    if error:
        return error

    return jsonify(
        {
            "strategy": data["strategy"],
            "feature_names": list(matrix.columns),
            "matrix": matrix.to_numpy(dtype=float).tolist(),
        }
    ), 200


@bp.get("/schema")
@swag_from(
    {
        "tags": ["ml"],
        "summary": "Describe input columns, encoded feature names and an example request body",
        "parameters": [
            {
                "name": "model",
                "in": "query",
                "type": "string",
                "required": False,
                "description": "Model to inspect. Uses default model if not specified.",
            }
        ],
        "responses": {
            200: {
                "description": "Model feature contract and example PredictItem payload",
                "schema": {
                    "type": "object",
                    "properties": {
                        "model": {"type": "string"},
                        "strategy": {"type": "string"},
                        "input_columns": {"type": "array", "items": {"type": "string"}},
                        "feature_names": {
                            "type": "array",
                            "items": {"type": "string"},
                            "description": "Exact feature names in the order used during training",
                        },
                        "example_request": {"$ref": "#/definitions/PredictItem"},
                    },
                    "required": ["model", "feature_names", "example_request"],
                },
            },
            404: {
                "description": "Model not found",
                "schema": {
                    "type": "object",
                    "properties": {"error": {"type": "string"}},
                    "required": ["error"],
                },
            },
        },
    }
)
def schema():
    model = request.args.get("model") or current_app.extensions["default_model_name"]
    registry = current_app.extensions["registry"]

    def describe():
        spec = get_model_spec(model)
        return spec, registry.feature_names(spec.name)

    described, error = run_prediction(describe)
    if error:
        return error
    spec, feature_names = described

    return jsonify(
        {
            "model": spec.name,
            "strategy": spec.strategy.value,
            "input_columns": list(current_app.config["INPUT_COLUMNS"]),
            "feature_names": list(feature_names),
            "example_request": {"model": spec.name, "record": EXAMPLE_RECORD},
        }
    )
