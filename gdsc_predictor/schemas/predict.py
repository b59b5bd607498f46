# gdsc_predictor/schemas/predict.py
from marshmallow import INCLUDE, Schema, fields, validate

MODEL_CHOICES = ["xgboost", "ridge"]
STRATEGY_CHOICES = ["mixed", "onehot_only", "onehot_freq_target"]
STATUS_CHOICES = ["High Sensitivity", "Moderate", "Resistant"]

EXAMPLE_RECORD = {
    "Tissue": "breast",
    "Sub_Tissue": "breast",
    "Cancer_Type": "BRCA",
    "MSI_Status": "MSS/MSI-L",
    "Drug_Target": "TOP1",
    "Target_Pathway": "DNA replication",
}


class RecordSchema(Schema):
    """
    One cell line / drug pair.

    All six descriptors are optional; missing or unseen values are encoded as
    "unknown" rather than rejected. Extra keys are passed through to the result.
    """

    class Meta:
        unknown = INCLUDE

    Tissue = fields.String(allow_none=True, metadata={"example": "breast"})
    Sub_Tissue = fields.String(allow_none=True, metadata={"example": "breast"})
    Cancer_Type = fields.String(allow_none=True, metadata={"example": "BRCA"})
    MSI_Status = fields.String(allow_none=True, metadata={"example": "MSS/MSI-L"})
    Drug_Target = fields.String(allow_none=True, metadata={"example": "TOP1"})
    Target_Pathway = fields.String(allow_none=True, metadata={"example": "DNA replication"})


class PredictItemSchema(Schema):
    """
    Single-record request for prediction.

    Payload format:
      {
        "model": "xgboost",           # optional; falls back to default if omitted
        "record": {"Tissue": "breast", "Cancer_Type": "BRCA", ...}
      }
    """

    model = fields.String(
        required=False,
        metadata={
            "description": "Model to use (case-insensitive; one of xgboost, ridge). Uses the default model if omitted.",
            "example": "xgboost",
        },
    )
    record = fields.Nested(RecordSchema, required=True)


class PredictBatchSchema(Schema):
    """Batch request: same as PredictItem but with a list of records."""

    model = fields.String(required=False, metadata={"example": "ridge"})
    records = fields.List(fields.Nested(RecordSchema), required=True)


class EncodeRequestSchema(Schema):
    strategy = fields.String(
        load_default="mixed",
        validate=validate.OneOf(STRATEGY_CHOICES),
        metadata={"description": "Encoding strategy (mixed = xgboost schema, onehot_only = ridge schema)."},
    )
    records = fields.List(fields.Nested(RecordSchema), required=True)


class PredictionResultSchema(RecordSchema):
    """Input record plus the derived prediction columns."""

    Predicted_LN_IC50 = fields.Float(required=True, metadata={"example": -1.2345})
    Predicted_IC50 = fields.Float(required=True, metadata={"example": 0.291})
    Sensitivity_Status = fields.String(required=True, validate=validate.OneOf(STATUS_CHOICES))
    Model_Used = fields.String(required=True, validate=validate.OneOf(MODEL_CHOICES))


class PredictResponseSchema(Schema):
    """Response for /api/predict."""

    result = fields.Nested(PredictionResultSchema, required=True)


class PredictBatchResponseSchema(Schema):
    """Response for /api/predict/batch."""

    results = fields.List(fields.Nested(PredictionResultSchema), required=True)


class EncodeResponseSchema(Schema):
    strategy = fields.String(required=True)
    feature_names = fields.List(fields.String(), required=True)
    matrix = fields.List(fields.List(fields.Float()), required=True)
