from marshmallow import Schema, fields

class HealthResponseSchema(Schema):
    status = fields.String(metadata={"example": "ok"})

class ModelInfoSchema(Schema):
    model = fields.String()
    model_info = fields.Dict()

class ModelListItemSchema(Schema):
    name = fields.String(required=True, metadata={"example": "xgboost"})
    description = fields.String(required=True)
    reported_test_R2 = fields.Float(allow_none=True, metadata={"example": None})
    recommended_use_case = fields.String(required=True)

class ModelListResponseSchema(Schema):
    models = fields.List(fields.Nested(ModelListItemSchema), required=True)
