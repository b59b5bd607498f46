class PredictorError(Exception):
    """Base class for every error raised by the predictor."""


class ResourceNotFound(PredictorError, FileNotFoundError):
    """A static artifact (encoding map, schema, model) is missing."""

    def __init__(self, name: str, resources_dir=None):
        self.name = name
        self.resources_dir = resources_dir
        where = f" in '{resources_dir}'" if resources_dir is not None else ""
        super().__init__(f"Resource not found: {name}{where}")


class SchemaMismatch(PredictorError):
    """A model artifact disagrees with the feature schema it is paired with."""


class InvalidInput(PredictorError, ValueError):
    """Caller supplied input the predictor cannot work with."""


class InvalidInputCardinality(InvalidInput):
    """Single-record entry point called with anything but exactly one row."""


class EmptyInput(InvalidInput):
    """Batch entry point called with zero rows."""


class UnknownModel(InvalidInput):
    """Model selector is not one of the available models."""
