# feature_pipeline/errors.py


class PipelineError(Exception):
    """Base class for all feature pipeline errors"""


class SchemaError(PipelineError):
    """Raised when a feature schema cannot be inferred or is inconsistent"""


class StatisticsOverflowError(PipelineError):
    """Raised when a numeric feature's statistics do not fit in float64"""


class TrainingDataError(PipelineError):
    """Raised when the row source yields no rows with a recognized label"""


class ArtifactNotFoundError(PipelineError):
    """Raised when inference is requested but no persisted artifact exists"""


class ArtifactCorruptError(PipelineError):
    """Raised when a persisted artifact is structurally invalid"""


class DimensionMismatchError(PipelineError):
    """Raised when the encoded width disagrees with the model's input width"""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Encoded width {actual} does not match model input width {expected}"
        )
