"""
Custom exception hierarchy for the MultiSearch hyperparameter search engine.
"""

class MultiSearchException(Exception):
    """Base exception for all system errors."""
    pass

class ConfigurationError(MultiSearchException):
    """Configuration or property path validation failed."""
    pass

class DataIncompatibilityError(MultiSearchException):
    """Training and test data do not share the same header."""
    pass

class EvaluationFailure(MultiSearchException):
    """Training or evaluating a single configuration failed."""

    def __init__(self, message: str, point=None):
        super().__init__(message)
        self.point = point

class BatchExhaustionError(MultiSearchException):
    """Every evaluation task dispatched in a batch failed."""
    pass

class ModelTrainingError(MultiSearchException):
    """Model training failed."""
    pass
