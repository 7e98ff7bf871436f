"""
Error types raised by the forecasting pipeline.

Every failure aborts the current request. Callers branch on the exception
type; ``user_message`` is the text that may be shown to an end user.
"""

from typing import Optional

GENERIC_FAILURE_MESSAGE = "Failed to generate prediction"


class ForecastError(Exception):
    """Base class for all pipeline errors."""

    user_message = GENERIC_FAILURE_MESSAGE

    def __init__(self, message: str = "", user_message: Optional[str] = None):
        super().__init__(message or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class InvalidSeriesError(ForecastError, ValueError):
    """Price series is malformed (non-finite prices, unordered dates, ...)."""

    def __init__(self, message: str):
        super().__init__(message, user_message=message)


class InsufficientDataError(ForecastError, ValueError):
    """Series is too short to build a single training window."""

    def __init__(self, length: int, window_size: int):
        message = (
            f"Insufficient historical data for prediction "
            f"(need at least {window_size + 1} days, got {length})"
        )
        super().__init__(message, user_message=message)
        self.length = length
        self.window_size = window_size


class TrainingFailure(ForecastError):
    """Model fit failed or produced a non-finite loss."""


class PredictionError(ForecastError):
    """Forward pass failed after a successful fit."""


class PredictionCancelled(ForecastError):
    """Training was stopped between epochs by a cancel request."""

    user_message = "Prediction was cancelled"


class PredictionTimeoutError(ForecastError):
    """Request exceeded its time budget and was cancelled."""

    user_message = "Prediction timed out"


class RequestInProgressError(ForecastError):
    """A prediction is already running for this session."""

    user_message = "A prediction is already running for this session"


class DataProviderError(ForecastError):
    """Historical price retrieval failed."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message, user_message=message)
        self.status_code = status_code
