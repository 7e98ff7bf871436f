"""Request orchestration: lifecycle, pipeline and async service."""

from .forecast import ChartSeries, ForecastPipeline, ForecastResult, Prediction
from .lifecycle import RequestLifecycle, RequestState, backend_initialized, init_backend
from .service import PredictionService

__all__ = [
    "RequestLifecycle",
    "RequestState",
    "init_backend",
    "backend_initialized",
    "Prediction",
    "ChartSeries",
    "ForecastResult",
    "ForecastPipeline",
    "PredictionService",
]
