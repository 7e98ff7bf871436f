"""
End-to-end next-close forecast for one request.

normalize -> window -> train -> predict -> denormalize -> confidence,
all inside a RequestLifecycle so every buffer is released on every path.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from uuid import uuid4

import pandas as pd
from loguru import logger

from price_forecast import config
from price_forecast.data.series import PriceSeries
from price_forecast.errors import ForecastError, PredictionError, TrainingFailure
from price_forecast.evaluation.confidence import estimate_confidence
from price_forecast.features.normalization import normalize
from price_forecast.features.windows import build_windows, last_window
from price_forecast.models.predictor import predict
from price_forecast.models.sequence_model import build_model
from price_forecast.models.spec import ModelSpec
from price_forecast.models.training import EpochObserver, SequenceTrainer, TrainingHistory
from price_forecast.pipeline.lifecycle import RequestLifecycle, RequestState, init_backend


@dataclass(frozen=True)
class Prediction:
    current_price: float
    predicted_price: float
    confidence: float  # heuristic in [0, 1], see evaluation.confidence

    def to_dict(self) -> Dict[str, float]:
        return {
            "currentPrice": self.current_price,
            "predictedPrice": self.predicted_price,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class ChartSeries:
    """
    Aligned sequences for plotting history plus the forecast.

    ``labels`` holds the input dates followed by the next business day.
    ``historical`` has one value per input date. ``predicted`` has one
    slot per label, None everywhere except the last two, which carry the
    current and predicted prices.
    """

    labels: List[str]
    historical: List[float]
    predicted: List[Optional[float]]

    @classmethod
    def build(cls, series: PriceSeries, prediction: Prediction) -> "ChartSeries":
        next_day = (pd.Timestamp(series.last_date) + pd.offsets.BDay(1)).strftime("%Y-%m-%d")
        overlay: List[Optional[float]] = [None] * len(series)
        overlay[-1] = prediction.current_price
        overlay.append(prediction.predicted_price)
        return cls(
            labels=series.dates + [next_day],
            historical=[float(c) for c in series.closes],
            predicted=overlay,
        )

    def to_dict(self) -> Dict[str, List]:
        return {"labels": self.labels, "historical": self.historical, "predicted": self.predicted}


@dataclass(frozen=True)
class ForecastResult:
    request_id: str
    symbol: Optional[str]
    prediction: Prediction
    chart: ChartSeries
    history: TrainingHistory
    spec: ModelSpec
    training_time: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "request_id": self.request_id,
            "symbol": self.symbol,
            **self.prediction.to_dict(),
            "chart": self.chart.to_dict(),
            "history": self.history.to_dict(),
            "training_time": self.training_time,
        }


class ForecastPipeline:
    """Trains a fresh model per call and discards it afterwards."""

    def __init__(self, device: str = config.DEVICE, show_progress: bool = False):
        self.device = device
        self.show_progress = show_progress

    def run(
        self,
        series: PriceSeries,
        spec: ModelSpec,
        observer: Optional[EpochObserver] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ForecastResult:
        """
        Forecast the next close for ``series``.

        Raises:
            InsufficientDataError: series shorter than spec.window_size + 1 (before training)
            TrainingFailure: fit failed or produced a non-finite loss
            PredictionError: forward pass failed
            PredictionCancelled: cancel_event was set between epochs
        """
        init_backend(config.TORCH_NUM_THREADS)
        request_id = uuid4().hex[:8]
        logger.info(
            f"[{request_id}] Forecast request: symbol={series.symbol}, n={len(series)}, "
            f"window={spec.window_size}, epochs={spec.epochs}, device={self.device}"
        )

        with RequestLifecycle(request_id, seed=spec.seed, device=self.device) as lifecycle:
            try:
                lifecycle.advance(RequestState.NORMALIZING)
                normalized = normalize(series.closes)

                lifecycle.advance(RequestState.WINDOWING)
                dataset = build_windows(normalized, spec.window_size)
                window = last_window(normalized, spec.window_size)

                lifecycle.advance(RequestState.TRAINING)
                model = lifecycle.track(build_model(spec, device=self.device))
                trainer = SequenceTrainer(spec, device=self.device, show_progress=self.show_progress)
                t0 = time.monotonic()
                trained = trainer.fit(
                    model, dataset, observer=observer, cancel_event=cancel_event, lifecycle=lifecycle
                )
                training_time = time.monotonic() - t0

                lifecycle.advance(RequestState.PREDICTING)
                predicted_price = predict(trained, normalized, window, lifecycle=lifecycle)
                confidence = estimate_confidence(trained.history.final_train_loss)

                prediction = Prediction(
                    current_price=float(series.last_close),
                    predicted_price=float(predicted_price),
                    confidence=confidence,
                )
                lifecycle.advance(RequestState.DONE)
            except ForecastError:
                raise
            except Exception as e:
                if lifecycle.state is RequestState.PREDICTING:
                    raise PredictionError(f"Prediction failed: {e}") from e
                raise TrainingFailure(f"Forecast failed during {lifecycle.state.value}: {e}") from e

        logger.info(
            f"[{request_id}] current={prediction.current_price:.4f}, "
            f"predicted={prediction.predicted_price:.4f}, confidence={prediction.confidence:.4f}, "
            f"training_time={training_time:.2f}s"
        )

        return ForecastResult(
            request_id=request_id,
            symbol=series.symbol,
            prediction=prediction,
            chart=ChartSeries.build(series, prediction),
            history=trained.history,
            spec=spec,
            training_time=training_time,
        )
