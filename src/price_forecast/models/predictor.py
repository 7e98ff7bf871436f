"""One-step-ahead inference with a trained SequenceRegressor."""

import math
from typing import Union

import numpy as np
import torch
from loguru import logger

from price_forecast.errors import PredictionError
from price_forecast.features.normalization import NormalizedSeries
from price_forecast.features.windows import Window
from price_forecast.models.training import TrainedModel


def predict_normalized(trained: TrainedModel, window: Union[Window, np.ndarray], lifecycle=None) -> float:
    """
    Single forward pass on the most recent window.

    The model's train/eval mode is restored afterwards and its parameters
    are never touched.

    Returns:
        Prediction on the normalized [0, 1] scale (not clamped)
    """
    values = window.values if isinstance(window, Window) else np.asarray(window)
    values = np.asarray(values, dtype=np.float32).reshape(-1)

    expected = trained.spec.window_size
    if len(values) != expected:
        raise PredictionError(f"Inference window has {len(values)} values, model expects {expected}")

    model = trained.model
    was_training = model.training
    try:
        x = torch.from_numpy(values.copy()).reshape(1, expected, 1).to(trained.device)
        if lifecycle is not None:
            lifecycle.track(x)

        model.eval()
        with torch.no_grad():
            output = model(x)
        if lifecycle is not None:
            lifecycle.track(output)
        value = float(output.reshape(-1)[0].item())
    except PredictionError:
        raise
    except Exception as e:
        raise PredictionError(f"Forward pass failed: {e}") from e
    finally:
        model.train(was_training)

    if not math.isfinite(value):
        raise PredictionError(f"Model produced a non-finite prediction: {value}")

    logger.info(f"Normalized prediction: {value:.6f}")
    return value


def predict(trained: TrainedModel, normalized: NormalizedSeries, window: Union[Window, np.ndarray], lifecycle=None) -> float:
    """
    Forecast the next close in price units.

    Args:
        trained: Fitted model
        normalized: Series carrying the (min, max) used at normalization time
        window: Trailing window of normalized values

    Returns:
        Denormalized next-day price
    """
    scaled = predict_normalized(trained, window, lifecycle=lifecycle)
    price = normalized.denormalize(scaled)
    logger.info(f"Final prediction: {price:.4f} (min={normalized.min}, max={normalized.max})")
    return price
