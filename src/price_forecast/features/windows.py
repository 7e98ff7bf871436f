"""Sliding-window dataset construction for one-step-ahead regression."""

from dataclasses import dataclass
from typing import Iterator, Optional, Sequence, Union

import numpy as np
from loguru import logger

from price_forecast.errors import InsufficientDataError
from price_forecast.features.normalization import NormalizedSeries

SeriesLike = Union[NormalizedSeries, Sequence[float], np.ndarray]


@dataclass(frozen=True)
class Window:
    """Fixed-length input slice and the value that follows it (None at inference)."""

    values: np.ndarray  # (window_size,)
    target: Optional[float] = None


@dataclass(frozen=True)
class WindowDataset:
    """
    Ordered input/target pairs, earliest window first.

    inputs:  (N, window_size) float32
    targets: (N,) float32
    """

    inputs: np.ndarray
    targets: np.ndarray
    window_size: int

    def __len__(self) -> int:
        return len(self.targets)

    def __iter__(self) -> Iterator[Window]:
        for x, y in zip(self.inputs, self.targets):
            yield Window(values=x, target=float(y))

    def __getitem__(self, index: int) -> Window:
        return Window(values=self.inputs[index], target=float(self.targets[index]))


def _as_array(series: SeriesLike) -> np.ndarray:
    if isinstance(series, NormalizedSeries):
        return np.asarray(series.values, dtype=np.float32)
    return np.asarray(series, dtype=np.float32).reshape(-1)


def build_windows(series: SeriesLike, window_size: int) -> WindowDataset:
    """
    Create training windows from a normalized series.

    For i in [0, len - window_size): input = series[i : i + window_size],
    target = series[i + window_size].

    Raises:
        InsufficientDataError: if len(series) <= window_size
    """
    if window_size < 1:
        raise ValueError(f"window_size must be >= 1, got {window_size}")

    values = _as_array(series)
    if len(values) <= window_size:
        raise InsufficientDataError(len(values), window_size)

    n_windows = len(values) - window_size
    inputs = np.stack([values[i : i + window_size] for i in range(n_windows)]).astype(np.float32)
    targets = values[window_size:].astype(np.float32).copy()

    logger.info(
        f"Created {n_windows} windows: window_size={window_size}, "
        f"inputs={inputs.shape}, targets={targets.shape}"
    )

    return WindowDataset(inputs=inputs, targets=targets, window_size=window_size)


def last_window(series: SeriesLike, window_size: int) -> Window:
    """Trailing ``window_size`` values, used only as the inference input."""
    values = _as_array(series)
    if len(values) < window_size:
        raise InsufficientDataError(len(values), window_size)
    return Window(values=values[-window_size:].copy(), target=None)
