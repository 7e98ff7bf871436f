"""
Min-max scaling of a price series into [0, 1] and back.

A flat series (max == min) cannot be scaled; it is mapped to the midpoint
0.5 and denormalization returns the original constant for any input.
"""

from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np
from loguru import logger

FLAT_SERIES_VALUE = 0.5


@dataclass(frozen=True)
class NormalizedSeries:
    """Scaled values plus the (min, max) pair that produced them."""

    values: np.ndarray
    min: float
    max: float

    @property
    def is_degenerate(self) -> bool:
        return self.max == self.min

    def __len__(self) -> int:
        return len(self.values)

    def denormalize(self, value: Union[float, np.ndarray]):
        return denormalize(value, self.min, self.max)


def normalize(series: Sequence[float]) -> NormalizedSeries:
    """
    Scale a price sequence to [0, 1] using its own min and max.

    Args:
        series: Raw prices (any 1-D sequence)

    Returns:
        NormalizedSeries with float32 values
    """
    raw = np.asarray(series, dtype=np.float64).reshape(-1)
    if raw.size == 0:
        raise ValueError("Cannot normalize an empty series")

    lo = float(raw.min())
    hi = float(raw.max())

    if hi == lo:
        logger.warning(f"Flat price series ({lo}); using constant {FLAT_SERIES_VALUE}")
        values = np.full(raw.shape, FLAT_SERIES_VALUE, dtype=np.float32)
    else:
        values = ((raw - lo) / (hi - lo)).astype(np.float32)

    values.setflags(write=False)
    return NormalizedSeries(values=values, min=lo, max=hi)


def denormalize(value: Union[float, np.ndarray], min_value: float, max_value: float):
    """Inverse of :func:`normalize`. Returns ``min_value`` for a flat series."""
    if max_value == min_value:
        if np.ndim(value) == 0:
            return float(min_value)
        return np.full(np.shape(value), min_value, dtype=np.float64)

    scaled = np.asarray(value, dtype=np.float64) * (max_value - min_value) + min_value
    if scaled.ndim == 0:
        return float(scaled)
    return scaled
