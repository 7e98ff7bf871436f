"""
Heuristic confidence score derived from the final training loss.

Targets are on the [0, 1] normalized scale, so an MSE near 0 maps to a
confidence near 1 and an MSE of 1 or more maps to 0. This is a proxy for
how well the model fits its own training windows, not a calibrated
probability or a statistical confidence interval.
"""

import math
from typing import Optional


def estimate_confidence(final_loss: Optional[float]) -> float:
    """
    Map a loss to a score in [0, 1]: ``clamp(1 - loss, 0, 1)``.

    Non-increasing in ``final_loss``. A missing or NaN loss scores 0.
    """
    if final_loss is None or math.isnan(final_loss):
        return 0.0
    return float(max(0.0, min(1.0, 1.0 - final_loss)))
