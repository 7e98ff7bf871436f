"""
Next-Close Forecast

Predicts the next trading day's closing price for one stock from a short
price history, training a fresh recurrent regressor for every request.
"""

__version__ = "0.1.0"

from . import data, evaluation, features, models, pipeline

__all__ = ["data", "features", "models", "evaluation", "pipeline"]
