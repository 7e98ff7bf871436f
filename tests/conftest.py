"""Pytest configuration and fixtures."""

import pytest

from price_forecast.data import PriceSeries
from price_forecast.models import ModelSpec


@pytest.fixture
def tiny_spec():
    """Small, fast model: trains in well under a second on CPU."""
    return ModelSpec(
        window_size=5,
        rnn_type="lstm",
        recurrent_units=(8,),
        dropout_rates=(0.0,),
        dense_units=(),
        learning_rate=0.01,
        epochs=5,
        batch_size=4,
        shuffle=False,
        validation_split=None,
        seed=0,
    )


@pytest.fixture
def linear_series():
    """Near-linear uptrend from 10 to 20."""
    return PriceSeries.from_prices([10, 11, 12, 13, 14, 15, 16, 17, 18, 19, 20], symbol="TEST")


@pytest.fixture
def flat_series():
    """Constant price series."""
    return PriceSeries.from_prices([50, 50, 50, 50, 50, 50], symbol="FLAT")
