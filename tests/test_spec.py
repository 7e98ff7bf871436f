"""Tests for ModelSpec validation and profiles."""

import pytest
from pydantic import ValidationError

from price_forecast.models import COMPACT, PROFILES, STACKED, ModelSpec, resolve_profile


def _spec(**overrides):
    params = dict(window_size=5, recurrent_units=(8,), dropout_rates=(0.1,))
    params.update(overrides)
    return ModelSpec(**params)


class TestProfiles:
    def test_stacked_is_canonical_shape(self):
        assert STACKED.window_size == 14
        assert STACKED.recurrent_units == (100, 50)
        assert STACKED.dropout_rates == (0.2, 0.2)
        assert STACKED.dense_units == (32,)
        assert STACKED.learning_rate == 0.0005
        assert STACKED.epochs == 150
        assert STACKED.validation_split == 0.1
        assert STACKED.min_series_length == 15

    def test_compact_profile(self):
        assert COMPACT.window_size == 5
        assert COMPACT.validation_split is None
        assert COMPACT.min_series_length == 6

    def test_resolve_profile(self):
        assert resolve_profile("STACKED") is STACKED
        assert set(PROFILES) == {"stacked", "compact"}

    def test_resolve_unknown(self):
        with pytest.raises(ValueError, match="Unknown model profile"):
            resolve_profile("huge")


class TestValidation:
    def test_defaults(self):
        spec = _spec()
        assert spec.loss == "mse"
        assert spec.rnn_type == "lstm"
        assert spec.shuffle is True

    def test_dropout_length_must_match(self):
        with pytest.raises(ValidationError):
            _spec(recurrent_units=(8, 4), dropout_rates=(0.1,))

    @pytest.mark.parametrize("rate", [-0.1, 1.0])
    def test_dropout_range(self, rate):
        with pytest.raises(ValidationError):
            _spec(dropout_rates=(rate,))

    @pytest.mark.parametrize("split", [0.0, 1.0, 1.5])
    def test_validation_split_range(self, split):
        with pytest.raises(ValidationError):
            _spec(validation_split=split)

    @pytest.mark.parametrize(
        "field,value",
        [("window_size", 0), ("epochs", 0), ("batch_size", 0), ("learning_rate", 0.0)],
    )
    def test_positive_fields(self, field, value):
        with pytest.raises(ValidationError):
            _spec(**{field: value})

    def test_unknown_rnn_type(self):
        with pytest.raises(ValidationError):
            _spec(rnn_type="transformer")

    def test_only_mse_loss(self):
        with pytest.raises(ValidationError):
            _spec(loss="huber")

    def test_zero_width_layer(self):
        with pytest.raises(ValidationError):
            _spec(dense_units=(0,))

    def test_frozen(self):
        spec = _spec()
        with pytest.raises(ValidationError):
            spec.epochs = 3
