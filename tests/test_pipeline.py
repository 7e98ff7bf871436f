"""End-to-end tests for ForecastPipeline."""

import math

import pytest

from price_forecast.data import PriceSeries
from price_forecast.errors import InsufficientDataError, PredictionError, TrainingFailure
from price_forecast.evaluation import estimate_confidence
from price_forecast.models import ModelSpec, SequenceTrainer
from price_forecast.pipeline import ForecastPipeline, RequestLifecycle, RequestState
from price_forecast.pipeline import forecast as forecast_module


@pytest.fixture
def trend_spec():
    return ModelSpec(
        window_size=5,
        recurrent_units=(16,),
        dropout_rates=(0.0,),
        learning_rate=0.01,
        epochs=100,
        batch_size=32,
        shuffle=True,
        seed=7,
    )


@pytest.fixture
def pipeline():
    return ForecastPipeline(device="cpu")


class TestScenarios:
    def test_linear_trend(self, pipeline, linear_series, trend_spec):
        result = pipeline.run(linear_series, trend_spec)

        assert len(result.history) == trend_spec.epochs
        assert math.isfinite(result.history.final_train_loss)

        prediction = result.prediction
        assert prediction.current_price == 20.0
        assert 10.0 <= prediction.predicted_price <= 30.0
        assert 0.0 <= prediction.confidence <= 1.0
        assert prediction.confidence == pytest.approx(estimate_confidence(result.history.final_train_loss))

    def test_too_short_fails_before_training(self, pipeline, tiny_spec, monkeypatch):
        def fail_fit(*args, **kwargs):
            raise AssertionError("training must not start")

        monkeypatch.setattr(SequenceTrainer, "fit", fail_fit)
        series = PriceSeries.from_prices([10, 11, 12, 13])

        with pytest.raises(InsufficientDataError):
            pipeline.run(series, tiny_spec)

    def test_flat_series(self, pipeline, flat_series, tiny_spec):
        result = pipeline.run(flat_series, tiny_spec)
        assert result.prediction.predicted_price == pytest.approx(50.0)
        assert result.prediction.current_price == 50.0

    def test_stacked_with_validation(self, pipeline):
        spec = ModelSpec(
            window_size=3,
            recurrent_units=(8, 4),
            dropout_rates=(0.2, 0.2),
            dense_units=(4,),
            epochs=3,
            batch_size=4,
            validation_split=0.2,
            seed=1,
        )
        series = PriceSeries.from_prices([float(p) for p in range(100, 112)])
        result = pipeline.run(series, spec)
        assert len(result.history.val_loss) == 3
        assert result.history.final_val_loss is not None


class TestResult:
    def test_chart_series(self, pipeline, linear_series, tiny_spec):
        result = pipeline.run(linear_series, tiny_spec)
        chart = result.chart
        n = len(linear_series)

        assert len(chart.labels) == n + 1
        assert chart.labels[:n] == linear_series.dates
        assert chart.labels[-1] > chart.labels[n - 1]
        assert chart.historical == [float(c) for c in linear_series.closes]
        assert len(chart.predicted) == n + 1
        assert chart.predicted[: n - 1] == [None] * (n - 1)
        assert chart.predicted[-2] == result.prediction.current_price
        assert chart.predicted[-1] == result.prediction.predicted_price

    def test_to_dict(self, pipeline, linear_series, tiny_spec):
        payload = pipeline.run(linear_series, tiny_spec).to_dict()
        assert {"currentPrice", "predictedPrice", "confidence", "chart", "history"} <= set(payload)
        assert payload["symbol"] == "TEST"

    def test_observer(self, pipeline, linear_series, tiny_spec):
        seen = []
        pipeline.run(linear_series, tiny_spec, observer=seen.append)
        assert [e.epoch for e in seen] == list(range(1, tiny_spec.epochs + 1))


class TestFailurePaths:
    @pytest.fixture
    def releases(self, monkeypatch):
        states = []
        original = RequestLifecycle.release

        def spy(self):
            states.append(self.state)
            original(self)

        monkeypatch.setattr(RequestLifecycle, "release", spy)
        return states

    def test_success_releases(self, pipeline, linear_series, tiny_spec, releases):
        pipeline.run(linear_series, tiny_spec)
        assert releases == [RequestState.DONE]

    def test_model_build_error_is_training_failure(self, pipeline, linear_series, tiny_spec, monkeypatch, releases):
        def broken(*args, **kwargs):
            raise RuntimeError("out of memory")

        monkeypatch.setattr(forecast_module, "build_model", broken)
        with pytest.raises(TrainingFailure) as exc_info:
            pipeline.run(linear_series, tiny_spec)
        assert exc_info.value.user_message == "Failed to generate prediction"
        assert releases == [RequestState.FAILED]

    def test_forward_error_is_prediction_error(self, pipeline, linear_series, tiny_spec, monkeypatch, releases):
        def broken(*args, **kwargs):
            raise RuntimeError("bad kernel")

        monkeypatch.setattr(forecast_module, "predict", broken)
        with pytest.raises(PredictionError) as exc_info:
            pipeline.run(linear_series, tiny_spec)
        assert exc_info.value.user_message == "Failed to generate prediction"
        assert releases == [RequestState.FAILED]

    def test_insufficient_data_releases(self, pipeline, tiny_spec, releases):
        with pytest.raises(InsufficientDataError):
            pipeline.run(PriceSeries.from_prices([1, 2, 3]), tiny_spec)
        assert releases == [RequestState.FAILED]
