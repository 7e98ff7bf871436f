"""Tests for the HTTP API."""

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from price_forecast.app_api import main
from price_forecast.errors import DataProviderError
from price_forecast.models import spec as spec_module
from price_forecast.pipeline import ForecastPipeline, PredictionService


def _records(prices):
    dates = pd.bdate_range(end="2024-03-01", periods=len(prices))
    return [{"date": d.strftime("%Y-%m-%d"), "closePrice": p} for d, p in zip(dates, prices)]


@pytest.fixture
def client(monkeypatch, tiny_spec):
    monkeypatch.setitem(spec_module.PROFILES, "compact", tiny_spec)
    monkeypatch.setattr(
        main,
        "service",
        PredictionService(pipeline=ForecastPipeline(device="cpu"), default_spec=tiny_spec, timeout=None),
    )
    return TestClient(main.app)


class TestHealth:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["docs"] == "/docs"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_profiles(self, client):
        data = client.get("/profiles").json()
        assert {"stacked", "compact"} <= set(data["profiles"])
        assert data["profiles"]["stacked"]["window_size"] == 14


class TestPredict:
    def test_predict_from_prices(self, client):
        prices = [10, 11, 12, 13, 14, 15, 16, 17, 18, 19, 20]
        response = client.post(
            "/predict", json={"symbol": "TEST", "prices": _records(prices), "profile": "compact"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["symbol"] == "TEST"
        assert data["currentPrice"] == 20.0
        assert data["profile"] == "compact"
        assert data["epochs"] == 5
        assert 0.0 <= data["confidence"] <= 1.0
        assert len(data["chart"]["labels"]) == len(prices) + 1
        assert data["chart"]["predicted"][-1] == pytest.approx(data["predictedPrice"])

    def test_insufficient_history(self, client):
        response = client.post(
            "/predict", json={"prices": _records([10, 11, 12, 13]), "profile": "compact"}
        )
        assert response.status_code == 400
        assert response.json()["detail"].startswith("Insufficient historical data")

    def test_invalid_prices(self, client):
        response = client.post(
            "/predict", json={"prices": _records([10, 11, -12, 13, 14, 15, 16]), "profile": "compact"}
        )
        assert response.status_code == 400

    def test_missing_source(self, client):
        response = client.post("/predict", json={"profile": "compact"})
        assert response.status_code == 422

    def test_unknown_profile(self, client):
        response = client.post("/predict", json={"prices": _records([1, 2, 3]), "profile": "huge"})
        assert response.status_code == 400

    def test_provider_error(self, client, monkeypatch):
        class MissingSymbolProvider:
            def fetch_daily_closes(self, symbol, days=30):
                raise DataProviderError("Invalid stock symbol", status_code=404)

        monkeypatch.setattr(main, "get_provider", lambda name, **kwargs: MissingSymbolProvider())
        response = client.post("/predict", json={"symbol": "XXXX", "profile": "compact"})

        assert response.status_code == 404
        assert response.json()["detail"] == "Invalid stock symbol"
