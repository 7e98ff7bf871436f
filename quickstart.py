"""
Quick start script for Next-Close Forecast.

Demonstrates the complete workflow: fetch -> train -> forecast
"""

import os

from loguru import logger

from price_forecast import config
from price_forecast.data import PriceSeries, get_provider
from price_forecast.errors import DataProviderError
from price_forecast.models import resolve_profile
from price_forecast.pipeline import ForecastPipeline, init_backend

# Configuration
SYMBOL = os.getenv("SYMBOL", "AAPL")
PROFILE = os.getenv("MODEL_PROFILE", "compact")
PROVIDER = os.getenv("DATA_PROVIDER", "yfinance")

# Fallback history when no provider is reachable
SAMPLE_PRICES = [
    187.2, 188.0, 186.9, 189.4, 190.1, 191.3, 190.6, 192.2, 193.0, 192.4,
    194.1, 195.0, 194.2, 196.3, 197.1, 196.5, 198.0, 199.2, 198.7, 200.1,
]


def main():
    """Run complete demo workflow."""
    config.configure_logging()
    init_backend(config.TORCH_NUM_THREADS)

    # Step 1: Fetch history
    logger.info("=" * 80)
    logger.info("STEP 1: DATA RETRIEVAL")
    logger.info("=" * 80)

    try:
        provider = get_provider(PROVIDER, api_key=config.ALPHA_VANTAGE_API_KEY)
        series = provider.fetch_daily_closes(SYMBOL, days=config.HISTORY_DAYS)
    except (DataProviderError, ValueError) as e:
        logger.warning(f"Could not fetch {SYMBOL} ({e}); using sample prices")
        series = PriceSeries.from_prices(SAMPLE_PRICES, symbol=SYMBOL)

    logger.info(f"Loaded {series!r}")

    # Step 2: Train and forecast
    logger.info("=" * 80)
    logger.info("STEP 2: TRAINING + FORECAST")
    logger.info("=" * 80)

    spec = resolve_profile(PROFILE)
    pipeline = ForecastPipeline(show_progress=True)

    def on_epoch(progress):
        if progress.epoch % 10 == 0 or progress.epoch == progress.epochs:
            logger.info(f"Epoch {progress.epoch}/{progress.epochs}: loss = {progress.train_loss:.4f}")

    result = pipeline.run(series, spec, observer=on_epoch)

    # Step 3: Report
    logger.info("=" * 80)
    logger.info("STEP 3: RESULT")
    logger.info("=" * 80)

    p = result.prediction
    logger.info(f"Current price:   {p.current_price:.2f}")
    logger.info(f"Predicted price: {p.predicted_price:.2f} ({result.chart.labels[-1]})")
    logger.info(f"Confidence:      {p.confidence * 100:.1f}% (fit heuristic, not a probability)")


if __name__ == "__main__":
    main()
