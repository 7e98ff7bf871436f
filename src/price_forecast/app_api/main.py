"""
FastAPI application for next-close forecasting.

Fetches (or accepts) a short price history, trains a fresh model for the
request and returns the forecast with chart-ready series.
"""

import math
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from price_forecast import __version__, config
from price_forecast.data import PriceSeries, get_provider
from price_forecast.errors import (
    DataProviderError,
    ForecastError,
    InsufficientDataError,
    InvalidSeriesError,
    PredictionTimeoutError,
    RequestInProgressError,
)
from price_forecast.models.spec import PROFILES, resolve_profile
from price_forecast.pipeline import PredictionService, init_backend

from .schemas import (
    ChartOut,
    HealthResponse,
    PredictRequest,
    PredictResponse,
    ProfileInfo,
    ProfilesResponse,
)

app = FastAPI(
    title="Next-Close Forecast API",
    description="Per-request recurrent model forecasting a stock's next closing price",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

service = PredictionService()


@app.on_event("startup")
async def startup():
    config.configure_logging()
    init_backend(config.TORCH_NUM_THREADS)
    logger.info(f"API initialized with device: {config.DEVICE}, profile: {config.MODEL_PROFILE}")


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint."""
    return {
        "message": "Next-Close Forecast API",
        "version": __version__,
        "docs": "/docs",
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@app.get("/profiles", response_model=ProfilesResponse, tags=["Models"])
async def list_profiles():
    """List the available model configurations."""
    return ProfilesResponse(
        default=config.MODEL_PROFILE,
        profiles={
            name: ProfileInfo(
                name=name,
                window_size=spec.window_size,
                rnn_type=spec.rnn_type,
                recurrent_units=list(spec.recurrent_units),
                dropout_rates=list(spec.dropout_rates),
                dense_units=list(spec.dense_units),
                learning_rate=spec.learning_rate,
                epochs=spec.epochs,
                batch_size=spec.batch_size,
                shuffle=spec.shuffle,
                validation_split=spec.validation_split,
            )
            for name, spec in PROFILES.items()
        },
    )


def _load_series(request: PredictRequest) -> PriceSeries:
    if request.prices:
        return PriceSeries.from_records(
            [p.model_dump() for p in request.prices], symbol=request.symbol
        )
    provider = get_provider(config.DATA_PROVIDER, api_key=config.ALPHA_VANTAGE_API_KEY)
    return provider.fetch_daily_closes(request.symbol, days=config.HISTORY_DAYS)


@app.post("/predict", response_model=PredictResponse, tags=["Forecasting"])
async def predict(request: PredictRequest):
    """
    Forecast the next trading day's close.

    Trains a new model on the supplied (or fetched) history; nothing is
    kept between requests.
    """
    profile = (request.profile or config.MODEL_PROFILE).lower()
    try:
        spec = resolve_profile(profile)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        series = _load_series(request)
        result = await service.predict(series, session_id=request.session_id, spec=spec)
    except (InvalidSeriesError, InsufficientDataError) as e:
        logger.warning(f"Rejected request: {e}")
        raise HTTPException(status_code=400, detail=e.user_message)
    except DataProviderError as e:
        logger.error(f"Data provider error for {request.symbol}: {e}")
        raise HTTPException(status_code=e.status_code, detail=e.user_message)
    except RequestInProgressError as e:
        raise HTTPException(status_code=409, detail=e.user_message)
    except PredictionTimeoutError as e:
        raise HTTPException(status_code=504, detail=e.user_message)
    except ForecastError as e:
        logger.exception(f"Error in predict endpoint: {e}")
        raise HTTPException(status_code=500, detail=e.user_message)
    except ValueError as e:
        # Provider misconfiguration (unknown provider, missing API key)
        logger.error(f"Configuration error: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    prediction = result.prediction
    confidence = prediction.confidence if math.isfinite(prediction.confidence) else "N/A"

    return PredictResponse(
        symbol=result.symbol,
        currentPrice=prediction.current_price,
        predictedPrice=prediction.predicted_price,
        confidence=confidence,
        chart=ChartOut(**result.chart.to_dict()),
        profile=profile,
        epochs=len(result.history),
        final_train_loss=result.history.final_train_loss,
        final_val_loss=result.history.final_val_loss,
        training_time=round(result.training_time, 2),
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
