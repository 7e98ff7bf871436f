"""Pydantic schemas for API requests and responses."""

from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator


class PricePointIn(BaseModel):
    """One day of history as sent by the data service."""

    date: str = Field(..., description="Trading date (ISO format)")
    closePrice: float = Field(..., description="Closing price")


class PredictRequest(BaseModel):
    """Request schema for a next-close forecast."""

    symbol: Optional[str] = Field(None, description="Ticker to fetch history for")
    prices: Optional[List[PricePointIn]] = Field(None, description="Explicit price history, ascending by date")
    profile: Optional[str] = Field(None, description="Model profile: 'stacked' or 'compact'")
    session_id: str = Field("default", description="Caller session; one prediction per session at a time")

    @model_validator(mode="after")
    def require_source(self):
        if not self.symbol and not self.prices:
            raise ValueError("Either 'symbol' or 'prices' must be provided")
        return self


class ChartOut(BaseModel):
    labels: List[str]
    historical: List[float]
    predicted: List[Optional[float]]


class PredictResponse(BaseModel):
    """Response schema for a next-close forecast."""

    symbol: Optional[str] = None
    currentPrice: float
    predictedPrice: float
    confidence: Union[float, Literal["N/A"]]
    chart: ChartOut
    profile: str
    epochs: int
    final_train_loss: Optional[float] = None
    final_val_loss: Optional[float] = None
    training_time: Optional[float] = None


class ProfileInfo(BaseModel):
    name: str
    window_size: int
    rnn_type: str
    recurrent_units: List[int]
    dropout_rates: List[float]
    dense_units: List[int]
    learning_rate: float
    epochs: int
    batch_size: int
    shuffle: bool
    validation_split: Optional[float] = None


class ProfilesResponse(BaseModel):
    default: str
    profiles: Dict[str, ProfileInfo]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: str
