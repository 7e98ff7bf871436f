"""Model hyperparameters and the named configuration profiles."""

from typing import Dict, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ModelSpec(BaseModel):
    """
    Hyperparameters for one training run.

    Immutable: a spec is fixed for the lifetime of a request.
    """

    model_config = ConfigDict(frozen=True)

    window_size: int = Field(..., ge=1, description="Timesteps per input window")
    rnn_type: Literal["lstm", "gru"] = Field("lstm", description="Recurrent cell type")
    recurrent_units: Tuple[int, ...] = Field(..., min_length=1, description="Width of each stacked recurrent layer")
    dropout_rates: Tuple[float, ...] = Field(..., description="Dropout after each recurrent layer")
    dense_units: Tuple[int, ...] = Field((), description="Hidden dense layers (relu) before the output unit")
    learning_rate: float = Field(0.001, gt=0, description="Adam learning rate")
    loss: Literal["mse"] = Field("mse", description="Training loss")
    epochs: int = Field(100, ge=1, description="Fixed number of training epochs")
    batch_size: int = Field(32, ge=1, description="Mini-batch size")
    shuffle: bool = Field(True, description="Reshuffle training examples every epoch")
    validation_split: Optional[float] = Field(None, gt=0, lt=1, description="Trailing fraction held out for validation")
    seed: Optional[int] = Field(None, description="Seed for weight init, dropout and shuffling")

    @model_validator(mode="after")
    def check_layers(self):
        if len(self.dropout_rates) != len(self.recurrent_units):
            raise ValueError(
                f"dropout_rates ({len(self.dropout_rates)}) must match "
                f"recurrent_units ({len(self.recurrent_units)})"
            )
        for rate in self.dropout_rates:
            if not 0.0 <= rate < 1.0:
                raise ValueError(f"dropout rate must be in [0, 1), got {rate}")
        for units in self.recurrent_units + self.dense_units:
            if units < 1:
                raise ValueError(f"layer width must be >= 1, got {units}")
        return self

    @property
    def min_series_length(self) -> int:
        return self.window_size + 1


# Canonical configuration: stacked LSTM over a two-week window
STACKED = ModelSpec(
    window_size=14,
    rnn_type="lstm",
    recurrent_units=(100, 50),
    dropout_rates=(0.2, 0.2),
    dense_units=(32,),
    learning_rate=0.0005,
    epochs=150,
    batch_size=32,
    shuffle=True,
    validation_split=0.1,
)

# Lighter alternative for short histories (one trading week)
COMPACT = ModelSpec(
    window_size=5,
    rnn_type="lstm",
    recurrent_units=(50,),
    dropout_rates=(0.2,),
    dense_units=(),
    learning_rate=0.001,
    epochs=100,
    batch_size=32,
    shuffle=True,
    validation_split=None,
)

PROFILES: Dict[str, ModelSpec] = {
    "stacked": STACKED,
    "compact": COMPACT,
}


def resolve_profile(name: str) -> ModelSpec:
    """Look up a named profile."""
    try:
        return PROFILES[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown model profile: {name}. Available: {sorted(PROFILES)}") from None
