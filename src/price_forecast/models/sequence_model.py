"""
Stacked recurrent regressor for one-step-ahead price forecasting.

Architecture (built from a ModelSpec):
- One or more recurrent layers (LSTM or GRU). Every layer but the last
  feeds its full output sequence to the next; the last one contributes
  only its final hidden state.
- A dropout layer after each recurrent layer (active in train mode only)
- Optional dense hidden layers with ReLU
- A single-unit linear output producing the normalized forecast
"""

from typing import List

import torch
import torch.nn as nn
from loguru import logger

from price_forecast.models.spec import ModelSpec


class SequenceRegressor(nn.Module):
    """Recurrent regressor mapping a (batch, window, 1) input to (batch, 1)."""

    def __init__(self, spec: ModelSpec, input_size: int = 1):
        """
        Initialize the regressor.

        Args:
            spec: Hyperparameters; layer widths and dropout rates are taken from it
            input_size: Features per timestep (1 for a univariate close series)
        """
        super().__init__()

        self.window_size = spec.window_size
        self.input_size = input_size
        self.rnn_type = spec.rnn_type

        rnn_cls = nn.LSTM if spec.rnn_type == "lstm" else nn.GRU

        self.recurrent = nn.ModuleList()
        self.recurrent_dropout = nn.ModuleList()
        in_features = input_size
        for units, rate in zip(spec.recurrent_units, spec.dropout_rates):
            self.recurrent.append(rnn_cls(input_size=in_features, hidden_size=units, batch_first=True))
            self.recurrent_dropout.append(nn.Dropout(rate))
            in_features = units

        head: List[nn.Module] = []
        for units in spec.dense_units:
            head.append(nn.Linear(in_features, units))
            head.append(nn.ReLU())
            in_features = units
        head.append(nn.Linear(in_features, 1))
        self.head = nn.Sequential(*head)

        logger.info(
            f"Initialized SequenceRegressor: {spec.rnn_type.upper()} "
            f"units={list(spec.recurrent_units)}, dropout={list(spec.dropout_rates)}, "
            f"dense={list(spec.dense_units)}, window={spec.window_size}"
        )

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """
        Args:
            x: (batch, window) or (batch, window, input_size)

        Returns:
            (batch, 1) normalized predictions
        """
        if x.dim() == 2:
            x = x.unsqueeze(-1)

        out = x
        for rnn, dropout in zip(self.recurrent, self.recurrent_dropout):
            out, _ = rnn(out)
            out = dropout(out)

        # Final hidden state of the last recurrent layer
        last = out[:, -1, :]
        return self.head(last)

    def num_parameters(self) -> int:
        return sum(p.numel() for p in self.parameters())


def build_model(spec: ModelSpec, device: str = "cpu") -> SequenceRegressor:
    """Create a fresh, untrained model for one request."""
    return SequenceRegressor(spec).to(device)
