"""Runtime configuration, read once from the environment."""

import os
import sys

import torch
from loguru import logger

DEVICE = os.getenv("DEFAULT_DEVICE", "cuda" if torch.cuda.is_available() else "cpu")
MODEL_PROFILE = os.getenv("MODEL_PROFILE", "stacked")
TORCH_NUM_THREADS = int(os.getenv("TORCH_NUM_THREADS", "0"))  # 0 keeps torch default
HISTORY_DAYS = int(os.getenv("HISTORY_DAYS", "30"))
DATA_PROVIDER = os.getenv("DATA_PROVIDER", "alphavantage")
ALPHA_VANTAGE_API_KEY = os.getenv("ALPHA_VANTAGE_API_KEY", "")
PREDICTION_TIMEOUT = float(os.getenv("PREDICTION_TIMEOUT", "0")) or None
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def configure_logging(level: str = LOG_LEVEL):
    """Route loguru output to stderr at the given level."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())
    logger.debug(f"Logging configured at level {level.upper()}")
