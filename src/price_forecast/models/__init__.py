"""Models module."""

from .predictor import predict, predict_normalized
from .sequence_model import SequenceRegressor, build_model
from .spec import COMPACT, PROFILES, STACKED, ModelSpec, resolve_profile
from .training import EpochProgress, SequenceTrainer, TrainedModel, TrainingHistory

__all__ = [
    "ModelSpec",
    "STACKED",
    "COMPACT",
    "PROFILES",
    "resolve_profile",
    "SequenceRegressor",
    "build_model",
    "SequenceTrainer",
    "TrainedModel",
    "TrainingHistory",
    "EpochProgress",
    "predict",
    "predict_normalized",
]
