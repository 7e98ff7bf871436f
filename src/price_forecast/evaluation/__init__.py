"""Evaluation helpers."""

from .confidence import estimate_confidence

__all__ = ["estimate_confidence"]
