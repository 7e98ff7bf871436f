"""Feature preparation: scaling and windowing."""

from .normalization import NormalizedSeries, denormalize, normalize
from .windows import Window, WindowDataset, build_windows, last_window

__all__ = [
    "NormalizedSeries",
    "normalize",
    "denormalize",
    "Window",
    "WindowDataset",
    "build_windows",
    "last_window",
]
