"""
Per-request resource scope and state machine.

Idle -> Normalizing -> Windowing -> Training -> Predicting -> Done, with
Failed reachable from any non-terminal state. A lifecycle is single use:
a failed request is retried with a fresh lifecycle and a fresh series.

On exit (success or failure) every tensor and module registered with
``track`` has its storage dropped, the forked torch RNG state is restored,
and cached device memory is returned.
"""

import gc
import threading
from enum import Enum
from typing import Any, List, Optional

import torch
import torch.nn as nn
from loguru import logger


class RequestState(str, Enum):
    IDLE = "idle"
    NORMALIZING = "normalizing"
    WINDOWING = "windowing"
    TRAINING = "training"
    PREDICTING = "predicting"
    DONE = "done"
    FAILED = "failed"


_NEXT_STATE = {
    RequestState.IDLE: RequestState.NORMALIZING,
    RequestState.NORMALIZING: RequestState.WINDOWING,
    RequestState.WINDOWING: RequestState.TRAINING,
    RequestState.TRAINING: RequestState.PREDICTING,
    RequestState.PREDICTING: RequestState.DONE,
}

TERMINAL_STATES = frozenset({RequestState.DONE, RequestState.FAILED})


# ---------------------------------------------------------------------------
# Process-wide numeric backend
# ---------------------------------------------------------------------------

_backend_lock = threading.Lock()
_backend_initialized = False


def init_backend(num_threads: Optional[int] = None) -> None:
    """
    Configure torch once per process. Later calls are no-ops.

    Args:
        num_threads: intra-op CPU threads; None or 0 keeps the torch default
    """
    global _backend_initialized
    with _backend_lock:
        if _backend_initialized:
            return
        if num_threads:
            torch.set_num_threads(num_threads)
        _backend_initialized = True
        logger.info(
            f"Initialized torch backend: torch={torch.__version__}, "
            f"threads={torch.get_num_threads()}, cuda={torch.cuda.is_available()}"
        )


def backend_initialized() -> bool:
    return _backend_initialized


class RequestLifecycle:
    """Context manager owning the numeric buffers of one prediction request."""

    def __init__(self, request_id: str = "request", seed: Optional[int] = None, device: str = "cpu"):
        self.request_id = request_id
        self.seed = seed
        self.device = device
        self.state = RequestState.IDLE
        self.transitions: List[RequestState] = [RequestState.IDLE]
        self._tracked: List[Any] = []
        self._rng_ctx = None
        self._entered = False
        self.released = False

    # ------------------------------------------------------------------ #
    #  State machine
    # ------------------------------------------------------------------ #

    def advance(self, state: RequestState) -> None:
        """Move to the next pipeline stage; stages cannot be skipped or repeated."""
        if state is RequestState.FAILED:
            self.fail()
            return
        expected = _NEXT_STATE.get(self.state)
        if state is not expected:
            raise RuntimeError(
                f"[{self.request_id}] Illegal transition {self.state.value} -> {state.value}"
            )
        self._set_state(state)

    def fail(self) -> None:
        if self.state in TERMINAL_STATES:
            return
        self._set_state(RequestState.FAILED)

    def _set_state(self, state: RequestState) -> None:
        logger.debug(f"[{self.request_id}] {self.state.value} -> {state.value}")
        self.state = state
        self.transitions.append(state)

    # ------------------------------------------------------------------ #
    #  Buffers
    # ------------------------------------------------------------------ #

    def track(self, obj):
        """Register a tensor or module for release at scope exit. Returns ``obj``."""
        if self.released:
            raise RuntimeError(f"[{self.request_id}] Cannot track buffers after release")
        if not isinstance(obj, (torch.Tensor, nn.Module)):
            raise TypeError(f"Can only track tensors or modules, got {type(obj).__name__}")
        self._tracked.append(obj)
        return obj

    @property
    def tracked_count(self) -> int:
        return len(self._tracked)

    def release(self) -> None:
        """Drop the storage of every tracked buffer."""
        if self.released:
            return
        n_tensors = 0
        with torch.no_grad():
            for obj in self._tracked:
                if isinstance(obj, nn.Module):
                    for tensor in list(obj.parameters()) + list(obj.buffers()):
                        tensor.grad = None
                        tensor.data = torch.empty(0, dtype=tensor.dtype, device=tensor.device)
                        n_tensors += 1
                else:
                    obj.data = torch.empty(0, dtype=obj.dtype, device=obj.device)
                    n_tensors += 1
        self._tracked.clear()
        gc.collect()
        if self.device.startswith("cuda") and torch.cuda.is_available():
            torch.cuda.empty_cache()
        self.released = True
        logger.debug(f"[{self.request_id}] Released {n_tensors} tensors")

    # ------------------------------------------------------------------ #
    #  Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> "RequestLifecycle":
        if self._entered:
            raise RuntimeError(f"[{self.request_id}] RequestLifecycle is single use")
        self._entered = True

        devices = []
        if self.device.startswith("cuda") and torch.cuda.is_available():
            devices = [torch.cuda.current_device()]
        self._rng_ctx = torch.random.fork_rng(devices=devices)
        self._rng_ctx.__enter__()
        if self.seed is not None:
            torch.manual_seed(self.seed)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is not None:
                logger.warning(f"[{self.request_id}] Request failed in state {self.state.value}: {exc!r}")
                self.fail()
            elif self.state is not RequestState.DONE:
                logger.warning(f"[{self.request_id}] Scope exited in state {self.state.value}; marking failed")
                self.fail()
            self.release()
        finally:
            self._rng_ctx.__exit__(None, None, None)
            self._rng_ctx = None
        return False
