"""
Async front for the forecast pipeline.

Each request runs the blocking pipeline in a worker thread. One request
per session may be in flight (a second one is rejected), and requests
from different sessions queue on a process-wide lock so two trainings
never share the torch backend at the same time.
"""

import asyncio
import threading
from typing import Optional, Set

from loguru import logger

from price_forecast import config
from price_forecast.data.series import PriceSeries
from price_forecast.errors import PredictionTimeoutError, RequestInProgressError
from price_forecast.models.spec import ModelSpec, resolve_profile
from price_forecast.models.training import EpochObserver
from price_forecast.pipeline.forecast import ForecastPipeline, ForecastResult


class PredictionService:
    """Serializes forecast requests and exposes training as an awaitable."""

    def __init__(
        self,
        pipeline: Optional[ForecastPipeline] = None,
        default_spec: Optional[ModelSpec] = None,
        timeout: Optional[float] = config.PREDICTION_TIMEOUT,
    ):
        self.pipeline = pipeline or ForecastPipeline()
        self.default_spec = default_spec or resolve_profile(config.MODEL_PROFILE)
        self.timeout = timeout
        self._active_sessions: Set[str] = set()
        self._backend_lock: Optional[asyncio.Lock] = None

    def is_busy(self, session_id: str) -> bool:
        return session_id in self._active_sessions

    async def predict(
        self,
        series: PriceSeries,
        session_id: str = "default",
        spec: Optional[ModelSpec] = None,
        observer: Optional[EpochObserver] = None,
        timeout: Optional[float] = None,
    ) -> ForecastResult:
        """
        Run one forecast.

        Args:
            series: Price history for the symbol
            session_id: Caller session; at most one request per session runs at a time
            spec: Model configuration (defaults to the configured profile)
            observer: Receives per-epoch progress; called from the worker thread
            timeout: Seconds before the request is cancelled (None = service default)

        Raises:
            RequestInProgressError: the session already has a request running
            PredictionTimeoutError: training was cancelled after ``timeout`` seconds
        """
        if session_id in self._active_sessions:
            logger.warning(f"Rejecting overlapping request for session {session_id}")
            raise RequestInProgressError(f"Session {session_id} already has a prediction running")

        spec = spec or self.default_spec
        timeout = timeout if timeout is not None else self.timeout

        if self._backend_lock is None:
            self._backend_lock = asyncio.Lock()

        self._active_sessions.add(session_id)
        try:
            async with self._backend_lock:
                cancel_event = threading.Event()
                job = asyncio.ensure_future(
                    asyncio.to_thread(self.pipeline.run, series, spec, observer, cancel_event)
                )
                try:
                    return await asyncio.wait_for(asyncio.shield(job), timeout=timeout)
                except asyncio.TimeoutError:
                    logger.warning(f"Session {session_id}: prediction exceeded {timeout}s, cancelling")
                    cancel_event.set()
                    await self._drain(job)
                    raise PredictionTimeoutError(f"Prediction exceeded {timeout}s and was cancelled") from None
                except asyncio.CancelledError:
                    logger.warning(f"Session {session_id}: request cancelled by caller")
                    cancel_event.set()
                    await self._drain(job)
                    raise
        finally:
            self._active_sessions.discard(session_id)

    @staticmethod
    async def _drain(job: asyncio.Future) -> None:
        """Wait for the worker thread to stop and consume its outcome."""
        await asyncio.wait({job})
        if job.cancelled():
            return
        exc = job.exception()
        if exc is not None:
            logger.info(f"Worker stopped: {exc!r}")
        else:
            logger.info("Worker finished after the request was abandoned; result discarded")
