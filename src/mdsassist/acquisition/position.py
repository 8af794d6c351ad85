"""
Best-effort position acquisition.

A location sensor is push-based and unreliable: it may deliver no update, one, or many of
varying accuracy, or fail outright. `PositionAcquirer.acquire` turns that stream into a
single `AcquisitionResult` within a time budget:

1. subscribe and keep the most precise sample seen (ties keep the earliest),
2. race the subscription against a deadline timer,
3. fail fast on permanent sensor errors (permission denied, position unavailable),
4. at the deadline, return the best sample, or fall back to one single-shot request.

The race settles through one `asyncio.Future`; every completion path checks `done()` first,
so a call can settle only once. Subscription, deadline timer and progress ticker are
released on every exit path, including caller cancellation.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from enum import Enum
from typing import Callable, Optional, Protocol

from mdsassist.config.settings import AcquisitionSettings
from mdsassist.domain.models import (
    AcquisitionFailure,
    AcquisitionResult,
    Coordinate,
    PositionSample,
)

logger = logging.getLogger(__name__)


class SensorErrorCode(str, Enum):
    PERMISSION_DENIED = "permission-denied"
    POSITION_UNAVAILABLE = "position-unavailable"
    TIMEOUT = "timeout"
    OTHER = "other"


_PERMANENT_CODES = {SensorErrorCode.PERMISSION_DENIED, SensorErrorCode.POSITION_UNAVAILABLE}


class SensorError(Exception):
    """Raised (or reported through `on_error`) by sensor adapters."""

    def __init__(self, code: SensorErrorCode, message: str = ""):
        super().__init__(message or code.value)
        self.code = code

    @property
    def permanent(self) -> bool:
        return self.code in _PERMANENT_CODES

    def as_failure(self) -> AcquisitionFailure:
        if self.code is SensorErrorCode.PERMISSION_DENIED:
            return AcquisitionFailure.PERMISSION_DENIED
        return AcquisitionFailure.SENSOR_ERROR


UpdateCallback = Callable[[Coordinate], None]
ErrorCallback = Callable[[SensorError], None]
Unsubscribe = Callable[[], None]
ProgressCallback = Callable[[float, float], None]


class PositionSensor(Protocol):
    """Adapter over a platform location service."""

    def subscribe(self, on_update: UpdateCallback, on_error: ErrorCallback) -> Unsubscribe:
        """Start continuous high-accuracy updates; returns the function that stops them."""
        ...

    async def request_once(self, timeout_s: float) -> Coordinate:
        """Return a single fix or raise `SensorError`."""
        ...


class AccuracyPolicy(str, Enum):
    """What `desired_accuracy_m` means to the acquirer.

    ADVISORY: diagnostic only. Sampling always runs to the deadline and the best fix wins,
    however far it is from the desired accuracy.
    EARLY_ACCEPT: the first fix at or under the desired accuracy settles the call early.
    """

    ADVISORY = "advisory"
    EARLY_ACCEPT = "early_accept"


class AcquisitionState(str, Enum):
    IDLE = "idle"
    SAMPLING = "sampling"
    RESOLVED = "resolved"
    FAILED = "failed"


class PositionAcquirer:
    """Produces the single best available coordinate within a time budget."""

    def __init__(
        self,
        sensor: PositionSensor | None,
        *,
        fallback_timeout_ms: int = 10_000,
        progress_interval_ms: int = 1_000,
        accuracy_policy: AccuracyPolicy = AccuracyPolicy.ADVISORY,
        default_timeout_ms: int | None = None,
        default_desired_accuracy_m: float | None = None,
    ):
        if fallback_timeout_ms <= 0:
            raise ValueError("fallback_timeout_ms must be > 0")
        if progress_interval_ms <= 0:
            raise ValueError("progress_interval_ms must be > 0")
        self._sensor = sensor
        self._fallback_timeout_s = fallback_timeout_ms / 1000
        self._progress_interval_s = progress_interval_ms / 1000
        self._policy = AccuracyPolicy(accuracy_policy)
        self._default_timeout_ms = default_timeout_ms
        self._default_desired_accuracy_m = default_desired_accuracy_m
        self.state = AcquisitionState.IDLE

    @classmethod
    def from_settings(cls, sensor: PositionSensor | None, settings: AcquisitionSettings) -> "PositionAcquirer":
        return cls(
            sensor,
            fallback_timeout_ms=settings.fallback_timeout_ms,
            progress_interval_ms=settings.progress_interval_ms,
            accuracy_policy=AccuracyPolicy(settings.accuracy_policy),
            default_timeout_ms=settings.timeout_ms,
            default_desired_accuracy_m=settings.desired_accuracy_m,
        )

    async def acquire(
        self,
        timeout_ms: int | None = None,
        desired_accuracy_m: float | None = None,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> AcquisitionResult:
        """Acquire one fix; always returns exactly one result (never raises for sensor failures).

        `timeout_ms` and `desired_accuracy_m` fall back to the configured defaults when omitted.
        """
        if timeout_ms is None:
            timeout_ms = self._default_timeout_ms
        if desired_accuracy_m is None:
            desired_accuracy_m = self._default_desired_accuracy_m
        if self.state is AcquisitionState.SAMPLING:
            raise RuntimeError("An acquisition is already in progress; callers must serialize acquire().")
        if timeout_ms is None or timeout_ms <= 0:
            raise ValueError("timeout_ms must be > 0")

        if self._sensor is None:
            logger.warning("Position sensor unavailable; cannot acquire a fix.")
            self.state = AcquisitionState.FAILED
            return AcquisitionResult.failed(AcquisitionFailure.UNSUPPORTED)

        self.state = AcquisitionState.SAMPLING
        try:
            result = await self._acquire(self._sensor, timeout_ms / 1000, desired_accuracy_m, on_progress)
        except BaseException:
            # Cancelled by the caller (or a broken adapter): nothing settled.
            self.state = AcquisitionState.IDLE
            raise

        self.state = AcquisitionState.RESOLVED if result.ok else AcquisitionState.FAILED
        return result

    async def _acquire(
        self,
        sensor: PositionSensor,
        timeout_s: float,
        desired_accuracy_m: float | None,
        on_progress: ProgressCallback | None,
    ) -> AcquisitionResult:
        loop = asyncio.get_running_loop()
        # Resolves to a terminal result, or to None when the deadline fires first.
        settled: asyncio.Future[Optional[AcquisitionResult]] = loop.create_future()
        best: PositionSample | None = None

        def settle(outcome: AcquisitionResult | None) -> None:
            if not settled.done():
                settled.set_result(outcome)

        def on_update(coordinate: Coordinate) -> None:
            nonlocal best
            if settled.done():
                return
            sample = PositionSample(coordinate=coordinate)
            if best is None or sample.is_better_than(best):
                best = sample
                logger.debug("New best fix: accuracy=%s m", coordinate.accuracy_m)
            if (
                self._policy is AccuracyPolicy.EARLY_ACCEPT
                and _meets(best.coordinate, desired_accuracy_m)
            ):
                settle(AcquisitionResult.succeeded(best.coordinate))

        def on_error(error: SensorError) -> None:
            if settled.done():
                return
            if error.permanent:
                logger.warning("Position sensor failed permanently: %s", error.code.value)
                settle(AcquisitionResult.failed(error.as_failure()))
            else:
                logger.debug("Ignoring transient sensor error: %s", error)

        logger.info("Sampling position for up to %.1fs (policy=%s)", timeout_s, self._policy.value)
        started = loop.time()
        unsubscribe: Unsubscribe | None = None
        deadline: asyncio.TimerHandle | None = None
        ticker: asyncio.Task[None] | None = None
        try:
            try:
                unsubscribe = sensor.subscribe(on_update, on_error)
            except SensorError as exc:
                on_error(exc)
            except Exception:
                logger.exception("Position sensor failed to start sampling.")
                settle(AcquisitionResult.failed(AcquisitionFailure.SENSOR_ERROR))
            deadline = loop.call_later(timeout_s, settle, None)
            if on_progress is not None:
                ticker = asyncio.ensure_future(self._tick(started, timeout_s, on_progress))
            outcome = await settled
        finally:
            if unsubscribe is not None:
                unsubscribe()
            if deadline is not None:
                deadline.cancel()
            if ticker is not None:
                ticker.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await ticker

        if outcome is not None:
            return outcome

        if best is not None:
            if desired_accuracy_m is not None and not _meets(best.coordinate, desired_accuracy_m):
                logger.info(
                    "Best fix accuracy %s m misses desired %.1f m; accepting it anyway.",
                    best.coordinate.accuracy_m,
                    desired_accuracy_m,
                )
            return AcquisitionResult.succeeded(best.coordinate)

        logger.info("No fix during sampling window; issuing single-shot request.")
        return await self._fallback(sensor)

    async def _fallback(self, sensor: PositionSensor) -> AcquisitionResult:
        try:
            coordinate = await asyncio.wait_for(
                sensor.request_once(self._fallback_timeout_s),
                timeout=self._fallback_timeout_s,
            )
        except (SensorError, asyncio.TimeoutError) as exc:
            logger.warning("Single-shot fallback produced no fix: %s", str(exc) or type(exc).__name__)
            return AcquisitionResult.failed(AcquisitionFailure.TIMEOUT_NO_FIX)
        except Exception:
            logger.exception("Single-shot fallback failed.")
            return AcquisitionResult.failed(AcquisitionFailure.TIMEOUT_NO_FIX)
        return AcquisitionResult.succeeded(coordinate)

    async def _tick(self, started: float, timeout_s: float, on_progress: ProgressCallback) -> None:
        loop = asyncio.get_running_loop()
        while True:
            await asyncio.sleep(self._progress_interval_s)
            elapsed = loop.time() - started
            try:
                on_progress(elapsed, max(0.0, timeout_s - elapsed))
            except Exception:
                # Display-only: stop ticking, keep sampling.
                logger.exception("Progress callback failed; no further progress updates.")
                return


def _meets(coordinate: Coordinate, desired_accuracy_m: float | None) -> bool:
    if desired_accuracy_m is None or coordinate.accuracy_m is None:
        return False
    return coordinate.accuracy_m <= desired_accuracy_m
