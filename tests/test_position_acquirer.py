import asyncio

import pytest

from mdsassist.acquisition.position import (
    AccuracyPolicy,
    AcquisitionState,
    PositionAcquirer,
    SensorError,
    SensorErrorCode,
)
from mdsassist.config.settings import AcquisitionSettings
from mdsassist.domain.models import AcquisitionFailure, Coordinate


class ScriptedSensor:
    """Fake sensor that plays timed updates/errors and records lifecycle calls."""

    def __init__(
        self,
        *,
        updates=(),
        errors=(),
        subscribe_error=None,
        once=None,
        once_error=None,
        stop_on_unsubscribe=True,
    ):
        self.updates = list(updates)
        self.errors = list(errors)
        self.subscribe_error = subscribe_error
        self.once = once
        self.once_error = once_error
        self.stop_on_unsubscribe = stop_on_unsubscribe
        self.events: list[str] = []
        self._handles = []

    def subscribe(self, on_update, on_error):
        self.events.append("subscribe")
        if self.subscribe_error is not None:
            raise self.subscribe_error
        loop = asyncio.get_running_loop()
        for delay, coord in self.updates:
            self._handles.append(loop.call_later(delay, on_update, coord))
        for delay, err in self.errors:
            if delay == 0:
                self._handles.append(loop.call_soon(on_error, err))
            else:
                self._handles.append(loop.call_later(delay, on_error, err))

        def unsubscribe():
            self.events.append("unsubscribe")
            if self.stop_on_unsubscribe:
                for h in self._handles:
                    h.cancel()

        return unsubscribe

    async def request_once(self, timeout_s):
        self.events.append("request_once")
        if self.once_error is not None:
            raise self.once_error
        if self.once is None:
            await asyncio.sleep(timeout_s * 10)
        return self.once


def _fix(lat, accuracy):
    return Coordinate(lat=lat, lon=-116.2023, accuracy_m=accuracy)


def test_missing_sensor_is_unsupported():
    acquirer = PositionAcquirer(None)
    result = asyncio.run(acquirer.acquire(100))
    assert result.failure is AcquisitionFailure.UNSUPPORTED
    assert result.coordinate is None
    assert acquirer.state is AcquisitionState.FAILED


def test_best_sample_wins_and_ties_keep_first():
    first_best = _fix(43.6151, 5.0)
    sensor = ScriptedSensor(
        updates=[
            (0.01, _fix(43.6150, 30.0)),
            (0.02, first_best),
            (0.03, _fix(43.6152, 5.0)),
            (0.04, _fix(43.6153, 12.0)),
        ]
    )
    acquirer = PositionAcquirer(sensor)
    result = asyncio.run(acquirer.acquire(100))

    assert result.ok
    assert result.coordinate == first_best
    assert acquirer.state is AcquisitionState.RESOLVED
    assert sensor.events == ["subscribe", "unsubscribe"]


def test_advisory_policy_accepts_fix_worse_than_desired():
    poor = _fix(43.6150, 80.0)
    sensor = ScriptedSensor(updates=[(0.01, poor)])
    result = asyncio.run(PositionAcquirer(sensor).acquire(60, desired_accuracy_m=10))
    assert result.coordinate == poor


def test_fallback_runs_after_unsubscribe_when_no_sample_arrived():
    fallback = _fix(43.6200, 15.0)
    sensor = ScriptedSensor(once=fallback)
    result = asyncio.run(PositionAcquirer(sensor).acquire(50))

    assert result.coordinate == fallback
    assert sensor.events == ["subscribe", "unsubscribe", "request_once"]


def test_fallback_error_reports_timeout_no_fix():
    sensor = ScriptedSensor(once_error=SensorError(SensorErrorCode.TIMEOUT))
    acquirer = PositionAcquirer(sensor)
    result = asyncio.run(acquirer.acquire(30))

    assert result.failure is AcquisitionFailure.TIMEOUT_NO_FIX
    assert acquirer.state is AcquisitionState.FAILED
    assert sensor.events.count("request_once") == 1


def test_hanging_fallback_is_bounded_by_its_own_timeout():
    sensor = ScriptedSensor(once=None)
    acquirer = PositionAcquirer(sensor, fallback_timeout_ms=50)

    async def run():
        loop = asyncio.get_running_loop()
        started = loop.time()
        result = await acquirer.acquire(30)
        return result, loop.time() - started

    result, elapsed = asyncio.run(run())
    assert result.failure is AcquisitionFailure.TIMEOUT_NO_FIX
    assert elapsed < 1.0


def test_permission_denied_fails_fast_and_tears_everything_down():
    sensor = ScriptedSensor(
        updates=[(0.05, _fix(43.6150, 5.0))],
        errors=[(0, SensorError(SensorErrorCode.PERMISSION_DENIED))],
    )
    acquirer = PositionAcquirer(sensor, progress_interval_ms=20)
    progress: list[tuple[float, float]] = []

    async def run():
        loop = asyncio.get_running_loop()
        started = loop.time()
        result = await acquirer.acquire(300, on_progress=lambda e, r: progress.append((e, r)))
        elapsed = loop.time() - started
        calls_at_settlement = len(progress)
        # Give a leaked deadline or ticker the chance to fire.
        await asyncio.sleep(0.4)
        return result, elapsed, calls_at_settlement

    result, elapsed, calls_at_settlement = asyncio.run(run())
    assert result.failure is AcquisitionFailure.PERMISSION_DENIED
    assert elapsed < 0.3
    assert len(progress) == calls_at_settlement
    assert sensor.events == ["subscribe", "unsubscribe"]
    assert acquirer.state is AcquisitionState.FAILED


def test_permission_denied_raised_from_subscribe():
    sensor = ScriptedSensor(subscribe_error=SensorError(SensorErrorCode.PERMISSION_DENIED))
    result = asyncio.run(PositionAcquirer(sensor).acquire(1000))
    assert result.failure is AcquisitionFailure.PERMISSION_DENIED
    assert "request_once" not in sensor.events


def test_position_unavailable_is_a_sensor_error():
    sensor = ScriptedSensor(errors=[(0.01, SensorError(SensorErrorCode.POSITION_UNAVAILABLE))])
    result = asyncio.run(PositionAcquirer(sensor).acquire(1000))
    assert result.failure is AcquisitionFailure.SENSOR_ERROR


def test_transient_sensor_errors_are_ignored():
    fix = _fix(43.6150, 8.0)
    sensor = ScriptedSensor(
        updates=[(0.02, fix)],
        errors=[(0.01, SensorError(SensorErrorCode.TIMEOUT))],
    )
    result = asyncio.run(PositionAcquirer(sensor).acquire(60))
    assert result.coordinate == fix


def test_early_accept_settles_before_deadline():
    good = _fix(43.6150, 4.0)
    sensor = ScriptedSensor(updates=[(0.01, _fix(43.6151, 40.0)), (0.02, good)])
    acquirer = PositionAcquirer(sensor, accuracy_policy=AccuracyPolicy.EARLY_ACCEPT)

    async def run():
        loop = asyncio.get_running_loop()
        started = loop.time()
        result = await acquirer.acquire(5000, desired_accuracy_m=10)
        return result, loop.time() - started

    result, elapsed = asyncio.run(run())
    assert result.coordinate == good
    assert elapsed < 1.0
    assert sensor.events == ["subscribe", "unsubscribe"]


def test_progress_counts_down_and_stops_at_settlement():
    sensor = ScriptedSensor(updates=[(0.01, _fix(43.6150, 5.0))])
    acquirer = PositionAcquirer(sensor, progress_interval_ms=20)
    progress: list[tuple[float, float]] = []

    async def run():
        result = await acquirer.acquire(120, on_progress=lambda e, r: progress.append((e, r)))
        seen = len(progress)
        await asyncio.sleep(0.1)
        return result, seen

    result, seen = asyncio.run(run())
    assert result.ok
    assert seen >= 2
    assert len(progress) == seen
    remaining = [r for _, r in progress]
    assert remaining == sorted(remaining, reverse=True)
    assert all(r >= 0 for r in remaining)


def test_late_updates_after_teardown_are_ignored():
    early = _fix(43.6150, 20.0)
    sensor = ScriptedSensor(
        updates=[(0.01, early), (0.15, _fix(43.6160, 1.0))],
        stop_on_unsubscribe=False,
    )
    acquirer = PositionAcquirer(sensor)

    async def run():
        result = await acquirer.acquire(50)
        await asyncio.sleep(0.2)
        return result

    result = asyncio.run(run())
    assert result.coordinate == early
    assert acquirer.state is AcquisitionState.RESOLVED


def test_concurrent_acquire_is_rejected():
    sensor = ScriptedSensor(updates=[(0.01, _fix(43.6150, 5.0))])
    acquirer = PositionAcquirer(sensor)

    async def run():
        first = asyncio.ensure_future(acquirer.acquire(50))
        await asyncio.sleep(0)
        assert acquirer.state is AcquisitionState.SAMPLING
        with pytest.raises(RuntimeError):
            await acquirer.acquire(50)
        return await first

    result = asyncio.run(run())
    assert result.ok


def test_caller_cancellation_releases_subscription():
    sensor = ScriptedSensor()
    acquirer = PositionAcquirer(sensor)

    async def run():
        task = asyncio.ensure_future(acquirer.acquire(5000))
        await asyncio.sleep(0.02)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(run())
    assert sensor.events == ["subscribe", "unsubscribe"]
    assert acquirer.state is AcquisitionState.IDLE


def test_acquirer_from_settings_uses_configured_defaults():
    settings = AcquisitionSettings(
        timeout_ms=5000, desired_accuracy_m=5, fallback_timeout_ms=40, accuracy_policy="early_accept"
    )
    good = _fix(43.6150, 3.0)
    sensor = ScriptedSensor(updates=[(0.01, _fix(43.6151, 9.0)), (0.02, good)])
    acquirer = PositionAcquirer.from_settings(sensor, settings)

    async def run():
        loop = asyncio.get_running_loop()
        started = loop.time()
        result = await acquirer.acquire()
        return result, loop.time() - started

    result, elapsed = asyncio.run(run())
    assert result.coordinate == good
    assert elapsed < 1.0


def test_acquire_rejects_non_positive_timeout():
    with pytest.raises(ValueError):
        asyncio.run(PositionAcquirer(ScriptedSensor()).acquire(0))


def test_unexpected_fallback_exception_reports_timeout_no_fix():
    sensor = ScriptedSensor(once_error=OSError("gps daemon socket closed"))
    acquirer = PositionAcquirer(sensor)
    result = asyncio.run(acquirer.acquire(20))

    assert result.failure is AcquisitionFailure.TIMEOUT_NO_FIX
    assert acquirer.state is AcquisitionState.FAILED


def test_unexpected_subscribe_exception_is_a_sensor_error():
    sensor = ScriptedSensor(subscribe_error=OSError("no location service"))
    acquirer = PositionAcquirer(sensor)
    result = asyncio.run(acquirer.acquire(1000))

    assert result.failure is AcquisitionFailure.SENSOR_ERROR
    assert acquirer.state is AcquisitionState.FAILED
    assert "request_once" not in sensor.events


def test_failing_progress_callback_does_not_lose_the_fix():
    fix = _fix(43.6150, 5.0)
    sensor = ScriptedSensor(updates=[(0.01, fix)])
    acquirer = PositionAcquirer(sensor, progress_interval_ms=20)
    calls: list[float] = []

    def broken_display(elapsed, remaining):
        calls.append(elapsed)
        raise RuntimeError("ui gone")

    result = asyncio.run(acquirer.acquire(100, on_progress=broken_display))

    assert result.coordinate == fix
    assert acquirer.state is AcquisitionState.RESOLVED
    assert len(calls) == 1
