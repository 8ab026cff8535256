"""
Shared listening pipeline.

One pipeline per microphone. It throttles incoming frames, keeps the
ambient calibrator up to date and hands every delivered frame to each
subscribed agent.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Iterator, Mapping, Protocol, runtime_checkable

from frogchorus.core.clock import Clock, Scheduler, SystemClock, ThreadingScheduler
from frogchorus.core.frame import FeatureFrame, FeatureSource
from frogchorus.analyzers.calibrator import AmbientCalibrator, BaselineProfile, CalibrationState

logger = logging.getLogger(__name__)

FrameHandler = Callable[[FeatureFrame], None]
Unsubscribe = Callable[[], None]


@runtime_checkable
class AsyncFeatureSource(Protocol):
    """Protocol for async feature sources."""

    async def frames(self) -> AsyncIterator:
        """Yield feature frames asynchronously."""
        ...

    async def close(self) -> None:
        """Close the source."""
        ...


_CAMEL_CASE_KEYS = {
    "loudnessThreshold": "loudness_threshold",
    "calibrationWindowMs": "calibration_window_ms",
    "rateOfLosingShyness": "rate_of_losing_shyness",
    "chirpAttemptIntervalMs": "chirp_attempt_interval_ms",
    "rolloffTolerance": "rolloff_tolerance",
    "centroidTolerance": "centroid_tolerance",
    "crestThreshold": "crest_threshold",
    "peakBinTolerance": "peak_bin_tolerance",
    "amplitudeExcessThreshold": "amplitude_excess_threshold",
    "samplingIntervalMs": "sampling_interval_ms",
    "baseRateOfChange": "base_rate_of_change",
    "quietMargin": "quiet_margin",
    "probabilityIntervalS": "probability_interval_s",
    "detuneRangeCents": "detune_range_cents",
    "recalibrationIntervalMs": "recalibration_interval_ms",
}


@dataclass(frozen=True)
class ChorusConfig:
    """
    Behavior and classification parameters, shared by a pipeline and
    all agents listening on it.

    Loudness values use the perceptual loudness scale of the feature
    extractor; amplitudes use its log10 scale.
    """
    loudness_threshold: float = 28.0
    calibration_window_ms: float = 2500.0
    rate_of_losing_shyness: float = 0.08
    chirp_attempt_interval_ms: float = 250.0
    rolloff_tolerance: float = 600.0
    centroid_tolerance: float = 1.0
    crest_threshold: float = 10.0
    peak_bin_tolerance: int = 4
    amplitude_excess_threshold: float = 20.0
    sampling_interval_ms: float = 120.0
    base_rate_of_change: float = 0.2
    quiet_margin: float = 5.0
    probability_interval_s: float = 1.0
    detune_range_cents: int = 100
    recalibration_interval_ms: float | None = None

    def __post_init__(self) -> None:
        positive = {
            "calibration_window_ms": self.calibration_window_ms,
            "chirp_attempt_interval_ms": self.chirp_attempt_interval_ms,
            "probability_interval_s": self.probability_interval_s,
        }
        for key, value in positive.items():
            if value <= 0:
                raise ValueError(f"{key} must be positive, got {value}")

        non_negative = {
            "rate_of_losing_shyness": self.rate_of_losing_shyness,
            "rolloff_tolerance": self.rolloff_tolerance,
            "centroid_tolerance": self.centroid_tolerance,
            "peak_bin_tolerance": self.peak_bin_tolerance,
            "sampling_interval_ms": self.sampling_interval_ms,
            "base_rate_of_change": self.base_rate_of_change,
            "detune_range_cents": self.detune_range_cents,
        }
        for key, value in non_negative.items():
            if value < 0:
                raise ValueError(f"{key} must not be negative, got {value}")

        if self.recalibration_interval_ms is not None and self.recalibration_interval_ms <= 0:
            raise ValueError(
                f"recalibration_interval_ms must be positive or None, "
                f"got {self.recalibration_interval_ms}"
            )

    @classmethod
    def from_dict(cls, options: Mapping[str, Any]) -> ChorusConfig:
        """
        Build a config from externally supplied options.

        Accepts snake_case field names or their camelCase equivalents.
        Unknown keys raise ValueError.
        """
        known = {f.name for f in dataclasses.fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in options.items():
            name = _CAMEL_CASE_KEYS.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown configuration option: {key!r}")
            kwargs[name] = value
        return cls(**kwargs)

    def with_updates(self, **kwargs: Any) -> ChorusConfig:
        """Create a new config with updated fields."""
        return dataclasses.replace(self, **kwargs)


class ListeningPipeline:
    """
    Frame distribution for one shared microphone.

    Delivery is serialized: each handler runs to completion before the
    next one, and before the next frame. Frames closer together than
    `sampling_interval_ms` only feed calibration samples.

    Usage:
        pipeline = ListeningPipeline(config, settle_delay_ms=sample.duration_ms)
        unsubscribe = pipeline.subscribe(agent.on_frame)

        for frame in pipeline.run_sync(source):
            ...
    """

    def __init__(
        self,
        config: ChorusConfig | None = None,
        clock: Clock | None = None,
        scheduler: Scheduler | None = None,
        settle_delay_ms: float = 0.0,
    ) -> None:
        self._config = config or ChorusConfig()
        self._clock = clock or SystemClock()
        self._scheduler = scheduler or ThreadingScheduler()
        self._calibrator = AmbientCalibrator(
            self._config, self._clock, self._scheduler, settle_delay_ms
        )
        self._handlers: list[FrameHandler] = []
        self._running = False
        self._last_delivery_ms: float | None = None
        self._latest_frame: FeatureFrame | None = None

    @property
    def config(self) -> ChorusConfig:
        return self._config

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    @property
    def calibrator(self) -> AmbientCalibrator:
        return self._calibrator

    @property
    def baseline(self) -> BaselineProfile | None:
        return self._calibrator.baseline

    @property
    def calibration_state(self) -> CalibrationState:
        return self._calibrator.state

    @property
    def environment_is_quiet(self) -> bool:
        return self._calibrator.environment_is_quiet

    @property
    def latest_frame(self) -> FeatureFrame | None:
        return self._latest_frame

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    def subscribe(self, handler: FrameHandler) -> Unsubscribe:
        """Register a frame handler. Returns an idempotent unsubscribe."""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def process_frame(self, frame: FeatureFrame) -> bool:
        """
        Process one frame with fault tolerance.

        Returns True when the frame was delivered to subscribers, False
        when it was throttled. Handler exceptions are logged but don't
        stop delivery to the remaining handlers.
        """
        now = self._clock.now_ms()
        if (
            self._last_delivery_ms is not None
            and now - self._last_delivery_ms < self._config.sampling_interval_ms
        ):
            self._calibrator.collect(frame)
            return False

        self._last_delivery_ms = now
        self._latest_frame = frame
        self._calibrator.observe(frame)

        for handler in list(self._handlers):
            try:
                handler(frame)
            except Exception as e:
                logger.warning(f"Frame handler {handler!r} failed at {frame.timestamp_ms} ms: {e}")

        return True

    async def run(self, source: FeatureSource) -> AsyncIterator[FeatureFrame]:
        """
        Run the pipeline on a feature source.

        Yields every frame that was delivered to subscribers.
        """
        self._running = True

        try:
            for frame in source.frames():
                if not self._running:
                    break

                if self.process_frame(frame):
                    yield frame

                await asyncio.sleep(0)
        finally:
            self._running = False
            source.close()

    def run_sync(self, source: FeatureSource) -> Iterator[FeatureFrame]:
        """
        Run the pipeline synchronously as an iterator.

        Yields every frame that was delivered to subscribers.
        """
        self._running = True

        try:
            for frame in source.frames():
                if not self._running:
                    break

                if self.process_frame(frame):
                    yield frame
        finally:
            self._running = False
            source.close()

    async def run_async(self, source: AsyncFeatureSource) -> AsyncIterator[FeatureFrame]:
        """
        Run the pipeline with a true async feature source.
        """
        self._running = True

        try:
            async for frame in source.frames():
                if not self._running:
                    break

                if self.process_frame(frame):
                    yield frame

                await asyncio.sleep(0)
        finally:
            self._running = False
            await source.close()

    def stop(self) -> None:
        """Stop the pipeline."""
        self._running = False

    def close(self) -> None:
        """Stop and cancel calibration timers. The baseline is kept."""
        self.stop()
        self._calibrator.cancel()

    def reset(self) -> None:
        """Forget the baseline and throttle state."""
        self._calibrator.reset()
        self._last_delivery_ms = None
        self._latest_frame = None
