"""
Ambient calibrator.

Waits for the room to stay quiet for a full calibration window, then
freezes a BaselineProfile that every agent on the pipeline compares
live frames against.

States:
    UNSETTLED -> ACCUMULATING -> SETTLED

A loud frame while ACCUMULATING cancels the window timer and discards
the collected samples. Once SETTLED the calibrator ignores frames,
unless a recalibration interval is configured, in which case a new
epoch starts after that interval while the old profile stays active.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING
import numpy as np
from numpy.typing import NDArray

from frogchorus.core.frame import find_peak_bin

if TYPE_CHECKING:
    from frogchorus.core.clock import Clock, Scheduler, TimerHandle
    from frogchorus.core.frame import FeatureFrame
    from frogchorus.core.pipeline import ChorusConfig

logger = logging.getLogger(__name__)


class CalibrationState(str, Enum):
    """Calibrator lifecycle."""
    UNSETTLED = "unsettled"
    ACCUMULATING = "accumulating_quiet"
    SETTLED = "settled"


@dataclass(frozen=True)
class BaselineProfile:
    """
    Snapshot of the quiet room.

    - convolution_spectrum: convolved spectrum at the end of the window
    - amplitude_threshold: convolved amplitude at the end of the window
    - mean_rolloff / mean_centroid: means of the samples seen while quiet
    - epoch: calibration round that produced this profile (1 = first)
    """
    convolution_spectrum: NDArray[np.float32]
    amplitude_threshold: float
    mean_rolloff: float
    mean_centroid: float
    epoch: int = 1
    established_ms: float = 0.0

    @property
    def peak_bin(self) -> int:
        return find_peak_bin(self.convolution_spectrum)[0]


class AmbientCalibrator:
    """
    Hysteresis-based quiet detector for one shared pipeline.

    Parameters:
        config: Thresholds and the calibration window length
        clock: Time source
        scheduler: Timer factory for the calibration window
        settle_delay_ms: Start-up period during which nothing is calibrated,
            at least as long as the agents' own call so their playback
            tail is not taken for ambience
    """

    def __init__(
        self,
        config: ChorusConfig,
        clock: Clock,
        scheduler: Scheduler,
        settle_delay_ms: float = 0.0,
    ) -> None:
        self._config = config
        self._clock = clock
        self._scheduler = scheduler
        self._settle_delay_ms = settle_delay_ms
        self._lock = threading.RLock()

        self._start_ms = clock.now_ms()
        self._state = CalibrationState.UNSETTLED
        self._baseline: BaselineProfile | None = None
        self._epoch = 0
        self._window_timer: TimerHandle | None = None
        self._recalibration_timer: TimerHandle | None = None
        self._rolloff_samples: list[float] = []
        self._centroid_samples: list[float] = []
        self._latest_frame: FeatureFrame | None = None

    @property
    def state(self) -> CalibrationState:
        return self._state

    @property
    def baseline(self) -> BaselineProfile | None:
        return self._baseline

    @property
    def environment_is_quiet(self) -> bool:
        return self._baseline is not None

    @property
    def is_accumulating(self) -> bool:
        return self._window_timer is not None and self._window_timer.active

    @property
    def sample_count(self) -> int:
        return min(len(self._rolloff_samples), len(self._centroid_samples))

    @property
    def input_has_settled(self) -> bool:
        """True once the start-up period has passed."""
        return self._clock.now_ms() - self._start_ms > self._settle_delay_ms

    @property
    def settle_delay_ms(self) -> float:
        return self._settle_delay_ms

    def require_settle_delay(self, delay_ms: float) -> None:
        """Lengthen the start-up period to at least `delay_ms`. Never shortens it."""
        with self._lock:
            if delay_ms > self._settle_delay_ms:
                self._settle_delay_ms = delay_ms
                logger.debug(f"Settle delay raised to {delay_ms:.0f} ms")

    def collect(self, frame: FeatureFrame) -> None:
        """Record rolloff/centroid samples while a window is running."""
        with self._lock:
            if not self.is_accumulating:
                return
            if frame.spectral_rolloff is not None:
                self._rolloff_samples.append(float(frame.spectral_rolloff))
            if frame.spectral_centroid is not None:
                self._centroid_samples.append(float(frame.spectral_centroid))

    def observe(self, frame: FeatureFrame) -> CalibrationState:
        """Advance the state machine with one delivered frame."""
        with self._lock:
            if frame.has_spectrum and frame.amplitude_convolved is not None:
                self._latest_frame = frame

            if self._state == CalibrationState.SETTLED or not self.input_has_settled:
                return self._state

            loudness = frame.loudness_total
            if loudness is None:
                return self._state

            if loudness > self._config.loudness_threshold:
                self._interrupt(loudness)
                return self._state

            if not self.is_accumulating:
                self._start_window()
                self._state = CalibrationState.ACCUMULATING
                logger.debug(
                    f"Quiet detected (loudness {loudness:.2f}), "
                    f"accumulating for {self._config.calibration_window_ms} ms"
                )

            self.collect(frame)
            return self._state

    def _start_window(self) -> None:
        handle: TimerHandle | None = None

        def finish() -> None:
            self._finish_window(handle)

        # finish() takes the lock, so it cannot see `handle` before it is bound
        handle = self._scheduler.call_later(self._config.calibration_window_ms, finish)
        self._window_timer = handle

    def _interrupt(self, loudness: float) -> None:
        if self._window_timer is not None:
            self._window_timer.cancel()
            logger.debug(f"Calibration interrupted by loud frame ({loudness:.2f})")
        self._window_timer = None
        self._clear_samples()
        self._state = CalibrationState.UNSETTLED

    def _finish_window(self, handle: TimerHandle | None) -> None:
        with self._lock:
            if handle is None or handle is not self._window_timer:
                logger.debug("Ignoring a calibration window that was already interrupted")
                return
            if self._state != CalibrationState.ACCUMULATING:
                return
            self._window_timer = None
            frame = self._latest_frame

            if not self._rolloff_samples or not self._centroid_samples or frame is None:
                logger.debug("Calibration window ended without samples, staying unsettled")
                self._clear_samples()
                self._state = CalibrationState.UNSETTLED
                return

            self._epoch += 1
            self._baseline = BaselineProfile(
                convolution_spectrum=np.array(frame.convolution_spectrum, dtype=np.float32),
                amplitude_threshold=float(frame.amplitude_convolved),
                mean_rolloff=float(np.mean(self._rolloff_samples)),
                mean_centroid=float(np.mean(self._centroid_samples)),
                epoch=self._epoch,
                established_ms=self._clock.now_ms(),
            )
            self._clear_samples()
            self._state = CalibrationState.SETTLED

            logger.info(
                f"Baseline established (epoch {self._epoch}): "
                f"peak bin {self._baseline.peak_bin}, "
                f"amplitude {self._baseline.amplitude_threshold:.2f}, "
                f"rolloff {self._baseline.mean_rolloff:.1f}, "
                f"centroid {self._baseline.mean_centroid:.2f}"
            )

            interval = self._config.recalibration_interval_ms
            if interval is not None:
                self._schedule_recalibration(interval)

    def _schedule_recalibration(self, interval_ms: float) -> None:
        handle: TimerHandle | None = None

        def begin() -> None:
            self._begin_epoch(handle)

        handle = self._scheduler.call_later(interval_ms, begin)
        self._recalibration_timer = handle

    def _begin_epoch(self, handle: TimerHandle | None) -> None:
        with self._lock:
            if handle is None or handle is not self._recalibration_timer:
                return
            self._recalibration_timer = None
            if self._state != CalibrationState.SETTLED:
                return
            self._state = CalibrationState.UNSETTLED
            logger.debug(f"Recalibrating, epoch {self._epoch} profile stays active")

    def _clear_samples(self) -> None:
        self._rolloff_samples = []
        self._centroid_samples = []

    def cancel(self) -> None:
        """Cancel any pending timers without touching the baseline."""
        with self._lock:
            for timer in (self._window_timer, self._recalibration_timer):
                if timer is not None:
                    timer.cancel()
            self._window_timer = None
            self._recalibration_timer = None
            if self._state == CalibrationState.ACCUMULATING:
                self._state = CalibrationState.UNSETTLED
            self._clear_samples()

    def reset(self) -> None:
        """Forget the baseline and start over, including the start-up period."""
        with self._lock:
            self.cancel()
            self._baseline = None
            self._epoch = 0
            self._latest_frame = None
            self._state = CalibrationState.UNSETTLED
            self._start_ms = self._clock.now_ms()
