"""Synthetic feature sources for testing and simulation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator
import numpy as np

from frogchorus.analyzers.features import calculate_amplitude
from frogchorus.core.clock import ManualClock, ManualScheduler
from frogchorus.core.frame import FeatureFrame
from frogchorus.emitters.base import CallSample, SoundEmitter, detune_factor

logger = logging.getLogger(__name__)


class ScriptedFrameSource:
    """
    Replays a fixed list of frames.

    With a ManualScheduler, time is advanced to each frame's timestamp
    (firing any due timers) before the frame is yielded.
    """

    def __init__(
        self,
        frames: Iterable[FeatureFrame],
        scheduler: ManualScheduler | None = None,
    ) -> None:
        self._frames = list(frames)
        self._scheduler = scheduler
        self._closed = False

    def frames(self) -> Iterator[FeatureFrame]:
        for frame in self._frames:
            if self._closed:
                break
            if self._scheduler is not None:
                self._scheduler.run_until(frame.timestamp_ms)
            yield frame

    def close(self) -> None:
        self._closed = True


class QuietFrameSource(ScriptedFrameSource):
    """Flat, quiet frames at a fixed interval."""

    def __init__(
        self,
        duration_ms: float = 5000.0,
        interval_ms: float = 120.0,
        loudness: float = 5.0,
        start_ms: float = 0.0,
        scheduler: ManualScheduler | None = None,
    ) -> None:
        timestamps = np.arange(start_ms + interval_ms, start_ms + duration_ms + 1e-9, interval_ms)
        frames = [FeatureFrame.quiet(float(t), loudness_total=loudness) for t in timestamps]
        super().__init__(frames, scheduler)


@dataclass
class _Sound:
    start_ms: float
    end_ms: float
    bin_shift: float = 0.0
    loudness: float = 0.0
    is_call: bool = True


class RoomSimulator(SoundEmitter):
    """
    A shared acoustic space for headless choruses.

    Acts as the speaker (every play is a call that sounds for the call's
    duration) and as the microphone (frame_at() synthesizes the feature
    frame the room produces at a given moment).

    The convolved spectrum of the quiet room already peaks at the call
    frequency, as correlating noise with the call emphasizes that band.
    A sounding call raises that peak well above ambience, with a sharp
    crest and the same centroid. Detuned calls land proportionally off
    the peak. Noise bursts are loud, flat and broadband.

    Parameters:
        clock: Shared manual clock
        bins: Spectrum size (FFT size / 2)
        sample_rate: Sample rate the spectrum represents
        call_frequency_hz: Dominant frequency of the call
        ambient_loudness / call_loudness: Perceptual loudness levels
        seed: Seed for measurement jitter
    """

    def __init__(
        self,
        clock: ManualClock,
        bins: int = 512,
        sample_rate: int = 44100,
        call_frequency_hz: float = 2900.0,
        ambient_loudness: float = 10.0,
        call_loudness: float = 24.0,
        floor_db: float = -100.0,
        ambient_peak_db: float = -80.0,
        call_peak_db: float = -30.0,
        noise_db: float = -45.0,
        seed: int | None = None,
    ) -> None:
        self._clock = clock
        self._bins = bins
        self._sample_rate = sample_rate
        self._call_frequency_hz = call_frequency_hz
        self._ambient_loudness = ambient_loudness
        self._call_loudness = call_loudness
        self._floor_db = floor_db
        self._ambient_peak_db = ambient_peak_db
        self._call_peak_db = call_peak_db
        self._noise_db = noise_db
        self._rng = np.random.default_rng(seed)
        self._sounds: list[_Sound] = []
        self.play_count = 0

    @property
    def name(self) -> str:
        return "room"

    @property
    def bin_hz(self) -> float:
        return self._sample_rate / (2 * self._bins)

    @property
    def call_bin(self) -> int:
        return int(round(self._call_frequency_hz / self.bin_hz))

    def play(self, sample: CallSample, detune_cents: float) -> None:
        now = self._clock.now_ms()
        factor = detune_factor(detune_cents)
        # the convolved peak sits between the heard and the own call frequency
        shift = self.call_bin * (factor - 1.0) / 2
        self._sounds.append(_Sound(now, now + sample.duration_ms / factor, shift, self._call_loudness))
        self.play_count += 1
        logger.debug(f"Room: call from {sample.name} at {now:.0f} ms ({detune_cents:+.0f} cents)")

    def add_noise(
        self,
        duration_ms: float,
        loudness: float = 45.0,
        start_ms: float | None = None,
    ) -> None:
        """Schedule a broadband noise burst."""
        start = self._clock.now_ms() if start_ms is None else start_ms
        self._sounds.append(_Sound(start, start + duration_ms, 0.0, loudness, is_call=False))

    def sounding(self, now_ms: float) -> list[_Sound]:
        return [s for s in self._sounds if s.start_ms <= now_ms < s.end_ms]

    def frame_at(self, now_ms: float | None = None) -> FeatureFrame:
        """Measure the room."""
        now = self._clock.now_ms() if now_ms is None else now_ms
        self._sounds = [s for s in self._sounds if s.end_ms > now - 60_000]
        sounding = self.sounding(now)
        calls = [s for s in sounding if s.is_call]
        noises = [s for s in sounding if not s.is_call]
        rng = self._rng
        call_bin = self.call_bin

        spectrum = self._floor_db + rng.normal(0.0, 1.0, self._bins)
        lo, hi = max(0, call_bin - 1), min(self._bins, call_bin + 2)
        spectrum[lo:hi] = np.maximum(spectrum[lo:hi], self._ambient_peak_db)

        loudness = self._ambient_loudness + rng.normal(0.0, 0.5)
        crest = 3.0 + rng.normal(0.0, 0.2)
        centroid = call_bin + rng.normal(0.0, 0.05)
        rolloff = self._call_frequency_hz + rng.normal(0.0, 40.0)

        if calls:
            peak_bins = [int(np.clip(round(call_bin + s.bin_shift), 0, self._bins - 1)) for s in calls]
            for b in peak_bins:
                spectrum[b] = max(spectrum[b], self._call_peak_db + rng.normal(0.0, 1.0))
            loudness = max(loudness, max(s.loudness for s in calls)) + 2.0 * (len(calls) - 1)
            crest = 15.0 + rng.normal(0.0, 0.5)
            centroid = call_bin + float(np.mean([s.bin_shift for s in calls])) + rng.normal(0.0, 0.05)

        if noises:
            spectrum = np.maximum(spectrum, self._noise_db + rng.normal(0.0, 3.0, self._bins))
            loudness = max(loudness, max(s.loudness for s in noises))
            crest = 2.0 + rng.normal(0.0, 0.2)
            centroid = self._bins / 2 + rng.normal(0.0, 2.0)
            rolloff = 0.9 * self._sample_rate / 2 + rng.normal(0.0, 100.0)

        spectrum = spectrum.astype(np.float32)
        amplitude = calculate_amplitude(spectrum)
        return FeatureFrame(
            timestamp_ms=now,
            amplitude_direct=amplitude - 3.0,
            amplitude_convolved=amplitude,
            loudness_total=float(loudness),
            spectral_rolloff=float(rolloff),
            spectral_centroid=float(centroid),
            spectral_crest=float(crest),
            convolution_spectrum=spectrum,
            direct_spectrum=spectrum - 3.0,
        )


class SimulatedRoomSource:
    """
    Feature source that measures a RoomSimulator at a fixed interval,
    advancing the manual scheduler between frames so agent timers fire
    in between, as they would in real time.
    """

    def __init__(
        self,
        room: RoomSimulator,
        scheduler: ManualScheduler,
        duration_ms: float,
        frame_interval_ms: float = 120.0,
    ) -> None:
        if frame_interval_ms <= 0:
            raise ValueError(f"frame_interval_ms must be positive, got {frame_interval_ms}")
        self._room = room
        self._scheduler = scheduler
        self._duration_ms = duration_ms
        self._frame_interval_ms = frame_interval_ms
        self._closed = False

    def frames(self) -> Iterator[FeatureFrame]:
        end = self._scheduler.clock.now_ms() + self._duration_ms
        while not self._closed and self._scheduler.clock.now_ms() + self._frame_interval_ms <= end:
            self._scheduler.advance(self._frame_interval_ms)
            yield self._room.frame_at()

    def close(self) -> None:
        self._closed = True
