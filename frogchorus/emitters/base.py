"""
Sound emitter protocol and call samples.

An emitter receives "play this call, detuned by N cents" and performs
the output. Playback is fire-and-forget: the engine never waits for it.
"""

from __future__ import annotations

import logging
import wave
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, TYPE_CHECKING
import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    from frogchorus.core.clock import Clock

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class CallSample:
    """
    A frog's call waveform.

    Attributes:
        data: Mono samples as float32, normalized to [-1.0, 1.0]
        sample_rate: Samples per second
        name: Label used in logs
    """
    data: NDArray[np.float32]
    sample_rate: int
    name: str = "call"

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        if len(self.data) == 0:
            raise ValueError("call sample is empty")

    @property
    def duration_s(self) -> float:
        """Duration of the call in seconds."""
        return len(self.data) / self.sample_rate

    @property
    def duration_ms(self) -> float:
        return self.duration_s * 1000.0

    @classmethod
    def from_wav(cls, path: str | Path) -> CallSample:
        """Load a 16-bit PCM WAV file, mixing down to mono."""
        path = Path(path)
        with wave.open(str(path), "rb") as wav:
            if wav.getsampwidth() != 2:
                raise ValueError(f"{path}: only 16-bit PCM is supported")
            channels = wav.getnchannels()
            sample_rate = wav.getframerate()
            raw = wav.readframes(wav.getnframes())

        samples = np.frombuffer(raw, dtype=np.int16).astype(np.float32)
        samples /= 32768.0
        if channels > 1:
            samples = samples.reshape(-1, channels).mean(axis=1)
        return cls(data=samples, sample_rate=sample_rate, name=path.stem)

    @classmethod
    def synthetic(
        cls,
        frequency_hz: float = 2900.0,
        duration_s: float = 0.25,
        sample_rate: int = 44100,
        sweep_hz: float = 300.0,
        amplitude: float = 0.8,
    ) -> CallSample:
        """
        Generate a peeper-like call: a short upward sweep under a
        smooth envelope.
        """
        total_samples = int(sample_rate * duration_s)
        t = np.arange(total_samples) / sample_rate
        freq = frequency_hz - sweep_hz / 2 + sweep_hz * t / duration_s
        phase = 2 * np.pi * np.cumsum(freq) / sample_rate
        envelope = np.sin(np.pi * t / duration_s) ** 2
        data = (amplitude * envelope * np.sin(phase)).astype(np.float32)
        return cls(data=data, sample_rate=sample_rate, name=f"synthetic_{int(frequency_hz)}hz")


def detune_factor(detune_cents: float) -> float:
    """Playback-rate factor for a pitch offset in cents."""
    return float(2.0 ** (detune_cents / 1200.0))


def detune(sample: CallSample, detune_cents: float) -> NDArray[np.float32]:
    """
    Resample a call so it plays `detune_cents` higher (or lower).

    Like a tape played faster, pitch and duration change together.
    """
    factor = detune_factor(detune_cents)
    if factor == 1.0:
        return sample.data
    n_out = max(1, int(round(len(sample.data) / factor)))
    positions = np.arange(n_out) * factor
    source = np.arange(len(sample.data))
    return np.interp(positions, source, sample.data).astype(np.float32)


class SoundEmitter(ABC):
    """
    Abstract base for sound output.

    Implementations must return promptly; the call runs on the
    agent's timer thread.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique emitter name."""
        ...

    @abstractmethod
    def play(self, sample: CallSample, detune_cents: float) -> None:
        """Start playing `sample` shifted by `detune_cents`."""
        ...

    def close(self) -> None:
        """Release output resources (if any)."""
        pass


@dataclass(frozen=True)
class PlayRequest:
    """One recorded play call."""
    sample: CallSample
    detune_cents: float
    timestamp_ms: float | None = None


class CallbackEmitter(SoundEmitter):
    """Emitter that forwards each play request to a callback."""

    def __init__(self, callback: Callable[[CallSample, float], None]) -> None:
        self._callback = callback

    @property
    def name(self) -> str:
        return "callback"

    def play(self, sample: CallSample, detune_cents: float) -> None:
        self._callback(sample, detune_cents)


@dataclass
class RecordingEmitter(SoundEmitter):
    """
    Emitter that only records what it was asked to play.

    Useful for tests and headless simulation.
    """
    clock: Clock | None = None
    plays: list[PlayRequest] = field(default_factory=list)

    @property
    def name(self) -> str:
        return "recording"

    def play(self, sample: CallSample, detune_cents: float) -> None:
        timestamp = self.clock.now_ms() if self.clock is not None else None
        self.plays.append(PlayRequest(sample, detune_cents, timestamp))
        logger.debug(f"Recorded play of {sample.name} detuned {detune_cents:+.0f} cents")

    def clear(self) -> None:
        self.plays.clear()
