"""
Real-time speaker output.

Requires: pip install sounddevice
"""

from __future__ import annotations

import logging
import threading
import numpy as np
from numpy.typing import NDArray

from frogchorus.emitters.base import CallSample, SoundEmitter, detune

logger = logging.getLogger(__name__)


class SoundDeviceEmitter(SoundEmitter):
    """
    Speaker output using sounddevice.

    One output stream is opened lazily on the first play. Every play
    adds a voice that the stream callback mixes in until it runs out,
    so several agents can share a speaker without cutting each other off.

    Usage:
        emitter = SoundDeviceEmitter()
        emitter.play(sample, detune_cents=-35)
        ...
        emitter.close()
    """

    def __init__(
        self,
        sample_rate: int = 44100,
        device: int | str | None = None,
        blocksize: int = 512,
        volume: float = 1.0,
    ) -> None:
        """
        Initialize speaker output.

        Args:
            sample_rate: Output sample rate (default 44.1kHz)
            device: Audio device index or name (None = default)
            blocksize: Frames per stream callback
            volume: Linear gain applied to the mix
        """
        self._sample_rate = sample_rate
        self._device = device
        self._blocksize = blocksize
        self._volume = volume

        self._voices: list[list] = []
        self._lock = threading.Lock()
        self._stream = None

    @property
    def name(self) -> str:
        return "sounddevice"

    @property
    def active_voices(self) -> int:
        with self._lock:
            return len(self._voices)

    def _start_stream(self) -> None:
        try:
            import sounddevice as sd
        except ImportError:
            raise ImportError(
                "sounddevice is required for speaker output.\n"
                "Install with: pip install sounddevice"
            )

        self._stream = sd.OutputStream(
            samplerate=self._sample_rate,
            blocksize=self._blocksize,
            channels=1,
            dtype=np.float32,
            device=self._device,
            callback=self._audio_callback,
        )
        self._stream.start()

    def _audio_callback(self, outdata, frames, time_info, status):
        """Called by sounddevice for each output block."""
        if status:
            logger.warning(f"Audio output status: {status}")

        mix = np.zeros(frames, dtype=np.float32)
        with self._lock:
            remaining = []
            for voice in self._voices:
                data, position = voice
                chunk = data[position:position + frames]
                mix[:len(chunk)] += chunk
                voice[1] = position + frames
                if voice[1] < len(data):
                    remaining.append(voice)
            self._voices = remaining

        outdata[:, 0] = np.clip(mix * self._volume, -1.0, 1.0)

    def _prepare(self, sample: CallSample, detune_cents: float) -> NDArray[np.float32]:
        data = detune(sample, detune_cents)
        if sample.sample_rate != self._sample_rate:
            n_out = int(len(data) * self._sample_rate / sample.sample_rate)
            positions = np.linspace(0, len(data) - 1, n_out)
            data = np.interp(positions, np.arange(len(data)), data).astype(np.float32)
        return data

    def play(self, sample: CallSample, detune_cents: float) -> None:
        if self._stream is None:
            self._start_stream()
        data = self._prepare(sample, detune_cents)
        with self._lock:
            self._voices.append([data, 0])

    def close(self) -> None:
        """Stop output and clean up."""
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None
        with self._lock:
            self._voices = []
