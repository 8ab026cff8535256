"""
Real-time microphone feature source.

Requires: pip install sounddevice
"""

from __future__ import annotations

import logging
import queue
from threading import Event
from typing import Iterator
import numpy as np

from frogchorus.analyzers.features import FeatureExtractor
from frogchorus.core.clock import Clock, SystemClock
from frogchorus.core.frame import FeatureFrame

logger = logging.getLogger(__name__)


class MicrophoneFeatureSource:
    """
    Live microphone input, measured block by block.

    Every block of `extractor.fft_size` samples becomes one FeatureFrame
    stamped with the pipeline clock, so frame times and agent timers
    share one timeline. When the consumer falls behind, the oldest
    blocks are dropped rather than delaying the room.

    Usage:
        extractor = FeatureExtractor(sample.data, sample.sample_rate)
        source = MicrophoneFeatureSource(extractor, clock=pipeline.clock)

        for frame in pipeline.run_sync(source):
            ...
    """

    def __init__(
        self,
        extractor: FeatureExtractor,
        clock: Clock | None = None,
        channels: int = 1,
        device: int | str | None = None,
        max_duration_s: float | None = None,
        buffer_size: int = 100,
    ) -> None:
        """
        Args:
            extractor: Measures each block; its sample rate drives the input stream
            clock: Timestamp source (default: monotonic system clock)
            channels: Input channels to open, only the first is measured
            device: Audio device index or name (None = default)
            max_duration_s: Stop after this long (None = until closed)
            buffer_size: Blocks held while the consumer is busy
        """
        self._extractor = extractor
        self._clock = clock or SystemClock()
        self._channels = channels
        self._device = device
        self._max_duration_s = max_duration_s

        self._blocks: queue.Queue[np.ndarray] = queue.Queue(maxsize=buffer_size)
        self._closed = Event()
        self._stream = None
        self.dropped_blocks = 0

    @property
    def sample_rate(self) -> int:
        return self._extractor.sample_rate

    def _on_block(self, indata, frames, time_info, status):
        if status:
            logger.warning(f"Audio input status: {status}")

        block = indata[:, 0].astype(np.float32)
        try:
            self._blocks.put_nowait(block)
        except queue.Full:
            self._blocks.get_nowait()
            self._blocks.put_nowait(block)
            self.dropped_blocks += 1

    def _open(self) -> None:
        try:
            import sounddevice as sd
        except ImportError:
            raise ImportError(
                "sounddevice is required for microphone input.\n"
                "Install with: pip install sounddevice"
            )

        self._stream = sd.InputStream(
            samplerate=self.sample_rate,
            blocksize=self._extractor.fft_size,
            channels=self._channels,
            dtype=np.float32,
            device=self._device,
            callback=self._on_block,
        )
        self._stream.start()
        logger.info(f"Microphone open at {self.sample_rate} Hz, {self._extractor.fft_size} samples per block")

    def frames(self) -> Iterator[FeatureFrame]:
        """
        Blocking generator of feature frames.

        Ends on close(), on Ctrl+C, or once max_duration_s has passed.
        """
        self._open()

        deadline = None
        if self._max_duration_s is not None:
            deadline = self._clock.now_ms() + self._max_duration_s * 1000.0

        try:
            while not self._closed.is_set():
                try:
                    block = self._blocks.get(timeout=0.1)
                except queue.Empty:
                    continue

                now = self._clock.now_ms()
                yield self._extractor.extract(block, now)

                if deadline is not None and now >= deadline:
                    break
        except KeyboardInterrupt:
            pass
        finally:
            self.close()

    def close(self) -> None:
        """Stop the input stream. Safe to call more than once."""
        self._closed.set()

        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None
            if self.dropped_blocks:
                logger.warning(f"Dropped {self.dropped_blocks} audio blocks while busy")


def list_audio_devices() -> None:
    """Print the audio devices sounddevice can see."""
    try:
        import sounddevice as sd
    except ImportError:
        raise ImportError(
            "sounddevice is required to list audio devices.\n"
            "Install with: pip install sounddevice"
        )
    print(sd.query_devices())
