"""
Reference feature extraction.

Turns raw microphone blocks into FeatureFrames:
- a direct dB spectrum of the input (diagnostic only)
- a dB spectrum of the input convolved with the frog's own call,
  which emphasizes energy that matches the call
- loudness, rolloff, centroid and crest of the convolved signal

Spectra mimic a browser analyser node: Blackman window, magnitude
normalized by the FFT size, exponential smoothing across blocks, dB.
Scalar descriptors follow the usual definitions of the feature
extraction libraries (Hann window, amplitude spectrum).
"""

from __future__ import annotations

from dataclasses import dataclass
import numpy as np
from numpy.typing import NDArray

from frogchorus.core.frame import FeatureFrame, find_peak_bin

FFT_SIZE = 1024
NUM_BARK_BANDS = 24
ROLLOFF_FRACTION = 0.99
MIN_DB = -200.0


def calculate_amplitude(spectrum_db: NDArray[np.floating]) -> float:
    """
    Total amplitude of a dB spectrum, on a log10 scale.

    Sums 10 ** value over every bin and takes log10 of the sum.
    Returns -inf for an empty or silent spectrum.
    """
    spectrum = np.asarray(spectrum_db, dtype=np.float64)
    if spectrum.size == 0:
        return float("-inf")
    total = float(np.sum(np.power(10.0, spectrum)))
    if total <= 0.0:
        return float("-inf")
    return float(np.log10(total))


def spectral_centroid(amp_spectrum: NDArray[np.floating]) -> float:
    """Centre of gravity of the amplitude spectrum, in bins."""
    total = float(np.sum(amp_spectrum))
    if total == 0.0:
        return 0.0
    bins = np.arange(len(amp_spectrum))
    return float(np.sum(bins * amp_spectrum) / total)


def spectral_rolloff(amp_spectrum: NDArray[np.floating], sample_rate: int) -> float:
    """Frequency (Hz) below which 99% of the spectrum's amplitude lies."""
    n_bins = len(amp_spectrum)
    if n_bins == 0:
        return 0.0
    nyquist = sample_rate / 2
    cumulative = np.cumsum(amp_spectrum)
    threshold = ROLLOFF_FRACTION * cumulative[-1]
    index = int(np.searchsorted(cumulative, threshold, side="left"))
    return float(index * nyquist / n_bins)


def spectral_crest(amp_spectrum: NDArray[np.floating]) -> float:
    """Ratio of the loudest magnitude to the RMS of the spectrum."""
    if len(amp_spectrum) == 0:
        return 0.0
    rms = float(np.sqrt(np.mean(np.square(amp_spectrum))))
    if rms == 0.0:
        return 0.0
    return float(np.max(amp_spectrum) / rms)


def bark_scale(n_bins: int, sample_rate: int, fft_size: int) -> NDArray[np.float64]:
    """Bark value of each bin's centre frequency."""
    freqs = np.arange(n_bins) * sample_rate / fft_size
    return 13.0 * np.arctan(freqs / 1315.8) + 3.5 * np.arctan(np.square(freqs / 7518.0))


def bark_loudness(
    amp_spectrum: NDArray[np.floating],
    sample_rate: int,
    fft_size: int = FFT_SIZE,
) -> tuple[float, NDArray[np.float64]]:
    """
    Perceptual loudness over 24 equal-width bark bands.

    Returns (total, specific) where specific[i] = band_energy ** 0.23.
    """
    n_bins = len(amp_spectrum)
    specific = np.zeros(NUM_BARK_BANDS, dtype=np.float64)
    if n_bins == 0:
        return 0.0, specific

    barks = bark_scale(n_bins, sample_rate, fft_size)
    band_width = barks[-1] / NUM_BARK_BANDS if barks[-1] > 0 else 1.0
    bands = np.minimum((barks / band_width).astype(int), NUM_BARK_BANDS - 1)
    energy = np.bincount(bands, weights=np.square(amp_spectrum), minlength=NUM_BARK_BANDS)
    specific = np.power(energy[:NUM_BARK_BANDS], 0.23)
    return float(np.sum(specific)), specific


@dataclass
class _AnalyserNode:
    """Smoothed dB spectrum, one per measured signal."""
    fft_size: int
    smoothing: float
    _previous: NDArray[np.float64] | None = None

    def measure(self, block: NDArray[np.float32]) -> NDArray[np.float32]:
        window = np.blackman(self.fft_size)
        magnitude = np.abs(np.fft.rfft(block * window))[: self.fft_size // 2] / self.fft_size
        if self._previous is not None:
            magnitude = self.smoothing * self._previous + (1.0 - self.smoothing) * magnitude
        self._previous = magnitude
        with np.errstate(divide="ignore"):
            db = 20.0 * np.log10(magnitude)
        return np.maximum(db, MIN_DB).astype(np.float32)

    def reset(self) -> None:
        self._previous = None


class FeatureExtractor:
    """
    Per-agent feature extractor.

    Parameters:
        call: The agent's own call waveform, used as the convolution kernel
        sample_rate: Input sample rate
        fft_size: Analysis block size (default 1024, 512 bins)
        highpass_hz: Energy below this is removed before convolution
        smoothing: Analyser smoothing constant between blocks

    Usage:
        extractor = FeatureExtractor(sample.data, sample.sample_rate)
        frame = extractor.extract(block, timestamp_ms)
    """

    def __init__(
        self,
        call: NDArray[np.floating],
        sample_rate: int,
        fft_size: int = FFT_SIZE,
        highpass_hz: float = 1000.0,
        smoothing: float = 0.8,
    ) -> None:
        if len(call) == 0:
            raise ValueError("call waveform is empty")
        self._call = np.asarray(call, dtype=np.float64)
        self._sample_rate = sample_rate
        self._fft_size = fft_size
        self._highpass_hz = highpass_hz

        self._direct = _AnalyserNode(fft_size, smoothing)
        self._convolved = _AnalyserNode(fft_size, smoothing)
        self._tail = np.zeros(len(self._call) - 1, dtype=np.float64)

    @property
    def fft_size(self) -> int:
        return self._fft_size

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    def extract(self, block: NDArray[np.floating], timestamp_ms: float) -> FeatureFrame:
        """Measure one block of raw input."""
        block = self._fit(np.asarray(block, dtype=np.float64))

        filtered = self._highpass(block)
        convolved = self._convolve(filtered)

        direct_db = self._direct.measure(block)
        convolved_db = self._convolved.measure(convolved)

        amp = np.abs(np.fft.rfft(convolved * np.hanning(self._fft_size)))[: self._fft_size // 2]
        loudness, _ = bark_loudness(amp, self._sample_rate, self._fft_size)

        return FeatureFrame(
            timestamp_ms=timestamp_ms,
            amplitude_direct=calculate_amplitude(direct_db),
            amplitude_convolved=calculate_amplitude(convolved_db),
            loudness_total=loudness,
            spectral_rolloff=spectral_rolloff(amp, self._sample_rate),
            spectral_centroid=spectral_centroid(amp),
            spectral_crest=spectral_crest(amp),
            convolution_spectrum=convolved_db,
            direct_spectrum=direct_db,
        )

    def _fit(self, block: NDArray[np.float64]) -> NDArray[np.float64]:
        if len(block) >= self._fft_size:
            return block[-self._fft_size:]
        return np.pad(block, (self._fft_size - len(block), 0))

    def _highpass(self, block: NDArray[np.float64]) -> NDArray[np.float64]:
        spectrum = np.fft.rfft(block)
        freqs = np.fft.rfftfreq(len(block), d=1.0 / self._sample_rate)
        spectrum[freqs < self._highpass_hz] = 0.0
        return np.fft.irfft(spectrum, n=len(block))

    def _convolve(self, block: NDArray[np.float64]) -> NDArray[np.float64]:
        """Streaming convolution with overlap-add of the previous tail."""
        n = len(block) + len(self._call) - 1
        full = np.fft.irfft(np.fft.rfft(block, n) * np.fft.rfft(self._call, n), n)

        full[: len(self._tail)] += self._tail
        self._tail = full[len(block):].copy()
        return full[: len(block)]

    def reset(self) -> None:
        self._direct.reset()
        self._convolved.reset()
        self._tail = np.zeros(len(self._call) - 1, dtype=np.float64)
