"""
Feature frame abstractions.

A frame is one throttled measurement of the shared microphone pipeline.
Frames are consumed immediately and never retained by agents.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Protocol, runtime_checkable
import numpy as np
from numpy.typing import NDArray


def _empty_spectrum() -> NDArray[np.float32]:
    return np.array([], dtype=np.float32)


def find_peak_bin(spectrum: NDArray[np.floating] | None) -> tuple[int, float]:
    """Return (index, value) of the largest bin; (0, -inf) when empty."""
    if spectrum is None or len(spectrum) == 0:
        return 0, float("-inf")
    index = int(np.argmax(spectrum))
    return index, float(spectrum[index])


@dataclass(slots=True)
class FeatureFrame:
    """
    Single feature measurement delivered to every listening agent.

    Attributes:
        timestamp_ms: Milliseconds on the pipeline clock
        amplitude_direct: Log-scale loudness of the raw microphone signal
        amplitude_convolved: Log-scale loudness after matching against the call
        loudness_total: Perceptual loudness (bark-band sum, arbitrary units)
        spectral_rolloff: Frequency (Hz) below which 99% of the energy lies
        spectral_centroid: Spectral centre of gravity (bin units)
        spectral_crest: Ratio of the loudest magnitude to the spectrum RMS
        convolution_spectrum: dB magnitudes of the input correlated with the call
        direct_spectrum: dB magnitudes of the raw input (diagnostic only)

    Any scalar may be None when the extractor could not produce it.
    """
    timestamp_ms: float
    amplitude_direct: float | None = None
    amplitude_convolved: float | None = None
    loudness_total: float | None = None
    spectral_rolloff: float | None = None
    spectral_centroid: float | None = None
    spectral_crest: float | None = None
    convolution_spectrum: NDArray[np.float32] = field(default_factory=_empty_spectrum)
    direct_spectrum: NDArray[np.float32] = field(default_factory=_empty_spectrum)

    @property
    def has_spectrum(self) -> bool:
        """True when a convolution spectrum is present."""
        return len(self.convolution_spectrum) > 0

    @property
    def peak_bin(self) -> int:
        """Index of the loudest convolution bin (0 for an empty spectrum)."""
        return find_peak_bin(self.convolution_spectrum)[0]

    @classmethod
    def quiet(
        cls,
        timestamp_ms: float,
        loudness_total: float = 0.0,
        bins: int = 512,
        floor_db: float = -100.0,
    ) -> FeatureFrame:
        """Create a flat, quiet frame."""
        spectrum = np.full(bins, floor_db, dtype=np.float32)
        amplitude = float(floor_db + np.log10(bins))
        return cls(
            timestamp_ms=timestamp_ms,
            amplitude_direct=amplitude,
            amplitude_convolved=amplitude,
            loudness_total=loudness_total,
            spectral_rolloff=0.0,
            spectral_centroid=0.0,
            spectral_crest=1.0,
            convolution_spectrum=spectrum,
            direct_spectrum=spectrum.copy(),
        )


@runtime_checkable
class FeatureSource(Protocol):
    """Protocol for feature frame sources."""

    def frames(self) -> Iterator[FeatureFrame]:
        """Yield feature frames."""
        ...

    def close(self) -> None:
        """Close the source."""
        ...
