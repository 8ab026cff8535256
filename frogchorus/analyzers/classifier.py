"""
Frog signal classifier.

Decides whether a live frame contains another frog's call by comparing
it with the ambient baseline. Five criteria must all hold:

1. Peak proximity: the convolved spectrum peaks within a few bins of
   the baseline's peak (the call has one dominant frequency)
2. Loudness excess: convolved amplitude is well above the baseline
   amplitude, so the microphone hears something over ambient noise
3. Sharp peak: spectral crest is high, a tonal peak rather than
   broadband noise
4. Centroid stability: spectral centroid stays near the quiet mean
5. Rolloff stability: spectral rolloff stays near the quiet mean

1 and 2 say "a matching, louder-than-ambient sound is present";
3 to 5 reject off-timbre noise that happens to peak near the call.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from frogchorus.analyzers.base import Analyzer, AnalysisResult
from frogchorus.analyzers.features import find_peak_bin

if TYPE_CHECKING:
    from frogchorus.core.frame import FeatureFrame
    from frogchorus.core.pipeline import ChorusConfig
    from frogchorus.analyzers.calibrator import BaselineProfile


@dataclass
class ClassificationResult(AnalysisResult):
    """Classifier result with each criterion kept for diagnostics."""
    signal_detected: bool = False
    peaks_are_similar: bool = False
    convolution_is_louder: bool = False
    has_sharp_crest: bool = False
    centroid_is_similar: bool = False
    rolloff_is_similar: bool = False


def _within(value: float | None, reference: float, tolerance: float) -> bool:
    if value is None:
        return False
    return abs(value - reference) < tolerance


def classify_frame(
    frame: FeatureFrame,
    baseline: BaselineProfile | None,
    config: ChorusConfig,
) -> bool:
    """Pure form of the classifier: True when another frog is heard."""
    return SignalClassifier(config).analyze(frame, baseline).signal_detected


class SignalClassifier(Analyzer):
    """
    Conjunctive multi-criterion classifier.

    Missing frame fields fail their criterion. Without a baseline the
    result is always negative.
    """

    def __init__(self, config: ChorusConfig) -> None:
        self._config = config

    @property
    def name(self) -> str:
        return "frog_signal"

    def analyze(
        self,
        frame: FeatureFrame,
        baseline: BaselineProfile | None,
    ) -> ClassificationResult:
        if baseline is None:
            return ClassificationResult(
                analyzer_name=self.name,
                timestamp_ms=frame.timestamp_ms,
                data={"signal_detected": False, "has_baseline": False},
            )

        config = self._config

        live_peak, _ = find_peak_bin(frame.convolution_spectrum)
        baseline_peak, _ = find_peak_bin(baseline.convolution_spectrum)
        peaks_are_similar = (
            frame.has_spectrum
            and abs(live_peak - baseline_peak) < config.peak_bin_tolerance
        )

        convolution_is_louder = (
            frame.amplitude_convolved is not None
            and frame.amplitude_convolved - baseline.amplitude_threshold
            > config.amplitude_excess_threshold
        )

        has_sharp_crest = (
            frame.spectral_crest is not None
            and frame.spectral_crest > config.crest_threshold
        )

        centroid_is_similar = _within(
            frame.spectral_centroid, baseline.mean_centroid, config.centroid_tolerance
        )
        rolloff_is_similar = _within(
            frame.spectral_rolloff, baseline.mean_rolloff, config.rolloff_tolerance
        )

        detected = bool(
            peaks_are_similar
            and convolution_is_louder
            and has_sharp_crest
            and centroid_is_similar
            and rolloff_is_similar
        )

        return ClassificationResult(
            analyzer_name=self.name,
            timestamp_ms=frame.timestamp_ms,
            signal_detected=detected,
            peaks_are_similar=bool(peaks_are_similar),
            convolution_is_louder=bool(convolution_is_louder),
            has_sharp_crest=bool(has_sharp_crest),
            centroid_is_similar=centroid_is_similar,
            rolloff_is_similar=rolloff_is_similar,
            data={
                "signal_detected": detected,
                "has_baseline": True,
                "live_peak_bin": live_peak,
                "baseline_peak_bin": baseline_peak,
                "amplitude_excess": (
                    frame.amplitude_convolved - baseline.amplitude_threshold
                    if frame.amplitude_convolved is not None else None
                ),
            },
        )
