"""Tests for the frog signal classifier."""

import dataclasses

import numpy as np
import pytest

from frogchorus.analyzers.calibrator import BaselineProfile
from frogchorus.analyzers.classifier import SignalClassifier, classify_frame
from frogchorus.core.frame import FeatureFrame
from frogchorus.core.pipeline import ChorusConfig


def spectrum_with_peak(peak_bin, peak_db=-30.0, floor_db=-100.0, bins=512):
    spectrum = np.full(bins, floor_db, dtype=np.float32)
    spectrum[peak_bin] = peak_db
    return spectrum


@pytest.fixture
def baseline():
    return BaselineProfile(
        convolution_spectrum=spectrum_with_peak(67, peak_db=-80.0),
        amplitude_threshold=-79.5,
        mean_rolloff=2900.0,
        mean_centroid=67.0,
    )


@pytest.fixture
def call_frame():
    """A frame that satisfies every criterion against the baseline."""
    return FeatureFrame(
        timestamp_ms=1000.0,
        amplitude_direct=-33.0,
        amplitude_convolved=-30.0,
        loudness_total=24.0,
        spectral_rolloff=3000.0,
        spectral_centroid=67.5,
        spectral_crest=15.0,
        convolution_spectrum=spectrum_with_peak(68),
        direct_spectrum=spectrum_with_peak(68),
    )


class TestSignalClassifier:
    def test_no_baseline_is_negative(self, call_frame):
        classifier = SignalClassifier(ChorusConfig())
        result = classifier.analyze(call_frame, None)
        assert result.signal_detected is False
        assert result.data["has_baseline"] is False

    def test_all_criteria_met(self, call_frame, baseline):
        result = SignalClassifier(ChorusConfig()).analyze(call_frame, baseline)
        assert result.signal_detected is True
        assert result.peaks_are_similar
        assert result.convolution_is_louder
        assert result.has_sharp_crest
        assert result.centroid_is_similar
        assert result.rolloff_is_similar
        assert result.analyzer_name == "frog_signal"

    def test_pure_form_matches(self, call_frame, baseline):
        assert classify_frame(call_frame, baseline, ChorusConfig()) is True
        assert classify_frame(call_frame, None, ChorusConfig()) is False

    @pytest.mark.parametrize("changes, failed", [
        ({"convolution_spectrum": spectrum_with_peak(71)}, "peaks_are_similar"),
        ({"amplitude_convolved": -59.5}, "convolution_is_louder"),
        ({"spectral_crest": 10.0}, "has_sharp_crest"),
        ({"spectral_centroid": 68.0}, "centroid_is_similar"),
        ({"spectral_rolloff": 3500.0}, "rolloff_is_similar"),
    ])
    def test_single_failing_criterion_rejects(self, call_frame, baseline, changes, failed):
        frame = dataclasses.replace(call_frame, **changes)
        result = SignalClassifier(ChorusConfig()).analyze(frame, baseline)
        assert result.signal_detected is False
        assert getattr(result, failed) is False

    @pytest.mark.parametrize("field", [
        "amplitude_convolved",
        "spectral_crest",
        "spectral_centroid",
        "spectral_rolloff",
    ])
    def test_missing_field_fails_its_criterion(self, call_frame, baseline, field):
        frame = dataclasses.replace(call_frame, **{field: None})
        assert classify_frame(frame, baseline, ChorusConfig()) is False

    def test_missing_spectrum_fails(self, call_frame, baseline):
        frame = dataclasses.replace(call_frame, convolution_spectrum=np.array([], dtype=np.float32))
        result = SignalClassifier(ChorusConfig()).analyze(frame, baseline)
        assert result.peaks_are_similar is False
        assert result.signal_detected is False

    def test_tolerances_follow_config(self, call_frame, baseline):
        frame = dataclasses.replace(call_frame, spectral_rolloff=3400.0)
        assert classify_frame(frame, baseline, ChorusConfig()) is True
        assert classify_frame(frame, baseline, ChorusConfig(rolloff_tolerance=400.0)) is False
