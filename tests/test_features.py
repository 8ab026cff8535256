"""Tests for reference feature extraction."""

import math

import numpy as np
import pytest

from frogchorus.analyzers.features import (
    FeatureExtractor,
    bark_loudness,
    calculate_amplitude,
    find_peak_bin,
    spectral_centroid,
    spectral_crest,
    spectral_rolloff,
)
from frogchorus.core.frame import FeatureFrame
from frogchorus.emitters.base import CallSample


class TestScalarFeatures:
    def test_calculate_amplitude(self):
        assert calculate_amplitude(np.array([0.0, 0.0])) == pytest.approx(math.log10(2))
        assert calculate_amplitude(np.array([-30.0])) == pytest.approx(-30.0)
        assert calculate_amplitude(np.array([])) == float("-inf")

    def test_amplitude_is_dominated_by_peak(self):
        spectrum = np.full(512, -100.0)
        spectrum[67] = -30.0
        assert calculate_amplitude(spectrum) == pytest.approx(-30.0, abs=1e-6)

    def test_find_peak_bin(self):
        assert find_peak_bin(np.array([1.0, 5.0, 3.0])) == (1, 5.0)
        assert find_peak_bin(np.array([])) == (0, float("-inf"))
        assert find_peak_bin(None) == (0, float("-inf"))

    def test_spectral_centroid(self):
        assert spectral_centroid(np.array([0.0, 1.0, 0.0])) == pytest.approx(1.0)
        assert spectral_centroid(np.array([1.0, 0.0, 1.0])) == pytest.approx(1.0)
        assert spectral_centroid(np.zeros(4)) == 0.0

    def test_spectral_crest(self):
        assert spectral_crest(np.ones(8)) == pytest.approx(1.0)
        assert spectral_crest(np.array([0.0, 0.0, 0.0, 4.0])) == pytest.approx(2.0)
        assert spectral_crest(np.zeros(4)) == 0.0

    def test_spectral_rolloff(self):
        assert spectral_rolloff(np.array([1.0, 0.0, 0.0, 0.0]), sample_rate=8) == 0.0
        assert spectral_rolloff(np.array([0.0, 0.0, 0.0, 1.0]), sample_rate=8) == pytest.approx(3.0)

    def test_frame_peak_bin_matches_find_peak_bin(self):
        spectrum = np.full(512, -100.0, dtype=np.float32)
        spectrum[67] = -30.0
        assert FeatureFrame(0.0, convolution_spectrum=spectrum).peak_bin == 67
        assert FeatureFrame(0.0).peak_bin == find_peak_bin(np.array([]))[0] == 0

    def test_bark_loudness_of_silence(self):
        total, specific = bark_loudness(np.zeros(512), sample_rate=44100)
        assert total == 0.0
        assert len(specific) == 24


class TestFeatureExtractor:
    def setup_method(self):
        self.sample = CallSample.synthetic(frequency_hz=2900.0)

    def make_extractor(self):
        return FeatureExtractor(self.sample.data, self.sample.sample_rate)

    def listen(self, frequency_hz, blocks=20, amplitude=0.5):
        """Feed a continuous tone block by block, returning the last frame."""
        extractor = self.make_extractor()
        n = extractor.fft_size
        t = np.arange(blocks * n) / self.sample.sample_rate
        tone = (amplitude * np.sin(2 * np.pi * frequency_hz * t)).astype(np.float32)
        frame = None
        for i in range(blocks):
            frame = extractor.extract(tone[i * n:(i + 1) * n], i * 23.2)
        return frame

    def test_frame_shape(self):
        frame = self.listen(2900.0, blocks=1)
        assert frame.timestamp_ms == 0.0
        assert len(frame.convolution_spectrum) == 512
        assert len(frame.direct_spectrum) == 512
        assert frame.loudness_total > 0.0

    def test_matching_tone_peaks_near_call_frequency(self):
        frame = self.listen(2900.0)
        call_bin = 2900.0 / (self.sample.sample_rate / 1024)
        assert abs(frame.peak_bin - call_bin) <= 2

    def test_silence(self):
        frame = self.make_extractor().extract(np.zeros(1024, dtype=np.float32), 0.0)
        assert frame.loudness_total == 0.0
        assert frame.spectral_crest == 0.0
        assert np.all(frame.convolution_spectrum == -200.0)

    def test_short_blocks_are_padded(self):
        frame = self.make_extractor().extract(np.zeros(100, dtype=np.float32), 0.0)
        assert len(frame.convolution_spectrum) == 512

    def test_low_frequencies_are_filtered(self):
        assert self.listen(200.0).loudness_total < self.listen(2900.0).loudness_total

    def test_reset_clears_history(self):
        extractor = self.make_extractor()
        t = np.arange(1024) / self.sample.sample_rate
        extractor.extract((0.5 * np.sin(2 * np.pi * 2900.0 * t)).astype(np.float32), 0.0)

        extractor.reset()
        frame = extractor.extract(np.zeros(1024, dtype=np.float32), 23.2)

        assert frame.loudness_total == 0.0

    def test_empty_call_rejected(self):
        with pytest.raises(ValueError):
            FeatureExtractor(np.array([]), 44100)
