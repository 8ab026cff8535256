"""Ambient calibration, signal classification and feature extraction."""

from frogchorus.analyzers.base import Analyzer, AnalysisResult
from frogchorus.analyzers.calibrator import AmbientCalibrator, BaselineProfile, CalibrationState
from frogchorus.analyzers.classifier import SignalClassifier, ClassificationResult, classify_frame
from frogchorus.analyzers.features import FeatureExtractor, calculate_amplitude, find_peak_bin

__all__ = [
    "Analyzer",
    "AnalysisResult",
    "AmbientCalibrator",
    "BaselineProfile",
    "CalibrationState",
    "SignalClassifier",
    "ClassificationResult",
    "classify_frame",
    "FeatureExtractor",
    "calculate_amplitude",
    "find_peak_bin",
]
