"""
frogchorus - Autonomous acoustic agents for emergent chorusing

Each frog listens to the room through a shared feature pipeline and
decides, moment to moment, whether to call. Frogs never exchange data.
Their only coupling is the sound they make.
"""

from frogchorus.core.frame import FeatureFrame, FeatureSource
from frogchorus.core.clock import ManualClock, ManualScheduler, SystemClock, ThreadingScheduler
from frogchorus.core.packet import AgentState, AgentSnapshot
from frogchorus.core.pipeline import ChorusConfig, ListeningPipeline
from frogchorus.core.agent import FrogAgent
from frogchorus.core.chorus import Chorus
from frogchorus.analyzers.calibrator import AmbientCalibrator, BaselineProfile, CalibrationState
from frogchorus.analyzers.classifier import SignalClassifier, classify_frame
from frogchorus.emitters.base import CallSample, SoundEmitter
from frogchorus.adapters.base import Adapter

__version__ = "0.1.0"
__all__ = [
    # Core data structures
    "FeatureFrame",
    "FeatureSource",
    "AgentState",
    "AgentSnapshot",
    # Time
    "ManualClock",
    "ManualScheduler",
    "SystemClock",
    "ThreadingScheduler",
    # Pipeline and agents
    "ChorusConfig",
    "ListeningPipeline",
    "FrogAgent",
    "Chorus",
    # Perception
    "AmbientCalibrator",
    "BaselineProfile",
    "CalibrationState",
    "SignalClassifier",
    "classify_frame",
    # Extension protocols
    "CallSample",
    "SoundEmitter",
    "Adapter",
]
