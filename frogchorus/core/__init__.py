"""Core data structures, time and the shared pipeline."""

from frogchorus.core.frame import FeatureFrame, FeatureSource
from frogchorus.core.clock import (
    Clock,
    ManualClock,
    ManualScheduler,
    Scheduler,
    SystemClock,
    ThreadingScheduler,
    TimerHandle,
)
from frogchorus.core.packet import AgentState, AgentSnapshot
from frogchorus.core.pipeline import ChorusConfig, ListeningPipeline

__all__ = [
    "FeatureFrame",
    "FeatureSource",
    "Clock",
    "ManualClock",
    "ManualScheduler",
    "Scheduler",
    "SystemClock",
    "ThreadingScheduler",
    "TimerHandle",
    "AgentState",
    "AgentSnapshot",
    "ChorusConfig",
    "ListeningPipeline",
]
