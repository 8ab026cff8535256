"""
Agent state and snapshots.

AgentState is the live, mutable drive state of one frog.
AgentSnapshot is a frozen copy handed to UIs and adapters.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any


def clamp_unit(value: float) -> float:
    """Restrict a value to [0, 1]."""
    return max(0.0, min(1.0, value))


@dataclass(slots=True)
class AgentState:
    """
    Mutable per-agent drives.

    - shyness: tendency toward silence, 1.0 at creation
    - eagerness: tendency toward vocalizing, 0.0 at creation
    - is_vocalizing: True during the suspension window after a chirp
    - detune_cents: fixed pitch offset drawn once at creation
    """
    detune_cents: float
    last_update_ms: float
    last_attempt_ms: float
    shyness: float = 1.0
    eagerness: float = 0.0
    is_vocalizing: bool = False
    is_sleeping: bool = False
    signal_detected: bool = False
    chirp_probability: float = 0.0
    chirp_count: int = 0


@dataclass(frozen=True, slots=True)
class AgentSnapshot:
    """
    Point-in-time view of an agent, for rendering and diagnostics.

    The compact view matches what a listener display needs; the debug
    view adds the drives and the live measurements.
    """
    agent_id: int
    shyness: float = 1.0
    eagerness: float = 0.0
    is_vocalizing: bool = False
    is_sleeping: bool = False
    signal_detected: bool = False
    environment_is_quiet: bool = False
    amplitude: float | None = None
    convolution_amplitude: float | None = None
    loudness: float | None = None
    loudness_threshold: float = 0.0
    baseline_centroid: float | None = None
    baseline_rolloff: float | None = None
    chirp_probability: float = 0.0
    detune_cents: float = 0.0

    def __post_init__(self) -> None:
        if not (0.0 <= self.shyness <= 1.0):
            object.__setattr__(self, 'shyness', clamp_unit(self.shyness))
        if not (0.0 <= self.eagerness <= 1.0):
            object.__setattr__(self, 'eagerness', clamp_unit(self.eagerness))

    def to_dict(self, debug: bool = False) -> dict[str, Any]:
        """Compact view by default, every field when `debug` is set."""
        if debug:
            return asdict(self)
        return {
            "agent_id": self.agent_id,
            "signal_detected": self.signal_detected,
            "is_vocalizing": self.is_vocalizing,
            "is_sleeping": self.is_sleeping,
            "amplitude": self.amplitude,
            "environment_is_quiet": self.environment_is_quiet,
        }
