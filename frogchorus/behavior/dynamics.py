"""
Behavior dynamics.

Continuous-time rate equations for the two drives of a frog:

- shyness falls at a constant rate while the room is quiet and rises
  with ambient loudness otherwise
- eagerness rises while another frog is heard and never decays on its
  own; only a chirp resets it

Both are integrated over the real time elapsed since the previous
update, so the frame rate does not change the trajectory.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from frogchorus.core.packet import AgentState, clamp_unit

if TYPE_CHECKING:
    from frogchorus.core.frame import FeatureFrame
    from frogchorus.core.pipeline import ChorusConfig

SHYNESS_GAIN = 0.8
LOUDNESS_SCALE = 40.0
EAGERNESS_MULTIPLIER = 5.0


class BehaviorDynamics:
    """
    Integrates shyness and eagerness for one agent.

    Usage:
        dynamics = BehaviorDynamics(config)
        dynamics.update(state, frame, signal_detected, now_ms)
    """

    def __init__(self, config: ChorusConfig) -> None:
        self._config = config

    def environment_is_quiet(self, loudness: float | None) -> bool:
        if loudness is None:
            return False
        return loudness < self._config.loudness_threshold + self._config.quiet_margin

    def shyness_velocity(self, loudness: float | None) -> float:
        """Change in shyness per second for the given loudness."""
        if loudness is None:
            return 0.0
        if self.environment_is_quiet(loudness):
            return -self._config.rate_of_losing_shyness
        return SHYNESS_GAIN * (loudness / LOUDNESS_SCALE)

    def eagerness_velocity(self, signal_detected: bool) -> float:
        """Change in eagerness per second."""
        if not signal_detected:
            return 0.0
        return self._config.base_rate_of_change * EAGERNESS_MULTIPLIER

    def update(
        self,
        state: AgentState,
        frame: FeatureFrame,
        signal_detected: bool,
        now_ms: float,
    ) -> None:
        """Apply one step and stamp the update time."""
        dt = max(0.0, (now_ms - state.last_update_ms) / 1000.0)

        state.shyness = clamp_unit(state.shyness + self.shyness_velocity(frame.loudness_total) * dt)
        state.eagerness = clamp_unit(state.eagerness + self.eagerness_velocity(signal_detected) * dt)
        state.signal_detected = signal_detected
        state.last_update_ms = now_ms
