"""Tests for shyness and eagerness dynamics."""

import pytest

from frogchorus.behavior.dynamics import BehaviorDynamics
from frogchorus.core.frame import FeatureFrame
from frogchorus.core.packet import AgentState
from frogchorus.core.pipeline import ChorusConfig


def make_state(**kwargs):
    return AgentState(detune_cents=0.0, last_update_ms=0.0, last_attempt_ms=0.0, **kwargs)


class TestShyness:
    def test_quiet_room_lowers_shyness_over_time(self):
        dynamics = BehaviorDynamics(ChorusConfig(rate_of_losing_shyness=0.05))
        state = make_state()

        dynamics.update(state, FeatureFrame(3000.0, loudness_total=5.0), False, 3000.0)

        assert state.shyness == pytest.approx(0.85)
        assert state.last_update_ms == 3000.0

    def test_trajectory_is_independent_of_frame_rate(self):
        dynamics = BehaviorDynamics(ChorusConfig())
        coarse = make_state()
        fine = make_state()

        dynamics.update(coarse, FeatureFrame(2000.0, loudness_total=5.0), False, 2000.0)
        for t in range(100, 2001, 100):
            dynamics.update(fine, FeatureFrame(float(t), loudness_total=5.0), False, float(t))

        assert fine.shyness == pytest.approx(coarse.shyness)

    def test_loud_room_raises_shyness(self):
        dynamics = BehaviorDynamics(ChorusConfig())
        state = make_state(shyness=0.5)

        dynamics.update(state, FeatureFrame(500.0, loudness_total=40.0), False, 500.0)

        assert state.shyness == pytest.approx(0.9)

    def test_quiet_margin_boundary(self):
        dynamics = BehaviorDynamics(ChorusConfig())
        assert dynamics.environment_is_quiet(32.9)
        assert not dynamics.environment_is_quiet(33.0)
        assert not dynamics.environment_is_quiet(None)

    def test_shyness_stays_in_bounds(self):
        dynamics = BehaviorDynamics(ChorusConfig())
        state = make_state(shyness=0.1)

        dynamics.update(state, FeatureFrame(10_000.0, loudness_total=5.0), False, 10_000.0)
        assert state.shyness == 0.0

        dynamics.update(state, FeatureFrame(20_000.0, loudness_total=80.0), False, 20_000.0)
        assert state.shyness == 1.0

    def test_missing_loudness_leaves_shyness(self):
        dynamics = BehaviorDynamics(ChorusConfig())
        state = make_state(shyness=0.6)

        dynamics.update(state, FeatureFrame(1000.0), False, 1000.0)

        assert state.shyness == 0.6
        assert state.last_update_ms == 1000.0

    def test_clock_going_backwards_is_a_zero_step(self):
        dynamics = BehaviorDynamics(ChorusConfig())
        state = make_state(shyness=0.6)
        state.last_update_ms = 5000.0

        dynamics.update(state, FeatureFrame(4000.0, loudness_total=5.0), True, 4000.0)

        assert state.shyness == 0.6
        assert state.eagerness == 0.0


class TestEagerness:
    def test_rises_while_signal_detected(self):
        dynamics = BehaviorDynamics(ChorusConfig())
        state = make_state()

        dynamics.update(state, FeatureFrame(300.0, loudness_total=5.0), True, 300.0)

        assert state.eagerness == pytest.approx(0.3)
        assert state.signal_detected is True

    def test_never_decays_on_its_own(self):
        dynamics = BehaviorDynamics(ChorusConfig())
        state = make_state(eagerness=0.4)

        dynamics.update(state, FeatureFrame(60_000.0, loudness_total=5.0), False, 60_000.0)

        assert state.eagerness == 0.4
        assert state.signal_detected is False

    def test_clamped_at_one(self):
        dynamics = BehaviorDynamics(ChorusConfig())
        state = make_state(eagerness=0.9)

        dynamics.update(state, FeatureFrame(5000.0, loudness_total=5.0), True, 5000.0)

        assert state.eagerness == 1.0

    def test_velocity(self):
        dynamics = BehaviorDynamics(ChorusConfig(base_rate_of_change=0.1))
        assert dynamics.eagerness_velocity(True) == pytest.approx(0.5)
        assert dynamics.eagerness_velocity(False) == 0.0
