"""Tests for the chirp probability and vocalization scheduler."""

import math

import numpy as np
import pytest

from frogchorus.behavior.scheduler import (
    VocalizationScheduler,
    bernoulli_trial,
    chirp_probability,
    eagerness_factor,
    normalize_probability,
    shyness_factor,
)
from frogchorus.core.clock import ManualClock, ManualScheduler
from frogchorus.core.packet import AgentState
from frogchorus.core.pipeline import ChorusConfig
from frogchorus.emitters.base import CallSample, RecordingEmitter


class FixedRandom:
    """Stand-in generator whose uniform draw is always the same."""

    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


ALWAYS = FixedRandom(0.0)
NEVER = FixedRandom(1.0)


def make_scheduler(rng, config=None, **state_kwargs):
    clock = ManualClock()
    timers = ManualScheduler(clock)
    state = AgentState(detune_cents=-20.0, last_update_ms=0.0, last_attempt_ms=0.0, **state_kwargs)
    emitter = RecordingEmitter(clock)
    vocalization = VocalizationScheduler(
        state=state,
        sample=CallSample.synthetic(duration_s=0.25),
        emitter=emitter,
        config=config or ChorusConfig(),
        clock=clock,
        scheduler=timers,
        rng=rng,
    )
    return vocalization, state, emitter, timers


class TestProbabilityCurve:
    def test_eagerness_factor(self):
        assert eagerness_factor(0.0) == pytest.approx(0.01)
        assert eagerness_factor(1.0) == pytest.approx(1.0)
        assert eagerness_factor(0.25) == pytest.approx(0.01 + 0.5 * 0.99)

    def test_shyness_factor(self):
        assert shyness_factor(0.0) == pytest.approx(1.0)
        assert shyness_factor(1.0) == pytest.approx(0.0)
        assert shyness_factor(0.125) == pytest.approx(0.75)

    def test_full_shyness_silences(self):
        assert chirp_probability(1.0, 0.5) == pytest.approx(0.0)

    def test_full_eagerness_overrides_shyness(self):
        assert chirp_probability(1.0, 1.0) == 1.0
        assert chirp_probability(0.3, 1.0) == 1.0

    def test_probability_in_unit_range(self):
        for shyness in (0.0, 0.2, 0.5, 0.9, 1.0):
            for eagerness in (0.0, 0.1, 0.6, 0.99):
                assert 0.0 <= chirp_probability(shyness, eagerness) <= 1.0

    def test_normalize_by_elapsed_time(self):
        assert normalize_probability(0.5, 500) == pytest.approx(0.25)
        assert normalize_probability(0.5, 2000) == pytest.approx(1.0)
        assert normalize_probability(0.5, 1000, probability_interval_s=2.0) == pytest.approx(0.25)

    def test_bernoulli_trial(self):
        assert bernoulli_trial(0.3, FixedRandom(0.3)) is True
        assert bernoulli_trial(0.3, FixedRandom(0.31)) is False


class TestVocalizationScheduler:
    def test_probability_scales_with_irregular_ticks(self):
        vocalization, state, _, timers = make_scheduler(NEVER, shyness=0.0)

        timers.advance(250)
        vocalization.attempt()
        assert state.chirp_probability == pytest.approx(0.01 * 0.25)

        timers.advance(2000)
        vocalization.attempt()
        assert state.chirp_probability == pytest.approx(0.01 * 2.0)

    def test_attempt_is_always_stamped(self):
        vocalization, state, emitter, timers = make_scheduler(NEVER)

        timers.advance(300)
        assert vocalization.attempt() is False

        assert state.last_attempt_ms == 300.0
        assert emitter.plays == []

    def test_chirp_resets_eagerness(self):
        vocalization, state, emitter, timers = make_scheduler(ALWAYS, shyness=0.0, eagerness=0.7)

        timers.advance(250)
        assert vocalization.attempt() is True

        assert state.eagerness == 0.0
        assert state.chirp_count == 1
        assert len(emitter.plays) == 1
        assert emitter.plays[0].detune_cents == -20.0
        assert emitter.plays[0].timestamp_ms == 250.0

    def test_vocalizing_lasts_twice_the_call(self):
        vocalization, state, _, timers = make_scheduler(ALWAYS)
        assert vocalization.suspension_ms == pytest.approx(500.0)

        vocalization.attempt()
        assert state.is_vocalizing

        timers.advance(499)
        assert state.is_vocalizing
        timers.advance(1)
        assert not state.is_vocalizing

    def test_no_second_playback_while_vocalizing(self):
        vocalization, state, emitter, timers = make_scheduler(ALWAYS)

        vocalization.attempt()
        timers.advance(250)
        assert vocalization.attempt() is False

        assert len(emitter.plays) == 1
        assert state.last_attempt_ms == 250.0

        timers.advance(250)
        assert vocalization.attempt() is True
        assert len(emitter.plays) == 2

    def test_ticks_on_interval(self):
        vocalization, state, _, timers = make_scheduler(NEVER)

        vocalization.start()
        vocalization.start()
        timers.advance(1000)

        assert vocalization.running
        assert state.last_attempt_ms == 1000.0
        assert timers.pending == 1

    def test_stop_cancels_everything(self):
        vocalization, state, _, timers = make_scheduler(ALWAYS)

        vocalization.start()
        timers.advance(250)
        assert state.is_vocalizing

        vocalization.stop()
        vocalization.stop()

        assert not vocalization.running
        assert timers.pending == 0

    def test_sleeping_agent_never_attempts(self):
        vocalization, state, emitter, timers = make_scheduler(ALWAYS, is_sleeping=True)

        timers.advance(250)
        assert vocalization.attempt() is False

        assert emitter.plays == []
        assert state.last_attempt_ms == 0.0

    def test_sleeping_agent_does_not_start(self):
        vocalization, _, _, timers = make_scheduler(NEVER, is_sleeping=True)
        vocalization.start()
        assert timers.pending == 0

    def test_low_probability_rarely_chirps(self):
        vocalization, state, emitter, timers = make_scheduler(
            np.random.default_rng(0), shyness=1.0, eagerness=0.0
        )
        vocalization.start()
        timers.advance(60_000)

        assert emitter.plays == []
        assert math.isclose(state.chirp_probability, 0.0, abs_tol=1e-12)
