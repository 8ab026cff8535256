"""
Vocalization scheduler.

On a fixed-interval timer, turns (shyness, eagerness) into a chirp
probability and runs a Bernoulli trial.

The probability is a rate per `probability_interval_s` scaled by the
real time since the previous attempt. A host that delays or drops
ticks (a throttled background process) therefore keeps the same
chirping rate, only with coarser attempts.
"""

from __future__ import annotations

import logging
import math
import threading
from typing import TYPE_CHECKING
import numpy as np

from frogchorus.core.packet import AgentState

if TYPE_CHECKING:
    from frogchorus.core.clock import Clock, Scheduler, TimerHandle
    from frogchorus.core.pipeline import ChorusConfig
    from frogchorus.emitters.base import CallSample, SoundEmitter

logger = logging.getLogger(__name__)

EAGERNESS_BASE_FACTOR = 0.01


def eagerness_factor(eagerness: float) -> float:
    """Map eagerness onto a square-root curve with a small floor."""
    return EAGERNESS_BASE_FACTOR + math.sqrt(eagerness) * (1 - EAGERNESS_BASE_FACTOR)


def shyness_factor(shyness: float) -> float:
    """Map shyness onto 1 - shyness^(2/3)."""
    return 1 - math.pow(shyness, 2 / 3)


def chirp_probability(shyness: float, eagerness: float) -> float:
    """Chirp rate per probability interval. Full eagerness always chirps."""
    if eagerness == 1:
        return 1.0
    return eagerness_factor(eagerness) * shyness_factor(shyness)


def normalize_probability(
    base_probability: float,
    elapsed_ms: float,
    probability_interval_s: float = 1.0,
) -> float:
    """Scale a per-interval probability to the time actually elapsed."""
    return base_probability * (elapsed_ms / 1000.0) / probability_interval_s


def bernoulli_trial(probability: float, rng: np.random.Generator) -> bool:
    """Bernoulli trial: True iff probability >= a uniform draw."""
    return probability >= rng.random()


class VocalizationScheduler:
    """
    Periodic chirp trial for one agent.

    Each tick:
    1. base = chirp_probability(shyness, eagerness)
    2. probability = base scaled by the time since the last attempt
    3. chirp iff probability >= uniform draw
    4. on chirp: play, reset eagerness, suspend listening for twice
       the call duration
    5. stamp the attempt time, chirp or not

    A tick that lands inside a suspension window still runs the trial
    and stamps the attempt, but does not start a second playback.
    """

    def __init__(
        self,
        state: AgentState,
        sample: CallSample,
        emitter: SoundEmitter,
        config: ChorusConfig,
        clock: Clock,
        scheduler: Scheduler,
        rng: np.random.Generator,
        lock: threading.RLock | None = None,
        agent_id: int = 0,
    ) -> None:
        self._state = state
        self._sample = sample
        self._emitter = emitter
        self._config = config
        self._clock = clock
        self._scheduler = scheduler
        self._rng = rng
        self._lock = lock or threading.RLock()
        self._agent_id = agent_id

        self._tick_timer: TimerHandle | None = None
        self._suspension_timer: TimerHandle | None = None

    @property
    def running(self) -> bool:
        return self._tick_timer is not None and self._tick_timer.active

    @property
    def suspension_ms(self) -> float:
        """Length of the listening pause after a chirp."""
        return 2 * self._sample.duration_s * 1000.0

    def start(self) -> None:
        with self._lock:
            if self.running or self._state.is_sleeping:
                return
            self._tick_timer = self._scheduler.call_every(
                self._config.chirp_attempt_interval_ms, self.attempt
            )

    def stop(self) -> None:
        """Cancel ticking and any pending end of suspension. Idempotent."""
        with self._lock:
            for timer in (self._tick_timer, self._suspension_timer):
                if timer is not None:
                    timer.cancel()
            self._tick_timer = None
            self._suspension_timer = None

    def attempt(self) -> bool:
        """Run one chirp trial. Returns True when playback was started."""
        with self._lock:
            state = self._state
            if state.is_sleeping:
                return False

            now = self._clock.now_ms()
            base = chirp_probability(state.shyness, state.eagerness)
            state.chirp_probability = normalize_probability(
                base,
                now - state.last_attempt_ms,
                self._config.probability_interval_s,
            )
            should_chirp = bernoulli_trial(state.chirp_probability, self._rng)

            chirped = False
            if should_chirp and not state.is_vocalizing:
                self._chirp()
                chirped = True

            state.last_attempt_ms = now
            return chirped

    def _chirp(self) -> None:
        state = self._state
        self._emitter.play(self._sample, state.detune_cents)

        state.is_vocalizing = True
        state.eagerness = 0.0
        state.chirp_count += 1
        self._suspension_timer = self._scheduler.call_later(
            self.suspension_ms, self._end_vocalizing
        )
        logger.debug(
            f"Frog {self._agent_id} chirped (probability {state.chirp_probability:.3f}, "
            f"shyness {state.shyness:.2f}), suspended for {self.suspension_ms:.0f} ms"
        )

    def _end_vocalizing(self) -> None:
        with self._lock:
            self._suspension_timer = None
            self._state.is_vocalizing = False
