"""
Frog agent.

Wires one frog together: it listens on a shared pipeline, classifies
each frame against the pipeline's baseline, integrates its drives, and
runs its own chirp timer. Frogs never talk to each other except
through sound.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING
import numpy as np

from frogchorus.analyzers.classifier import SignalClassifier, ClassificationResult
from frogchorus.behavior.dynamics import BehaviorDynamics
from frogchorus.behavior.scheduler import VocalizationScheduler
from frogchorus.core.packet import AgentState, AgentSnapshot

if TYPE_CHECKING:
    from frogchorus.core.frame import FeatureFrame
    from frogchorus.core.pipeline import ListeningPipeline, Unsubscribe
    from frogchorus.emitters.base import CallSample, SoundEmitter

logger = logging.getLogger(__name__)


class FrogAgent:
    """
    One autonomous frog.

    Lifecycle:
        agent = FrogAgent(1, pipeline, sample, emitter)
        agent.start()      # subscribe + start chirp timer
        ...
        agent.sleep()      # terminal, idempotent

    Frames that arrive while the frog is vocalizing are ignored, not
    queued. The chirp timer keeps running regardless.
    """

    def __init__(
        self,
        agent_id: int,
        pipeline: ListeningPipeline,
        sample: CallSample,
        emitter: SoundEmitter,
        rng: np.random.Generator | None = None,
    ) -> None:
        self._id = agent_id
        self._pipeline = pipeline
        self._config = pipeline.config
        self._clock = pipeline.clock
        self._sample = sample
        self._emitter = emitter
        self._rng = rng if rng is not None else np.random.default_rng()
        self._lock = threading.RLock()

        # the pipeline must not calibrate on this frog's own playback tail
        pipeline.calibrator.require_settle_delay(sample.duration_ms)

        now = self._clock.now_ms()
        detune_range = self._config.detune_range_cents
        self._state = AgentState(
            detune_cents=float(self._rng.integers(-detune_range, detune_range, endpoint=True)),
            last_update_ms=now,
            last_attempt_ms=now,
        )

        self._classifier = SignalClassifier(self._config)
        self._dynamics = BehaviorDynamics(self._config)
        self._scheduler = VocalizationScheduler(
            state=self._state,
            sample=sample,
            emitter=emitter,
            config=self._config,
            clock=self._clock,
            scheduler=pipeline.scheduler,
            rng=self._rng,
            lock=self._lock,
            agent_id=agent_id,
        )

        self._unsubscribe: Unsubscribe | None = None
        self._last_frame: FeatureFrame | None = None
        self._last_result: ClassificationResult | None = None

    @property
    def id(self) -> int:
        return self._id

    @property
    def state(self) -> AgentState:
        return self._state

    @property
    def sample(self) -> CallSample:
        return self._sample

    @property
    def detune_cents(self) -> float:
        return self._state.detune_cents

    @property
    def is_sleeping(self) -> bool:
        return self._state.is_sleeping

    @property
    def is_vocalizing(self) -> bool:
        return self._state.is_vocalizing

    @property
    def vocalization(self) -> VocalizationScheduler:
        return self._scheduler

    @property
    def last_result(self) -> ClassificationResult | None:
        return self._last_result

    def start(self) -> None:
        """Subscribe to the pipeline and start the chirp timer."""
        with self._lock:
            if self._state.is_sleeping:
                return
            if self._unsubscribe is None:
                self._unsubscribe = self._pipeline.subscribe(self.on_frame)
            self._scheduler.start()
            logger.debug(f"Frog {self._id} listening (detune {self._state.detune_cents:+.0f} cents)")

    def on_frame(self, frame: FeatureFrame) -> None:
        """Update drives from one delivered frame."""
        with self._lock:
            if self._state.is_sleeping:
                return

            self._last_frame = frame

            if self._state.is_vocalizing:
                return

            now = self._clock.now_ms()
            result = self._classifier.analyze(frame, self._pipeline.baseline)
            self._last_result = result
            self._dynamics.update(self._state, frame, result.signal_detected, now)

    def try_chirp(self) -> bool:
        """Run one chirp trial immediately. Returns True on playback."""
        return self._scheduler.attempt()

    def sleep(self) -> None:
        """Stop listening and chirping for good. Safe to call repeatedly."""
        with self._lock:
            if self._state.is_sleeping:
                return
            self._state.is_sleeping = True
            self._scheduler.stop()
            if self._unsubscribe is not None:
                self._unsubscribe()
                self._unsubscribe = None
            logger.debug(f"Frog {self._id} is asleep after {self._state.chirp_count} chirps")

    def snapshot(self) -> AgentSnapshot:
        """Frozen view of the agent for displays and adapters."""
        with self._lock:
            state = self._state
            frame = self._last_frame
            baseline = self._pipeline.baseline
            return AgentSnapshot(
                agent_id=self._id,
                shyness=state.shyness,
                eagerness=state.eagerness,
                is_vocalizing=state.is_vocalizing,
                is_sleeping=state.is_sleeping,
                signal_detected=state.signal_detected,
                environment_is_quiet=self._pipeline.environment_is_quiet,
                amplitude=frame.amplitude_direct if frame else None,
                convolution_amplitude=frame.amplitude_convolved if frame else None,
                loudness=frame.loudness_total if frame else None,
                loudness_threshold=self._config.loudness_threshold,
                baseline_centroid=baseline.mean_centroid if baseline else None,
                baseline_rolloff=baseline.mean_rolloff if baseline else None,
                chirp_probability=state.chirp_probability,
                detune_cents=state.detune_cents,
            )

    def __repr__(self) -> str:
        return (
            f"FrogAgent(id={self._id}, shyness={self._state.shyness:.2f}, "
            f"eagerness={self._state.eagerness:.2f}, sleeping={self._state.is_sleeping})"
        )
