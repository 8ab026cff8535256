"""
Chorus orchestrator.

Owns the shared listening pipeline and allocates agent ids. All
coupling between frogs is acoustic; the chorus only wires each frog
to the microphone and to the speaker.
"""

from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING
import numpy as np

from frogchorus.core.agent import FrogAgent
from frogchorus.core.pipeline import ChorusConfig, ListeningPipeline

if TYPE_CHECKING:
    from frogchorus.core.clock import Clock, Scheduler
    from frogchorus.core.frame import FeatureFrame
    from frogchorus.core.packet import AgentSnapshot
    from frogchorus.emitters.base import CallSample, SoundEmitter

logger = logging.getLogger(__name__)


class Chorus:
    """
    A group of frogs sharing one microphone pipeline.

    `settle_delay_ms` is a floor: every spawned frog raises it to its own
    call duration, so calibration never starts during a playback tail.

    Usage:
        chorus = Chorus(emitter=SoundDeviceEmitter())
        chorus.spawn(sample)
        for frame in chorus.pipeline.run_sync(source):
            print(chorus.snapshots())
        chorus.sleep_all()
    """

    def __init__(
        self,
        emitter: SoundEmitter,
        config: ChorusConfig | None = None,
        clock: Clock | None = None,
        scheduler: Scheduler | None = None,
        settle_delay_ms: float = 0.0,
        seed: int | None = None,
    ) -> None:
        self._emitter = emitter
        self._pipeline = ListeningPipeline(config, clock, scheduler, settle_delay_ms)
        self._seed_sequence = np.random.SeedSequence(seed)
        self._ids = itertools.count(1)
        self._agents: list[FrogAgent] = []

    @property
    def pipeline(self) -> ListeningPipeline:
        return self._pipeline

    @property
    def config(self) -> ChorusConfig:
        return self._pipeline.config

    @property
    def agents(self) -> list[FrogAgent]:
        return list(self._agents)

    @property
    def awake(self) -> list[FrogAgent]:
        return [agent for agent in self._agents if not agent.is_sleeping]

    def spawn(self, sample: CallSample, count: int = 1, start: bool = True) -> list[FrogAgent]:
        """Create `count` frogs singing `sample`, each with its own id and rng."""
        if count < 1:
            raise ValueError(f"count must be at least 1, got {count}")

        spawned = []
        for child in self._seed_sequence.spawn(count):
            agent = FrogAgent(
                agent_id=next(self._ids),
                pipeline=self._pipeline,
                sample=sample,
                emitter=self._emitter,
                rng=np.random.default_rng(child),
            )
            if start:
                agent.start()
            self._agents.append(agent)
            spawned.append(agent)

        logger.info(f"Spawned {count} frog(s), chorus size {len(self._agents)}")
        return spawned

    def process_frame(self, frame: FeatureFrame) -> bool:
        """Feed one frame through the shared pipeline."""
        return self._pipeline.process_frame(frame)

    def snapshots(self) -> list[AgentSnapshot]:
        return [agent.snapshot() for agent in self._agents]

    def sleep_all(self) -> None:
        """Put every frog to sleep and stop calibration timers."""
        for agent in self._agents:
            agent.sleep()
        self._pipeline.close()
        logger.info(f"Chorus asleep ({len(self._agents)} frog(s))")
