"""
frogchorus Simulated Chorus

Runs several frogs in a simulated room with a manual clock, so a few
minutes of chorus take a moment. Every chirp is heard by the other
frogs through the room, nothing else connects them.

Usage:
    python examples/simulated_chorus.py
"""

import json
import logging

from frogchorus import CallSample, Chorus, ChorusConfig, ManualClock, ManualScheduler
from frogchorus.adapters import DictAdapter
from frogchorus.sources import RoomSimulator, SimulatedRoomSource


def format_bar(value: float, width: int = 20, filled: str = "#", empty: str = ".") -> str:
    """Create a visual bar."""
    filled_count = int(value * width)
    return filled * filled_count + empty * (width - filled_count)


def run_chorus(frogs: int = 5, minutes: float = 3.0, seed: int = 7) -> None:
    clock = ManualClock()
    scheduler = ManualScheduler(clock)
    sample = CallSample.synthetic()

    room = RoomSimulator(clock, seed=seed)
    chorus = Chorus(
        emitter=room,
        config=ChorusConfig(detune_range_cents=20),
        clock=clock,
        scheduler=scheduler,
        seed=seed,
    )
    chorus.spawn(sample, count=frogs)

    source = SimulatedRoomSource(room, scheduler, duration_ms=minutes * 60_000)
    report_every_ms = 10_000
    next_report = report_every_ms

    for frame in chorus.pipeline.run_sync(source):
        if frame.timestamp_ms < next_report:
            continue
        next_report += report_every_ms

        print(f"\n[{frame.timestamp_ms / 1000:6.1f}s] baseline: {chorus.pipeline.calibration_state.value}")
        for agent in chorus.agents:
            state = agent.state
            singing = "[CHIRP]" if state.is_vocalizing else "       "
            print(
                f"  frog {agent.id} {singing} "
                f"shy [{format_bar(state.shyness)}] "
                f"eager [{format_bar(state.eagerness)}] "
                f"chirps={state.chirp_count}"
            )

    print(f"\nTotal chirps heard in the room: {room.play_count}")

    adapter = DictAdapter(debug=True)
    print(json.dumps(adapter.batch_transform(chorus.snapshots()), indent=2))

    chorus.sleep_all()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    run_chorus()
