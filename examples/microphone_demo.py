#!/usr/bin/env python3
"""
frogchorus Microphone Demo

A single frog listening through the microphone and chirping through
the speaker. Run it on several devices in one room for a chorus.

Usage:
    python examples/microphone_demo.py [call.wav]

Requires:
    pip install sounddevice

Stop with Ctrl+C.
"""

import logging
import sys

from frogchorus import CallSample, Chorus, ChorusConfig
from frogchorus.adapters import CallbackAdapter
from frogchorus.analyzers import FeatureExtractor


def print_snapshot(snapshot) -> None:
    """Print one frog's state on a single updating line."""
    quiet = "quiet" if snapshot.environment_is_quiet else "calibrating"
    heard = "HEARD" if snapshot.signal_detected else "     "
    singing = "CHIRP" if snapshot.is_vocalizing else "     "
    print(
        f"\r  frog {snapshot.agent_id} | {quiet:11s} | {heard} | {singing} | "
        f"shy {snapshot.shyness:.2f} eager {snapshot.eagerness:.2f} "
        f"loudness {snapshot.loudness or 0:5.1f}",
        end="",
        flush=True,
    )


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        from frogchorus.emitters import SoundDeviceEmitter
        from frogchorus.sources.microphone import MicrophoneFeatureSource, list_audio_devices
        list_audio_devices()
    except ImportError as e:
        print(f"\n  [ERROR] {e}\n")
        return 1

    sample = CallSample.from_wav(sys.argv[1]) if len(sys.argv) > 1 else CallSample.synthetic()

    emitter = SoundDeviceEmitter(sample_rate=sample.sample_rate)
    chorus = Chorus(
        emitter=emitter,
        config=ChorusConfig(),
    )
    chorus.spawn(sample)

    extractor = FeatureExtractor(sample.data, sample.sample_rate)
    source = MicrophoneFeatureSource(extractor, clock=chorus.pipeline.clock)
    adapter = CallbackAdapter(print_snapshot)

    print("\n  Listening... (Ctrl+C to stop)\n")
    try:
        for _ in chorus.pipeline.run_sync(source):
            adapter.batch_transform(chorus.snapshots())
    except KeyboardInterrupt:
        pass
    finally:
        chorus.sleep_all()
        emitter.close()
        print("\n\n  [STOP] The frogs are asleep.\n")

    return 0


if __name__ == "__main__":
    sys.exit(main())
