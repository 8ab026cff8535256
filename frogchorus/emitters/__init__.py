"""Sound output."""

from frogchorus.emitters.base import (
    CallSample,
    CallbackEmitter,
    PlayRequest,
    RecordingEmitter,
    SoundEmitter,
    detune,
)
from frogchorus.emitters.speaker import SoundDeviceEmitter

__all__ = [
    "CallSample",
    "CallbackEmitter",
    "PlayRequest",
    "RecordingEmitter",
    "SoundEmitter",
    "SoundDeviceEmitter",
    "detune",
]
