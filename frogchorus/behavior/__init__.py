"""Drive dynamics and the chirp scheduler."""

from frogchorus.behavior.dynamics import BehaviorDynamics
from frogchorus.behavior.scheduler import (
    VocalizationScheduler,
    chirp_probability,
    eagerness_factor,
    normalize_probability,
    shyness_factor,
)

__all__ = [
    "BehaviorDynamics",
    "VocalizationScheduler",
    "chirp_probability",
    "eagerness_factor",
    "normalize_probability",
    "shyness_factor",
]
