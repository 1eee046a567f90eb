"""
Run a trusted control code path alongside candidate implementations,
compare what they produce, and report divergences without changing what
the caller sees.

Usage:
    experiment = Experiment("cache-rewrite")
    experiment.use(lambda: legacy_lookup(key))
    experiment.register("new-cache", lambda: new_lookup(key))
    value = await experiment.run()
"""

from scientist.exceptions import (
    ControlObservationMissingError,
    DuplicateBehaviorNameError,
    InvalidBehaviorError,
    MismatchError,
    ScientistError,
    UnknownBehaviorError,
)
from scientist.experiment import Experiment
from scientist.factory import ExperimentProtocol, Scientist, science
from scientist.observation import Observation
from scientist.result import Result

__version__ = "1.0.0"
__all__ = [
    "ControlObservationMissingError",
    "DuplicateBehaviorNameError",
    "Experiment",
    "ExperimentProtocol",
    "InvalidBehaviorError",
    "MismatchError",
    "Observation",
    "Result",
    "Scientist",
    "ScientistError",
    "UnknownBehaviorError",
    "science",
]
