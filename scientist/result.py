"""
Result of a single experiment run.

A Result classifies every candidate observation against the control as
matched, mismatched, or ignored. Classification happens once, during
construction, using the experiment's comparison and ignore policy.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Sequence, Tuple

from scientist.observation import Observation

if TYPE_CHECKING:
    from scientist.experiment import Experiment

CONTROL_NAME = "control"


class Result:
    """
    Classified outcome of one experiment run.

    Attributes:
        experiment: Experiment this result belongs to
        observations: All observations in completion order
        control: Observation of the behavior the run resolved against
        candidates: Observations not named "control"
    """

    def __init__(
        self,
        experiment: "Experiment",
        observations: Sequence[Observation],
        control: Observation,
    ):
        self.experiment = experiment
        self.observations: List[Observation] = list(observations)
        self.control = control
        self.candidates: List[Observation] = [
            o for o in self.observations if o.name != CONTROL_NAME
        ]

        self._mismatched: List[Observation] = []
        self._ignored: List[Observation] = []
        self._evaluate_candidates()

    @classmethod
    def create(
        cls,
        experiment: "Experiment",
        observations: Sequence[Observation],
        control: Observation,
    ) -> "Result":
        """
        Create a new Result.

        Args:
            experiment: Experiment to which this result belongs
            observations: Observations in completion order
            control: Observation of the control

        Returns:
            New, fully evaluated Result
        """
        return cls(experiment, observations, control)

    @property
    def mismatched_observations(self) -> Tuple[Observation, ...]:
        return tuple(self._mismatched)

    @property
    def ignored_observations(self) -> Tuple[Observation, ...]:
        return tuple(self._ignored)

    def context(self) -> Mapping[str, Any]:
        """Get a read-only view of the experiment's context."""
        return MappingProxyType(self.experiment.context())

    def experiment_name(self) -> str:
        """Get the experiment's name."""
        return self.experiment.name

    def matched(self) -> bool:
        """
        Was the result a match between all behaviors?

        An ignored mismatch is still not a match.
        """
        return not self._mismatched and not self._ignored

    def mismatched(self) -> bool:
        """Were there unignored mismatches in the behaviors?"""
        return bool(self._mismatched)

    def ignored(self) -> bool:
        """Were there any mismatches that were ignored?"""
        return bool(self._ignored)

    def _evaluate_candidates(self) -> None:
        for candidate in self.candidates:
            if self.experiment.observations_are_equivalent(self.control, candidate):
                continue
            if self.experiment.ignore_mismatched_observation(self.control, candidate):
                self._ignored.append(candidate)
            else:
                self._mismatched.append(candidate)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "experiment": self.experiment_name(),
            "context": dict(self.context()),
            "matched": self.matched(),
            "mismatched": self.mismatched(),
            "ignored": self.ignored(),
            "control": self.control.to_dict(),
            "candidates": [c.to_dict() for c in self.candidates],
            "mismatched_behaviors": [o.name for o in self._mismatched],
            "ignored_behaviors": [o.name for o in self._ignored],
        }

    def __repr__(self) -> str:
        return (
            f"<Result {self.experiment_name()} matched={self.matched()} "
            f"mismatched={[o.name for o in self._mismatched]} "
            f"ignored={[o.name for o in self._ignored]}>"
        )
