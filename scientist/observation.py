"""
Observation of a single behavior execution.

An Observation runs one named behavior exactly once and records its value
or the exception it raised, along with how long it took. Failures never
escape ``Observation.create``; they are stored on the observation.
"""

from __future__ import annotations

import inspect
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from scientist.utils.logger import summarize_value

if TYPE_CHECKING:
    from scientist.experiment import Experiment


class Observation:
    """
    Captured outcome of one behavior.

    Attributes:
        name: Behavior name this observation represents
        experiment: Owning experiment, used to clean values for reporting
        started_at: UTC timestamp taken when the observation was created
        value: Value the behavior returned (None when it raised)
        exception: Exception the behavior raised (None when it returned)
        duration: Elapsed milliseconds from creation until the outcome settled
    """

    def __init__(self, name: str, experiment: "Experiment", fn: Callable[[], Any]):
        self.name = name
        self.experiment = experiment
        self.fn = fn
        self.started_at = datetime.now(timezone.utc)
        self.value: Any = None
        self.exception: Optional[BaseException] = None
        self.duration: Optional[float] = None
        self._start = time.perf_counter()

    @classmethod
    async def create(
        cls, name: str, experiment: "Experiment", fn: Callable[[], Any]
    ) -> "Observation":
        """
        Execute ``fn`` and record its outcome.

        ``fn`` may return a plain value or an awaitable; awaitables are
        awaited. Any ``Exception`` raised (synchronously or by the awaitable)
        is stored on the observation instead of propagating.

        Args:
            name: Behavior name
            experiment: Owning experiment
            fn: Zero-argument behavior

        Returns:
            The completed Observation
        """
        observation = cls(name, experiment, fn)
        try:
            outcome = observation.fn()
            if inspect.isawaitable(outcome):
                outcome = await outcome
            observation.value = outcome
        except Exception as e:
            observation.exception = e
        finally:
            observation.duration = (time.perf_counter() - observation._start) * 1000
        return observation

    def raised(self) -> bool:
        """Check to see if this observation ever raised an exception."""
        return self.exception is not None

    def cleaned_value(self) -> Any:
        """
        Return the value cleaned for publishing.

        Uses the experiment's cleaner when one is configured. Observations
        without a value (None, or raised) return None without invoking the
        cleaner. Falsy values such as 0, "" and False are cleaned like any
        other value.
        """
        if self.raised() or self.value is None:
            return None
        return self.experiment.clean_value(self.value)

    def equivalent_to(
        self, other: Any, comparator: Optional[Callable[[Any, Any], bool]] = None
    ) -> bool:
        """
        Is this observation equivalent to another?

        Equivalent when:
        - neither raised and the values are equal (``==``), or the
          comparator says so when one is given
        - both raised exceptions with the same message

        Args:
            other: Other observation in question
            comparator: Optional function comparing two values

        Returns:
            True if they are equivalent
        """
        if not isinstance(other, Observation):
            return False

        if not self.raised() and not other.raised():
            if comparator is not None:
                return bool(comparator(self.value, other.value))
            return self.value == other.value

        if self.raised() and other.raised():
            return str(self.exception) == str(other.exception)

        return False

    def to_dict(self) -> Dict[str, Any]:
        """Summary for publishers; values are cleaned and bounded."""
        data: Dict[str, Any] = {
            "name": self.name,
            "started_at": self.started_at.isoformat().replace("+00:00", "Z"),
            "duration_ms": round(self.duration, 3) if self.duration is not None else None,
            "raised": self.raised(),
        }
        if self.raised():
            data["exception"] = f"{type(self.exception).__name__}: {self.exception}"
        else:
            data["value"] = summarize_value(self.cleaned_value())
        return data

    def __repr__(self) -> str:
        outcome = (
            f"exception={self.exception!r}" if self.raised() else f"value={summarize_value(self.value, 60)}"
        )
        return f"<Observation {self.name} {outcome}>"
