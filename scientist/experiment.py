"""
Experiment Core Module

Runs a trusted control behavior alongside candidate behaviors, compares
their observations, publishes the result, and hands back the control's
outcome unchanged.

Run sequence:
- Validate the requested behavior exists
- Skip instrumentation entirely when the experiment should not run
- Run the before-run hook
- Execute every behavior concurrently in shuffled order
- Classify candidates into a Result and publish it
- Raise MismatchError when configured, else return or re-raise the control
"""

from __future__ import annotations

import asyncio
import inspect
import random
from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional, Union

from scientist.exceptions import (
    ControlObservationMissingError,
    DuplicateBehaviorNameError,
    InvalidBehaviorError,
    MismatchError,
    UnknownBehaviorError,
)
from scientist.observation import Observation
from scientist.result import CONTROL_NAME, Result
from scientist.utils.concurrency import call_off_loop
from scientist.utils.logger import get_logger, log_operation
from scientist.utils.shuffle import RandomSource, fisher_yates_shuffle

logger = get_logger(__name__)

DEFAULT_EXPERIMENT_NAME = "experiment"
DEFAULT_CANDIDATE_NAME = "candidate"

Behavior = Callable[[], Any]
Publisher = Callable[[Result], Any]


class Experiment:
    """
    Registry of named behaviors plus the policy used to compare them.

    Behaviors and policy may be changed between runs; every ``run`` call is
    independent. Mutating the registry while a run is in flight is not
    guarded.

    Attributes:
        name: Experiment name, reported with every result
        enabled: Manual on/off switch for instrumentation
        raise_on_mismatches: Raise MismatchError instead of returning the
            control's outcome when a candidate mismatches
        publisher: Optional sink invoked with every Result
        rng: Random source used to shuffle submission order
    """

    def __init__(
        self,
        name: Optional[str] = None,
        publisher: Optional[Publisher] = None,
        rng: Optional[RandomSource] = None,
        raise_on_mismatches: bool = False,
    ):
        self.name = name or DEFAULT_EXPERIMENT_NAME
        self.enabled = True
        self.raise_on_mismatches = raise_on_mismatches
        self.publisher = publisher
        self.rng = rng or random.Random()

        self._behaviors: Dict[str, Behavior] = {}
        self._context: Dict[str, Any] = {}
        self._ignores: List[Callable[[Any, Any], bool]] = []
        self._comparator: Optional[Callable[[Observation, Observation], bool]] = None
        self._cleaner: Optional[Callable[[Any], Any]] = None
        self._before_run: Optional[Callable[[], Any]] = None
        self._run_if: Optional[Callable[[], bool]] = None

    # ------------------------------------------------------------------ #
    # Behavior registration
    # ------------------------------------------------------------------ #

    def register(self, name: Union[str, Behavior, None], fn: Optional[Behavior] = None) -> None:
        """
        Register a behavior under a unique name.

        ``register(fn)`` and ``register(None, fn)`` register under "candidate".

        Args:
            name: Behavior name, or the behavior itself
            fn: Zero-argument callable returning a value or an awaitable

        Raises:
            DuplicateBehaviorNameError: If the name is already registered
            InvalidBehaviorError: If fn is not callable
        """
        if fn is None and callable(name):
            name, fn = DEFAULT_CANDIDATE_NAME, name
        elif name is None:
            name = DEFAULT_CANDIDATE_NAME

        if name in self._behaviors:
            raise DuplicateBehaviorNameError(name)
        if not callable(fn):
            raise InvalidBehaviorError(
                f"Behavior '{name}' must be callable, got {type(fn).__name__}"
            )

        self._behaviors[name] = fn
        logger.debug(
            "Registered behavior",
            operation="register",
            context={"experiment": self.name, "behavior": name},
        )

    try_ = register

    def use(self, fn: Behavior) -> None:
        """Register the control behavior."""
        self.register(CONTROL_NAME, fn)

    def behavior_names(self) -> List[str]:
        """Registered behavior names in registration order."""
        return list(self._behaviors)

    # ------------------------------------------------------------------ #
    # Policy configuration
    # ------------------------------------------------------------------ #

    def context(self, context: Optional[Mapping] = None) -> Dict[str, Any]:
        """
        Get or add to the extra experiment data.

        Non-mapping arguments are ignored.

        Args:
            context: Extra data merged shallowly into the current context

        Returns:
            The experiment context
        """
        if isinstance(context, Mapping):
            self._context.update(context)
        return self._context

    def clean(self, fn: Callable[[Any], Any]) -> None:
        """Define a function that cleans a value for publishing."""
        self._cleaner = fn

    def compare(self, fn: Callable[[Observation, Observation], bool]) -> None:
        """Define a function comparing the control and a candidate observation."""
        self._comparator = fn

    def ignore(self, fn: Callable[[Any, Any], bool]) -> None:
        """
        Add a predicate deciding whether a mismatch should be ignored.

        Predicates receive the control value and the candidate value and
        are evaluated in registration order.
        """
        self._ignores.append(fn)

    def before_run(self, fn: Callable[[], Any]) -> None:
        """Define a function run once before instrumented runs."""
        self._before_run = fn

    def run_if(self, fn: Callable[[], bool]) -> None:
        """Define a function deciding whether instrumentation happens."""
        self._run_if = fn

    # ------------------------------------------------------------------ #
    # Policy evaluation
    # ------------------------------------------------------------------ #

    def clean_value(self, value: Any) -> Any:
        """Clean a value with the configured cleaner, or return it as is."""
        if self._cleaner is not None:
            return self._cleaner(value)
        return value

    def observations_are_equivalent(self, control: Observation, candidate: Observation) -> bool:
        """
        Compare two observations using the configured comparator, if present.

        Without a comparator, values must be equal and the exceptions must be
        the very same object; two distinct exceptions never compare equal.
        """
        if self._comparator is not None:
            return bool(self._comparator(control, candidate))
        same_values = control.value == candidate.value
        same_exception = control.exception is candidate.exception
        return same_values and same_exception

    def ignore_mismatched_observation(self, control: Observation, candidate: Observation) -> bool:
        """
        Check the ignore predicates for a mismatched pair.

        Stops at the first predicate returning true.
        """
        for predicate in self._ignores:
            if predicate(control.value, candidate.value):
                return True
        return False

    def run_if_allows(self) -> bool:
        """Does the run_if function allow the experiment to run?"""
        if self._run_if is None:
            return True
        return bool(self._run_if())

    def should_run(self) -> bool:
        """Determine if the experiment should be instrumented."""
        return len(self._behaviors) > 1 and self.enabled and self.run_if_allows()

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #

    @log_operation("publish")
    async def publish(self, result: Result) -> bool:
        """
        Hand the result to the configured publisher.

        Override in a subclass to publish differently. Synchronous
        publishers run in a worker thread so blocking I/O does not stall
        other runs on the loop. Publisher failures propagate and abort the
        run.
        """
        if self.publisher is None:
            return True
        await call_off_loop(self.publisher, result)
        return True

    async def run(self, name: str = CONTROL_NAME) -> Any:
        """
        Run all behaviors, publish the result, and resolve to ``name``'s outcome.

        Args:
            name: Behavior whose outcome is returned. Default: "control"

        Returns:
            The value returned by the named behavior

        Raises:
            UnknownBehaviorError: If no behavior is registered under name
            ControlObservationMissingError: If the behavior's observation
                disappeared during the run
            MismatchError: If raise_on_mismatches is set and a candidate
                mismatched
            Exception: Whatever the named behavior raised, unchanged
        """
        control_fn = self._behaviors.get(name)
        if not callable(control_fn):
            raise UnknownBehaviorError(name)

        if not self.should_run():
            logger.debug(
                "Experiment not instrumented; running behavior directly",
                operation="run",
                context={"experiment": self.name, "behavior": name},
            )
            outcome = control_fn()
            if inspect.isawaitable(outcome):
                outcome = await outcome
            return outcome

        if self._before_run is not None:
            outcome = self._before_run()
            if inspect.isawaitable(outcome):
                await outcome

        observations = await self._observe_all()

        control = next((o for o in observations if o.name == name), None)
        if control is None:
            raise ControlObservationMissingError(name)

        result = Result.create(self, observations, control)
        self._log_result(result)

        await self.publish(result)

        if self.raise_on_mismatches and result.mismatched():
            raise MismatchError(name, result)

        if control.raised():
            raise control.exception
        return control.value

    def run_sync(self, name: str = CONTROL_NAME) -> Any:
        """
        Run the experiment from synchronous code.

        Must not be called from inside a running event loop.
        """
        return asyncio.run(self.run(name))

    async def _observe_all(self) -> List[Observation]:
        order = fisher_yates_shuffle(list(self._behaviors), self.rng)
        completed: List[Observation] = []

        async def observe(behavior_name: str, fn: Behavior) -> None:
            observation = await Observation.create(behavior_name, self, fn)
            completed.append(observation)

        await asyncio.gather(*(observe(key, self._behaviors[key]) for key in order))
        return completed

    def _log_result(self, result: Result) -> None:
        summary = {
            "experiment": self.name,
            "control": result.control.name,
            "candidates": [c.name for c in result.candidates],
            "mismatched": [o.name for o in result.mismatched_observations],
            "ignored": [o.name for o in result.ignored_observations],
        }
        if result.mismatched():
            logger.warning("Experiment observations mismatched", operation="run", context=summary)
        else:
            logger.info("Experiment run evaluated", operation="run", context=summary)

    def __repr__(self) -> str:
        return f"<Experiment {self.name} behaviors={self.behavior_names()}>"
