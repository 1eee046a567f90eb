"""
Exception hierarchy for the experiment engine.

Registration errors are raised synchronously when a behavior is added.
Run errors are raised from ``Experiment.run``. Each error also derives from
the builtin that best describes it so callers can catch either one.
"""


class ScientistError(Exception):
    """
    Base exception for all experiment engine errors.

    A behavior's own exceptions are never wrapped in this type; the
    control's exception is re-raised verbatim by ``Experiment.run``.
    """

    pass


class InvalidBehaviorError(ScientistError, TypeError):
    """
    Raised when a registered behavior is not callable.
    """

    pass


class DuplicateBehaviorNameError(ScientistError, ValueError):
    """
    Raised when a behavior name is registered twice on the same experiment.
    """

    def __init__(self, name: str):
        super().__init__(f"Name ({name}) is not unique for behavior")
        self.name = name


class UnknownBehaviorError(ScientistError, LookupError):
    """
    Raised when ``run(name)`` asks for a behavior that was never registered.

    Raised before any instrumentation, so no behavior has executed.
    """

    def __init__(self, name: str):
        super().__init__(f"{name} behavior is missing.")
        self.name = name


class ControlObservationMissingError(ScientistError, RuntimeError):
    """
    Raised when the observation for the requested behavior is absent after
    all behaviors completed.

    Only reachable when the behavior registry is mutated while a run is in
    flight.
    """

    def __init__(self, name: str):
        super().__init__(f"Could not find control observation ({name})")
        self.name = name


class MismatchError(ScientistError):
    """
    Raised when ``raise_on_mismatches`` is enabled and a candidate did not
    match the control.

    Attributes:
        name: Name of the behavior the run resolved against
        result: The full ``Result`` for inspection
    """

    def __init__(self, name: str, result):
        super().__init__(
            f"Experiment '{result.experiment_name()}' observations mismatched "
            f"({name}): {', '.join(o.name for o in result.mismatched_observations)}"
        )
        self.name = name
        self.result = result
