"""
Experiment factory.

``Scientist.science`` builds experiments, lets callers substitute their own
experiment class, and applies any configured definition for the name.
"""

from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable

from scientist.config.settings import Settings
from scientist.experiment import Experiment
from scientist.utils.logger import get_logger

logger = get_logger(__name__)


@runtime_checkable
class ExperimentProtocol(Protocol):
    """Capabilities the factory requires of an experiment implementation."""

    name: str

    def register(self, name: Any, fn: Optional[Callable[[], Any]] = None) -> None: ...

    def use(self, fn: Callable[[], Any]) -> None: ...

    def context(self, context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]: ...

    async def run(self, name: str = "control") -> Any: ...


class Scientist:
    """
    Factory for experiments.

    Attributes:
        settings: Global switches and per-experiment definitions
        publisher: Sink attached to experiments that have none
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        publisher: Optional[Callable[[Any], Any]] = None,
    ):
        self.settings = settings
        self.publisher = publisher

    def science(
        self,
        name: str,
        experiment_class: Optional[Callable[[str], Any]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> ExperimentProtocol:
        """
        Create an experiment.

        Args:
            name: Experiment name
            experiment_class: Alternate implementation; called with the name
            context: Initial context

        Returns:
            Configured experiment

        Raises:
            TypeError: If experiment_class does not produce an experiment
        """
        factory = experiment_class or Experiment
        experiment = factory(name)
        if not isinstance(experiment, ExperimentProtocol):
            raise TypeError(
                f"{getattr(factory, '__name__', factory)!s} did not produce an experiment "
                f"(got {type(experiment).__name__})"
            )

        experiment.context(context or {})

        if self.settings is not None:
            definition = self.settings.get_definition(name)
            if definition is not None:
                definition.apply(experiment, self.settings)
            elif hasattr(experiment, "enabled"):
                experiment.enabled = experiment.enabled and self.settings.enabled
                if self.settings.raise_on_mismatches and hasattr(experiment, "raise_on_mismatches"):
                    experiment.raise_on_mismatches = True

        if self.publisher is not None and getattr(experiment, "publisher", False) is None:
            experiment.publisher = self.publisher

        logger.debug(
            "Created experiment",
            operation="science",
            context={"experiment": name, "class": type(experiment).__name__},
        )
        return experiment


_default_scientist = Scientist()


def science(
    name: str,
    experiment_class: Optional[Callable[[str], Any]] = None,
    context: Optional[Dict[str, Any]] = None,
) -> ExperimentProtocol:
    """Create an experiment with the default, unconfigured factory."""
    return _default_scientist.science(name, experiment_class=experiment_class, context=context)
