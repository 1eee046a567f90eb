"""Environment switches and YAML experiment definitions."""

from scientist.config.settings import ConfigurationError, ExperimentDefinition, Settings

__all__ = ["ConfigurationError", "ExperimentDefinition", "Settings"]
