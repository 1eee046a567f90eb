"""
Configuration loader for experiments.

Reads global switches from environment variables and per-experiment
definitions from a YAML file validated against a JSON schema.
"""

import json
import logging
import os
import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import jsonschema
import yaml

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA_PATH = Path(__file__).with_name("experiments.schema.json")
DEFAULT_CLOUDWATCH_NAMESPACE = "scientist/experiments"
DEFAULT_REGION = "us-east-1"


class ConfigurationError(Exception):
    """Exception raised for configuration-related errors."""

    pass


def _read_flag(name: str, default: bool) -> bool:
    """Return a boolean environment flag; "true" (any case) is the only truthy value."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() == "true"


@dataclass
class ExperimentDefinition:
    """Configured defaults for one named experiment."""

    name: str
    enabled: bool = True
    percent_enabled: float = 100.0
    raise_on_mismatches: Optional[bool] = None
    context: Dict[str, Any] = field(default_factory=dict)
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExperimentDefinition":
        return cls(
            name=data["name"],
            enabled=data.get("enabled", True),
            percent_enabled=float(data.get("percent_enabled", 100.0)),
            raise_on_mismatches=data.get("raise_on_mismatches"),
            context=dict(data.get("context") or {}),
            description=data.get("description"),
        )

    def apply(self, experiment, settings: Optional["Settings"] = None) -> None:
        """
        Apply this definition to an experiment.

        A ``percent_enabled`` below 100 installs a sampling gate through
        ``experiment.run_if``. Experiments hold a single run_if gate, so a
        later ``run_if`` call replaces the sampling gate.

        Args:
            experiment: Experiment to configure; any object satisfying the
                experiment protocol
            settings: Global settings; the kill switch and the global
                raise flag come from here

        Raises:
            ConfigurationError: If sampling is configured but the experiment
                has no run_if gate
        """
        globally_enabled = settings.enabled if settings is not None else True
        experiment.enabled = self.enabled and globally_enabled

        if self.raise_on_mismatches is not None:
            experiment.raise_on_mismatches = self.raise_on_mismatches
        elif settings is not None:
            experiment.raise_on_mismatches = settings.raise_on_mismatches

        if self.context:
            experiment.context(self.context)

        if self.percent_enabled < 100:
            percent = self.percent_enabled
            if not callable(getattr(experiment, "run_if", None)):
                raise ConfigurationError(
                    f"Experiment '{self.name}' sets percent_enabled but "
                    f"{type(experiment).__name__} has no run_if gate"
                )
            rng = getattr(experiment, "rng", None) or random.Random()
            # Sample per run, not per experiment instance
            experiment.run_if(lambda: rng.randrange(10000) < percent * 100)


class Settings:
    """
    Global experiment switches plus per-experiment definitions.

    Environment flags are read when the instance is created:
    - SCIENTIST_ENABLED: global kill switch (default true)
    - SCIENTIST_RAISE_ON_MISMATCHES: default raise policy (default false)
    - SCIENTIST_EXPERIMENTS_FILE: YAML definitions loaded on construction
    - SCIENTIST_CLOUDWATCH_NAMESPACE: metrics namespace for CloudWatch
    - AWS_REGION / AWS_DEFAULT_REGION: region for CloudWatch
    """

    def __init__(self, experiments_file: Optional[str] = None):
        """
        Initialize settings from the environment.

        Args:
            experiments_file: YAML definitions to load; overrides
                SCIENTIST_EXPERIMENTS_FILE
        """
        self.enabled = _read_flag("SCIENTIST_ENABLED", True)
        self.raise_on_mismatches = _read_flag("SCIENTIST_RAISE_ON_MISMATCHES", False)
        self.cloudwatch_namespace = os.getenv(
            "SCIENTIST_CLOUDWATCH_NAMESPACE", DEFAULT_CLOUDWATCH_NAMESPACE
        )
        self.region_name = (
            os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION") or DEFAULT_REGION
        )
        self.experiments: Dict[str, ExperimentDefinition] = {}
        self.experiments_schema: Dict[str, Any] = {}

        experiments_file = experiments_file or os.getenv("SCIENTIST_EXPERIMENTS_FILE")
        if experiments_file:
            self.load_experiments(experiments_file)

    def load_experiments(self, config_path: str, schema_path: Optional[str] = None) -> None:
        """
        Load experiment definitions from YAML and validate against schema.

        Args:
            config_path: Path to the experiments YAML file
            schema_path: Path to a JSON schema; the bundled schema when omitted

        Raises:
            FileNotFoundError: If config files not found
            ValueError: If YAML/JSON is malformed or fails schema validation
            ConfigurationError: If an experiment name is defined twice
        """
        schema_path = schema_path or DEFAULT_SCHEMA_PATH
        try:
            with open(schema_path, "r", encoding="utf-8") as f:
                self.experiments_schema = json.load(f)
                logger.debug(f"Loaded experiments schema from {schema_path}")
        except FileNotFoundError:
            logger.error(f"Experiments schema file not found: {schema_path}")
            raise
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in experiments schema: {e}")
            raise ValueError(f"Invalid JSON in {schema_path}: {e}") from e

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except FileNotFoundError:
            logger.error(f"Experiments configuration file not found: {config_path}")
            raise
        except yaml.YAMLError as e:
            logger.error(f"Invalid YAML in experiments configuration: {e}")
            raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

        if not config:
            logger.warning(f"Empty experiments configuration: {config_path}")
            self.experiments = {}
            return

        try:
            jsonschema.validate(instance=config, schema=self.experiments_schema)
        except jsonschema.ValidationError as e:
            logger.error(f"Experiments configuration failed schema validation: {e.message}")
            raise ValueError(f"Experiments configuration validation failed: {e.message}") from e
        except jsonschema.SchemaError as e:
            logger.error(f"Experiments schema is invalid: {e.message}")
            raise ValueError(f"Experiments schema is invalid: {e.message}") from e

        experiments: Dict[str, ExperimentDefinition] = {}
        for entry in config.get("experiments", []):
            definition = ExperimentDefinition.from_dict(entry)
            if definition.name in experiments:
                raise ConfigurationError(
                    f"Experiment '{definition.name}' is defined more than once in {config_path}"
                )
            experiments[definition.name] = definition

        self.experiments = experiments
        logger.info(f"Loaded {len(self.experiments)} experiment definitions from {config_path}")

    def get_definition(self, name: str) -> Optional[ExperimentDefinition]:
        """Return the definition configured for ``name``, if any."""
        return self.experiments.get(name)
