"""Shared fixtures for the experiment engine test suite."""

import os
import random

import pytest

from scientist.experiment import Experiment
from scientist.observation import Observation


@pytest.fixture
def experiment():
    """Experiment with a seeded random source."""
    return Experiment("test-experiment", rng=random.Random(1234))


@pytest.fixture
def make_observation(experiment):
    """Factory building already-settled observations without running anything."""

    def _make(name="candidate", value=None, exception=None, owner=None, duration=1.0):
        observation = Observation(name, owner or experiment, lambda: value)
        observation.value = value
        observation.exception = exception
        observation.duration = duration
        return observation

    return _make


@pytest.fixture
def aws_credentials():
    """Fixture for AWS credentials."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
