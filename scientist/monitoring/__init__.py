"""Result publishing sinks and mismatch descriptions."""

from scientist.monitoring.diff import (
    compare_mappings,
    compare_sequences,
    compare_strings,
    describe_difference,
)
from scientist.monitoring.publishers import (
    CloudWatchPublisher,
    PublisherChain,
    ResultLogger,
    describe_observation_difference,
)

__all__ = [
    "CloudWatchPublisher",
    "PublisherChain",
    "ResultLogger",
    "compare_mappings",
    "compare_sequences",
    "compare_strings",
    "describe_difference",
    "describe_observation_difference",
]
