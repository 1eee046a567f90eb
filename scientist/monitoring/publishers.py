"""
Result publishers.

Sinks handed to ``Experiment(publisher=...)``. Each one is a callable that
receives a completed Result:
- ResultLogger: one structured JSON log line per result
- CloudWatchPublisher: per-run metrics in CloudWatch
- PublisherChain: fan a result out to several sinks in order
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

import boto3

from scientist.config.settings import DEFAULT_CLOUDWATCH_NAMESPACE, DEFAULT_REGION
from scientist.monitoring.diff import describe_difference
from scientist.observation import Observation
from scientist.result import Result
from scientist.utils.concurrency import call_off_loop

CLOUDWATCH_BATCH_SIZE = 20


def _get_iso_timestamp() -> str:
    """Get current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def describe_observation_difference(control: Observation, candidate: Observation) -> str:
    """Describe a mismatched pair, including raised exceptions."""
    if control.raised() or candidate.raised():
        def outcome(o: Observation) -> str:
            if o.raised():
                return f"raised {type(o.exception).__name__}: {o.exception}"
            return "returned a value"

        return f"control {outcome(control)}; candidate {outcome(candidate)}"
    return describe_difference(control.cleaned_value(), candidate.cleaned_value())


class ResultLogger:
    """
    Structured logger for experiment results.

    Each result becomes one JSON line with the experiment name, context,
    classification flags, every observation, and a description of each
    mismatched or ignored candidate.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize result logger.

        Args:
            logger: Logger to write to (defaults to this module's logger)
        """
        self.logger = logger or logging.getLogger(__name__)

    def build_entry(self, result: Result) -> Dict[str, Any]:
        entry = {
            "timestamp": _get_iso_timestamp(),
            "event_type": "experiment_result",
            **result.to_dict(),
        }
        entry["differences"] = {
            o.name: describe_observation_difference(result.control, o)
            for o in result.mismatched_observations + result.ignored_observations
        }
        return entry

    def __call__(self, result: Result) -> None:
        entry = self.build_entry(result)
        level = logging.WARNING if result.mismatched() else logging.INFO
        self.logger.log(level, json.dumps(entry, ensure_ascii=False, default=str))


class CloudWatchPublisher:
    """
    Publishes experiment result metrics to CloudWatch.

    Metrics per run (dimension Experiment, plus any configured context keys):
    - matched / mismatched / ignored: 1 or 0
    - candidates: number of candidate behaviors
    - duration_ms: one datapoint per behavior (extra Behavior dimension)
    """

    def __init__(
        self,
        namespace: str = DEFAULT_CLOUDWATCH_NAMESPACE,
        region_name: str = DEFAULT_REGION,
        dimension_keys: Iterable[str] = (),
        cloudwatch_client=None,
        raise_errors: bool = False,
    ):
        """
        Initialize metrics publisher.

        Args:
            namespace: CloudWatch namespace
            region_name: AWS region for CloudWatch
            dimension_keys: Context keys added as metric dimensions
            cloudwatch_client: Preconfigured boto3 client (useful for testing)
            raise_errors: Propagate publish failures instead of logging them
        """
        self.namespace = namespace
        self.region_name = region_name
        self.dimension_keys = tuple(dimension_keys)
        self.cloudwatch_client = cloudwatch_client or boto3.client(
            "cloudwatch", region_name=region_name
        )
        self.raise_errors = raise_errors
        self.logger = logging.getLogger(__name__)

    def _dimensions(self, result: Result) -> List[Dict[str, str]]:
        dimensions = [{"Name": "Experiment", "Value": result.experiment_name()}]
        context = result.context()
        for key in self.dimension_keys:
            if key in context and context[key] is not None:
                dimensions.append({"Name": key, "Value": str(context[key])})
        return dimensions

    def build_metric_data(self, result: Result) -> List[Dict[str, Any]]:
        timestamp = datetime.now(timezone.utc)
        dimensions = self._dimensions(result)

        metric_data = [
            {
                "MetricName": name,
                "Value": value,
                "Unit": "Count",
                "Timestamp": timestamp,
                "Dimensions": dimensions,
            }
            for name, value in (
                ("matched", 1 if result.matched() else 0),
                ("mismatched", 1 if result.mismatched() else 0),
                ("ignored", 1 if result.ignored() else 0),
                ("candidates", len(result.candidates)),
            )
        ]

        for observation in result.observations:
            metric_data.append(
                {
                    "MetricName": "duration_ms",
                    "Value": observation.duration or 0.0,
                    "Unit": "Milliseconds",
                    "Timestamp": timestamp,
                    "Dimensions": dimensions
                    + [{"Name": "Behavior", "Value": observation.name}],
                }
            )
        return metric_data

    def __call__(self, result: Result) -> None:
        """
        Publish result metrics to CloudWatch.

        Raises:
            Exception: Only when raise_errors is set; otherwise failures are
                logged so telemetry never changes the caller's outcome
        """
        try:
            metric_data = self.build_metric_data(result)
            # CloudWatch limit: 20 metrics per request
            for i in range(0, len(metric_data), CLOUDWATCH_BATCH_SIZE):
                batch = metric_data[i : i + CLOUDWATCH_BATCH_SIZE]
                self.cloudwatch_client.put_metric_data(Namespace=self.namespace, MetricData=batch)
                self.logger.debug(f"Published {len(batch)} metrics to CloudWatch")

            self.logger.info(
                f"Experiment metrics published: experiment={result.experiment_name()}, "
                f"matched={result.matched()}, mismatched={result.mismatched()}"
            )
        except Exception as e:
            if self.raise_errors:
                raise
            self.logger.error(f"Failed to publish experiment metrics: {e}")


class PublisherChain:
    """
    Invoke several publishers in order.

    Async publishers are awaited; synchronous ones run in a worker thread.
    The first failure propagates and the remaining publishers are skipped.
    """

    def __init__(self, *publishers: Callable[[Result], Any]):
        self.publishers = list(publishers)

    def add(self, publisher: Callable[[Result], Any]) -> None:
        self.publishers.append(publisher)

    async def __call__(self, result: Result) -> None:
        for publisher in self.publishers:
            await call_off_loop(publisher, result)
