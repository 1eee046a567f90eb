"""
Unit tests for result publishers (scientist/monitoring/publishers.py)

Tests covering:
- Structured result logging
- CloudWatch metrics publishing (mocked client and moto)
- Publisher chaining
"""

import json
import logging
from unittest.mock import AsyncMock, Mock

import boto3
import pytest
from moto import mock_aws

from scientist.monitoring.publishers import (
    CloudWatchPublisher,
    PublisherChain,
    ResultLogger,
    describe_observation_difference,
)
from scientist.result import Result


@pytest.fixture
def mismatched_result(experiment, make_observation):
    experiment.context({"region": "kr", "request_id": "r-1"})
    control = make_observation(name="control", value="hello world", duration=12.5)
    candidate = make_observation(name="candidate", value="hallo world", duration=8.0)
    return Result.create(experiment, [candidate, control], control)


@pytest.fixture
def matched_result(experiment, make_observation):
    control = make_observation(name="control", value=1)
    candidate = make_observation(name="candidate", value=1)
    return Result.create(experiment, [control, candidate], control)


class TestDescribeObservationDifference:
    """Tests for describe_observation_difference."""

    def test_value_difference(self, make_observation):
        """Test value mismatches use the value diff."""
        control = make_observation(name="control", value="abc")
        candidate = make_observation(value="abd")
        assert "pos2" in describe_observation_difference(control, candidate)

    def test_exception_difference(self, make_observation):
        """Test raised observations describe their exceptions."""
        control = make_observation(name="control", value=1)
        candidate = make_observation(exception=ValueError("bad input"))
        description = describe_observation_difference(control, candidate)
        assert description == "control returned a value; candidate raised ValueError: bad input"

    def test_uses_cleaned_values(self, experiment, make_observation):
        """Test values are cleaned before being described."""
        experiment.clean(lambda value: value["public"])
        control = make_observation(name="control", value={"public": "a", "secret": "s1"})
        candidate = make_observation(value={"public": "b", "secret": "s2"})
        description = describe_observation_difference(control, candidate)
        assert "s1" not in description
        assert "'a'" in description


class TestResultLogger:
    """Tests for ResultLogger."""

    def test_logs_json_entry(self, caplog, mismatched_result):
        """Test one JSON line is written with classification and differences."""
        logger = logging.getLogger("scientist.test_result_logger")
        with caplog.at_level(logging.INFO, logger="scientist.test_result_logger"):
            ResultLogger(logger)(mismatched_result)

        assert len(caplog.records) == 1
        record = caplog.records[0]
        assert record.levelno == logging.WARNING
        entry = json.loads(record.getMessage())
        assert entry["event_type"] == "experiment_result"
        assert entry["experiment"] == "test-experiment"
        assert entry["mismatched"] is True
        assert entry["context"]["region"] == "kr"
        assert "candidate" in entry["differences"]

    def test_matched_logs_info(self, caplog, matched_result):
        """Test matched results log at INFO without differences."""
        logger = logging.getLogger("scientist.test_result_logger_ok")
        with caplog.at_level(logging.INFO, logger="scientist.test_result_logger_ok"):
            ResultLogger(logger)(matched_result)

        record = caplog.records[0]
        assert record.levelno == logging.INFO
        assert json.loads(record.getMessage())["differences"] == {}

    def test_build_entry_includes_ignored(self, experiment, make_observation):
        """Test ignored candidates are described too."""
        experiment.ignore(lambda control, candidate: True)
        control = make_observation(name="control", value=1)
        candidate = make_observation(name="noisy", value=2)
        result = Result.create(experiment, [control, candidate], control)
        entry = ResultLogger().build_entry(result)
        assert entry["ignored"] is True
        assert entry["differences"] == {"noisy": "1 -> 2"}


class TestCloudWatchPublisherMocked:
    """Tests for CloudWatchPublisher with a mocked client."""

    def test_publishes_counts_and_durations(self, mismatched_result):
        """Test metric data contains classification counts and per-behavior durations."""
        client = Mock()
        CloudWatchPublisher(cloudwatch_client=client)(mismatched_result)

        client.put_metric_data.assert_called_once()
        kwargs = client.put_metric_data.call_args.kwargs
        assert kwargs["Namespace"] == "scientist/experiments"
        metrics = {}
        for datum in kwargs["MetricData"]:
            metrics.setdefault(datum["MetricName"], []).append(datum)
        assert metrics["matched"][0]["Value"] == 0
        assert metrics["mismatched"][0]["Value"] == 1
        assert metrics["ignored"][0]["Value"] == 0
        assert metrics["candidates"][0]["Value"] == 1
        behaviors = {
            d["Dimensions"][-1]["Value"]: d["Value"] for d in metrics["duration_ms"]
        }
        assert behaviors == {"control": 12.5, "candidate": 8.0}

    def test_dimension_keys_from_context(self, mismatched_result):
        """Test configured context keys become dimensions."""
        client = Mock()
        CloudWatchPublisher(cloudwatch_client=client, dimension_keys=["region", "absent"])(
            mismatched_result
        )
        datum = client.put_metric_data.call_args.kwargs["MetricData"][0]
        assert datum["Dimensions"] == [
            {"Name": "Experiment", "Value": "test-experiment"},
            {"Name": "region", "Value": "kr"},
        ]

    def test_batches_of_twenty(self, experiment, make_observation):
        """Test metric data is split into batches of 20."""
        control = make_observation(name="control", value=1)
        candidates = [make_observation(name=f"c{i}", value=1) for i in range(20)]
        result = Result.create(experiment, [control] + candidates, control)
        client = Mock()
        CloudWatchPublisher(cloudwatch_client=client)(result)
        # 4 counters + 21 durations
        sizes = [len(c.kwargs["MetricData"]) for c in client.put_metric_data.call_args_list]
        assert sizes == [20, 5]

    def test_errors_swallowed_by_default(self, mismatched_result):
        """Test CloudWatch failures are logged, not raised."""
        client = Mock()
        client.put_metric_data.side_effect = RuntimeError("throttled")
        CloudWatchPublisher(cloudwatch_client=client)(mismatched_result)

    def test_errors_raised_when_configured(self, mismatched_result):
        """Test raise_errors propagates CloudWatch failures."""
        client = Mock()
        client.put_metric_data.side_effect = RuntimeError("throttled")
        with pytest.raises(RuntimeError, match="throttled"):
            CloudWatchPublisher(cloudwatch_client=client, raise_errors=True)(mismatched_result)


class TestCloudWatchPublisherMoto:
    """Tests for CloudWatchPublisher against moto."""

    @mock_aws
    def test_metrics_visible_in_cloudwatch(self, aws_credentials, mismatched_result):
        """Test published metrics can be listed from CloudWatch."""
        publisher = CloudWatchPublisher(namespace="scientist/test", region_name="us-east-1")
        publisher(mismatched_result)

        client = boto3.client("cloudwatch", region_name="us-east-1")
        listed = client.list_metrics(Namespace="scientist/test")["Metrics"]
        names = {m["MetricName"] for m in listed}
        assert {"matched", "mismatched", "ignored", "candidates", "duration_ms"} <= names


class TestPublisherChain:
    """Tests for PublisherChain."""

    async def test_calls_in_order(self, matched_result):
        """Test publishers are invoked in order, async ones awaited."""
        calls = []
        first = Mock(side_effect=lambda r: calls.append("first"))
        second = AsyncMock(side_effect=lambda r: calls.append("second"))
        chain = PublisherChain(first)
        chain.add(second)
        await chain(matched_result)
        assert calls == ["first", "second"]
        second.assert_awaited_once_with(matched_result)

    async def test_failure_stops_chain(self, matched_result):
        """Test a failing publisher propagates and skips the rest."""
        later = Mock()
        chain = PublisherChain(Mock(side_effect=RuntimeError("down")), later)
        with pytest.raises(RuntimeError, match="down"):
            await chain(matched_result)
        later.assert_not_called()
