"""
Slack webhook notifications for experiment mismatches.

Posts an alert for every result that reports an unignored mismatch.
Delivery failures are logged and never raised.
"""

from __future__ import annotations

import json
import os
import time
from typing import Any, Dict, Optional

import requests

from scientist.monitoring.publishers import describe_observation_difference
from scientist.result import Result
from scientist.utils.logger import StructuredLogger, get_logger


class SlackServiceError(Exception):
    """Raised when the Slack service fails to deliver a message."""


class SlackRateLimitedError(SlackServiceError):
    """Raised when Slack answers 429; carries the Retry-After seconds."""

    def __init__(self, retry_after: int):
        super().__init__(f"Rate limited; retry after {retry_after}s")
        self.retry_after = retry_after


class SlackMismatchNotifier:
    """
    Result publisher that alerts a Slack channel about mismatches.

    Attributes:
        webhook_url: Slack incoming webhook URL (None disables notifications)
        max_retries: Number of delivery attempts
        max_candidates: Mismatched candidates described per message
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        http_client: Optional[requests.Session] = None,
        logger: Optional[StructuredLogger] = None,
        max_retries: int = 3,
        retry_delay_seconds: float = 0.5,
        max_candidates: int = 5,
    ) -> None:
        """
        Initialize the Slack notifier.

        Args:
            webhook_url: Slack incoming webhook URL (from SLACK_WEBHOOK_URL if None)
            http_client: Optional requests-like session (useful for testing)
            logger: Optional structured logger instance
            max_retries: Number of attempts when sending messages
            retry_delay_seconds: Base delay between retries (linear backoff)
            max_candidates: Mismatched candidates listed in one alert
        """
        self.logger = logger or get_logger(__name__)
        self.http_client = http_client or requests.Session()
        self.max_retries = max_retries
        self.retry_delay_seconds = retry_delay_seconds
        self.max_candidates = max_candidates

        self.webhook_url = webhook_url or os.getenv("SLACK_WEBHOOK_URL")
        if not self.webhook_url:
            self.logger.warning("Slack webhook URL not configured; Slack notifications disabled")
            self.webhook_url = None

    def __call__(self, result: Result) -> None:
        """Send an alert when the result has unignored mismatches."""
        if not result.mismatched():
            return
        self.send_mismatch_alert(result)

    def build_payload(self, result: Result) -> Dict[str, Any]:
        mismatched = result.mismatched_observations
        lines = [
            "🚨 *Experiment Mismatch Detected*",
            f"Experiment: `{result.experiment_name()}`",
            f"Mismatched: `{len(mismatched)}` of `{len(result.candidates)}` candidates",
        ]
        for observation in mismatched[: self.max_candidates]:
            difference = describe_observation_difference(result.control, observation)
            lines.append(f"• `{observation.name}`: {difference}")
        if len(mismatched) > self.max_candidates:
            lines.append(f"…and {len(mismatched) - self.max_candidates} more")

        context = dict(result.context())
        if context:
            lines.append(f"Context: `{json.dumps(context, default=str)}`")

        return {"blocks": [{"type": "section", "text": {"type": "mrkdwn", "text": "\n".join(lines)}}]}

    def send_mismatch_alert(self, result: Result) -> bool:
        """
        Post the mismatch alert for ``result``.

        Returns:
            True when Slack accepted the message, False when notifications
            are disabled or every attempt failed
        """
        if not self.webhook_url:
            return False
        return self._post(self.build_payload(result), experiment=result.experiment_name())

    def _post(self, payload: Dict[str, Any], experiment: str) -> bool:
        """Post payload to the webhook, retrying with linear backoff."""
        body = json.dumps(payload)
        context = {"experiment": experiment}

        for attempt in range(1, self.max_retries + 1):
            try:
                response = self.http_client.post(
                    self.webhook_url,
                    headers={"Content-Type": "application/json"},
                    data=body,
                    timeout=10,
                )
                if response.status_code == 429:
                    raise SlackRateLimitedError(int(response.headers.get("Retry-After", 60)))
                if response.status_code >= 400:
                    raise SlackServiceError(
                        f"Slack responded with {response.status_code}: {response.text}"
                    )
                return True

            except Exception as exc:  # noqa: BLE001
                if attempt >= self.max_retries:
                    self.logger.error(
                        "Slack delivery failed",
                        operation="send_mismatch_alert",
                        context={**context, "attempts": attempt},
                        error=str(exc),
                    )
                    return False

                delay = self.retry_delay_seconds * attempt
                if isinstance(exc, SlackRateLimitedError):
                    delay = min(exc.retry_after, delay)
                self.logger.warning(
                    "Retrying Slack delivery",
                    operation="send_mismatch_alert",
                    context={**context, "attempt": attempt, "delay_seconds": delay},
                    error=str(exc),
                )
                time.sleep(delay)

        return False
