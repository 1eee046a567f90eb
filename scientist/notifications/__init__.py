"""Alerting sinks for experiment results."""

from scientist.notifications.slack import (
    SlackMismatchNotifier,
    SlackRateLimitedError,
    SlackServiceError,
)

__all__ = ["SlackMismatchNotifier", "SlackRateLimitedError", "SlackServiceError"]
