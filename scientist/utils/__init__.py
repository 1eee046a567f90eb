"""Shared helpers: structured logging, randomized ordering and off-loop calls."""

from scientist.utils.logger import StructuredLogger, get_logger, log_operation, summarize_value
from scientist.utils.concurrency import call_off_loop, is_async_callable
from scientist.utils.shuffle import RandomSource, fisher_yates_shuffle, shuffled

__all__ = [
    "RandomSource",
    "StructuredLogger",
    "call_off_loop",
    "fisher_yates_shuffle",
    "get_logger",
    "is_async_callable",
    "log_operation",
    "shuffled",
    "summarize_value",
]
