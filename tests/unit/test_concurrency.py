"""Unit tests for off-loop calls (scientist/utils/concurrency.py)."""

import threading
from unittest.mock import AsyncMock

import pytest

from scientist.utils.concurrency import call_off_loop, is_async_callable


class AsyncSink:
    async def __call__(self, value):
        return value


class TestIsAsyncCallable:
    """Tests for is_async_callable."""

    def test_coroutine_function(self):
        """Test coroutine functions are detected."""

        async def fn():
            return None

        assert is_async_callable(fn) is True

    def test_async_call_method(self):
        """Test instances with an async __call__ are detected."""
        assert is_async_callable(AsyncSink()) is True

    def test_plain_function(self):
        """Test plain functions are not async."""
        assert is_async_callable(lambda: None) is False


class TestCallOffLoop:
    """Tests for call_off_loop."""

    async def test_sync_callable_runs_in_worker_thread(self):
        """Test synchronous callables do not run on the loop thread."""
        loop_thread = threading.get_ident()
        seen = []

        def sink(value):
            seen.append(threading.get_ident())
            return value * 2

        assert await call_off_loop(sink, 21) == 42
        assert seen and seen[0] != loop_thread

    async def test_async_callable_awaited(self):
        """Test async callables are awaited on the loop."""
        sink = AsyncMock(return_value="done")
        assert await call_off_loop(sink, 1) == "done"
        sink.assert_awaited_once_with(1)

    async def test_async_call_method_awaited(self):
        """Test objects with an async __call__ are awaited."""
        assert await call_off_loop(AsyncSink(), "x") == "x"

    async def test_returned_awaitable_awaited(self):
        """Test an awaitable returned by a sync callable is awaited."""

        async def later():
            return "later"

        assert await call_off_loop(lambda: later()) == "later"

    async def test_errors_propagate(self):
        """Test exceptions from the worker thread reach the caller unchanged."""
        error = RuntimeError("sink down")

        def sink():
            raise error

        with pytest.raises(RuntimeError) as exc_info:
            await call_off_loop(sink)
        assert exc_info.value is error
