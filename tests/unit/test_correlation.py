"""
Unit tests for the request correlation and timeout engine.
"""

import asyncio

import pytest

from mcpbridge.correlation import RequestCorrelator, build_request, is_response
from mcpbridge.errors import ProviderUnavailableError, RemoteError, RequestTimeoutError


def make_correlator(timeout=1.0):
    return RequestCorrelator("test", lambda method: timeout)


class TestEnvelope:
    """Test JSON-RPC envelope helpers."""

    def test_build_request_with_params(self):
        assert build_request(3, "tools/call", {"name": "x"}) == {
            "jsonrpc": "2.0", "id": 3, "method": "tools/call", "params": {"name": "x"}
        }

    def test_build_request_without_params(self):
        assert "params" not in build_request(1, "tools/list")

    def test_is_response(self):
        assert is_response({"jsonrpc": "2.0", "id": 1, "result": {}})
        assert is_response({"jsonrpc": "2.0", "id": 1, "error": {"message": "x"}})
        assert not is_response({"jsonrpc": "2.0", "id": 1, "method": "tools/list"})
        assert not is_response({"jsonrpc": "2.0", "method": "notifications/progress"})
        assert not is_response("text")


class TestRequestIds:
    """Test request id allocation."""

    @pytest.mark.asyncio
    async def test_ids_strictly_increase(self):
        correlator = make_correlator()
        ids = []
        for _ in range(50):
            pending = correlator.register("tools/call")
            ids.append(pending.id)
            correlator.resolve(pending.id, None)

        assert ids == list(range(1, 51))
        assert len(set(ids)) == len(ids)

    @pytest.mark.asyncio
    async def test_ids_not_reused_after_timeout(self):
        correlator = make_correlator(timeout=0.01)
        first = correlator.register("tools/list")
        with pytest.raises(RequestTimeoutError):
            await correlator.wait(first)

        second = correlator.register("tools/list")
        assert second.id > first.id
        correlator.resolve(second.id, None)


class TestSettlement:
    """Test that pending requests settle exactly once."""

    @pytest.mark.asyncio
    async def test_result_settles_success(self):
        correlator = make_correlator()
        pending = correlator.register("tools/list")

        assert correlator.dispatch({"jsonrpc": "2.0", "id": pending.id, "result": {"tools": []}})
        assert await correlator.wait(pending) == {"tools": []}
        assert correlator.pending_count() == 0

    @pytest.mark.asyncio
    async def test_error_settles_failure(self):
        correlator = make_correlator()
        pending = correlator.register("tools/call")

        correlator.dispatch({"jsonrpc": "2.0", "id": pending.id, "error": {"code": -32000, "message": "boom"}})

        with pytest.raises(RemoteError, match="boom") as exc_info:
            await correlator.wait(pending)
        assert exc_info.value.code == -32000

    @pytest.mark.asyncio
    async def test_error_without_message_keeps_error_object(self):
        correlator = make_correlator()
        pending = correlator.register("tools/call")

        correlator.dispatch({"jsonrpc": "2.0", "id": pending.id, "error": {"code": 7}})

        with pytest.raises(RemoteError, match='"code": 7'):
            await correlator.wait(pending)

    @pytest.mark.asyncio
    async def test_out_of_order_responses(self):
        correlator = make_correlator()
        first = correlator.register("tools/call")
        second = correlator.register("tools/call")

        correlator.dispatch({"jsonrpc": "2.0", "id": second.id, "result": "second"})
        correlator.dispatch({"jsonrpc": "2.0", "id": first.id, "result": "first"})

        assert await correlator.wait(first) == "first"
        assert await correlator.wait(second) == "second"

    @pytest.mark.asyncio
    async def test_duplicate_response_ignored(self):
        correlator = make_correlator()
        pending = correlator.register("tools/call")
        message = {"jsonrpc": "2.0", "id": pending.id, "result": 1}

        assert correlator.dispatch(message)
        assert not correlator.dispatch(message)
        assert not correlator.reject(pending.id, RuntimeError("late"))
        assert await correlator.wait(pending) == 1

    @pytest.mark.asyncio
    async def test_unknown_id_and_requests_dropped(self):
        correlator = make_correlator()
        pending = correlator.register("tools/list")

        assert not correlator.dispatch({"jsonrpc": "2.0", "id": 999, "result": {}})
        # An echoed request carries the pending id but is not a response
        assert not correlator.dispatch({"jsonrpc": "2.0", "id": pending.id, "method": "tools/list"})
        assert correlator.pending_count() == 1
        correlator.resolve(pending.id, None)

    @pytest.mark.asyncio
    async def test_string_ids_are_matched(self):
        correlator = make_correlator()
        pending = correlator.register("tools/list")

        assert correlator.dispatch({"jsonrpc": "2.0", "id": str(pending.id), "result": "ok"})
        assert await correlator.wait(pending) == "ok"

    @pytest.mark.asyncio
    async def test_non_integral_ids_dropped(self):
        correlator = make_correlator()
        pending = correlator.register("tools/list")

        assert not correlator.dispatch({"jsonrpc": "2.0", "id": float("inf"), "result": {}})
        assert not correlator.dispatch({"jsonrpc": "2.0", "id": float("nan"), "result": {}})
        assert not correlator.dispatch({"jsonrpc": "2.0", "id": "abc", "result": {}})
        assert correlator.pending_count() == 1
        correlator.resolve(pending.id, None)

    @pytest.mark.asyncio
    async def test_timeout_evicts_entry(self):
        correlator = make_correlator(timeout=0.05)
        pending = correlator.register("tools/call")

        with pytest.raises(RequestTimeoutError, match="tools/call"):
            await correlator.wait(pending)

        assert correlator.pending_count() == 0
        # A late response after the deadline is ignored
        assert not correlator.dispatch({"jsonrpc": "2.0", "id": pending.id, "result": "late"})

    @pytest.mark.asyncio
    async def test_per_method_timeout(self):
        correlator = RequestCorrelator("test", lambda method: 0.05 if method == "tools/list" else 5.0)
        slow = correlator.register("tools/call")
        fast = correlator.register("tools/list")

        with pytest.raises(RequestTimeoutError):
            await correlator.wait(fast)
        assert correlator.pending_ids() == [slow.id]
        correlator.resolve(slow.id, None)

    @pytest.mark.asyncio
    async def test_response_cancels_timer(self):
        correlator = make_correlator(timeout=0.05)
        pending = correlator.register("tools/call")
        correlator.resolve(pending.id, "done")

        await asyncio.sleep(0.1)
        assert await correlator.wait(pending) == "done"

    @pytest.mark.asyncio
    async def test_reject_all(self):
        correlator = make_correlator()
        requests = [correlator.register("tools/call") for _ in range(3)]

        count = correlator.reject_all(lambda: ProviderUnavailableError("test", "shut down"))

        assert count == 3
        assert correlator.pending_count() == 0
        for pending in requests:
            with pytest.raises(ProviderUnavailableError):
                await correlator.wait(pending)

    @pytest.mark.asyncio
    async def test_cancelled_waiter_evicts_entry(self):
        correlator = make_correlator(timeout=5.0)
        pending = correlator.register("tools/call")

        task = asyncio.create_task(correlator.wait(pending))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert correlator.pending_count() == 0
