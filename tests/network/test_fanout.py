"""Tests for concurrent fan-out/join primitives (network/fanout.py)."""

from __future__ import annotations

import asyncio

import pytest

from vaultnet.network.fanout import FanOutError, first_success, settle_all


def after(delay, value=None, error=None):
    async def branch():
        await asyncio.sleep(delay)
        if error is not None:
            raise error
        return value

    return branch


class TestFirstSuccess:
    @pytest.mark.asyncio
    async def test_fastest_success_wins(self):
        key, result = await first_success({
            "slow": after(0.3, "slow"),
            "fast": after(0.01, "fast"),
        })
        assert (key, result) == ("fast", "fast")

    @pytest.mark.asyncio
    async def test_failures_do_not_win(self):
        key, result = await first_success({
            "broken": after(0, error=RuntimeError("boom")),
            "ok": after(0.05, "data"),
        })
        assert key == "ok"
        assert result == "data"

    @pytest.mark.asyncio
    async def test_losers_are_cancelled(self):
        cancelled = asyncio.Event()

        async def loser():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        await first_success({"loser": loser, "winner": after(0.01, "x")})
        assert cancelled.is_set()

    @pytest.mark.asyncio
    async def test_all_fail_keeps_branch_order(self):
        with pytest.raises(FanOutError) as exc_info:
            await first_success({
                "a": after(0.05, error=ValueError("a")),
                "b": after(0, error=KeyError("b")),
            })
        errors = exc_info.value.errors
        assert list(errors) == ["a", "b"]
        assert isinstance(errors["b"], KeyError)

    @pytest.mark.asyncio
    async def test_empty(self):
        with pytest.raises(FanOutError):
            await first_success({})


class TestSettleAll:
    @pytest.mark.asyncio
    async def test_splits_successes_and_failures(self):
        successes, failures = await settle_all({
            "a": after(0.02, b"1"),
            "b": after(0, error=TimeoutError()),
            "c": after(0, b"2"),
        })
        assert list(successes) == ["a", "c"]
        assert successes["a"] == b"1"
        assert list(failures) == ["b"]

    @pytest.mark.asyncio
    async def test_runs_concurrently(self):
        loop = asyncio.get_running_loop()
        start = loop.time()
        await settle_all({i: after(0.1, i) for i in range(5)})
        assert loop.time() - start < 0.4
