"""Tests for restbind.context — per-request cancellation and deadline."""

import time

import anyio
import pytest

from restbind.context import Context


class TestCancellation:
    @pytest.mark.asyncio
    async def test_starts_live(self) -> None:
        assert Context().cancelled is False

    @pytest.mark.asyncio
    async def test_cancel_is_idempotent(self) -> None:
        ctx = Context()
        ctx.cancel()
        ctx.cancel()
        assert ctx.cancelled is True

    @pytest.mark.asyncio
    async def test_wait_returns_after_cancel(self) -> None:
        ctx = Context()
        woke: list[bool] = []

        async def waiter() -> None:
            await ctx.wait()
            woke.append(True)

        with anyio.fail_after(2):
            async with anyio.create_task_group() as tg:
                tg.start_soon(waiter)
                await anyio.sleep(0)
                assert woke == []
                ctx.cancel()

        assert woke == [True]


class TestDeadline:
    @pytest.mark.asyncio
    async def test_no_deadline(self) -> None:
        ctx = Context.with_timeout(None)
        assert ctx.deadline is None
        assert ctx.time_remaining() is None

    @pytest.mark.asyncio
    async def test_with_timeout(self) -> None:
        before = time.monotonic()
        ctx = Context.with_timeout(10.0)
        assert ctx.deadline is not None
        assert before + 10.0 <= ctx.deadline <= time.monotonic() + 10.0
        remaining = ctx.time_remaining()
        assert remaining is not None
        assert 0 < remaining <= 10.0

    @pytest.mark.asyncio
    async def test_expired_deadline(self) -> None:
        ctx = Context(deadline=time.monotonic() - 1)
        assert ctx.time_remaining() == 0.0
