"""Per-request cancellation and deadline context.

A handler that declares a parameter annotated exactly ``Context`` receives
the context of the request it is serving::

    @app.get("/report/:id")
    async def report(ctx: Context, id: int) -> Report:
        if ctx.time_remaining() == 0:
            raise error(503, "out of time")
        ...

The server pipeline creates one ``Context`` per request and cancels it
after the response has been sent. The deadline comes from
``AppConfig.request_timeout``. restbind itself never enforces it.
"""

import time
from dataclasses import dataclass, field

import anyio


@dataclass(frozen=True, slots=True)
class Context:
    """Cancellation signal and optional deadline for one request.

    Must be created inside a running event loop (the cancellation event
    binds to the current async backend).
    """

    deadline: float | None = None
    _done: anyio.Event = field(default_factory=anyio.Event, repr=False, compare=False)

    @classmethod
    def with_timeout(cls, timeout: float | None) -> "Context":
        """Create a context whose deadline is *timeout* seconds from now."""
        if timeout is None:
            return cls()
        return cls(deadline=time.monotonic() + timeout)

    @property
    def cancelled(self) -> bool:
        """True once the request has finished or was cancelled."""
        return self._done.is_set()

    def cancel(self) -> None:
        """Signal cancellation. Idempotent."""
        self._done.set()

    async def wait(self) -> None:
        """Block until the context is cancelled."""
        await self._done.wait()

    def time_remaining(self) -> float | None:
        """Seconds left before the deadline, ``0.0`` once passed, ``None`` without one."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())
