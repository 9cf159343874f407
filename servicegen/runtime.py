"""Runtime support imported by generated clients and endpoint modules."""

from __future__ import annotations

import asyncio
import contextlib
from typing import AsyncIterator, Awaitable, Callable, List, TypeVar

from fastapi import Request

T = TypeVar("T")

_DISCONNECT_POLL_SECONDS = 0.25


class ServiceError(RuntimeError):
    """Base class for failures raised by generated service clients."""


class ServiceConfigurationError(ServiceError):
    """The service is reachable but not set up to serve the contract."""


class MissingEndpointError(ServiceConfigurationError):
    """The server answered 404 for a contract route."""

    def __init__(self, route: str) -> None:
        super().__init__(
            f"The endpoint {route} was not found. Are service endpoints registered?"
        )
        self.route = route


class ServiceTransportError(ServiceError):
    """The server answered with a non-success status other than 404."""

    def __init__(self, route: str, status_code: int) -> None:
        super().__init__(f"Request to {route} failed with status {status_code}.")
        self.route = route
        self.status_code = status_code


class OperationCancelledError(ServiceError):
    """The caller cancelled the operation before it completed."""


class CancellationToken:
    """Cooperative cancellation signal passed to every service method.

    Cancelling the token aborts whatever :meth:`run` is awaiting and makes it
    raise :class:`OperationCancelledError`.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._callbacks: List[Callable[[], None]] = []

    @classmethod
    def none(cls) -> "CancellationToken":
        """Return a token that nobody holds the means to cancel."""
        return cls()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        if self._event.is_set():
            return
        self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` on cancellation (immediately if already cancelled)."""
        if self.cancelled:
            callback()
            return
        self._callbacks.append(callback)

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise OperationCancelledError("The operation was cancelled.")

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token is cancelled first."""
        self.raise_if_cancelled()
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait((task, waiter), return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()
        if task.done():
            return task.result()
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        raise OperationCancelledError("The operation was cancelled.")


async def _watch_disconnect(request: Request, token: CancellationToken) -> None:
    while not await request.is_disconnected():
        await asyncio.sleep(_DISCONNECT_POLL_SECONDS)
    token.cancel()


async def request_cancellation(request: Request) -> AsyncIterator[CancellationToken]:
    """FastAPI dependency yielding a token cancelled when the HTTP client goes away."""
    token = CancellationToken()
    watcher = asyncio.ensure_future(_watch_disconnect(request, token))
    try:
        yield token
    finally:
        watcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher


__all__ = [
    "CancellationToken",
    "MissingEndpointError",
    "OperationCancelledError",
    "ServiceConfigurationError",
    "ServiceError",
    "ServiceTransportError",
    "request_cancellation",
]
