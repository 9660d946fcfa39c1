"""Contexts that handle a received message and optionally answer it."""

from __future__ import annotations

import abc
import asyncio
import inspect
from datetime import timedelta
from typing import Any, Awaitable, Callable

from aquarius.context_router import auto_register
from aquarius.flex_buffer import FlexBuffer

DEFAULT_TIMEOUT = timedelta(milliseconds=100)

_background: set[asyncio.Task[Any]] = set()


async def _await(awaitable: Awaitable[Any]) -> Any:
    return await awaitable


def _spawn(awaitable: Awaitable[Any]) -> None:
    """Run ``awaitable`` in the background of the running loop, or to completion if none runs."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        asyncio.run(_await(awaitable))
        return
    task = loop.create_task(_await(awaitable))
    _background.add(task)
    task.add_done_callback(_background.discard)


class BasicContext(abc.ABC):
    """Holds a received message and handles it."""

    def __init__(self, name: str, timeout: timedelta = DEFAULT_TIMEOUT) -> None:
        self.name = name
        self.timeout = timeout
        self._message: Any = None

    @property
    def message(self) -> Any:
        """The message being handled, or None before a visit."""
        return self._message

    def visit(self, message: Any, session: Any) -> int:
        """Take ``message`` and return the result of handling it."""
        self._message = message
        return self.handle()

    @abc.abstractmethod
    def handle(self) -> int:
        """Handle the current message and return a result code."""


class ServerContext(BasicContext):
    """A context that answers every request with a response."""

    request_type: type | None = None
    response_type: type | None = None

    def __init__(
        self,
        name: str,
        timeout: timedelta = DEFAULT_TIMEOUT,
        response: Any = None,
    ) -> None:
        super().__init__(name, timeout)
        if response is None:
            if self.response_type is None:
                raise TypeError(f"{type(self).__name__} has no response type")
            response = self.response_type()
        self.response = response

    def visit(self, message: Any, session: Any) -> int:
        """Handle ``message`` and send the response to ``session``."""
        result = super().visit(message, session)
        self.send_response(result, session)
        return result

    def send_response(self, result: int, session: Any) -> None:
        """Send the response carrying ``result``; nothing happens without a session."""
        if session is None:
            return
        buffer = self.make_response(result)
        sent = session.send_packet(type(self.response).NUMBER, buffer)
        if inspect.isawaitable(sent):
            _spawn(sent)

    def make_response(self, result: int) -> FlexBuffer:
        """Store ``result`` in the response and return it serialized."""
        self.response.set_result(result)
        return self.response.to_binary()


class ClientContext(BasicContext):
    """A context that handles a response received by a client."""

    response_type: type | None = None

    def __init__(self, name: str, timeout: timedelta = DEFAULT_TIMEOUT) -> None:
        super().__init__(name, timeout)


def server_context(
    request_type: type, response_type: type
) -> Callable[[Callable[[ServerContext], int]], type[ServerContext]]:
    """Turn a handler function into a registered server context class.

    The handler receives the context and returns the result code.
    """

    def decorate(handler: Callable[[ServerContext], int]) -> type[ServerContext]:
        context_name = f"__context_{request_type.__name__}"

        class Generated(ServerContext):
            def __init__(self) -> None:
                super().__init__(context_name)

            def handle(self) -> int:
                return handler(self)

        Generated.request_type = request_type
        Generated.response_type = response_type
        Generated.__name__ = handler.__name__
        Generated.__qualname__ = handler.__qualname__
        Generated.__doc__ = handler.__doc__
        Generated.__module__ = handler.__module__
        auto_register(request_type.NUMBER, request_type, Generated)
        return Generated

    return decorate


def client_context(
    response_type: type,
) -> Callable[[Callable[[ClientContext], int]], type[ClientContext]]:
    """Turn a handler function into a registered client context class."""

    def decorate(handler: Callable[[ClientContext], int]) -> type[ClientContext]:
        context_name = f"__context_{response_type.__name__}"

        class Generated(ClientContext):
            def __init__(self) -> None:
                super().__init__(context_name)

            def handle(self) -> int:
                return handler(self)

        Generated.response_type = response_type
        Generated.__name__ = handler.__name__
        Generated.__qualname__ = handler.__qualname__
        Generated.__doc__ = handler.__doc__
        Generated.__module__ = handler.__module__
        auto_register(response_type.NUMBER, response_type, Generated)
        return Generated

    return decorate