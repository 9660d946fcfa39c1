"""Routing of received packets to the contexts that handle them."""

from __future__ import annotations

import asyncio
from typing import Any, Callable

from aquarius.flex_buffer import FlexBuffer
from aquarius.router import Router


def _post(callback: Callable[[], Any]) -> None:
    """Run ``callback`` on the running event loop's next turn, or now if none runs."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        callback()
    else:
        loop.call_soon(callback)


class ContextRouter(Router):
    """Maps protocol numbers to request parsers and handling contexts."""

    def regist(self, proto: int, request_type: type, context_type: type) -> None:
        """Route ``proto`` to build ``request_type`` and visit it with a new ``context_type``."""

        def dispatch(buffer: FlexBuffer, session: Any) -> None:
            request = request_type()
            request.from_binary(buffer)
            _post(lambda: context_type().visit(request, session))

        self.register(proto, dispatch)


def invoke_context(proto: int, buffer: FlexBuffer, session: Any) -> None:
    """Hand ``buffer`` to the shared router under ``proto`` for ``session``."""
    router = ContextRouter.instance()
    _post(lambda: router.invoke(proto, buffer, session))


def auto_register(proto: int, request_type: type, context_type: type) -> None:
    """Register ``context_type`` for ``proto`` with the shared router."""
    ContextRouter.instance().regist(proto, request_type, context_type)