"""Key-to-callable dispatch table with a per-class shared instance."""

from __future__ import annotations

import threading
from typing import Any, Callable, ClassVar


class Router:
    """Dispatches calls to functions registered under integer keys.

    Routers cannot be copied; ``instance()`` gives one shared router per class.
    """

    _instances: ClassVar[dict[type, Router]] = {}
    _instances_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self) -> None:
        self._invokes: dict[int, Callable[..., Any]] = {}

    def register(self, key: int, func: Callable[..., Any]) -> None:
        """Route ``key`` to ``func``, replacing any earlier route."""
        self._invokes[key] = func

    def invoke(self, key: int, *args: Any) -> Any:
        """Call the function routed under ``key``; return None if there is none."""
        func = self._invokes.get(key)
        if func is None:
            return None
        return func(*args)

    def __contains__(self, key: object) -> bool:
        return key in self._invokes

    def __len__(self) -> int:
        return len(self._invokes)

    def __copy__(self) -> Router:
        raise TypeError(f"{type(self).__name__} cannot be copied")

    def __deepcopy__(self, memo: dict[int, Any]) -> Router:
        raise TypeError(f"{type(self).__name__} cannot be copied")

    @classmethod
    def instance(cls) -> Router:
        """Return the router shared by every caller of this class."""
        with Router._instances_lock:
            router = Router._instances.get(cls)
            if router is None:
                router = cls()
                Router._instances[cls] = router
            return router