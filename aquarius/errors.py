"""Result codes of package handling and their messages."""

from __future__ import annotations

import enum
from types import MappingProxyType


class Package(enum.IntEnum):
    """Outcome of handling a package."""

    OK = 0
    PENDING = 1
    INCOMPLETE = 2
    UNKNOWN = 3
    NOSESSION = 4
    TIMEOUT = 5


_MESSAGES = MappingProxyType(
    {
        Package.OK: "successful",
        Package.PENDING: "wait for handle pending",
        Package.INCOMPLETE: "package is not complete",
        Package.UNKNOWN: "unknown protocol",
        Package.NOSESSION: "session is not exist",
        Package.TIMEOUT: "context handle timeout",
    }
)


class ErrorCategory:
    """Maps package result codes to readable messages."""

    name = "aquarius error category"

    def message(self, code: int) -> str:
        """Return the message for ``code``, or ``"unknown error"``."""
        return _MESSAGES.get(code, "unknown error")


_CATEGORY = ErrorCategory()


def error_message(code: int) -> str:
    """Return the message the shared error category gives ``code``."""
    return _CATEGORY.message(code)