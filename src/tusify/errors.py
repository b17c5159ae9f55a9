"""Full error hierarchy for the tusify client.

Every public error class inherits from TusifyError. Each carries a
machine-readable ``code`` (from :class:`ErrorCode`), a human-readable
``message``, an optional structured ``context`` dict, and an optional
``cause`` (chained exception).

Error codes are defined as a :class:`str` enum so that they serialise
naturally to JSON and can be matched with simple ``==`` comparisons.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Error code enum
# ---------------------------------------------------------------------------

class ErrorCode(str, Enum):
    """Machine-readable error codes for every error the client can raise."""

    PROTOCOL_ERROR = "PROTOCOL_ERROR"
    MALFORMED_OFFSET = "MALFORMED_OFFSET"
    OFFSET_MISMATCH = "OFFSET_MISMATCH"
    NETWORK_ERROR = "NETWORK_ERROR"
    INVALID_STATE = "INVALID_STATE"


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------

class TusifyError(Exception):
    """Base exception for all tusify errors.

    Parameters
    ----------
    code:
        A value from :class:`ErrorCode` (or any string) identifying the
        error category.
    message:
        A developer-friendly description of what went wrong.
    context:
        Arbitrary structured data providing extra diagnostic detail.
        Keys and expected types are documented per subclass.
    cause:
        The underlying exception, if this error wraps another.
    """

    def __init__(
        self,
        code: str,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.code: str = code
        self.message: str = message
        self.context: dict[str, Any] = context or {}
        self.cause: Exception | None = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        ctx = f", context={self.context!r}" if self.context else ""
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}{ctx})"


# ---------------------------------------------------------------------------
# Protocol errors
# ---------------------------------------------------------------------------

class TusifyProtocolError(TusifyError):
    """The server broke the tus protocol contract.

    Raised for unexpected status codes, missing required headers and
    unparseable ``Location`` values.

    Context keys: ``operation``, ``status_code``, ``url``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
        code: str = ErrorCode.PROTOCOL_ERROR,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            context=context,
            cause=cause,
        )


class TusifyMalformedOffsetError(TusifyProtocolError):
    """An ``Upload-Offset`` header was absent, empty, or not an integer.

    Context keys: ``raw``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            message=message,
            context=context,
            cause=cause,
            code=ErrorCode.MALFORMED_OFFSET,
        )


class TusifyOffsetMismatchError(TusifyProtocolError):
    """The server-reported offset disagrees with the locally computed one.

    Context keys: ``expected``, ``reported``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            message=message,
            context=context,
            cause=cause,
            code=ErrorCode.OFFSET_MISMATCH,
        )


# ---------------------------------------------------------------------------
# Transport / lifecycle errors
# ---------------------------------------------------------------------------

class TusifyNetworkError(TusifyError):
    """A transport-level failure occurred (timeout, DNS, connection reset).

    Context keys: ``method``, ``url``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.NETWORK_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class TusifyStateError(TusifyError):
    """An upload session was driven through an invalid state transition.

    Context keys: ``current_state``, ``requested_state``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.INVALID_STATE,
            message=message,
            context=context,
            cause=cause,
        )
