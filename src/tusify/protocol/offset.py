"""Parsing and reconciliation of ``Upload-Offset`` values.

Some intermediaries fold repeated headers into a single comma-separated
value.  Only the first token is significant.
"""

from __future__ import annotations

from tusify.errors import TusifyMalformedOffsetError, TusifyOffsetMismatchError


def parse_offset(raw: str | None) -> int:
    """Return the integer value of the first token of *raw*.

    Raises
    ------
    TusifyMalformedOffsetError
        If *raw* is ``None``, empty, or its first token is not a
        non-negative decimal integer.
    """
    if not raw:
        raise TusifyMalformedOffsetError(
            message="missing Upload-Offset header",
            context={"raw": raw},
        )
    token = raw.split(",", 1)[0].strip()
    if not token.isdigit() or not token.isascii():
        raise TusifyMalformedOffsetError(
            message=f"invalid Upload-Offset header: {raw!r}",
            context={"raw": raw},
        )
    return int(token)


def reconcile_offset(raw: str | None, expected: int) -> int:
    """Parse *raw* and check that it equals *expected*.

    Raises
    ------
    TusifyMalformedOffsetError
        If *raw* cannot be parsed.
    TusifyOffsetMismatchError
        If the reported offset differs from *expected*.
    """
    reported = parse_offset(raw)
    if reported != expected:
        raise TusifyOffsetMismatchError(
            message=(
                f"response contains different Upload-Offset value ({reported}) "
                f"than expected ({expected})"
            ),
            context={"expected": expected, "reported": reported},
        )
    return reported
