"""Encoding of the ``Upload-Metadata`` header.

The tus creation extension transports metadata as a comma-separated list of
``<key> <base64(value)>`` pairs.  Keys are sent verbatim; values are the
base64 encoding of their UTF-8 bytes.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Mapping

from tusify.errors import TusifyProtocolError


def encode_metadata(metadata: Mapping[str, str] | None) -> str:
    """Serialise *metadata* into an ``Upload-Metadata`` header value.

    Entries are emitted in the mapping's iteration order.

    Examples
    --------
    >>> encode_metadata({"filename": "a b"})
    'filename YSBi'
    >>> encode_metadata({})
    ''
    """
    if not metadata:
        return ""
    return ",".join(
        f"{key} {base64.b64encode(value.encode('utf-8')).decode('ascii')}"
        for key, value in metadata.items()
    )


def decode_metadata(header: str | None) -> dict[str, str]:
    """Parse an ``Upload-Metadata`` header value back into a dict.

    A key without a value decodes to the empty string.

    Raises
    ------
    TusifyProtocolError
        If a value is not valid base64 or not valid UTF-8.
    """
    result: dict[str, str] = {}
    if not header:
        return result
    for pair in header.split(","):
        pair = pair.strip()
        if not pair:
            continue
        key, _, encoded = pair.partition(" ")
        try:
            result[key] = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise TusifyProtocolError(
                message=f"invalid Upload-Metadata value for key {key!r}",
                context={"key": key, "value": encoded},
                cause=exc,
            ) from exc
    return result
