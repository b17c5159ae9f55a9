"""Header and body redaction for safe logging.

Before request or response data is written to logs or debug dumps,
:func:`redact` must be applied:

* Values of **credential headers** (``Authorization``, ``Cookie``, any key
  containing ``token``/``secret``/``api-key``...) are replaced with a masked
  placeholder showing at most the last four characters.
* ``Bearer <tok>`` patterns are masked wherever they appear.
* **Bytes** values (chunk bodies) become ``<binary:N_bytes>``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

# Substrings: if any of these appear in a key name (case-insensitive), the
# value is redacted.
_SENSITIVE_KEY_PATTERNS: frozenset[str] = frozenset({
    "authorization",
    "cookie",
    "token",
    "secret",
    "password",
    "credential",
    "api-key",
    "api_key",
})

_BEARER_RE = re.compile(r"(Bearer\s+)\S+", re.IGNORECASE)


def _mask(value: str) -> str:
    if len(value) < 8:
        return "<redacted>"
    return f"<redacted:...{value[-4:]}>"


def _redact_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return redact(value)
    if isinstance(value, list):
        return [_redact_value(item) for item in value]
    if isinstance(value, (bytes, bytearray, memoryview)):
        return f"<binary:{len(value)}_bytes>"
    if isinstance(value, str):
        return _BEARER_RE.sub(lambda m: f"{m.group(1)}<redacted>", value)
    return value


def redact(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Return a new dict with sensitive data in *payload* masked.

    *payload* may be a plain dict or an :class:`httpx.Headers`; the input
    is never mutated.

    Examples
    --------
    >>> redact({"Authorization": "Bearer sk_live_1234abcd"})
    {'Authorization': '<redacted:...abcd>'}
    >>> redact({"body": b"xyz"})
    {'body': '<binary:3_bytes>'}
    """
    result: dict[str, Any] = {}
    for key, value in payload.items():
        key_lower = key.lower() if isinstance(key, str) else ""
        if any(pat in key_lower for pat in _SENSITIVE_KEY_PATTERNS):
            result[key] = _mask(value) if isinstance(value, str) else "<redacted>"
        else:
            result[key] = _redact_value(value)
    return result
