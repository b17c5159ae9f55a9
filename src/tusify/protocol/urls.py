"""Resolution of the ``Location`` returned by the creation request."""

from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit

from tusify.errors import TusifyProtocolError


def resolve_upload_url(location: str, endpoint: str) -> str:
    """Turn a possibly-relative *location* into an absolute upload URL.

    Only the text before the first comma is used.  A missing host (and
    port) is taken from *endpoint*, as is a missing scheme.  The endpoint's
    netloc is reused verbatim, so an explicit port survives even when it is
    the scheme's default.

    Raises
    ------
    TusifyProtocolError
        If *location* cannot be parsed as a URL reference.
    """
    raw = location.split(",", 1)[0].strip()
    try:
        parts = urlsplit(raw)
        base = urlsplit(endpoint)
        # Accessing .port validates the port component.
        parts.port
    except ValueError as exc:
        raise TusifyProtocolError(
            message="invalid location",
            context={"location": location, "endpoint": endpoint},
            cause=exc,
        ) from exc

    netloc = parts.netloc or base.netloc
    scheme = parts.scheme or base.scheme
    return urlunsplit((scheme, netloc, parts.path, parts.query, parts.fragment))
