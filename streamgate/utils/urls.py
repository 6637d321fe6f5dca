"""Upstream panel URL helpers.

Base URLs are stored as bare origins (``scheme://host[:port]``); paths are
joined on top of them.
"""

import re
from urllib.parse import quote, urlsplit

_SMART_QUOTES = re.compile("[‘’“”]")
_QUOTED_PORT = re.compile(r":(['\"])(\d+)\1")


def normalize_base_url(value: str | None) -> str:
    """Coerce an operator-entered base URL to its origin, or '' if unusable."""
    s = _SMART_QUOTES.sub('"', str(value or "").strip())
    s = s.rstrip(",")
    s = _QUOTED_PORT.sub(r":\2", s)
    if not s:
        return ""

    # host:port without scheme defaults to https
    if not re.match(r"^https?://", s, re.IGNORECASE):
        s = f"https://{s}"

    try:
        parts = urlsplit(s)
        parts.port  # raises ValueError on a bad port
    except ValueError:
        return ""
    if not parts.hostname:
        return ""
    netloc = parts.netloc.rsplit("@", 1)[-1]
    return f"{parts.scheme.lower()}://{netloc}"


def build_url(base: str, path: str) -> str:
    origin = normalize_base_url(base)
    if not origin:
        raise ValueError("Invalid upstream base URL")

    return origin + (path if path.startswith("/") else f"/{path}")


def path_segment(value: str) -> str:
    """Percent-encode a value for use as a single path segment."""
    return quote(str(value), safe="")
