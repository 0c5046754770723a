"""Turns raw scanner spans into canonical URLs and derives their keys."""

from __future__ import annotations

import logging
import re
from typing import Optional, Union
from urllib.parse import SplitResult, parse_qsl, quote, urlsplit, urlunsplit

logger = logging.getLogger(__name__)

SECURE_SCHEME_PREFIX = "https://"
ACTION_PARAMETER = "action"

_INVALID_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
# Characters left unescaped in a path; existing escapes are kept as written.
_PATH_SAFE = "/%:@!$&'()*+,;=~"


def hostname_of(url: str) -> str:
    """Returns the hostname of ``url`` exactly as written (case preserved).

    Raises ``ValueError`` when the URL cannot be parsed or carries no host.
    """

    parsed = urlsplit(url)
    parsed.port  # raises ValueError on a malformed port
    netloc = parsed.netloc.rpartition("@")[2]
    if netloc.startswith("["):
        host = netloc[1:].partition("]")[0]
    else:
        host = netloc.partition(":")[0]
    if not host:
        raise ValueError(f"no host in {url!r}")
    return host


def normalize_link(raw: Union[bytes, str]) -> Optional[SplitResult]:
    """Builds an absolute ``https`` URL from a scanner span.

    Returns ``None`` for anything that does not parse as a URL; free-text
    scanning yields plenty of such fragments.
    """

    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            logger.debug("Discarding non UTF-8 candidate %r", raw)
            return None

    link = raw if raw.startswith(SECURE_SCHEME_PREFIX) else SECURE_SCHEME_PREFIX + raw

    if _CONTROL_CHARS.search(link):
        logger.debug("Discarding candidate with control characters %r", link)
        return None

    try:
        parsed = urlsplit(link)
        parsed.port
    except ValueError:
        logger.debug("Discarding malformed candidate %r", link)
        return None

    if not parsed.hostname:
        return None
    for component in (parsed.netloc, parsed.path, parsed.fragment):
        if _INVALID_ESCAPE.search(component):
            logger.debug("Discarding candidate with invalid escape %r", link)
            return None

    return parsed


def action_key_of(url: SplitResult) -> Optional[str]:
    """Full URL string when its first ``action`` parameter is non-empty."""

    if not url.query:
        return None
    for name, value in parse_qsl(url.query, keep_blank_values=True):
        if name == ACTION_PARAMETER:
            return _canonical(url) if value else None
    return None


def frontier_key_of(url: SplitResult) -> str:
    """URL string with the query removed; query variants share one key."""

    return _canonical(url._replace(query=""))


def _canonical(url: SplitResult) -> str:
    """String form with non-ASCII path characters percent-encoded."""

    return urlunsplit(url._replace(path=quote(url.path, safe=_PATH_SAFE)))
