"""Streaming extraction of same-host links from arbitrary response bodies.

Bodies are not parsed as HTML: the scanner looks for raw occurrences of the
target hostname anywhere in the byte stream and cuts each candidate at the
first whitespace code point or double quote that follows it. Input arrives in
chunks of any size; state between chunks is kept in :class:`LinkScanner` so the
body is examined in a single forward pass.
"""

from __future__ import annotations

import re
from typing import Iterable, Iterator, List

from ..core.config import DEFAULT_MAX_BUFFER_SIZE

# Whitespace as defined by Go's unicode.IsSpace, plus the double quote, matched
# as complete UTF-8 sequences. Lead bytes never occur inside another encoded
# code point, so a match always covers a whole character.
_TERMINATOR = re.compile(
    rb'[\t\n\x0b\x0c\r "]'
    rb"|\xc2[\x85\xa0]"
    rb"|\xe1\x9a\x80"
    rb"|\xe2\x80[\x80-\x8a\xa8\xa9\xaf]"
    rb"|\xe2\x81\x9f"
    rb"|\xe3\x80\x80"
)
# Longest terminator minus one: bytes at the buffer tail that may be the
# beginning of a terminator split across chunks.
_TERMINATOR_OVERLAP = 2


class ScanBufferOverflow(RuntimeError):
    """Raised when a pending candidate outgrows the configured buffer."""


class LinkScanner:
    """Incremental scanner producing candidate spans that start at ``hostname``."""

    def __init__(self, hostname: bytes, max_buffer_size: int = DEFAULT_MAX_BUFFER_SIZE) -> None:
        if not hostname:
            raise ValueError("hostname must not be empty")
        self.hostname = bytes(hostname)
        self.max_buffer_size = max_buffer_size
        self._buffer = bytearray()
        # Offset of the candidate start in ``_buffer`` once the hostname is found.
        self._start = -1
        # Offset where the terminator search resumes.
        self._cursor = 0

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    def feed(self, data: bytes) -> List[bytes]:
        """Adds ``data`` and returns every span that could be completed."""

        self._buffer.extend(data)
        spans: List[bytes] = []

        while True:
            if self._start < 0 and not self._find_hostname():
                break

            match = _TERMINATOR.search(self._buffer, self._cursor)
            if match is None:
                self._cursor = max(self._start, len(self._buffer) - _TERMINATOR_OVERLAP)
                break

            spans.append(bytes(self._buffer[self._start:match.start()]))
            del self._buffer[:match.end()]
            self._start = -1
            self._cursor = 0

        if len(self._buffer) > self.max_buffer_size:
            raise ScanBufferOverflow(
                f"candidate exceeds {self.max_buffer_size} bytes without a terminator"
            )
        return spans

    def finish(self) -> List[bytes]:
        """Signals end of input.

        A trailing candidate that never met a terminator is dropped, so the
        result is always empty; the scanner is reset for reuse.
        """

        self._buffer.clear()
        self._start = -1
        self._cursor = 0
        return []

    def _find_hostname(self) -> bool:
        index = self._buffer.find(self.hostname, self._cursor)
        if index < 0:
            # Keep just enough of the tail to catch a hostname split across chunks.
            keep = len(self.hostname) - 1
            if len(self._buffer) > keep:
                del self._buffer[: len(self._buffer) - keep]
            self._cursor = 0
            return False

        del self._buffer[:index]
        self._start = 0
        self._cursor = len(self.hostname)
        return True


def iter_links(
    chunks: Iterable[bytes],
    hostname: bytes,
    max_buffer_size: int = DEFAULT_MAX_BUFFER_SIZE,
) -> Iterator[bytes]:
    """Lazily yields candidate spans from an iterable of byte chunks."""

    scanner = LinkScanner(hostname, max_buffer_size)
    for chunk in chunks:
        if chunk:
            yield from scanner.feed(chunk)
    yield from scanner.finish()
