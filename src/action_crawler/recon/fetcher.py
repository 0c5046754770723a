"""Single authenticated GET that streams its body through the link scanner."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import SplitResult

import requests

from ..core.config import CrawlerConfig
from .links import normalize_link
from .scanner import LinkScanner, ScanBufferOverflow

logger = logging.getLogger(__name__)

USER_AGENT = "action-crawler/0.1"

Emit = Callable[[SplitResult], None]


@dataclass
class FetchOutcome:
    """What a single fetch did, reported back to the orchestrator."""

    url: str
    skipped: bool = False
    requested: bool = False
    status_code: Optional[int] = None
    discovered: int = 0
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


def build_session(config: CrawlerConfig) -> requests.Session:
    session = requests.Session()
    session.headers["Authorization"] = config.authorization
    session.headers["User-Agent"] = USER_AGENT
    session.verify = not config.insecure
    return session


class Fetcher:
    """Fetches one URL per call and emits every same-host link in the body.

    ``permits`` is shared by all fetchers of a crawl and caps the number of
    network calls in progress at any moment.
    """

    def __init__(
        self,
        config: CrawlerConfig,
        session: requests.Session,
        permits: threading.Semaphore,
    ) -> None:
        self.config = config
        self.session = session
        self.permits = permits
        self._hostname = config.hostname.encode("utf-8")

    def is_skipped(self, url: str) -> bool:
        return url.endswith(tuple(self.config.skip_suffixes))

    def fetch(self, url: str, emit: Emit) -> FetchOutcome:
        outcome = FetchOutcome(url=url)
        if self.is_skipped(url):
            outcome.skipped = True
            return outcome

        if not self.permits.acquire(timeout=self.config.permit_timeout):
            outcome.error = "timed out waiting for a concurrency permit"
            logger.error("Failed to acquire permit for %s", url)
            return outcome

        try:
            logger.info("visiting: %s", url)
            outcome.requested = True
            self._request(url, emit, outcome)
        finally:
            self.permits.release()
        return outcome

    def _request(self, url: str, emit: Emit, outcome: FetchOutcome) -> None:
        deadline = time.monotonic() + self.config.request_timeout
        try:
            response = self.session.get(url, timeout=self.config.request_timeout, stream=True)
        except requests.RequestException as exc:
            outcome.error = f"request failed: {exc}"
            logger.error("Failed request %s: %s", url, exc)
            return

        with response:
            outcome.status_code = response.status_code
            if response.status_code >= 400:
                logger.warning("%s answered with HTTP %s", url, response.status_code)

            scanner = LinkScanner(self._hostname, self.config.max_buffer_size)
            try:
                for chunk in response.iter_content(chunk_size=self.config.chunk_size):
                    if chunk:
                        self._emit_spans(scanner.feed(chunk), emit, outcome)
                    if time.monotonic() > deadline:
                        outcome.error = "request timed out"
                        logger.error(
                            "Failed reading input from %s: no complete body within %ss",
                            url,
                            self.config.request_timeout,
                        )
                        return
                self._emit_spans(scanner.finish(), emit, outcome)
            except (requests.RequestException, ScanBufferOverflow) as exc:
                outcome.error = f"failed reading body: {exc}"
                logger.error("Failed reading input from %s: %s", url, exc)

    @staticmethod
    def _emit_spans(spans, emit: Emit, outcome: FetchOutcome) -> None:
        for span in spans:
            link = normalize_link(span)
            if link is None:
                continue
            outcome.discovered += 1
            emit(link)
