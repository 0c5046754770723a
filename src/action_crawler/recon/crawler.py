"""Orchestrator that owns the frontier and drives the fetch tasks of one crawl."""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Union
from urllib.parse import SplitResult, urlsplit

import requests

from ..core.config import CrawlerConfig
from ..core.report import CrawlReport
from .fetcher import FetchOutcome, Fetcher, build_session
from .links import action_key_of, frontier_key_of
from .state import CrawlerRuntimeState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _FetchDone:
    """Posted by a fetch task after its last discovery."""

    outcome: FetchOutcome


_Message = Union[SplitResult, _FetchDone]


class Crawler:
    """Crawls every same-host URL reachable from ``config.target_url``.

    All fetch tasks report through one queue: discovered links first, then a
    completion marker. Only the thread calling :meth:`run` reads that queue
    and touches the frontier, the action set and the in-flight counter, so
    none of them needs a lock. When the counter drops to zero every
    discovery has already been consumed.
    """

    def __init__(self, config: CrawlerConfig, session: Optional[requests.Session] = None) -> None:
        self.config = config
        self.session = session if session is not None else build_session(config)
        self._state = CrawlerRuntimeState()

    @property
    def runtime_state(self) -> CrawlerRuntimeState:
        """Return the current runtime state for observability tools."""

        return self._state

    def run(self) -> CrawlReport:
        self._state = CrawlerRuntimeState()
        report = CrawlReport(seed_url=self.config.target_url)
        messages: "queue.Queue[_Message]" = queue.Queue()
        fetcher = Fetcher(
            self.config,
            self.session,
            threading.BoundedSemaphore(self.config.max_concurrency),
        )

        with ThreadPoolExecutor(
            max_workers=self.config.max_concurrency,
            thread_name_prefix="fetch",
        ) as executor:

            def dispatch(url: str) -> None:
                self._state.in_flight += 1
                self._state.dispatched_count += 1
                executor.submit(self._fetch_task, fetcher, url, messages)

            seed_key = frontier_key_of(urlsplit(self.config.target_url))
            self._state.admit(seed_key)
            dispatch(seed_key)

            try:
                while self._state.in_flight:
                    message = messages.get()
                    if isinstance(message, _FetchDone):
                        self._state.in_flight -= 1
                        self._record_outcome(report, message.outcome)
                        continue

                    self._state.discovery_count += 1
                    action = action_key_of(message)
                    if action:
                        report.add_action(action)

                    link = frontier_key_of(message)
                    if self._state.admit(link):
                        dispatch(link)
            except BaseException:
                # Queued fetches must not start once the crawl is abandoned.
                executor.shutdown(wait=False, cancel_futures=True)
                raise

        logger.info(
            "Crawl of %s finished: %d dispatched, %d discoveries, %d fetched, %d failed, %d actions",
            self.config.target_url,
            self._state.dispatched_count,
            self._state.discovery_count,
            len(report.visited_urls),
            len(report.failures),
            len(report.actions),
        )
        return report

    @staticmethod
    def _fetch_task(fetcher: Fetcher, url: str, messages: "queue.Queue[_Message]") -> None:
        outcome = FetchOutcome(url=url)
        try:
            outcome = fetcher.fetch(url, messages.put)
        except Exception as exc:  # noqa: BLE001 - the completion marker is posted regardless
            logger.exception("Unexpected error while fetching %s", url)
            outcome.error = f"unexpected error: {exc}"
        finally:
            messages.put(_FetchDone(outcome))

    @staticmethod
    def _record_outcome(report: CrawlReport, outcome: FetchOutcome) -> None:
        if outcome.skipped:
            report.skipped_urls.add(outcome.url)
        if outcome.requested:
            report.visited_urls.add(outcome.url)
        if outcome.error:
            report.record_failure(outcome.url, outcome.error)


def crawl(config: CrawlerConfig, session: Optional[requests.Session] = None) -> CrawlReport:
    """Runs a full crawl and returns its report."""

    return Crawler(config, session).run()
