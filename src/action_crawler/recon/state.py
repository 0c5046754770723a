from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class CrawlerRuntimeState:
    """Mutable bookkeeping owned by the orchestrator thread of one crawl."""

    seen_urls: set[str] = field(default_factory=set)
    in_flight: int = 0
    dispatched_count: int = 0
    discovery_count: int = 0

    def admit(self, frontier_key: str) -> bool:
        """Adds ``frontier_key`` to the frontier; ``False`` if it was already there."""

        if frontier_key in self.seen_urls:
            return False
        self.seen_urls.add(frontier_key)
        return True
