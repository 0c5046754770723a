"""Crawl results: the collected action URLs plus per-run diagnostics."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Set

ACTIONS_HEADER = "ACTIONS:"


@dataclass
class CrawlReport:
    """Structured data produced by one crawl run."""

    seed_url: str = ""
    actions: Set[str] = field(default_factory=set)
    visited_urls: Set[str] = field(default_factory=set)
    skipped_urls: Set[str] = field(default_factory=set)
    failures: Dict[str, str] = field(default_factory=dict)

    def add_action(self, url: str) -> None:
        self.actions.add(url)

    def record_failure(self, url: str, reason: str) -> None:
        self.failures[url] = reason

    def sorted_actions(self) -> List[str]:
        return sorted(self.actions)

    def to_text(self) -> str:
        return "\n".join([ACTIONS_HEADER, *self.sorted_actions()])

    def to_json(self) -> str:
        data = {
            "seed_url": self.seed_url,
            "actions": self.sorted_actions(),
            "visited_urls": sorted(self.visited_urls),
            "skipped_urls": sorted(self.skipped_urls),
            "failures": dict(sorted(self.failures.items())),
        }
        return json.dumps(data, indent=4)

    def save(self, path: Path) -> None:
        path.write_text(self.to_json(), encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> "CrawlReport":
        raw = json.loads(path.read_text(encoding="utf-8"))
        return cls(
            seed_url=raw.get("seed_url", ""),
            actions=set(raw.get("actions", [])),
            visited_urls=set(raw.get("visited_urls", [])),
            skipped_urls=set(raw.get("skipped_urls", [])),
            failures=dict(raw.get("failures", {})),
        )
