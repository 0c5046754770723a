import logging
import queue
from types import SimpleNamespace

import pytest

from tests.helpers.crawler_imports import Crawler, CrawlerConfig, crawler_module
from tests.helpers.fake_site import FakeSite, connection_error


def make_config(root: str = "https://h/a", **options) -> CrawlerConfig:
    return CrawlerConfig.for_url(root, token="secret", **options)


def test_records_actions_and_fetches_query_stripped_urls():
    site = FakeSite(
        {
            "https://h/a": "https://h/b?action=x https://h/c\n",
            "https://h/b": "",
            "https://h/c": "",
        }
    )

    report = Crawler(make_config(), site).run()

    assert report.sorted_actions() == ["https://h/b?action=x"]
    assert sorted(site.requested) == ["https://h/a", "https://h/b", "https://h/c"]
    assert "https://h/b?action=x" not in site.requested


def test_each_frontier_key_is_fetched_once():
    site = FakeSite(
        {
            "https://h/a": "h/b h/b?limit=1 h/b?action=x h/a h/c\n",
            "https://h/b": "h/a h/c h/b?action=x\n",
            "https://h/c": "h/b?action=y h/b?action=x\n",
        },
        chunk_size=4,
    )

    report = Crawler(make_config(max_concurrency=4), site).run()

    assert sorted(site.requested) == ["https://h/a", "https://h/b", "https://h/c"]
    assert report.sorted_actions() == ["https://h/b?action=x", "https://h/b?action=y"]


def test_output_is_sorted_and_unique():
    links = " ".join(f"h/item?action={name}" for name in ["zeta", "alpha", "mid", "alpha"])
    site = FakeSite({"https://h/a": links + "\n", "https://h/item": links + "\n"})

    actions = Crawler(make_config(), site).run().sorted_actions()

    assert actions == sorted(set(actions))
    assert actions == [
        "https://h/item?action=alpha",
        "https://h/item?action=mid",
        "https://h/item?action=zeta",
    ]


def test_documentation_urls_are_not_dispatched_to_the_network():
    site = FakeSite({"https://h/a": "h/v3/readme h/v3/readme?action=show\n"})

    report = Crawler(make_config(), site).run()

    assert site.requested == ["https://h/a"]
    assert report.skipped_urls == {"https://h/v3/readme"}
    assert report.sorted_actions() == ["https://h/v3/readme?action=show"]


def test_concurrency_cap_of_one_serializes_requests():
    children = [f"h/page{index}" for index in range(10)]
    pages = {"https://h/a": " ".join(children) + "\n"}
    pages.update({f"https://{child}": "" for child in children})
    site = FakeSite(pages, delay=0.005)

    report = Crawler(make_config(max_concurrency=1), site).run()

    assert len(site.requested) == 11
    assert site.max_active == 1
    assert not report.failures


def test_transport_error_does_not_stop_other_fetches():
    children = [f"h/n{index}" for index in range(5)]
    pages = {"https://h/a": " ".join(children) + "\n"}
    for index, child in enumerate(children):
        pages[f"https://{child}"] = f"h/n{index}/x?action=go{index}\n"
    pages["https://h/n2"] = connection_error()
    site = FakeSite(pages)

    report = Crawler(make_config(max_concurrency=3), site).run()

    assert report.sorted_actions() == [
        "https://h/n0/x?action=go0",
        "https://h/n1/x?action=go1",
        "https://h/n3/x?action=go3",
        "https://h/n4/x?action=go4",
    ]
    assert set(report.failures) == {"https://h/n2"}
    assert "https://h/n2" in report.visited_urls


def test_unexpected_fetch_error_still_completes(monkeypatch):
    site = FakeSite({"https://h/a": "h/b h/c\n", "https://h/c": "h/c?action=ok\n"})
    original_fetch = crawler_module.Fetcher.fetch

    def flaky_fetch(self, url, emit):
        if url == "https://h/b":
            raise RuntimeError("boom")
        return original_fetch(self, url, emit)

    monkeypatch.setattr(crawler_module.Fetcher, "fetch", flaky_fetch)

    report = Crawler(make_config(), site).run()

    assert report.sorted_actions() == ["https://h/c?action=ok"]
    assert "boom" in report.failures["https://h/b"]


def test_runs_are_isolated():
    site = FakeSite({"https://h/a": "h/b?action=x\n", "https://h/b": ""})
    crawler = Crawler(make_config(), site)

    first = crawler.run()
    second = crawler.run()

    assert first.sorted_actions() == second.sorted_actions() == ["https://h/b?action=x"]
    assert site.requested.count("https://h/a") == 2
    assert crawler.runtime_state.seen_urls == {"https://h/a", "https://h/b"}
    assert crawler.runtime_state.in_flight == 0


def test_seed_with_query_is_fetched_without_it():
    site = FakeSite({"https://h/a": ""})

    Crawler(make_config("https://h/a?action=root"), site).run()

    assert site.requested == ["https://h/a"]


def test_interrupt_cancels_queued_fetches(monkeypatch):
    children = [f"h/page{index}" for index in range(20)]
    pages = {"https://h/a": " ".join(children) + "\n"}
    pages.update({f"https://{child}": "" for child in children})
    site = FakeSite(pages, delay=0.2)

    class InterruptingQueue(queue.Queue):
        calls = 0

        def get(self, *args, **kwargs):
            InterruptingQueue.calls += 1
            if InterruptingQueue.calls == 22:
                raise KeyboardInterrupt
            return super().get(*args, **kwargs)

    monkeypatch.setattr(crawler_module, "queue", SimpleNamespace(Queue=InterruptingQueue))

    with pytest.raises(KeyboardInterrupt):
        Crawler(make_config(max_concurrency=1), site).run()

    # the seed plus at most the page already running when the loop stopped
    assert len(site.requested) <= 3
    assert len(site.requested) < len(pages)


def test_summary_counts_dispatches_and_discoveries(caplog):
    site = FakeSite(
        {
            "https://h/a": "h/b h/b?action=x h/c\n",
            "https://h/b": "h/c\n",
            "https://h/c": "",
        }
    )
    crawler = Crawler(make_config(), site)

    with caplog.at_level(logging.INFO, logger=crawler_module.__name__):
        crawler.run()

    assert crawler.runtime_state.dispatched_count == 3
    assert crawler.runtime_state.discovery_count == 4
    assert "3 dispatched, 4 discoveries" in caplog.text
