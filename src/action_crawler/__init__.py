"""Concurrent crawler collecting action URLs from a single host."""

from .core.config import ConfigurationError, CrawlerConfig, load_configuration
from .core.report import CrawlReport
from .recon.crawler import Crawler, crawl

__all__ = [
    "ConfigurationError",
    "CrawlReport",
    "Crawler",
    "CrawlerConfig",
    "crawl",
    "load_configuration",
]
