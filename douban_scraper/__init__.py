"""Douban subject details: resilient fetch plus best-effort field extraction."""

from .extractor import DetailExtractor
from .fetcher import DoubanFetcher
from .models import DetailsResult, DoubanDetails

__all__ = ["DetailExtractor", "DoubanFetcher", "DetailsResult", "DoubanDetails"]
