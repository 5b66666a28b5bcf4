"""Persistent line-count statistics."""

from .models import CacheRecord, LanguageStat, StatsSummary
from .stats_cache import StatsCache

__all__ = ["CacheRecord", "LanguageStat", "StatsCache", "StatsSummary"]
