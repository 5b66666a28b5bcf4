"""Working-copy measurements."""

from .cloc import StatsCollector, StatsResult, parse_language_stats, parse_total_lines

__all__ = ["StatsCollector", "StatsResult", "parse_language_stats", "parse_total_lines"]
