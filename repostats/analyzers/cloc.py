"""Line counts from the ``cloc`` command-line tool."""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from ..crawler.commands import CommandRunner, Runner
from ..crawler.models import Outcome
from ..store.models import LanguageStat
from ..store.stats_cache import StatsCache

logger = logging.getLogger(__name__)

SUMMARY_MARKER = "SUM:"
HEADER_MARKER = "Language"
SEPARATOR_PREFIX = "---"
TOTAL_LABEL = "Total"


@dataclass
class StatsResult:
    """Line count and per-language breakdown for one working copy."""
    line_count: int
    language_stats: list[LanguageStat] = field(default_factory=list)
    from_cache: bool = False
    outcome: Outcome = field(default_factory=Outcome)


def has_table(output: str) -> bool:
    return SUMMARY_MARKER in output or HEADER_MARKER in output


def parse_total_lines(output: str) -> int:
    """Grand total from the last token of the third-from-last output line.

    cloc ends its report with the ``SUM:`` row, a separator and a trailing
    newline, which puts the total at that fixed offset.
    """
    if not has_table(output):
        return 0
    lines = output.split("\n")
    if len(lines) < 3:
        return 0
    tokens = lines[-3].split()
    if not tokens:
        return 0
    try:
        return int(tokens[-1])
    except ValueError:
        return 0


def parse_language_stats(output: str) -> list[LanguageStat]:
    """Rows of the language table, with ``SUM:`` relabelled as ``Total``."""
    stats: list[LanguageStat] = []
    if not has_table(output):
        return stats

    in_table = False
    for line in output.split("\n"):
        if line.startswith(SEPARATOR_PREFIX):
            continue
        if line.startswith(HEADER_MARKER):
            in_table = True
            continue
        if not in_table:
            continue
        # Labels such as "Bourne Shell" contain spaces; counts never do
        fields = line.rsplit(maxsplit=4)
        if len(fields) < 5:
            continue
        language, files, blank, comment, code = fields
        stats.append(
            LanguageStat(
                language=language.strip().replace(SUMMARY_MARKER, TOTAL_LABEL),
                files=files,
                blank=blank,
                comment=comment,
                code=code,
            )
        )
    return stats


def utc_timestamp() -> str:
    return datetime.now(UTC).isoformat(timespec="seconds").replace("+00:00", "Z")


class StatsCollector:
    """Measures a working copy and keeps the organization cache current.

    A measurement that yields no lines falls back to the cached values and
    leaves the cache file alone.
    """

    def __init__(self, runner: Runner | None = None):
        self.runner = runner or CommandRunner()

    def run_cloc(self, path: Path, outcome: Outcome) -> str:
        result = self.runner.run(["cloc", str(path)])
        if not result.ok:
            outcome.record_command(result)
            return ""
        return result.stdout

    def collect(self, working_copy: Path, cache: StatsCache, repository: str) -> StatsResult:
        """Count lines in ``working_copy`` and record them under ``repository``."""
        outcome = Outcome()
        output = self.run_cloc(working_copy, outcome)

        line_count = parse_total_lines(output)
        language_stats = parse_language_stats(output)
        logger.debug("loc %s ---> %d", working_copy, line_count)

        if line_count == 0:
            cached = cache.get(repository)
            if cached is None:
                return StatsResult(line_count=0, from_cache=True, outcome=outcome)
            logger.info("no lines counted for %s, using cached values from %s", repository, cached.timestamp)
            return StatsResult(
                line_count=cached.line_count,
                language_stats=list(cached.language_stats),
                from_cache=True,
                outcome=outcome,
            )

        cache.update(
            repository,
            line_count=line_count,
            language_stats=language_stats,
            timestamp=utc_timestamp(),
        )
        outcome = outcome.merge(cache.persist())
        return StatsResult(
            line_count=line_count,
            language_stats=language_stats,
            outcome=outcome,
        )
