"""Main entry point for repostats."""

import argparse
import json
import logging
import sys
from dataclasses import dataclass, field

from .analyzers.cloc import StatsCollector, StatsResult
from .config import ConfigError, Settings, load_settings
from .crawler.commands import CommandRunner, Runner
from .crawler.identity import MalformedURLError, resolve_identity, working_copy_path
from .crawler.models import Outcome, RepoIdentity, SyncState
from .crawler.repo_manager import RepoManager
from .logging import configure_logging
from .store.models import StatsSummary
from .store.stats_cache import StatsCache

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    """Everything one invocation produced."""
    identity: RepoIdentity
    sync: SyncState
    stats: StatsResult
    cleaned: bool = False
    outcome: Outcome = field(default_factory=Outcome)

    @property
    def errored(self) -> bool:
        return self.outcome.errored

    def summary(self) -> dict:
        return StatsSummary(
            line_count=self.stats.line_count,
            language_stats=self.stats.language_stats,
        ).model_dump(by_alias=True)


def run(url: str, settings: Settings, runner: Runner | None = None) -> RunReport:
    """Resolve, synchronize, measure and optionally clean up one repository.

    Raises:
        MalformedURLError: before any side effects, for an unusable URL.
    """
    identity = resolve_identity(url, follow_hierarchy=settings.follow_hierarchy)
    runner = runner or CommandRunner()
    # refuse working copies outside the repos root before touching anything
    working_copy_path(settings.repos_path, identity, settings.follow_hierarchy)

    cache = StatsCache(
        settings.organization_cache_dir(identity.organization),
        file_name=settings.cache_file_name,
    )
    outcome = cache.load(identity.repository)

    manager = RepoManager(
        base_path=settings.repos_path,
        follow_hierarchy=settings.follow_hierarchy,
        runner=runner,
    )

    sync = manager.sync(identity)
    outcome = outcome.merge(sync.outcome)

    stats = StatsCollector(runner=runner).collect(sync.working_copy, cache, identity.repository)
    outcome = outcome.merge(stats.outcome)

    cleaned = False
    if not settings.skip_cleanup:
        cleaned = manager.cleanup_repo(
            identity,
            force=settings.force_cleanup,
            threshold_mb=settings.cleanup_threshold_mb,
        )

    logger.debug("repo path: %s", sync.working_copy)
    logger.debug("cache path: %s", cache.path)
    return RunReport(
        identity=identity,
        sync=sync,
        stats=stats,
        cleaned=cleaned,
        outcome=outcome,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repostats",
        description="Mirror a git repository locally and report its line counts",
    )
    parser.add_argument(
        "url",
        nargs="?",
        help="Remote repository URL",
    )
    parser.add_argument(
        "--config", "-c",
        help="Optional YAML configuration file",
    )
    parser.add_argument(
        "--skip-cleanup",
        action="store_true",
        default=None,
        help="Keep the working copy regardless of its size",
    )
    parser.add_argument(
        "--force-cleanup",
        action="store_true",
        default=None,
        help="Delete the working copy regardless of its size",
    )
    parser.add_argument(
        "--follow-hierarchy",
        action="store_true",
        default=None,
        help="Nest working copies as <organization>/<repository>",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        default=None,
        help="Log every external command and its result",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.url:
        parser.print_usage(sys.stderr)
        parser.exit(1, "repostats: error: a repository URL is required\n")

    configure_logging(verbose=bool(args.verbose))
    try:
        settings = load_settings(
            args.config,
            skip_cleanup=args.skip_cleanup,
            force_cleanup=args.force_cleanup,
            follow_hierarchy=args.follow_hierarchy,
            verbose=args.verbose,
        )
    except ConfigError as e:
        logger.error("%s", e)
        return 1
    configure_logging(verbose=settings.verbose)

    try:
        report = run(args.url, settings)
    except MalformedURLError as e:
        logger.error("%s", e)
        return 1

    if report.errored:
        logger.error("finished with %d failure(s)", len(report.outcome.failures))
        return 1

    print(json.dumps(report.summary()))
    return 0


if __name__ == "__main__":
    sys.exit(main())
