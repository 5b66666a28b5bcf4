"""Repository cloning and synchronization."""

import logging
from pathlib import Path

from ..logging import console
from .commands import CommandRunner, Runner
from .identity import working_copy_path
from .models import CommandResult, Outcome, RepoIdentity, SyncState
from .retention import cleanup_working_copy

logger = logging.getLogger(__name__)

UP_TO_DATE_MARKERS = ("Already up to date.", "Already up-to-date.")


class RepoManager:
    """Manages the local working copy of one remote repository.

    A missing working copy is cloned; an existing one is fetched and its
    default branch pulled. Every failing command is recorded in the
    returned outcome and the sequence carries on.
    """

    def __init__(
        self,
        base_path: Path | str,
        follow_hierarchy: bool = False,
        runner: Runner | None = None,
    ):
        self.base_path = Path(base_path)
        self.follow_hierarchy = follow_hierarchy
        self.runner = runner or CommandRunner()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def get_repo_path(self, identity: RepoIdentity) -> Path:
        """Get local path for a repository."""
        return working_copy_path(self.base_path, identity, self.follow_hierarchy)

    def sync(self, identity: RepoIdentity) -> SyncState:
        """Clone the repository, or bring an existing clone up to date."""
        local_path = self.get_repo_path(identity)
        if not local_path.exists():
            return self.clone_repo(identity)

        state = SyncState(working_copy=local_path)
        self.fetch_repo(local_path, state.outcome)
        state.up_to_date = self.update_repo(local_path, state.outcome)
        if not state.errored:
            status = "up to date" if state.up_to_date else "updated"
            console.print(f"  [green]✓[/green] {identity.organization}/{identity.repository} {status}")
        return state

    def clone_repo(self, identity: RepoIdentity) -> SyncState:
        """Clone a repository into its working-copy path."""
        local_path = self.get_repo_path(identity)
        state = SyncState(working_copy=local_path, cloned=True)

        # Create parent directories
        local_path.parent.mkdir(parents=True, exist_ok=True)

        result = self.runner.run(["git", "clone", identity.url, str(local_path)])
        if result.ok:
            console.print(f"  [green]✓[/green] Cloned {identity.url}")
        else:
            state.outcome.record_command(result)
            console.print(f"  [red]✗[/red] {identity.url}: {result.stderr.strip()}")
        return state

    def fetch_repo(self, local_path: Path, outcome: Outcome) -> None:
        """Fetch, then fetch again pruning deleted remote branches."""
        for args in (["git", "fetch"], ["git", "fetch", "-p"]):
            self._run(args, local_path, outcome)

    def update_repo(self, local_path: Path, outcome: Outcome) -> bool:
        """Check out and pull the remote default branch.

        Returns True when the pull reported nothing new.
        """
        self._run(["git", "remote", "set-head", "origin", "--auto"], local_path, outcome)

        branch = self.default_branch(local_path, outcome)
        logger.debug("resolved default branch %r for %s", branch, local_path)
        if not branch:
            return False

        self._run(["git", "checkout", branch], local_path, outcome)
        result = self._run(["git", "pull", "origin", branch], local_path, outcome)
        up_to_date = result.ok and is_up_to_date(result.stdout)
        logger.debug("pull of %s up to date: %s", branch, up_to_date)
        return up_to_date

    def default_branch(self, local_path: Path, outcome: Outcome) -> str:
        """Read the branch that refs/remotes/origin/HEAD points to."""
        result = self._run(
            ["git", "symbolic-ref", "--short", "refs/remotes/origin/HEAD"],
            local_path,
            outcome,
        )
        if not result.ok:
            return ""
        return result.stdout.replace("origin/", "", 1).strip()

    def cleanup_repo(
        self,
        identity: RepoIdentity,
        force: bool = False,
        threshold_mb: float = 200.0,
    ) -> bool:
        """Remove the working copy if it is small enough to be disposable."""
        local_path = self.get_repo_path(identity)
        removed = cleanup_working_copy(local_path, force=force, threshold_mb=threshold_mb)
        if removed:
            console.print(f"  [yellow]-[/yellow] Removed {local_path}")
        return removed

    def _run(self, args: list[str], cwd: Path, outcome: Outcome) -> CommandResult:
        result = self.runner.run(args, cwd=cwd)
        if not result.ok:
            outcome.record_command(result)
        return result


def is_up_to_date(pull_output: str) -> bool:
    """Whether ``git pull`` stdout reports that nothing was merged."""
    return any(line.strip() in UP_TO_DATE_MARKERS for line in pull_output.splitlines())
