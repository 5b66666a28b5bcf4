"""Shared data models for repository synchronization."""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class RepoIdentity:
    """Organization/repository pair derived from a remote URL."""
    url: str
    organization: str
    repository: str


@dataclass(frozen=True)
class CommandResult:
    """Structured result of one external command."""
    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def command(self) -> str:
        return " ".join(self.args)


@dataclass
class Outcome:
    """Failures accumulated across best-effort stages.

    Failures are only ever appended, so once a stage has errored the
    outcome stays errored for the rest of the run.
    """
    failures: list[str] = field(default_factory=list)

    @property
    def errored(self) -> bool:
        return bool(self.failures)

    def record(self, failure: str) -> None:
        self.failures.append(failure)

    def record_command(self, result: CommandResult) -> None:
        detail = result.stderr.strip() or f"exit status {result.returncode}"
        self.record(f"error executing {result.command}: {detail}")

    def merge(self, other: "Outcome") -> "Outcome":
        return Outcome(failures=[*self.failures, *other.failures])


@dataclass
class SyncState:
    """Result of bringing a working copy up to date."""
    working_copy: Path
    up_to_date: bool = False
    cloned: bool = False
    outcome: Outcome = field(default_factory=Outcome)

    @property
    def errored(self) -> bool:
        return self.outcome.errored
