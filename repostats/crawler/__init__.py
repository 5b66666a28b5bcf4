"""Repository identity, synchronization and retention."""

from .models import CommandResult, Outcome, RepoIdentity, SyncState
from .identity import MalformedURLError, resolve_identity
from .commands import CommandRunner
from .repo_manager import RepoManager

__all__ = [
    "CommandResult",
    "CommandRunner",
    "MalformedURLError",
    "Outcome",
    "RepoIdentity",
    "RepoManager",
    "SyncState",
    "resolve_identity",
]
