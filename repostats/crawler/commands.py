"""Run external command-line programs and capture their results."""

import logging
import os
import subprocess
from pathlib import Path
from typing import Protocol, Sequence

from .models import CommandResult

logger = logging.getLogger(__name__)

# Exit status reported when a program could not be started at all
NOT_STARTED = 127


class Runner(Protocol):
    """Anything that can execute a command and report a CommandResult."""

    def run(self, args: Sequence[str], cwd: Path | None = None) -> CommandResult:
        ...


class CommandRunner:
    """Runs commands through subprocess with a non-localized environment.

    Commands block until they finish; there is no timeout.
    """

    def __init__(self, env: dict[str, str] | None = None):
        base = dict(os.environ if env is None else env)
        base["LANG"] = "C"
        base["HOME"] = base.get("HOME", os.path.expanduser("~"))
        self.env = base

    def run(self, args: Sequence[str], cwd: Path | None = None) -> CommandResult:
        """Execute ``args`` and return its exit status and output."""
        argv = tuple(str(a) for a in args)
        try:
            completed = subprocess.run(
                argv,
                cwd=str(cwd) if cwd is not None else None,
                env=self.env,
                capture_output=True,
                text=True,
                errors="replace",
            )
        except OSError as e:
            result = CommandResult(args=argv, returncode=NOT_STARTED, stderr=str(e))
        else:
            result = CommandResult(
                args=argv,
                returncode=completed.returncode,
                stdout=completed.stdout or "",
                stderr=completed.stderr or "",
            )

        logger.debug("executed %s -> %d", result.command, result.returncode)
        if result.stdout:
            logger.debug("stdout: %s", result.stdout.rstrip())
        if not result.ok:
            logger.error("error executing %s: %s", result.command, result.stderr.strip())
        return result
