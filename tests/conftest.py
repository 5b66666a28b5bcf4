"""Shared test fixtures."""

from pathlib import Path

import pytest

from repostats.config import Settings
from repostats.crawler.models import CommandResult


CLOC_OUTPUT = """\
       3 text files.
       3 unique files.
       0 files ignored.

github.com/AlDanial/cloc v 1.96  T=0.01 s (300.0 files/s, 30000.0 lines/s)
-------------------------------------------------------------------------------
Language                     files          blank        comment           code
-------------------------------------------------------------------------------
Go                              10             50             20            500
Bourne Shell                     2              4              6             30
-------------------------------------------------------------------------------
SUM:                            12             54             26            530
-------------------------------------------------------------------------------
"""


class FakeRunner:
    """Records commands and answers them from a table of canned results.

    Keys are command prefixes; the longest matching prefix wins. Unmatched
    commands succeed with empty output. ``on_clone`` lets a test create the
    working copy the way ``git clone`` would.
    """

    def __init__(self, responses=None, on_clone=None):
        self.responses = {tuple(k): v for k, v in (responses or {}).items()}
        self.on_clone = on_clone
        self.calls: list[tuple[tuple[str, ...], Path | None]] = []

    @property
    def commands(self) -> list[tuple[str, ...]]:
        return [args for args, _ in self.calls]

    def run(self, args, cwd=None):
        argv = tuple(str(a) for a in args)
        self.calls.append((argv, cwd))
        if argv[:2] == ("git", "clone") and self.on_clone:
            self.on_clone(Path(argv[-1]))

        best = None
        for prefix, response in self.responses.items():
            if argv[: len(prefix)] == prefix and (best is None or len(prefix) > len(best[0])):
                best = (prefix, response)
        if best is None:
            return CommandResult(args=argv, returncode=0)
        response = best[1]
        if isinstance(response, str):
            return CommandResult(args=argv, returncode=0, stdout=response)
        return CommandResult(
            args=argv,
            returncode=response.returncode,
            stdout=response.stdout,
            stderr=response.stderr,
        )


def failed(stderr: str = "fatal: boom", returncode: int = 128) -> CommandResult:
    return CommandResult(args=(), returncode=returncode, stderr=stderr)


@pytest.fixture
def settings(tmp_path):
    """Settings rooted in a temporary directory."""
    return Settings(
        repos_path=tmp_path / "repositories",
        cache_path=tmp_path / "cache",
        skip_cleanup=True,
    )


@pytest.fixture
def cloc_output():
    return CLOC_OUTPUT
