"""Per-organization JSON cache of repository line counts."""

import fcntl
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, Mapping

from pydantic import ValidationError

from ..crawler.models import Outcome
from .models import CacheRecord, LanguageStat

logger = logging.getLogger(__name__)

DEFAULT_FILE_NAME = "stats.json"


class StatsCache:
    """Maps repository name to its last known :class:`CacheRecord`.

    One file per organization directory. Reads and writes take an exclusive
    lock on a sidecar ``.lock`` file, and writes merge this process's
    records into whatever is on disk at that moment, so invocations for
    different repositories of one organization do not drop each other's
    entries. Entries that fail validation are left out of :attr:`records`
    but written back verbatim, unless they belong to the repository being
    loaded, which is reset to an empty record.
    """

    def __init__(self, directory: Path | str, file_name: str = DEFAULT_FILE_NAME):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.path = self.directory / file_name
        self.lock_path = self.directory / f"{file_name}.lock"

        self._records: dict[str, CacheRecord] = {}
        self._dirty: set[str] = set()

    @property
    def records(self) -> Mapping[str, CacheRecord]:
        return MappingProxyType(self._records)

    def load(self, repository: str) -> Outcome:
        """Load the cache, making sure ``repository`` has an entry.

        A missing or corrupt file is replaced by one holding an empty
        record for ``repository``.
        """
        outcome = Outcome()
        with self._locked():
            records, unparsed, healthy = self._read()
            self._records = records
            self._dirty = set()
            if repository not in self._records:
                self._records[repository] = CacheRecord()
                healthy = False
            if not healthy:
                self._write(self._records, unparsed, outcome)

        logger.debug("%s: %s", self.path, {k: v.to_json() for k, v in self._records.items()})
        return outcome

    def get(self, repository: str) -> CacheRecord | None:
        return self._records.get(repository)

    def update(
        self,
        repository: str,
        *,
        line_count: int,
        language_stats: list[LanguageStat],
        timestamp: str | None,
    ) -> bool:
        """Replace the record for ``repository``; no-op if it was never loaded."""
        if repository not in self._records:
            return False
        self._records[repository] = CacheRecord(
            line_count=line_count,
            language_stats=list(language_stats),
            timestamp=timestamp,
        )
        self._dirty.add(repository)
        return True

    def persist(self) -> Outcome:
        """Write updated records back, keeping entries other writers added."""
        outcome = Outcome()
        with self._locked():
            on_disk, unparsed, _ = self._read()
            for repository in self._dirty:
                on_disk[repository] = self._records[repository]
            for repository, record in self._records.items():
                on_disk.setdefault(repository, record)
            if self._write(on_disk, unparsed, outcome):
                self._records = on_disk
                self._dirty = set()
        return outcome

    # ------------------------------------------------------------------
    # Internal helpers

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with open(self.lock_path, "a") as handle:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

    def _read(self) -> tuple[dict[str, CacheRecord], dict[str, object], bool]:
        """Parse the cache file.

        Returns the valid records, the raw entries that failed validation,
        and whether the file was present and well-formed.
        """
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}, {}, False
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("cannot read JSON file %s: %s", self.path, e)
            return {}, {}, False
        if not isinstance(data, dict):
            logger.warning("cannot read JSON file %s: root is not an object", self.path)
            return {}, {}, False

        records: dict[str, CacheRecord] = {}
        unparsed: dict[str, object] = {}
        for repository, raw in data.items():
            try:
                records[repository] = CacheRecord.model_validate(raw)
            except ValidationError as e:
                logger.warning("ignoring invalid cache entry %s in %s: %s", repository, self.path, e)
                unparsed[repository] = raw
        return records, unparsed, True

    def _write(
        self,
        records: Mapping[str, CacheRecord],
        unparsed: Mapping[str, object],
        outcome: Outcome,
    ) -> bool:
        payload = {name: raw for name, raw in unparsed.items() if name not in records}
        payload.update((name, record.to_json()) for name, record in records.items())
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=self.directory, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(payload, handle, indent=1)
                os.chmod(tmp_name, 0o644)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error("cannot write JSON object to %s: %s", self.path, e)
            outcome.record(f"cannot write JSON object to {self.path}: {e}")
            return False
        return True
