"""Backup directory bookkeeping for dotsetup."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from .filesystem import move_into, remove_empty_dir
from .models import BackupRecord


def backup_dir_name(prefix: str, started_at: datetime) -> str:
    return f"{prefix}_{started_at:%Y%m%d_%H%M%S}"


class BackupDirectory:
    """A timestamped directory that receives displaced dotfiles.

    The directory is only created when the first entry is moved into it, so a run
    with nothing to back up leaves no trace on disk. Its contents mirror the
    home-relative layout of the moved targets and nothing else.
    """

    def __init__(self, home: Path, prefix: str, started_at: datetime) -> None:
        self.home = home
        self.path = home / backup_dir_name(prefix, started_at)
        self._records: list[BackupRecord] = []

    @property
    def records(self) -> tuple[BackupRecord, ...]:
        return tuple(self._records)

    def move(self, target: Path) -> BackupRecord:
        self.path.mkdir(parents=True, exist_ok=True)
        record = move_into(target, root=self.home, destination_root=self.path)
        self._records.append(record)
        return record

    def finalize(self) -> Path | None:
        """Return the backup location, or drop the directory if nothing was moved."""

        if not self._records:
            if self.path.exists():
                remove_empty_dir(self.path)
            return None
        return self.path
