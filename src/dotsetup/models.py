"""Shared models and enums for dotsetup."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class Platform(str, Enum):
    """Host platforms dotsetup knows how to provision."""

    MACOS = "macos"
    LINUX = "linux"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True, slots=True)
class ManagedFile:
    """A repository file exposed in the home directory through a symlink."""

    source: Path
    target: Path

    def source_path(self, repo_dir: Path) -> Path:
        return repo_dir / self.source

    def target_path(self, home: Path) -> Path:
        return home / self.target


@dataclass(frozen=True, slots=True)
class BackupRecord:
    """A managed target that was moved into the backup directory."""

    target: Path
    backup: Path


class StepOutcome(str, Enum):
    """Outcome of a single provisioning step."""

    APPLIED = "applied"
    SKIPPED = "skipped"
    WARNED = "warned"


@dataclass(frozen=True, slots=True)
class StepResult:
    """Result emitted by the orchestrator for each step."""

    step: str
    outcome: StepOutcome
    details: str | None = None


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Captured outcome of an external command."""

    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Outcome of an HTTP download."""

    url: str
    destination: Path | None
    ok: bool
    error: str | None = None
    content: str | None = None
