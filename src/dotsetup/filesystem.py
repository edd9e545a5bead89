"""Filesystem helpers for dotsetup."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from .models import BackupRecord


def ensure_parent(path: Path) -> None:
    """Ensure the parent directory exists."""

    path.parent.mkdir(parents=True, exist_ok=True)


def is_present(path: Path) -> bool:
    """Return ``True`` if anything, including a dangling symlink, occupies ``path``."""

    return path.exists() or path.is_symlink()


def symlink_points_to(link: Path, target: Path) -> bool:
    """Return ``True`` if ``link`` is a symlink resolving to ``target``."""

    if not link.is_symlink():
        return False
    current = Path(os.readlink(link))
    current_resolved = (link.parent / current).resolve(strict=False)
    target_resolved = target.resolve(strict=False)
    return current_resolved == target_resolved


def ensure_symlink(link: Path, target: Path) -> bool:
    """Point ``link`` at ``target``, replacing any file or symlink already there.

    Returns ``True`` if a change was made. Real directories are never removed;
    ``IsADirectoryError`` is raised instead.
    """

    if is_present(link):
        if link.is_symlink():
            if symlink_points_to(link, target):
                return False
            link.unlink()
        elif link.is_dir():
            raise IsADirectoryError(f"'{link}' is a directory; refusing to replace it with a symlink")
        else:
            link.unlink()

    ensure_parent(link)
    link.symlink_to(target.resolve(strict=False))
    return True


def move_into(path: Path, *, root: Path, destination_root: Path) -> BackupRecord:
    """Move ``path`` below ``destination_root`` keeping its layout relative to ``root``."""

    destination = destination_root / path.relative_to(root)
    ensure_parent(destination)
    shutil.move(str(path), str(destination))
    return BackupRecord(target=path, backup=destination)


def remove_empty_dir(path: Path) -> bool:
    """Remove ``path`` if it is an empty directory. Returns ``True`` if removed."""

    if path.is_dir() and not path.is_symlink() and not any(path.iterdir()):
        path.rmdir()
        return True
    return False
