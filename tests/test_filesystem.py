from __future__ import annotations

import os
from pathlib import Path

import pytest

from dotsetup.filesystem import (
    ensure_parent,
    ensure_symlink,
    is_present,
    move_into,
    remove_empty_dir,
    symlink_points_to,
)


def test_ensure_symlink_creates_absolute_link(tmp_path: Path) -> None:
    target = tmp_path / "target.txt"
    target.write_text("value\n")
    link = tmp_path / "nested" / "link.txt"

    changed = ensure_symlink(link, target)

    assert changed is True
    assert link.is_symlink()
    assert Path(os.readlink(link)) == target.resolve()
    assert symlink_points_to(link, target)

    assert ensure_symlink(link, target) is False


def test_ensure_symlink_replaces_file_and_stale_link(tmp_path: Path) -> None:
    target = tmp_path / "target"
    target.write_text("new\n")
    other = tmp_path / "other"
    other.write_text("old\n")

    file_link = tmp_path / "file_link"
    file_link.write_text("plain file\n")
    assert ensure_symlink(file_link, target) is True
    assert file_link.read_text() == "new\n"

    stale_link = tmp_path / "stale_link"
    stale_link.symlink_to(other)
    assert ensure_symlink(stale_link, target) is True
    assert symlink_points_to(stale_link, target)


def test_ensure_symlink_refuses_directory(tmp_path: Path) -> None:
    target = tmp_path / "target"
    target.write_text("val\n")
    link = tmp_path / "link"
    link.mkdir()
    (link / "keep").write_text("data\n")

    with pytest.raises(IsADirectoryError):
        ensure_symlink(link, target)
    assert (link / "keep").exists()


def test_is_present_sees_dangling_symlink(tmp_path: Path) -> None:
    link = tmp_path / "dangling"
    link.symlink_to(tmp_path / "missing")

    assert not link.exists()
    assert is_present(link)
    assert not is_present(tmp_path / "absent")


def test_move_into_preserves_relative_layout(tmp_path: Path) -> None:
    home = tmp_path / "home"
    nested = home / ".config" / "ghostty" / "config"
    nested.parent.mkdir(parents=True)
    nested.write_text("font-size = 13\n")
    backup_root = tmp_path / "backup"

    record = move_into(nested, root=home, destination_root=backup_root)

    assert not nested.exists()
    assert record.backup == backup_root / ".config" / "ghostty" / "config"
    assert record.backup.read_text() == "font-size = 13\n"
    assert record.target == nested


def test_move_into_keeps_symlink_as_symlink(tmp_path: Path) -> None:
    home = tmp_path / "home"
    home.mkdir()
    real = tmp_path / "real"
    real.write_text("x\n")
    link = home / ".zshrc"
    link.symlink_to(real)

    record = move_into(link, root=home, destination_root=tmp_path / "backup")

    assert not is_present(link)
    assert record.backup.is_symlink()
    assert record.backup.resolve() == real.resolve()


def test_remove_empty_dir(tmp_path: Path) -> None:
    empty = tmp_path / "empty"
    empty.mkdir()
    full = tmp_path / "full"
    full.mkdir()
    (full / "file").write_text("x")

    assert remove_empty_dir(empty) is True
    assert not empty.exists()
    assert remove_empty_dir(full) is False
    assert full.exists()


def test_ensure_parent(tmp_path: Path) -> None:
    target = tmp_path / "deep" / "file.txt"
    ensure_parent(target)
    assert target.parent.exists()
