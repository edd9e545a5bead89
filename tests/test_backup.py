from __future__ import annotations

from pathlib import Path

from dotsetup.backup import BackupDirectory, backup_dir_name
from fakes import STARTED_AT


def test_backup_dir_name_uses_start_time() -> None:
    assert backup_dir_name("dotfiles_backup", STARTED_AT) == "dotfiles_backup_20240501_123045"


def test_directory_created_lazily_and_dropped_when_unused(fake_home: Path) -> None:
    backup = BackupDirectory(fake_home, "dotfiles_backup", STARTED_AT)

    assert not backup.path.exists()
    assert backup.finalize() is None
    assert not backup.path.exists()


def test_backup_holds_only_the_moved_entries(fake_home: Path, tmp_path: Path) -> None:
    (fake_home / ".zshrc").write_text("plain\n")
    real = tmp_path / "vimrc"
    real.write_text("x\n")
    (fake_home / ".vimrc").symlink_to(real)
    backup = BackupDirectory(fake_home, "dotfiles_backup", STARTED_AT)

    backup.move(fake_home / ".zshrc")
    backup.move(fake_home / ".vimrc")
    location = backup.finalize()

    assert location == backup.path
    assert sorted(p.name for p in backup.path.iterdir()) == [".vimrc", ".zshrc"]
    assert [record.target for record in backup.records] == [fake_home / ".zshrc", fake_home / ".vimrc"]
    assert (backup.path / ".vimrc").is_symlink()
