from __future__ import annotations

from pathlib import Path

import pytest

from dotsetup.config import Config, load_config
from dotsetup.models import Platform
from dotsetup.steps import BootstrapContext
from fakes import STARTED_AT, FakeFetcher, FakeGit, FakeRunner


@pytest.fixture
def fake_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    monkeypatch.delenv("ZSH_CUSTOM", raising=False)
    return home


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    repo_dir = tmp_path / "dotfiles"
    repo_dir.mkdir()
    (repo_dir / ".vimrc").write_text("set number\n")
    (repo_dir / ".zshrc").write_text("export EDITOR=vim\n")
    (repo_dir / ".gitconfig").write_text("[user]\nname=Repo\n")
    return repo_dir


@pytest.fixture
def config(fake_home: Path, repo: Path) -> Config:
    return load_config(repo_dir=repo, environ={})


@pytest.fixture
def linux_runner(fake_home: Path) -> FakeRunner:
    return FakeRunner(
        environ={"OSTYPE": "linux-gnu", "SHELL": "/usr/bin/zsh", "PATH": "/usr/bin"},
        tools={"apt-get", "zsh", "git"},
    )


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def git() -> FakeGit:
    return FakeGit()


@pytest.fixture
def make_context(config: Config, linux_runner: FakeRunner, fetcher: FakeFetcher, git: FakeGit):
    def _make(platform: Platform = Platform.LINUX, runner: FakeRunner | None = None) -> BootstrapContext:
        return BootstrapContext(
            config=config,
            platform=platform,
            runner=runner or linux_runner,  # type: ignore[arg-type]
            fetcher=fetcher,  # type: ignore[arg-type]
            git=git,  # type: ignore[arg-type]
            started_at=STARTED_AT,
        )

    return _make
