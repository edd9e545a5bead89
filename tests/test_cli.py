from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from dotsetup.cli import app
from dotsetup.errors import StepFailedError, UnsupportedPlatformError
from dotsetup.models import StepOutcome, StepResult
from fakes import FakeFetcher

runner = CliRunner()


class DummyBootstrapper:
    def __init__(self, results=None, exc: Exception | None = None) -> None:  # noqa: ANN001
        self.results = results or []
        self.exc = exc
        self.fetcher = FakeFetcher()

    def run(self):  # noqa: ANN201
        if self.exc is not None:
            raise self.exc
        return self.results


def test_cli_prints_results_and_next_steps(monkeypatch: pytest.MonkeyPatch) -> None:
    results = [
        StepResult(step="backup", outcome=StepOutcome.SKIPPED, details="No existing dotfiles found to back up"),
        StepResult(step="link", outcome=StepOutcome.APPLIED, details="3 link(s) created"),
    ]
    monkeypatch.setattr("dotsetup.cli._load_bootstrapper", lambda _config, _repo: DummyBootstrapper(results))

    result = runner.invoke(app, [])

    assert result.exit_code == 0
    assert "applied" in result.stdout
    assert "skipped" in result.stdout
    assert "Dotfiles setup complete!" in result.stdout
    assert ":PlugInstall" in result.stdout


def test_cli_unsupported_platform_exits_nonzero(monkeypatch: pytest.MonkeyPatch) -> None:
    dummy = DummyBootstrapper(exc=UnsupportedPlatformError("Unsupported OS: msys"))
    monkeypatch.setattr("dotsetup.cli._load_bootstrapper", lambda _config, _repo: dummy)

    result = runner.invoke(app, [])

    assert result.exit_code == 1
    assert "Unsupported OS: msys" in result.stdout
    assert "setup complete" not in result.stdout


def test_cli_step_failure_exits_nonzero(monkeypatch: pytest.MonkeyPatch) -> None:
    dummy = DummyBootstrapper(exc=StepFailedError("vim-plug", "unable to download vim-plug", "404 Not Found"))
    monkeypatch.setattr("dotsetup.cli._load_bootstrapper", lambda _config, _repo: dummy)

    result = runner.invoke(app, [])

    assert result.exit_code == 1
    assert "unable to download vim-plug" in result.stdout
    assert "run dotsetup again" in result.stdout


def test_cli_handles_permission_error(monkeypatch: pytest.MonkeyPatch) -> None:
    dummy = DummyBootstrapper(exc=PermissionError("mocked"))
    monkeypatch.setattr("dotsetup.cli._load_bootstrapper", lambda _config, _repo: dummy)

    result = runner.invoke(app, [])

    assert result.exit_code == 1
    assert "Permission denied" in result.stdout


def test_cli_missing_config_file(tmp_path: Path, fake_home: Path, repo: Path) -> None:
    result = runner.invoke(app, ["--repo", str(repo), "--config", str(tmp_path / "missing.toml")])

    assert result.exit_code == 1
    assert "Pass --config only when the file exists" in result.stdout


def test_cli_passes_repo_and_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    seen: dict[str, object] = {}

    def fake_load(config, repo):  # noqa: ANN001, ANN202
        seen["config"] = config
        seen["repo"] = repo
        return DummyBootstrapper()

    monkeypatch.setattr("dotsetup.cli._load_bootstrapper", fake_load)
    config_path = tmp_path / "dotsetup.toml"

    result = runner.invoke(app, ["--repo", str(tmp_path), "--config", str(config_path)])

    assert result.exit_code == 0
    assert seen == {"config": config_path, "repo": tmp_path}


def test_cli_run_from_home_leaves_dotfiles_in_place(monkeypatch: pytest.MonkeyPatch, fake_home: Path) -> None:
    (fake_home / ".gitconfig").write_text("[user]\nname=Alice\n")
    (fake_home / ".zshrc").write_text("export EDITOR=vim\n")
    monkeypatch.chdir(fake_home)

    result = runner.invoke(app, [])

    assert result.exit_code == 1
    assert "point --repo at it" in result.stdout
    assert "setup complete" not in result.stdout
    assert (fake_home / ".gitconfig").read_text() == "[user]\nname=Alice\n"
    assert (fake_home / ".zshrc").read_text() == "export EDITOR=vim\n"
    assert sorted(p.name for p in fake_home.iterdir()) == [".gitconfig", ".zshrc"]
