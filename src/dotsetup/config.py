"""TOML configuration loading for dotsetup."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Mapping, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .models import ManagedFile

DEFAULT_CONFIG_FILENAME = "dotsetup.toml"
KNOWN_SECTIONS = frozenset({"files"})

DEFAULT_MANAGED_FILES: tuple[ManagedFile, ...] = (
    ManagedFile(Path(".vimrc"), Path(".vimrc")),
    ManagedFile(Path(".zshrc"), Path(".zshrc")),
    ManagedFile(Path(".gitconfig"), Path(".gitconfig")),
    ManagedFile(Path("ghostty"), Path(".config/ghostty/config")),
)


class ConfigError(RuntimeError):
    """Raised when a configuration file cannot be parsed or validated."""


def _expand_path(raw: str | os.PathLike[str] | Path, *, base_dir: Path) -> Path:
    """Return an absolute ``Path`` by expanding env vars and user segments."""

    text = str(raw)
    expanded = Path(os.path.expandvars(text)).expanduser()
    if expanded.is_absolute():
        return expanded.resolve(strict=False)
    return (base_dir / expanded).resolve(strict=False)


def _relative_entry(raw: Any, *, field: str) -> Path:
    candidate = Path(str(raw))
    if candidate.is_absolute():
        raise ConfigError(f"Managed file {field} '{candidate}' must be a relative path")
    if ".." in candidate.parts:
        raise ConfigError(f"Managed file {field} '{candidate}' must not escape its root")
    return candidate


class Settings(BaseModel):
    """Global configuration options."""

    model_config = ConfigDict(frozen=True)

    home: Path
    repo_dir: Path
    zsh_custom: Path

    @classmethod
    def from_environ(cls, environ: Mapping[str, str], *, repo_dir: Path) -> "Settings":
        home = Path.home()
        zsh_custom_raw = environ.get("ZSH_CUSTOM")
        zsh_custom = (
            _expand_path(zsh_custom_raw, base_dir=home)
            if zsh_custom_raw
            else home / ".oh-my-zsh" / "custom"
        )
        return cls(home=home, repo_dir=repo_dir, zsh_custom=zsh_custom)

    @property
    def plugins_dir(self) -> Path:
        return self.zsh_custom / "plugins"


class Config(BaseModel):
    """Fully resolved configuration for a run."""

    model_config = ConfigDict(frozen=True)

    config_path: Path | None = None
    settings: Settings
    files: tuple[ManagedFile, ...] = Field(default=DEFAULT_MANAGED_FILES)


def load_config(
    path: Path | None = None,
    *,
    repo_dir: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Load the configuration for a dotfiles checkout.

    Args:
        path: Optional path to a TOML file (or a directory holding
            ``dotsetup.toml``). When omitted, ``dotsetup.toml`` in ``repo_dir`` is
            used if present and the built-in defaults otherwise.
        repo_dir: The dotfiles checkout. Defaults to the current working directory.
        environ: Environment mapping; defaults to ``os.environ``.

    Raises:
        ConfigError: If the file is missing or invalid, or ``repo_dir`` is the home
            directory or holds none of the managed sources.
    """

    repo = (repo_dir or Path.cwd()).resolve(strict=False)
    env = os.environ if environ is None else environ
    config_path = _resolve_config_path(path, repo)

    data: dict[str, Any] = {}
    if config_path is not None:
        try:
            with config_path.open("rb") as handle:
                data = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Unable to parse '{config_path}': {exc}") from exc

    unknown = sorted(set(data) - KNOWN_SECTIONS)
    if unknown:
        raise ConfigError(f"Unknown configuration section(s) in '{config_path}': {', '.join(unknown)}")

    settings = Settings.from_environ(env, repo_dir=repo)
    files = _parse_files(data.get("files"))
    _check_checkout(repo, files, home=settings.home)

    return Config(config_path=config_path, settings=settings, files=files)


def _check_checkout(repo: Path, files: Sequence[ManagedFile], *, home: Path) -> None:
    """Refuse a repository directory that would back up dotfiles without relinking them."""

    if repo == home.resolve(strict=False):
        raise ConfigError(f"'{repo}' is the home directory, not a dotfiles checkout")
    if not any(managed.source_path(repo).exists() for managed in files):
        names = ", ".join(managed.source.as_posix() for managed in files)
        raise ConfigError(f"'{repo}' is not a dotfiles checkout: none of {names} found")


def _parse_files(raw: Sequence[Mapping[str, Any]] | None) -> tuple[ManagedFile, ...]:
    if raw is None:
        return DEFAULT_MANAGED_FILES
    if not raw:
        raise ConfigError("Configuration must list at least one [[files]] entry when the table is present")

    files: list[ManagedFile] = []
    seen: set[Path] = set()
    for item in raw:
        if "source" not in item or "target" not in item:
            raise ConfigError("Each [[files]] entry needs both 'source' and 'target'")
        managed = ManagedFile(
            source=_relative_entry(item["source"], field="source"),
            target=_relative_entry(item["target"], field="target"),
        )
        if managed.target in seen:
            raise ConfigError(f"Managed file target '{managed.target}' is listed twice")
        seen.add(managed.target)
        files.append(managed)
    return tuple(files)


def _resolve_config_path(path: Path | None, repo_dir: Path) -> Path | None:
    if path is None:
        candidate = repo_dir / DEFAULT_CONFIG_FILENAME
        return candidate if candidate.is_file() else None

    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Configuration file '{path}' does not exist")
    if path.is_dir():
        candidate = path / DEFAULT_CONFIG_FILENAME
        if not candidate.exists():
            raise ConfigError(f"Expected to find '{DEFAULT_CONFIG_FILENAME}' inside '{path}', but none was located")
        path = candidate

    return path.resolve(strict=False)
