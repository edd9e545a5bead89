"""Adapters for the native package managers dotsetup installs through."""

from __future__ import annotations

from typing import ClassVar, Sequence

from .models import CommandResult
from .tools import CommandRunner


class PackageManager:
    """Installs packages by name through a native tool."""

    name: ClassVar[str]
    command: ClassVar[str]
    packages: ClassVar[tuple[str, ...]]

    def __init__(self, runner: CommandRunner) -> None:
        self.runner = runner

    def is_available(self) -> bool:
        return self.runner.which(self.command) is not None

    def install(self, packages: Sequence[str]) -> CommandResult:
        raise NotImplementedError

    def _run_all(self, *commands: Sequence[str]) -> CommandResult:
        result = CommandResult(argv=(), returncode=0)
        for argv in commands:
            result = self.runner.run(argv, capture=False)
            if not result.ok:
                return result
        return result


class Homebrew(PackageManager):
    name = "homebrew"
    command = "brew"
    packages = ("git", "vim", "zsh", "fzf", "ripgrep")

    def install(self, packages: Sequence[str]) -> CommandResult:
        return self._run_all(["brew", "install", *packages])

    def has_cask(self, cask: str) -> bool:
        return self.runner.run(["brew", "list", "--cask", cask]).ok

    def install_cask(self, cask: str) -> CommandResult:
        return self._run_all(["brew", "install", "--cask", cask])


class Apt(PackageManager):
    name = "apt"
    command = "apt-get"
    packages = ("git", "vim", "zsh", "curl", "wget")

    def install(self, packages: Sequence[str]) -> CommandResult:
        return self._run_all(
            ["sudo", "apt-get", "update"],
            ["sudo", "apt-get", "install", "-y", *packages],
        )


class Yum(PackageManager):
    name = "yum"
    command = "yum"
    packages = ("git", "vim", "zsh", "curl", "wget")

    def install(self, packages: Sequence[str]) -> CommandResult:
        return self._run_all(["sudo", "yum", "install", "-y", *packages])


class Pacman(PackageManager):
    name = "pacman"
    command = "pacman"
    packages = ("git", "vim", "zsh", "curl", "wget", "fzf")

    def install(self, packages: Sequence[str]) -> CommandResult:
        return self._run_all(["sudo", "pacman", "-Sy", "--noconfirm", *packages])


# Checked in this order; the first one on PATH wins.
LINUX_MANAGERS: tuple[type[PackageManager], ...] = (Apt, Yum, Pacman)


def detect_linux_manager(runner: CommandRunner) -> PackageManager | None:
    for manager_cls in LINUX_MANAGERS:
        manager = manager_cls(runner)
        if manager.is_available():
            return manager
    return None
