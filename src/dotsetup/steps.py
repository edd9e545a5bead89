"""Idempotent provisioning steps.

Every step answers ``is_needed`` from the current state of the machine before
``apply`` mutates anything, so the whole list can be re-run after a partial or
complete previous run.
"""

from __future__ import annotations

import platform as host
import tempfile
import zipfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol

from . import output
from .backup import BackupDirectory
from .config import Config, Settings
from .errors import StepFailedError
from .filesystem import ensure_symlink, is_present, symlink_points_to
from .models import CommandResult, FetchResult, ManagedFile, Platform, StepOutcome, StepResult
from .packages import Homebrew, PackageManager, detect_linux_manager
from .tools import CommandRunner, Fetcher, GitCloner

HOMEBREW_INSTALL_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"
HOMEBREW_ARM_BIN = Path("/opt/homebrew/bin")
OH_MY_ZSH_INSTALL_URL = "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"
FZF_REPO_URL = "https://github.com/junegunn/fzf.git"
NERD_FONT_URL = "https://github.com/ryanoasis/nerd-fonts/releases/latest/download/IBMPlexMono.zip"
NERD_FONT_FAMILY = "blex"
VIM_PLUG_URL = "https://raw.githubusercontent.com/junegunn/vim-plug/master/plug.vim"
SHELLS_FILE = Path("/etc/shells")
BACKUP_PREFIX = "dotfiles_backup"
TARGET_SHELL = "zsh"


@dataclass(frozen=True, slots=True)
class ShellPlugin:
    name: str
    url: str
    depth: int | None = None


ZSH_PLUGINS: tuple[ShellPlugin, ...] = (
    ShellPlugin("zsh-autosuggestions", "https://github.com/zsh-users/zsh-autosuggestions.git"),
    ShellPlugin("zsh-syntax-highlighting", "https://github.com/zsh-users/zsh-syntax-highlighting.git"),
    ShellPlugin("fast-syntax-highlighting", "https://github.com/zdharma-continuum/fast-syntax-highlighting.git"),
    ShellPlugin("zsh-autocomplete", "https://github.com/marlonrichert/zsh-autocomplete.git", depth=1),
)


@dataclass
class BootstrapContext:
    """Everything a step may read or drive during one run."""

    config: Config
    platform: Platform
    runner: CommandRunner
    fetcher: Fetcher
    git: GitCloner
    started_at: datetime

    @property
    def settings(self) -> Settings:
        return self.config.settings

    @property
    def home(self) -> Path:
        return self.config.settings.home


class Step(Protocol):
    name: str
    description: str

    def is_needed(self, ctx: BootstrapContext) -> bool:
        ...

    def skip_message(self, ctx: BootstrapContext) -> str:
        ...

    def apply(self, ctx: BootstrapContext) -> StepResult:
        ...


class BaseStep:
    """Defaults shared by the concrete steps."""

    name = "step"
    description = ""

    def is_needed(self, ctx: BootstrapContext) -> bool:
        return True

    def skip_message(self, ctx: BootstrapContext) -> str:
        return f"{self.name} already done"

    def _result(self, outcome: StepOutcome, details: str | None = None) -> StepResult:
        return StepResult(step=self.name, outcome=outcome, details=details)

    def _require(self, result: CommandResult | FetchResult, message: str) -> None:
        if result.ok:
            return
        if isinstance(result, CommandResult):
            detail = result.stderr.strip() or f"exit status {result.returncode}"
        else:
            detail = result.error
        raise StepFailedError(self.name, message, detail)


# ----------------------------------------------------------------------
# Dotfiles


def _needs_backup(managed: ManagedFile, settings: Settings) -> bool:
    target = managed.target_path(settings.home)
    if not (target.is_file() or target.is_symlink()):
        return False
    return not symlink_points_to(target, managed.source_path(settings.repo_dir))


class BackupStep(BaseStep):
    name = "backup"
    description = "Backing up existing dotfiles"

    def is_needed(self, ctx: BootstrapContext) -> bool:
        return any(_needs_backup(managed, ctx.settings) for managed in ctx.config.files)

    def skip_message(self, ctx: BootstrapContext) -> str:
        return "No existing dotfiles found to back up"

    def apply(self, ctx: BootstrapContext) -> StepResult:
        backup = BackupDirectory(ctx.home, BACKUP_PREFIX, ctx.started_at)
        for managed in ctx.config.files:
            if not _needs_backup(managed, ctx.settings):
                continue
            backup.move(managed.target_path(ctx.home))
            output.success(f"Backed up {managed.target.as_posix()}")

        location = backup.finalize()
        if location is None:
            output.warning("No existing dotfiles found to back up")
            return self._result(StepOutcome.SKIPPED)

        count = len(backup.records)
        output.success(f"Backed up {count} file(s) to {location}")
        return self._result(StepOutcome.APPLIED, str(location))


class LinkStep(BaseStep):
    name = "link"
    description = "Creating symlinks"

    def apply(self, ctx: BootstrapContext) -> StepResult:
        changed = 0
        problems: list[str] = []

        for managed in ctx.config.files:
            source = managed.source_path(ctx.settings.repo_dir)
            target = managed.target_path(ctx.home)
            label = managed.target.as_posix()

            if not source.exists():
                message = f"{managed.source.as_posix()} not found in {ctx.settings.repo_dir}"
                output.warning(message)
                problems.append(message)
                continue

            try:
                made_change = ensure_symlink(target, source)
            except IsADirectoryError as exc:
                output.warning(str(exc))
                problems.append(str(exc))
                continue

            if made_change:
                changed += 1
                output.success(f"Linked {label}")
            else:
                output.success(f"{label} already linked")

        if problems:
            return self._result(StepOutcome.WARNED, "; ".join(problems))
        if changed:
            return self._result(StepOutcome.APPLIED, f"{changed} link(s) created")
        return self._result(StepOutcome.SKIPPED, "all links in place")


# ----------------------------------------------------------------------
# Packages


class HomebrewStep(BaseStep):
    name = "homebrew"
    description = "Checking for Homebrew"

    def __init__(self, machine: str | None = None) -> None:
        self.machine = machine

    def is_needed(self, ctx: BootstrapContext) -> bool:
        return ctx.runner.which(Homebrew.command) is None

    def skip_message(self, ctx: BootstrapContext) -> str:
        return "Homebrew already installed"

    def apply(self, ctx: BootstrapContext) -> StepResult:
        output.info("Installing Homebrew...")
        script = ctx.fetcher.fetch_text(HOMEBREW_INSTALL_URL)
        self._require(script, "unable to download the Homebrew installer")
        self._require(
            ctx.runner.run(["/bin/bash", "-c", script.content or ""], capture=False),
            "Homebrew installer failed",
        )

        machine = self.machine or host.machine()
        if machine == "arm64":
            ctx.runner.prepend_path(HOMEBREW_ARM_BIN)

        output.success("Homebrew installed")
        return self._result(StepOutcome.APPLIED)


class PackagesStep(BaseStep):
    name = "packages"
    description = "Installing essential tools"

    def resolve_manager(self, ctx: BootstrapContext) -> PackageManager | None:
        if ctx.platform is Platform.MACOS:
            return Homebrew(ctx.runner)
        return detect_linux_manager(ctx.runner)

    def apply(self, ctx: BootstrapContext) -> StepResult:
        manager = self.resolve_manager(ctx)
        if manager is None:
            message = "Unknown package manager. Please install git, vim, zsh, curl, wget manually."
            output.warning(message)
            return self._result(StepOutcome.WARNED, message)

        output.info(f"Using {manager.name} package manager...")
        packages = manager.packages
        self._require(manager.install(packages), f"{manager.name} could not install {', '.join(packages)}")
        output.success("Essential tools installed")
        return self._result(StepOutcome.APPLIED, f"{manager.name}: {' '.join(packages)}")


class CaskStep(BaseStep):
    """Installs a Homebrew cask unless Homebrew or the filesystem says it is present."""

    def __init__(self, label: str, cask: str, locations: tuple[str, ...]) -> None:
        self.label = label
        self.cask = cask
        self.locations = locations
        self.name = f"cask:{cask}"
        self.description = f"Installing {label}"

    def installed_locations(self, home: Path) -> list[Path]:
        paths: list[Path] = []
        for location in self.locations:
            if location.startswith("~/"):
                paths.append(home / location[2:])
            else:
                paths.append(Path(location))
        return paths

    def is_needed(self, ctx: BootstrapContext) -> bool:
        if Homebrew(ctx.runner).has_cask(self.cask):
            return False
        return not any(path.exists() for path in self.installed_locations(ctx.home))

    def skip_message(self, ctx: BootstrapContext) -> str:
        return f"{self.label} already installed"

    def apply(self, ctx: BootstrapContext) -> StepResult:
        self._require(Homebrew(ctx.runner).install_cask(self.cask), f"unable to install {self.cask}")
        output.success(f"{self.label} installed")
        return self._result(StepOutcome.APPLIED)


def blex_font_cask() -> CaskStep:
    return CaskStep(
        "BlexMono Nerd Font",
        "font-blex-mono-nerd-font",
        (
            "~/Library/Fonts/BlexMonoNerdFont-Regular.ttf",
            "/Library/Fonts/BlexMonoNerdFont-Regular.ttf",
        ),
    )


def ghostty_cask() -> CaskStep:
    return CaskStep(
        "Ghostty terminal",
        "ghostty",
        ("/Applications/Ghostty.app", "~/Applications/Ghostty.app"),
    )


class KeyRepeatStep(BaseStep):
    name = "key-repeat"
    description = "Configuring macOS settings"

    # normal minimums are 2 (30 ms) and 15 (225 ms)
    SETTINGS = (("KeyRepeat", 1), ("InitialKeyRepeat", 10))

    def apply(self, ctx: BootstrapContext) -> StepResult:
        for key, value in self.SETTINGS:
            self._require(
                ctx.runner.run(["defaults", "write", "-g", key, "-int", str(value)]),
                f"unable to set {key}",
            )
        output.success("Set faster key repeat rates")
        return self._result(StepOutcome.APPLIED)


class FzfStep(BaseStep):
    name = "fzf"
    description = "Installing fzf"

    def destination(self, ctx: BootstrapContext) -> Path:
        return ctx.home / ".fzf"

    def is_needed(self, ctx: BootstrapContext) -> bool:
        return not is_present(self.destination(ctx))

    def skip_message(self, ctx: BootstrapContext) -> str:
        return "fzf already installed"

    def apply(self, ctx: BootstrapContext) -> StepResult:
        destination = self.destination(ctx)
        self._require(ctx.git.clone(FZF_REPO_URL, destination, depth=1), "unable to clone fzf")
        self._require(
            ctx.runner.run([str(destination / "install"), "--all"], capture=False),
            "fzf installer failed",
        )
        output.success("fzf installed")
        return self._result(StepOutcome.APPLIED)


class LinuxFontStep(BaseStep):
    name = "nerd-font"
    description = "Installing BlexMono Nerd Font"

    def fonts_dir(self, ctx: BootstrapContext) -> Path:
        return ctx.home / ".local" / "share" / "fonts"

    def is_needed(self, ctx: BootstrapContext) -> bool:
        listing = ctx.runner.run(["fc-list"])
        return not (listing.ok and NERD_FONT_FAMILY in listing.stdout.lower())

    def skip_message(self, ctx: BootstrapContext) -> str:
        return "BlexMono Nerd Font already installed"

    def apply(self, ctx: BootstrapContext) -> StepResult:
        fonts_dir = self.fonts_dir(ctx)
        fonts_dir.mkdir(parents=True, exist_ok=True)

        with tempfile.TemporaryDirectory(prefix="dotsetup-font-") as temp_name:
            archive = Path(temp_name) / "BlexMono.zip"
            output.info("Downloading BlexMono Nerd Font...")
            self._require(ctx.fetcher.download(NERD_FONT_URL, archive), "unable to download the font archive")

            output.info("Extracting fonts...")
            try:
                with zipfile.ZipFile(archive) as bundle:
                    bundle.extractall(fonts_dir)
            except zipfile.BadZipFile as exc:
                raise StepFailedError(self.name, "font archive is corrupt", str(exc)) from exc

        output.info("Refreshing font cache...")
        self._require(ctx.runner.run(["fc-cache", "-f"]), "fc-cache failed")
        output.success("BlexMono Nerd Font installed")
        output.info("You may need to select the font in your terminal settings")
        return self._result(StepOutcome.APPLIED, str(fonts_dir))


# ----------------------------------------------------------------------
# Shell and editor


class ShellFrameworkStep(BaseStep):
    name = "oh-my-zsh"
    description = "Installing oh-my-zsh"

    # No prompts, keep the linked .zshrc, and leave chsh to DefaultShellStep.
    INSTALL_ENV = {"RUNZSH": "no", "KEEP_ZSHRC": "yes", "CHSH": "no"}

    def marker(self, ctx: BootstrapContext) -> Path:
        return ctx.home / ".oh-my-zsh" / "oh-my-zsh.sh"

    def is_needed(self, ctx: BootstrapContext) -> bool:
        return not self.marker(ctx).is_file()

    def skip_message(self, ctx: BootstrapContext) -> str:
        return "oh-my-zsh already installed"

    def apply(self, ctx: BootstrapContext) -> StepResult:
        script = ctx.fetcher.fetch_text(OH_MY_ZSH_INSTALL_URL)
        self._require(script, "unable to download the oh-my-zsh installer")
        self._require(
            ctx.runner.run(["sh", "-c", script.content or ""], env=self.INSTALL_ENV, capture=False),
            "oh-my-zsh installer failed",
        )
        output.success("oh-my-zsh installed")
        return self._result(StepOutcome.APPLIED)


class ShellPluginStep(BaseStep):
    def __init__(self, plugin: ShellPlugin) -> None:
        self.plugin = plugin
        self.name = f"plugin:{plugin.name}"
        self.description = f"Installing {plugin.name}"

    def destination(self, ctx: BootstrapContext) -> Path:
        return ctx.settings.plugins_dir / self.plugin.name

    def is_needed(self, ctx: BootstrapContext) -> bool:
        return not is_present(self.destination(ctx))

    def skip_message(self, ctx: BootstrapContext) -> str:
        return f"{self.plugin.name} already installed"

    def apply(self, ctx: BootstrapContext) -> StepResult:
        result = ctx.git.clone(self.plugin.url, self.destination(ctx), depth=self.plugin.depth)
        self._require(result, f"unable to clone {self.plugin.url}")
        output.success(f"Installed {self.plugin.name}")
        return self._result(StepOutcome.APPLIED)


class EditorPluginManagerStep(BaseStep):
    name = "vim-plug"
    description = "Installing vim-plug"

    def destination(self, ctx: BootstrapContext) -> Path:
        return ctx.home / ".vim" / "autoload" / "plug.vim"

    def is_needed(self, ctx: BootstrapContext) -> bool:
        return not self.destination(ctx).exists()

    def skip_message(self, ctx: BootstrapContext) -> str:
        return "vim-plug already installed"

    def apply(self, ctx: BootstrapContext) -> StepResult:
        self._require(ctx.fetcher.download(VIM_PLUG_URL, self.destination(ctx)), "unable to download vim-plug")
        output.success("vim-plug installed")
        output.info("Run ':PlugInstall' in vim to install plugins")
        return self._result(StepOutcome.APPLIED)


class DefaultShellStep(BaseStep):
    name = "default-shell"
    description = "Setting the default shell"

    def __init__(self, shells_file: Path = SHELLS_FILE) -> None:
        self.shells_file = shells_file

    def is_needed(self, ctx: BootstrapContext) -> bool:
        shell_path = ctx.runner.which(TARGET_SHELL)
        return shell_path is None or ctx.runner.environ.get("SHELL") != shell_path

    def skip_message(self, ctx: BootstrapContext) -> str:
        return f"{TARGET_SHELL} is already the default shell"

    def _is_allowed(self, shell_path: str) -> bool:
        if not self.shells_file.exists():
            return False
        lines = self.shells_file.read_text().splitlines()
        return shell_path in (line.strip() for line in lines)

    def apply(self, ctx: BootstrapContext) -> StepResult:
        shell = TARGET_SHELL
        shell_path = ctx.runner.which(shell)
        if shell_path is None:
            message = f"{shell} not found on PATH; leaving the default shell unchanged"
            output.warning(message)
            return self._result(StepOutcome.WARNED, message)

        output.info(f"Setting {shell} as default shell...")
        if not self._is_allowed(shell_path):
            self._require(
                ctx.runner.run(["sudo", "tee", "-a", str(self.shells_file)], input_text=f"{shell_path}\n"),
                f"unable to add {shell_path} to {self.shells_file}",
            )

        self._require(ctx.runner.run(["chsh", "-s", shell_path], capture=False), "chsh failed")
        output.success(f"{shell} set as default shell (restart terminal to apply)")
        return self._result(StepOutcome.APPLIED, shell_path)
