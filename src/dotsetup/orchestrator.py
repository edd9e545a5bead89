"""High level orchestration for a dotsetup run."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Mapping, Sequence

from . import output
from .config import Config
from .models import Platform, StepOutcome, StepResult
from .osdetect import require_supported_platform
from .steps import (
    ZSH_PLUGINS,
    BackupStep,
    BootstrapContext,
    DefaultShellStep,
    EditorPluginManagerStep,
    FzfStep,
    HomebrewStep,
    KeyRepeatStep,
    LinkStep,
    LinuxFontStep,
    PackagesStep,
    ShellFrameworkStep,
    ShellPluginStep,
    Step,
    blex_font_cask,
    ghostty_cask,
)
from .tools import CommandRunner, Fetcher, GitCloner

logger = logging.getLogger(__name__)


def build_steps(platform: Platform) -> list[Step]:
    """Return the ordered step list for ``platform``.

    Dotfiles are handled first and the login shell last, since changing it is
    the only step that may prompt for credentials.
    """

    steps: list[Step] = [BackupStep(), LinkStep()]

    if platform is Platform.MACOS:
        steps += [HomebrewStep(), PackagesStep(), blex_font_cask(), ghostty_cask(), KeyRepeatStep()]
    elif platform is Platform.LINUX:
        steps += [PackagesStep(), FzfStep(), LinuxFontStep()]

    steps.append(ShellFrameworkStep())
    steps.extend(ShellPluginStep(plugin) for plugin in ZSH_PLUGINS)
    steps += [EditorPluginManagerStep(), DefaultShellStep()]
    return steps


class Bootstrapper:
    """Detects the platform and runs every step in order."""

    def __init__(
        self,
        config: Config,
        *,
        runner: CommandRunner | None = None,
        fetcher: Fetcher | None = None,
        git: GitCloner | None = None,
        environ: Mapping[str, str] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.config = config
        self.runner = runner or CommandRunner()
        self.fetcher = fetcher or Fetcher()
        self.git = git or GitCloner(self.runner)
        self.environ = self.runner.environ if environ is None else environ
        self.clock = clock

    def run(self, steps: Sequence[Step] | None = None) -> list[StepResult]:
        """Run all steps, stopping at the first ``BootstrapError``.

        Platform detection happens before any step is built, so an unsupported
        host leaves the filesystem untouched.
        """

        output.info("Detecting operating system...")
        platform = require_supported_platform(self.environ)
        output.success(f"Detected {'macOS' if platform is Platform.MACOS else 'Linux'}")

        ctx = BootstrapContext(
            config=self.config,
            platform=platform,
            runner=self.runner,
            fetcher=self.fetcher,
            git=self.git,
            started_at=self.clock(),
        )

        selected = build_steps(platform) if steps is None else list(steps)
        results: list[StepResult] = []
        for step in selected:
            results.append(self._run_step(step, ctx))
        return results

    def _run_step(self, step: Step, ctx: BootstrapContext) -> StepResult:
        output.info(f"{step.description}...")
        if not step.is_needed(ctx):
            message = step.skip_message(ctx)
            logger.info("Skipping step %s: %s", step.name, message)
            output.success(message)
            return StepResult(step=step.name, outcome=StepOutcome.SKIPPED, details=message)

        logger.info("Running step %s", step.name)
        return step.apply(ctx)
