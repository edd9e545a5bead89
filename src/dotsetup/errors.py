"""Exceptions raised while bootstrapping."""

from __future__ import annotations


class BootstrapError(RuntimeError):
    """Raised when dotsetup encounters an unrecoverable state."""


class UnsupportedPlatformError(BootstrapError):
    """Raised when the host is neither macOS nor a GNU/Linux system."""


class StepFailedError(BootstrapError):
    """Raised when an external command or download inside a step fails."""

    def __init__(self, step: str, message: str, detail: str | None = None) -> None:
        self.step = step
        self.detail = detail
        text = f"{step}: {message}"
        if detail:
            text = f"{text}\n{detail}"
        super().__init__(text)
