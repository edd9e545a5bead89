"""Host platform detection."""

from __future__ import annotations

import logging
import os
import sys
from typing import Mapping

from .errors import UnsupportedPlatformError
from .models import Platform

logger = logging.getLogger(__name__)

_SYS_PLATFORM_SIGNALS = {
    "darwin": "darwin",
    "linux": "linux-gnu",
}


def platform_signal(environ: Mapping[str, str] | None = None, sys_platform: str | None = None) -> str:
    """Return the ``OSTYPE``-style string describing the host.

    Shells set ``OSTYPE`` without exporting it, so a Python process usually has to
    derive the same value from ``sys.platform``.
    """

    env = os.environ if environ is None else environ
    signal = env.get("OSTYPE")
    if signal:
        return signal
    current = sys.platform if sys_platform is None else sys_platform
    return _SYS_PLATFORM_SIGNALS.get(current, current)


def classify(signal: str) -> Platform:
    if signal.startswith("darwin"):
        return Platform.MACOS
    if signal.startswith("linux-gnu"):
        return Platform.LINUX
    return Platform.UNSUPPORTED


def detect_platform(environ: Mapping[str, str] | None = None, sys_platform: str | None = None) -> Platform:
    signal = platform_signal(environ, sys_platform)
    detected = classify(signal)
    logger.info("Platform signal %r classified as %s", signal, detected.value)
    return detected


def require_supported_platform(
    environ: Mapping[str, str] | None = None,
    sys_platform: str | None = None,
) -> Platform:
    """Detect the platform and raise for anything dotsetup cannot provision."""

    detected = detect_platform(environ, sys_platform)
    if detected is Platform.UNSUPPORTED:
        raise UnsupportedPlatformError(f"Unsupported OS: {platform_signal(environ, sys_platform)}")
    return detected
