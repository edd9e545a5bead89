"""Core package for the dotsetup project."""

from .cli import app, run
from .config import Config, ConfigError, Settings, load_config
from .errors import BootstrapError, StepFailedError, UnsupportedPlatformError
from .models import ManagedFile, Platform, StepOutcome, StepResult
from .orchestrator import Bootstrapper, build_steps
from .osdetect import detect_platform

__all__ = [
    "Config",
    "ConfigError",
    "Settings",
    "load_config",
    "Bootstrapper",
    "build_steps",
    "BootstrapError",
    "StepFailedError",
    "UnsupportedPlatformError",
    "ManagedFile",
    "Platform",
    "StepOutcome",
    "StepResult",
    "detect_platform",
    "app",
    "run",
]
