"""Capability objects wrapping the external tools dotsetup drives.

Each wrapper reports failure through its return value (``CommandResult`` or
``FetchResult``) instead of raising, so steps decide for themselves whether a
failure is fatal, a warning, or a reason to skip.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Mapping, MutableMapping, Sequence

import httpx

from .filesystem import ensure_parent, is_present
from .models import CommandResult, FetchResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0
NOT_FOUND_RETURNCODE = 127


def _fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


class CommandRunner:
    """Runs external commands with consistent logging."""

    def __init__(self, environ: MutableMapping[str, str] | None = None) -> None:
        self.environ = os.environ if environ is None else environ

    def which(self, name: str) -> str | None:
        return shutil.which(name, path=self.environ.get("PATH"))

    def prepend_path(self, directory: Path) -> None:
        current = self.environ.get("PATH", "")
        self.environ["PATH"] = os.pathsep.join(filter(None, [str(directory), current]))
        logger.info("Prepended %s to PATH", directory)

    def run(
        self,
        argv: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        input_text: str | None = None,
        capture: bool = True,
    ) -> CommandResult:
        """Run ``argv`` and return its result.

        With ``capture=False`` the command shares the terminal, which is what
        installers and credential prompts need. A missing executable is reported
        as return code 127, the way a shell would.
        """

        argv_tuple = tuple(str(a) for a in argv)
        logger.info("CMD %s", _fmt_argv(argv_tuple))

        pipe = subprocess.PIPE if capture else None
        try:
            p = subprocess.run(
                argv_tuple,
                input=input_text,
                text=True,
                stdout=pipe,
                stderr=pipe,
                env=dict(self.environ, **(env or {})),
            )
        except FileNotFoundError as exc:
            logger.debug("Executable not found: %s", exc)
            return CommandResult(argv=argv_tuple, returncode=NOT_FOUND_RETURNCODE, stderr=str(exc))

        stdout = p.stdout or ""
        stderr = p.stderr or ""
        if stdout:
            logger.debug("STDOUT %s", stdout.strip())
        if stderr:
            logger.debug("STDERR %s", stderr.strip())
        if p.returncode != 0:
            logger.debug("Command exited with %d: %s", p.returncode, _fmt_argv(argv_tuple))

        return CommandResult(argv=argv_tuple, returncode=p.returncode, stdout=stdout, stderr=stderr)


class Fetcher:
    """Downloads files over HTTP(S), following redirects."""

    def __init__(self, client: httpx.Client | None = None, *, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.client = client or httpx.Client(timeout=timeout, follow_redirects=True)

    def fetch_text(self, url: str) -> FetchResult:
        logger.info("GET %s", url)
        try:
            response = self.client.get(url, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            return FetchResult(url=url, destination=None, ok=False, error=str(exc))
        return FetchResult(url=url, destination=None, ok=True, content=response.text)

    def download(self, url: str, destination: Path) -> FetchResult:
        """Stream ``url`` into ``destination``, creating parent directories.

        The body is written to a sibling ``.part`` file first so an interrupted
        download never leaves a file that later existence checks would accept.
        """

        logger.info("GET %s -> %s", url, destination)
        ensure_parent(destination)
        partial = destination.with_name(f".{destination.name}.part")
        try:
            with self.client.stream("GET", url, follow_redirects=True) as response:
                response.raise_for_status()
                with partial.open("wb") as handle:
                    for chunk in response.iter_bytes(chunk_size=8192):
                        handle.write(chunk)
            os.replace(partial, destination)
        except (httpx.HTTPError, OSError) as exc:
            partial.unlink(missing_ok=True)
            return FetchResult(url=url, destination=destination, ok=False, error=str(exc))
        return FetchResult(url=url, destination=destination, ok=True)

    def close(self) -> None:
        self.client.close()


class GitCloner:
    """Clones repositories; a destination that already exists is left alone."""

    def __init__(self, runner: CommandRunner) -> None:
        self.runner = runner

    def clone(self, url: str, destination: Path, *, depth: int | None = None) -> CommandResult:
        argv = ["git", "clone"]
        if depth is not None:
            argv += ["--depth", str(depth)]
        argv += [url, str(destination)]

        if is_present(destination):
            logger.info("Clone target %s already exists; not cloning %s", destination, url)
            return CommandResult(argv=tuple(argv), returncode=0)

        ensure_parent(destination)
        return self.runner.run(argv)
