"""Thin subprocess wrapper used by the setup flow."""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Sequence
from pathlib import Path

logger = logging.getLogger(__name__)


class CommandError(Exception):
    """A setup command could not be started, timed out, or exited non-zero."""

    def __init__(self, args: Sequence[str], returncode: int | None, detail: str) -> None:
        self.args_list = list(args)
        self.returncode = returncode
        self.detail = detail
        code = "timeout" if returncode is None else f"exit {returncode}"
        super().__init__(f"`{' '.join(args)}` failed ({code}): {detail[:200]}")


class CommandRunner:
    """Runs external commands with captured output and a timeout."""

    def __init__(self, timeout: float = 600) -> None:
        self.timeout = timeout

    def exists(self, name: str) -> bool:
        return shutil.which(name) is not None

    def run(
        self,
        args: Sequence[str],
        cwd: str | Path | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        logger.debug("$ %s", " ".join(args))
        try:
            result = subprocess.run(
                list(args),
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise CommandError(args, 127, str(e)) from e
        except subprocess.TimeoutExpired as e:
            raise CommandError(args, None, f"timed out after {self.timeout:g}s") from e

        if check and result.returncode != 0:
            raise CommandError(args, result.returncode, result.stderr.strip())
        return result
