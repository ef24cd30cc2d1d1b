"""
Process runner for external command-line tools.

Three modes:
- run(): stdout/stderr are inherited from the agent so progress is visible live
- output(): stdout is captured and returned as text
- check(): stdout is discarded, only the exit status (and stderr) matter

Captured output is decoded as UTF-8 with undecodable bytes replaced, so odd
tool output never turns into a decoding error.

The child always gets a copy of the agent's environment. Errors are not
translated here: a non-zero exit raises subprocess.CalledProcessError and a
binary that cannot be started raises OSError.
"""
from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)


class ProcessRunner:
    def __init__(self, executable: str) -> None:
        self.executable = executable

    def command(self, *args: str) -> list[str]:
        return [self.executable, *args]

    def run(self, *args: str) -> None:
        """Run the command with output streamed to our own stdout/stderr."""
        cmd = self.command(*args)
        logger.debug("Executing %s", cmd)
        subprocess.run(cmd, check=True, env=os.environ.copy())

    def output(self, *args: str) -> str:
        """Run the command and return its captured stdout."""
        cmd = self.command(*args)
        logger.debug("Executing %s (capture)", cmd)
        completed = subprocess.run(
            cmd,
            check=True,
            capture_output=True,
            encoding="utf-8",
            errors="replace",
            env=os.environ.copy(),
        )
        return completed.stdout or ""

    def check(self, *args: str) -> None:
        """Run the command for its exit status only; stderr is kept for error reports."""
        cmd = self.command(*args)
        logger.debug("Executing %s (status only)", cmd)
        subprocess.run(
            cmd,
            check=True,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            encoding="utf-8",
            errors="replace",
            env=os.environ.copy(),
        )
