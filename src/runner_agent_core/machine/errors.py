from __future__ import annotations

from typing import Optional


class MachineCommandError(RuntimeError):
    """Raised when the provisioning tool fails, cannot start, or prints nothing useful."""

    def __init__(
        self,
        message: str,
        *,
        argv: tuple[str, ...] = (),
        returncode: Optional[int] = None,
        stderr: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.argv = argv
        self.returncode = returncode
        self.stderr = stderr


class CannotConnectError(MachineCommandError):
    """Raised by credentials() when the node does not answer the connectivity check."""
