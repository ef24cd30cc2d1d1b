"""
docker-machine wrapper.

Node lifecycle as seen through the tool:

    Unprovisioned -> Creating -> Created -> Provisioning -> Ready
    any state -> Removed (via remove)

Only the connectivity check (`config <name>`) confirms Ready. The tool does
not let us tell "no such node" from "node unreachable": both are a non-zero
exit. Nothing here retries or enforces timeouts.
"""
from __future__ import annotations

import logging
import subprocess
from typing import Optional, Union

from runner_agent_core.core.process import ProcessRunner
from runner_agent_core.machine.credentials import NodeCredentials
from runner_agent_core.machine.errors import CannotConnectError, MachineCommandError
from runner_agent_core.machine.filters import NodeFilter

logger = logging.getLogger(__name__)

DEFAULT_EXECUTABLE = "docker-machine"
CERT_PATH_TEMPLATE = "{{.HostOptions.AuthOptions.StorePath}}"


def _wrap(exc: Exception, args: tuple[str, ...]) -> MachineCommandError:
    if isinstance(exc, subprocess.CalledProcessError):
        stderr = exc.stderr.strip() if isinstance(exc.stderr, str) else None
        return MachineCommandError(
            f"{list(args)} exited with status {exc.returncode}",
            argv=args,
            returncode=exc.returncode,
            stderr=stderr or None,
        )
    return MachineCommandError(f"{list(args)} could not be started: {exc}", argv=args)


class MachineCommand:
    def __init__(self, runner: Optional[ProcessRunner] = None) -> None:
        self.runner = runner or ProcessRunner(DEFAULT_EXECUTABLE)

    # -------------------------
    # Streaming commands
    # -------------------------
    def _run(self, *args: str) -> None:
        try:
            self.runner.run(*args)
        except (subprocess.CalledProcessError, OSError) as exc:
            raise _wrap(exc, args) from exc

    def create(self, driver: str, name: str, *opts: str) -> None:
        """
        Create a node. Options are passed as single "--<opt>" flags, so
        "engine-label=ci" becomes "--engine-label=ci".
        """
        args = ["create", "--driver", driver]
        args.extend(f"--{opt}" for opt in opts)
        args.append(name)
        logger.info("Creating node %s with driver %s", name, driver)
        self._run(*args)

    def provision(self, name: str) -> None:
        self._run("provision", name)

    def remove(self, name: str) -> None:
        logger.info("Removing node %s", name)
        self._run("rm", "-y", name)

    # -------------------------
    # Capturing commands
    # -------------------------
    def _output(self, *args: str) -> str:
        try:
            return self.runner.output(*args)
        except (subprocess.CalledProcessError, OSError) as exc:
            raise _wrap(exc, args) from exc

    def list(self, node_filter: Union[str, NodeFilter]) -> list[str]:
        """
        Return node names from `ls -q` that the filter selects, in listing order.
        """
        if isinstance(node_filter, str):
            node_filter = NodeFilter(node_filter)

        data = self._output("ls", "-q")
        lines = (line.strip() for line in data.splitlines())
        return node_filter.select(line for line in lines if line)

    def _get(self, *args: str) -> str:
        out = self._output(*args).strip()
        if not out:
            raise MachineCommandError(f"failed to get {list(args)}", argv=args)
        return out

    def ip(self, name: str) -> str:
        return self._get("ip", name)

    def url(self, name: str) -> str:
        return self._get("url", name)

    def cert_path(self, name: str) -> str:
        return self._get("inspect", name, "-f", CERT_PATH_TEMPLATE)

    def status(self, name: str) -> str:
        return self._get("status", name)

    def exists(self, name: str) -> bool:
        try:
            self.status(name)
        except MachineCommandError:
            return False
        return True

    # -------------------------
    # Connectivity
    # -------------------------
    def check_connection(self, name: str) -> None:
        """
        Ask the node for its client config, which requires it to be up and reachable.
        Raises MachineCommandError with the tool's exit status and stderr on failure.
        """
        args = ("config", name)
        try:
            self.runner.check(*args)
        except (subprocess.CalledProcessError, OSError) as exc:
            raise _wrap(exc, args) from exc

    def can_connect(self, name: str) -> bool:
        try:
            self.check_connection(name)
        except MachineCommandError as exc:
            logger.debug("Node %s is not reachable: %s", name, exc)
            return False
        return True

    def credentials(self, name: str) -> NodeCredentials:
        if not self.can_connect(name):
            raise CannotConnectError(f"can't connect to {name}", argv=("config", name))

        host = self.url(name)
        cert_path = self.cert_path(name)
        return NodeCredentials(host=host, cert_path=cert_path, tls_verify=True)
