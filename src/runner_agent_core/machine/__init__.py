from runner_agent_core.machine.command import MachineCommand
from runner_agent_core.machine.credentials import NodeCredentials
from runner_agent_core.machine.errors import CannotConnectError, MachineCommandError
from runner_agent_core.machine.filters import NodeFilter

__all__ = [
    "CannotConnectError",
    "MachineCommand",
    "MachineCommandError",
    "NodeCredentials",
    "NodeFilter",
]
