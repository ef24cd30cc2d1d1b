from runner_agent_core.network.client import FAILURE_STATUS, ControlPlaneClient, RequestResult

__all__ = ["FAILURE_STATUS", "ControlPlaneClient", "RequestResult"]
