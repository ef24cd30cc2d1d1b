from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class NodeCredentials:
    """Connection details for a provisioned node, as reported by the provisioning tool."""

    host: str
    cert_path: str
    tls_verify: bool = True
