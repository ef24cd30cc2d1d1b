"""
Central path configuration for Runner Agent Core.

Path Structure:
    <base_dir>/
    ├── agent-core.env     (optional env file)
    └── certs/             (per-host CA files: <host>.crt)

base_dir is /etc/runner-agent-core when running as root, otherwise
~/.runner-agent-core. RUNNER_AGENT_BASE_DIR overrides both.

Usage:
    from runner_agent_core.paths import get_paths

    certs_dir = get_paths().certs_dir
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

SYSTEM_BASE_DIR = Path("/etc/runner-agent-core")
USER_BASE_DIR_NAME = ".runner-agent-core"


@dataclass(frozen=True, slots=True)
class Paths:
    """Immutable container for the filesystem paths used by the agent."""

    base_dir: Path
    certs_dir: Path
    env_path: Path


def _default_base_dir() -> Path:
    override = os.environ.get("RUNNER_AGENT_BASE_DIR")
    if override:
        return Path(override)
    if hasattr(os, "geteuid") and os.geteuid() == 0:
        return SYSTEM_BASE_DIR
    return Path.home() / USER_BASE_DIR_NAME


def build_paths(base_dir: Optional[Path] = None) -> Paths:
    """
    Build Paths object from base directory.

    Args:
        base_dir: Base directory for all agent files. Defaults to the system
                  or per-user location (see module docstring).
    """
    if base_dir is None:
        base_dir = _default_base_dir()

    return Paths(
        base_dir=base_dir,
        certs_dir=base_dir / "certs",
        env_path=base_dir / "agent-core.env",
    )


# Global instance (lazy-initialized)
_paths: Optional[Paths] = None


def get_paths() -> Paths:
    global _paths
    if _paths is None:
        _paths = build_paths()
    return _paths


def set_paths(paths: Paths) -> None:
    global _paths
    _paths = paths


def reset_paths() -> None:
    """Forces get_paths() to rebuild from defaults on next call."""
    global _paths
    _paths = None
