"""
Agent Core configuration.

Single source for runtime configuration. Values come from environment variables,
optionally loaded from standard env files.

Priority (lowest -> highest):
1) <base_dir>/agent-core.env (see paths.py)
2) ~/.config/runner-agent-core/.env (user install)
3) ./.env (project override)
4) process environment variables (always win)
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version as _pkg_version
from pathlib import Path
from typing import Iterable
from urllib.parse import urlsplit

from dotenv import load_dotenv

from runner_agent_core.machine.command import DEFAULT_EXECUTABLE
from runner_agent_core.paths import get_paths


class ConfigError(ValueError):
    """Raised when configuration is missing or invalid."""


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _package_version() -> str:
    try:
        return _pkg_version("runner-agent-core")
    except PackageNotFoundError:
        return "0.0.0+dev"


def _env_paths() -> Iterable[Path]:
    # 1) system / base dir install
    yield get_paths().env_path

    # 2) user config dir
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", str(Path.home())))
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config")))
    yield base / "runner-agent-core" / ".env"

    # 3) project override
    yield Path(".env")


def _parse_bool(key: str, raw: str) -> bool:
    v = raw.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ConfigError(f"Invalid boolean for {key}: {raw!r}")


def _optional_env(key: str, default: str = "") -> str:
    return os.getenv(key, default).strip()


@dataclass(frozen=True, slots=True)
class AgentConfig:
    machine_executable: str
    certificate_dir: str
    server_url: str  # "" when no control-plane server is configured
    tls_ca_file: str
    tls_skip_verify: bool
    log_level: str
    agent_version: str


def load_config(*, dotenv_enabled: bool = True) -> AgentConfig:
    """
    Load config by reading env files and then validating environment variables.

    Returns an immutable AgentConfig. Raises ConfigError on failure.
    """
    if dotenv_enabled:
        for p in _env_paths():
            if p.is_file():
                # do not override existing env vars; later files can fill missing
                load_dotenv(p, override=False)

    machine_executable = _optional_env("RUNNER_MACHINE_EXECUTABLE", DEFAULT_EXECUTABLE)
    if not machine_executable:
        raise ConfigError("RUNNER_MACHINE_EXECUTABLE must not be empty")

    certificate_dir = _optional_env("RUNNER_CERTIFICATE_DIR", str(get_paths().certs_dir))

    server_url = _optional_env("RUNNER_SERVER_URL")
    if server_url and urlsplit(server_url).scheme not in ("http", "https"):
        raise ConfigError(f"RUNNER_SERVER_URL must be an http(s) URL: {server_url!r}")

    return AgentConfig(
        machine_executable=machine_executable,
        certificate_dir=certificate_dir,
        server_url=server_url,
        tls_ca_file=_optional_env("RUNNER_TLS_CA_FILE"),
        tls_skip_verify=_parse_bool("RUNNER_TLS_SKIP_VERIFY", os.getenv("RUNNER_TLS_SKIP_VERIFY", "false")),
        log_level=_optional_env("RUNNER_LOG_LEVEL", "INFO").upper(),
        agent_version=_package_version(),
    )
