"""
Runner Agent Core entrypoint.

CLI:
  runner-agent-core ls [--filter TEMPLATE]           -> list nodes selected by a filter template
  runner-agent-core status NAME                      -> print node status
  runner-agent-core credentials NAME                 -> print node credentials as JSON
  runner-agent-core create DRIVER NAME [--opt OPT]   -> create a node (output streamed)
  runner-agent-core rm NAME                          -> remove a node
  runner-agent-core request PATH [--method M] ...    -> send a JSON request to the control plane
"""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from importlib.metadata import PackageNotFoundError, version as pkg_version

from runner_agent_core.machine import MachineCommand, MachineCommandError
from runner_agent_core.core.process import ProcessRunner

logger = logging.getLogger(__name__)


def get_version_string() -> str:
    try:
        return pkg_version("runner-agent-core")
    except PackageNotFoundError:
        return "0.0.0+dev"


def _machine(cfg) -> MachineCommand:
    return MachineCommand(ProcessRunner(cfg.machine_executable))


def _cmd_ls(cfg, args) -> int:
    for name in _machine(cfg).list(args.filter):
        print(name)
    return 0


def _cmd_status(cfg, args) -> int:
    print(_machine(cfg).status(args.name))
    return 0


def _cmd_credentials(cfg, args) -> int:
    creds = _machine(cfg).credentials(args.name)
    print(json.dumps(asdict(creds), indent=2))
    return 0


def _cmd_create(cfg, args) -> int:
    _machine(cfg).create(args.driver, args.name, *args.opt)
    return 0


def _cmd_rm(cfg, args) -> int:
    _machine(cfg).remove(args.name)
    return 0


def _cmd_request(cfg, args) -> int:
    from runner_agent_core.network.client import FAILURE_STATUS, ControlPlaneClient

    url = args.url or cfg.server_url
    if not url:
        logger.error("No control-plane URL (use --url or RUNNER_SERVER_URL)")
        return 1

    try:
        body = json.loads(args.data) if args.data is not None else None
    except json.JSONDecodeError as exc:
        logger.error("--data is not valid JSON: %s", exc)
        return 1

    with ControlPlaneClient(
        url,
        ca_file=cfg.tls_ca_file,
        skip_verify=cfg.tls_skip_verify,
        certificate_dir=cfg.certificate_dir,
    ) as client:
        logger.info("%s %s", args.method, client.resolve_url(args.path))
        result = client.request(args.path, args.method, args.expect, body, response=lambda d: d)

    if result.status == FAILURE_STATUS:
        logger.error("Request failed: %s", result.message)
        return 1

    print(result.message)
    if result.payload is not None:
        print(json.dumps(result.payload, indent=2))
    return 0 if result.status == args.expect else 1


_COMMANDS = {
    "ls": _cmd_ls,
    "status": _cmd_status,
    "credentials": _cmd_credentials,
    "create": _cmd_create,
    "rm": _cmd_rm,
    "request": _cmd_request,
}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="runner-agent-core")
    p.add_argument("--version", action="version", version=get_version_string())
    p.add_argument("--log-level", default=None, help="Override RUNNER_LOG_LEVEL")

    sub = p.add_subparsers(dest="cmd", required=True)

    ls_parser = sub.add_parser("ls", help="List nodes selected by a filter template")
    ls_parser.add_argument("--filter", default="%s", help='Filter template, e.g. "runner-%%s"')

    for name, help_text in (
        ("status", "Print node status"),
        ("credentials", "Print node connection credentials"),
        ("rm", "Remove a node"),
    ):
        sp = sub.add_parser(name, help=help_text)
        sp.add_argument("name")

    create_parser = sub.add_parser("create", help="Create a node")
    create_parser.add_argument("driver")
    create_parser.add_argument("name")
    create_parser.add_argument(
        "--opt",
        action="append",
        default=[],
        metavar="OPT",
        help="Driver option passed as --OPT (repeatable)",
    )

    req_parser = sub.add_parser("request", help="Send a JSON request to the control plane")
    req_parser.add_argument("path", help="Path relative to <url>/api/v1/")
    req_parser.add_argument("--method", default="GET")
    req_parser.add_argument("--expect", type=int, default=200, help="Expected HTTP status")
    req_parser.add_argument("--url", default=None, help="Server URL (default RUNNER_SERVER_URL)")
    req_parser.add_argument("--data", default=None, help="JSON request body")

    return p


def main(argv: list[str] | None = None) -> None:
    from runner_agent_core.config import ConfigError, load_config
    from runner_agent_core.core.log_config import configure_logging

    args = build_parser().parse_args(argv)

    try:
        cfg = load_config()
    except ConfigError as exc:
        configure_logging(args.log_level)
        logger.error("Invalid configuration: %s", exc)
        raise SystemExit(1)

    configure_logging(args.log_level or cfg.log_level)

    handler = _COMMANDS.get(args.cmd)
    if handler is None:
        raise SystemExit(2)

    try:
        raise SystemExit(handler(cfg, args))
    except MachineCommandError as exc:
        logger.error("%s", exc)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
