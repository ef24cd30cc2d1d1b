from __future__ import annotations

import json
import logging

import httpx
import pytest

import runner_agent_core.main as m
from runner_agent_core.machine.credentials import NodeCredentials
from runner_agent_core.machine.errors import CannotConnectError


pytestmark = pytest.mark.usefixtures("clean_env")


@pytest.fixture(autouse=True)
def _restore_root_level():
    root = logging.getLogger()
    old = root.level
    yield
    root.setLevel(old)


class FakeMachine:
    def __init__(self):
        self.calls = []

    def list(self, template):
        self.calls.append(("list", template))
        return ["runner-1", "runner-2"]

    def status(self, name):
        return "Running"

    def credentials(self, name):
        if name == "down":
            raise CannotConnectError("can't connect to down")
        return NodeCredentials(host="tcp://10.0.0.5:2376", cert_path="/certs/n")

    def create(self, driver, name, *opts):
        self.calls.append(("create", driver, name, opts))

    def remove(self, name):
        self.calls.append(("remove", name))


@pytest.fixture
def fake_machine(monkeypatch):
    fm = FakeMachine()
    monkeypatch.setattr(m, "_machine", lambda cfg: fm)
    return fm


def _exit_code(argv):
    with pytest.raises(SystemExit) as exc:
        m.main(argv)
    return exc.value.code


def test_parser_requires_subcommand():
    p = m.build_parser()
    with pytest.raises(SystemExit):
        p.parse_args([])


def test_version_flag_exits(monkeypatch):
    monkeypatch.setattr(m, "get_version_string", lambda: "1.0.0")
    assert _exit_code(["--version"]) == 0


def test_ls_prints_selected_nodes(fake_machine, capsys):
    assert _exit_code(["ls", "--filter", "runner-%s"]) == 0

    assert capsys.readouterr().out.splitlines() == ["runner-1", "runner-2"]
    assert fake_machine.calls == [("list", "runner-%s")]


def test_create_passes_options(fake_machine):
    assert _exit_code(["create", "amazonec2", "node-1", "--opt", "opt1=a", "--opt", "b"]) == 0
    assert fake_machine.calls == [("create", "amazonec2", "node-1", ("opt1=a", "b"))]


def test_rm(fake_machine):
    assert _exit_code(["rm", "node-1"]) == 0
    assert fake_machine.calls == [("remove", "node-1")]


def test_credentials_prints_json(fake_machine, capsys):
    assert _exit_code(["credentials", "n"]) == 0

    out = json.loads(capsys.readouterr().out)
    assert out == {"host": "tcp://10.0.0.5:2376", "cert_path": "/certs/n", "tls_verify": True}


def test_machine_error_exits_1(fake_machine):
    assert _exit_code(["credentials", "down"]) == 1


def test_invalid_config_exits_1(monkeypatch):
    monkeypatch.setenv("RUNNER_TLS_SKIP_VERIFY", "perhaps")
    assert _exit_code(["status", "n"]) == 1


def test_request_requires_url():
    assert _exit_code(["request", "builds"]) == 1


def test_request_invalid_data_exits_1():
    assert _exit_code(["request", "builds", "--url", "https://ci.example.com", "--data", "{"]) == 1


def test_request_prints_status_and_payload(monkeypatch, capsys):
    import runner_agent_core.network.client as client_mod

    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(201, json={"id": 3})

    original = client_mod.ControlPlaneClient.__init__

    def init_with_mock(self, *args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(handler)
        original(self, *args, **kwargs)

    monkeypatch.setattr(client_mod.ControlPlaneClient, "__init__", init_with_mock)

    code = _exit_code(
        ["request", "builds/register", "--method", "POST", "--expect", "201",
         "--url", "https://ci.example.com", "--data", '{"token": "t"}']
    )

    assert code == 0
    out = capsys.readouterr().out
    assert out.startswith("201 Created")
    assert json.loads(out.split("\n", 1)[1]) == {"id": 3}
    assert str(seen[0].url) == "https://ci.example.com/api/v1/builds/register"
