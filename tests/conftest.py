"""
Pytest configuration and shared fixtures
"""
import datetime
import os
import subprocess
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))


class FakeRunner:
    """
    Stand-in for ProcessRunner that records argument vectors.

    outputs maps an argument tuple to captured stdout; failures maps an
    argument tuple to the exit status the command should fail with.
    """

    def __init__(self, outputs=None, failures=None):
        self.outputs = dict(outputs or {})
        self.failures = dict(failures or {})
        self.calls = []

    def _maybe_fail(self, args, stderr=None):
        if args in self.failures:
            rc = self.failures[args]
            if isinstance(rc, BaseException):
                raise rc
            raise subprocess.CalledProcessError(rc, ["docker-machine", *args], output="", stderr=stderr)

    def run(self, *args):
        self.calls.append(("run", args))
        self._maybe_fail(args)

    def output(self, *args):
        self.calls.append(("output", args))
        self._maybe_fail(args, stderr="Error: host does not exist\n")
        return self.outputs.get(args, "")

    def check(self, *args):
        self.calls.append(("check", args))
        self._maybe_fail(args, stderr="Error: host does not exist\n")


@pytest.fixture
def fake_runner():
    return FakeRunner()


CONFIG_KEYS = [
    "RUNNER_MACHINE_EXECUTABLE",
    "RUNNER_CERTIFICATE_DIR",
    "RUNNER_SERVER_URL",
    "RUNNER_TLS_CA_FILE",
    "RUNNER_TLS_SKIP_VERIFY",
    "RUNNER_LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """
    Unset config variables and point the agent base dir and user config dir at
    temp directories. Values set later (directly or by dotenv) are undone at teardown.
    """
    for key in CONFIG_KEYS:
        # setenv first so monkeypatch remembers the original state
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    monkeypatch.setenv("RUNNER_AGENT_BASE_DIR", str(tmp_path / "agent_base"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.chdir(tmp_path)

    from runner_agent_core.paths import reset_paths

    reset_paths()
    yield
    reset_paths()


def _make_ca_pem(common_name):
    from cryptography import x509
    from cryptography.hazmat.primitives import hashes, serialization
    from cryptography.hazmat.primitives.asymmetric import ec
    from cryptography.x509.oid import NameOID

    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.PEM).decode("ascii")


@pytest.fixture(scope="session")
def ca_pem():
    """A self-signed CA certificate in PEM form (CN=runner-test-ca)."""
    return _make_ca_pem("runner-test-ca")
