"""
Control-plane HTTP client.

JSON over HTTPS against `<server url>/api/v1/`. The underlying httpx client
(the "transport") is built lazily and rebuilt whenever the CA file on disk is
modified after the last build, so rotated trust material is picked up without
restarting the agent.

request() does not raise for protocol or transport problems. It returns the
HTTP status and reason, or FAILURE_STATUS when no real HTTP response was
obtained (bad URL, unserializable body, connection/TLS failure, undecodable
response body). Callers branch on the status code.
"""
from __future__ import annotations

import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Any, Callable, NamedTuple, Optional
from urllib.parse import urljoin, urlsplit

import httpx

from runner_agent_core.machine.credentials import NodeCredentials
from runner_agent_core.network.tls import build_ssl_context

logger = logging.getLogger(__name__)

FAILURE_STATUS = -1
API_PATH = "/api/v1/"

# httpx has no separate TLS handshake timeout: the handshake runs inside the
# connect phase and shares this 30s budget with the TCP connect.
CONNECT_TIMEOUT_S = 30.0
KEEPALIVE_EXPIRY_S = 30.0


class RequestResult(NamedTuple):
    status: int
    message: str
    payload: Any = None


def ca_file_for_host(url: str, certificate_dir: str) -> str:
    """{certificate_dir}/{host}.crt, with port, userinfo and IPv6 brackets stripped from the host."""
    host = urlsplit(url).hostname or ""
    return str(Path(certificate_dir) / f"{host}.crt")


class ControlPlaneClient:
    def __init__(
        self,
        url: str,
        ca_file: str = "",
        skip_verify: bool = False,
        *,
        certificate_dir: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.url = url.rstrip("/") + API_PATH
        self.ca_file = ca_file or ""
        self.skip_verify = skip_verify

        if not self.ca_file and certificate_dir:
            self.ca_file = ca_file_for_host(self.url, certificate_dir)

        self._transport = transport
        self._lock = threading.Lock()
        self._client: Optional[httpx.Client] = None
        self._retired: list[httpx.Client] = []
        self._in_flight: dict[httpx.Client, int] = {}
        self._built_at = 0.0

    @classmethod
    def from_credentials(
        cls, credentials: NodeCredentials, *, certificate_dir: Optional[str] = None
    ) -> "ControlPlaneClient":
        """
        Client for a provisioned node. docker-machine reports a certificate
        store directory; its ca.pem is used as the CA file.
        """
        ca_file = credentials.cert_path
        if ca_file and Path(ca_file).is_dir():
            ca_file = str(Path(ca_file) / "ca.pem")
        return cls(
            credentials.host,
            ca_file=ca_file,
            skip_verify=not credentials.tls_verify,
            certificate_dir=certificate_dir,
        )

    # -------------------------
    # Transport
    # -------------------------
    def _ca_modified_since_build(self) -> bool:
        try:
            mtime = os.stat(self.ca_file).st_mtime
        except OSError:
            return False
        return mtime > self._built_at

    def _ensure_locked(self) -> httpx.Client:
        if self._client is not None and self.ca_file and self._ca_modified_since_build():
            logger.info("CA file %s changed, rebuilding transport", self.ca_file)
            old = self._client
            self._client = None
            if self._in_flight.get(old, 0) > 0:
                # closed by _release() once its last send finishes
                self._retired.append(old)
            else:
                old.close()

        if self._client is None:
            self._built_at = time.time()
            self._client = self.build_transport()

        return self._client

    def ensure_transport(self) -> httpx.Client:
        with self._lock:
            return self._ensure_locked()

    def _acquire(self) -> httpx.Client:
        """ensure_transport() plus an in-flight mark that keeps the client open."""
        with self._lock:
            client = self._ensure_locked()
            self._in_flight[client] = self._in_flight.get(client, 0) + 1
            return client

    def _release(self, client: httpx.Client) -> None:
        with self._lock:
            remaining = self._in_flight.get(client, 1) - 1
            if remaining > 0:
                self._in_flight[client] = remaining
                return
            self._in_flight.pop(client, None)
            if client not in self._retired:
                return
            self._retired.remove(client)
        client.close()

    def build_transport(self) -> httpx.Client:
        ssl_context = build_ssl_context(self.ca_file, self.skip_verify)
        return httpx.Client(
            verify=ssl_context,
            timeout=httpx.Timeout(None, connect=CONNECT_TIMEOUT_S),
            limits=httpx.Limits(keepalive_expiry=KEEPALIVE_EXPIRY_S),
            trust_env=True,
            transport=self._transport,
        )

    # -------------------------
    # Requests
    # -------------------------
    def request(
        self,
        path: str,
        method: str,
        expected_status: int,
        body: Any = None,
        response: Optional[Callable[[Any], Any]] = None,
    ) -> RequestResult:
        """
        Send `body` as JSON to `path` (relative to the API base).

        When the server answers with `expected_status` and `response` is given,
        the JSON body is passed to `response` and its return value becomes the
        payload of the result.
        """
        try:
            url = urljoin(self.url, path)
        except ValueError as exc:
            return RequestResult(FAILURE_STATUS, str(exc))

        content = None
        headers = {}
        if body is not None:
            try:
                content = json.dumps(body).encode("utf-8")
            except (TypeError, ValueError) as exc:
                return RequestResult(FAILURE_STATUS, f"failed to marshal request body: {exc}")
            headers["Content-Type"] = "application/json"

        try:
            req = httpx.Request(method, url, content=content, headers=headers)
        except (httpx.InvalidURL, TypeError, ValueError) as exc:
            return RequestResult(FAILURE_STATUS, f"failed to create request: {exc}")

        client = self._acquire()
        try:
            return self._send(client, req, expected_status, response)
        finally:
            self._release(client)

    def _send(
        self,
        client: httpx.Client,
        req: httpx.Request,
        expected_status: int,
        response: Optional[Callable[[Any], Any]],
    ) -> RequestResult:
        try:
            res = client.send(req)
        except httpx.HTTPError as exc:
            return RequestResult(
                FAILURE_STATUS, f"couldn't execute {req.method} against {req.url}: {exc}"
            )

        try:
            status = f"{res.status_code} {res.reason_phrase}"
            if res.status_code != expected_status or response is None:
                return RequestResult(res.status_code, status)

            try:
                data = res.json()
            except ValueError as exc:
                return RequestResult(FAILURE_STATUS, f"error decoding json payload: {exc}")

            # the factory sees whatever JSON shape the server sent
            try:
                payload = response(data)
            except Exception as exc:
                return RequestResult(FAILURE_STATUS, f"error decoding json payload: {exc!r}")
            return RequestResult(res.status_code, status, payload)
        finally:
            res.close()

    def resolve_url(self, pattern: str, *args: Any) -> str:
        """Best-effort absolute URL for logs and messages; "" if it cannot be formed."""
        try:
            return urljoin(self.url, pattern % args if args else pattern)
        except (TypeError, ValueError):
            return ""

    # -------------------------
    # Lifecycle
    # -------------------------
    def close(self) -> None:
        with self._lock:
            clients = self._retired + ([self._client] if self._client is not None else [])
            self._client = None
            self._retired = []
            self._in_flight.clear()
        for c in clients:
            c.close()

    def __enter__(self) -> "ControlPlaneClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
