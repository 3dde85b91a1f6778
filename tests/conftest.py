"""
Shared fixtures for the envault tests.
"""

import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlsplit

import pytest


@pytest.fixture
def unset_env(monkeypatch):
    """
    Return a function that removes a variable for the duration of a test.

    The variable is also removed again afterwards, so values written by the
    code under test do not leak into other tests.
    """

    def unset(*keys):
        for key in keys:
            monkeypatch.setenv(key, "")
            monkeypatch.delenv(key)

    return unset


class _VaultHandler(BaseHTTPRequestHandler):
    def do_GET(self):
        stub = self.server.stub
        stub.requests.append(
            {
                "path": urlsplit(self.path).path,
                "token": self.headers.get("X-Vault-Token"),
                "namespace": self.headers.get("X-Vault-Namespace"),
            }
        )

        if stub.delay:
            time.sleep(stub.delay)

        body = stub.body.encode()
        try:
            self.send_response(stub.status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)
        except OSError:
            # The client gave up on a delayed response
            pass

    def log_message(self, format, *args):
        pass


class VaultStub:
    """A throwaway local HTTP server standing in for Vault."""

    def __init__(self):
        self.status = 200
        self.body = json.dumps({"data": {"data": {}}})
        self.delay = 0.0
        self.requests = []
        self._server = ThreadingHTTPServer(("127.0.0.1", 0), _VaultHandler)
        self._server.daemon_threads = True
        self._server.stub = self
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)

    @property
    def url(self):
        host, port = self._server.server_address[:2]
        return f"http://{host}:{port}"

    @property
    def last(self):
        return self.requests[-1]

    def respond_with(self, data):
        """Answer with a KV v2 response holding `data`."""
        self.status = 200
        self.body = json.dumps({"data": {"data": data}})

    def fail_with(self, status, body):
        self.status = status
        self.body = body

    def start(self):
        self._thread.start()

    def stop(self):
        self._server.shutdown()
        self._server.server_close()


@pytest.fixture
def vault_server(monkeypatch):
    """Run a stand-in Vault server for the duration of a test."""
    monkeypatch.setenv("NO_PROXY", "127.0.0.1,localhost")
    monkeypatch.setenv("no_proxy", "127.0.0.1,localhost")

    stub = VaultStub()
    stub.start()
    yield stub
    stub.stop()
