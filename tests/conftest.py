import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Callable, Iterator

import httpx
import pytest

from gce_metadata import Client, reset_to_default_http_client
from gce_metadata.detection import _reset_detection

_ENV_VARS = ["GCE_METADATA_HOST", "GCE_METADATA_IP", "GCE_METADATA_DETECT_TIMEOUT"]
_PROXY_VARS = ["HTTP_PROXY", "http_proxy", "ALL_PROXY", "all_proxy", "NO_PROXY", "no_proxy"]

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture(autouse=True)
def clean_metadata_state(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Every test starts without overrides, cached detection or a swapped client."""
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    _reset_detection()
    yield
    reset_to_default_http_client()
    _reset_detection()


@pytest.fixture
def mock_client() -> Callable[[Handler], Client]:
    """Builds a Client whose requests are answered by ``handler``."""

    def _make(handler: Handler) -> Client:
        return Client(httpx.Client(transport=httpx.MockTransport(handler)))

    return _make


class _MetadataHandler(BaseHTTPRequestHandler):
    def do_GET(self) -> None:
        if self.headers.get("Metadata-Flavor") != "Google":
            self.send_response(403)
            self.end_headers()
            return
        body = b"value\n"
        self.send_response(200)
        self.send_header("Metadata-Flavor", "Google")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args) -> None:
        pass


@pytest.fixture
def metadata_server(monkeypatch: pytest.MonkeyPatch) -> Iterator[str]:
    """A local metadata server answering "value" to every key, set as GCE_METADATA_HOST."""
    server = HTTPServer(("127.0.0.1", 0), _MetadataHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host = f"127.0.0.1:{server.server_address[1]}"
    monkeypatch.setenv("GCE_METADATA_HOST", host)
    yield host
    server.shutdown()
    server.server_close()
    thread.join()


@pytest.fixture
def dead_proxy(monkeypatch: pytest.MonkeyPatch) -> None:
    """Points the proxy environment variables at a port nothing listens on."""
    for var in _PROXY_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("HTTP_PROXY", "http://127.0.0.1:9")
    monkeypatch.setenv("http_proxy", "http://127.0.0.1:9")
