"""Tests for the feed HTTP client."""

import http.server
import ssl
import threading
from unittest.mock import MagicMock

import pytest
import requests
import trustme

from common.errors import NotFoundError, TransportError
from common.http_client import FeedHttpClient


def _client(status_code=200, content=b"payload", side_effect=None, **kwargs):
    session = MagicMock()
    response = MagicMock()
    response.status_code = status_code
    response.content = content
    session.get.return_value = response
    if side_effect is not None:
        session.get.side_effect = side_effect
    return FeedHttpClient(session=session, **kwargs), session


class TestFetch:
    """Test FeedHttpClient.fetch."""

    def test_returns_body(self):
        """A 2xx response returns the raw bytes."""
        client, session = _client(timeout=3)

        body = client.fetch("https://feed.example/x", headers={"Accept": "application/json"})

        assert body == b"payload"
        session.get.assert_called_once_with(
            "https://feed.example/x", timeout=3, headers={"Accept": "application/json"}, verify=False
        )

    def test_not_found(self):
        """404 maps to NotFoundError."""
        client, _ = _client(status_code=404)

        with pytest.raises(NotFoundError) as excinfo:
            client.fetch("https://feed.example/GetUpdates()")

        assert excinfo.value.status_code == 404

    def test_server_error(self):
        """Other non-2xx statuses are transport errors."""
        client, _ = _client(status_code=503)

        with pytest.raises(TransportError) as excinfo:
            client.fetch("https://feed.example/x")

        assert not isinstance(excinfo.value, NotFoundError)
        assert excinfo.value.status_code == 503

    def test_timeout(self):
        """Timeouts become TransportError."""
        client, _ = _client(side_effect=requests.Timeout("slow"))

        with pytest.raises(TransportError):
            client.fetch("https://feed.example/x")

    def test_connection_error(self):
        """Connection failures become TransportError."""
        client, _ = _client(side_effect=requests.ConnectionError("refused"))

        with pytest.raises(TransportError) as excinfo:
            client.fetch("https://feed.example/x")

        assert excinfo.value.url == "https://feed.example/x"

    def test_strict_client_verifies_each_request(self):
        """Validation is requested per call so environment CA bundles cannot change it."""
        client, session = _client(accept_all_certificates=False)

        client.fetch("https://feed.example/x")

        assert session.get.call_args[1]["verify"] is True


class TestSessionSetup:
    """Test per-client session configuration."""

    def test_accepts_all_certificates_by_default(self):
        """Certificate validation is off unless requested."""
        client, session = _client()

        assert client.accept_all_certificates
        assert session.verify is False

    def test_certificate_validation_can_be_enabled(self):
        """The override is scoped to the client that asks for it."""
        strict = FeedHttpClient(accept_all_certificates=False)
        lenient = FeedHttpClient()

        assert strict.session.verify is True
        assert lenient.session.verify is False

    def test_basic_auth(self):
        """A user name enables basic auth; a missing password is empty."""
        client, session = _client(username="me")

        assert session.auth == ("me", "")

    def test_default_timeout(self):
        """The timeout falls back to the configured default."""
        client, _ = _client()

        assert client.timeout > 0


class _HelloHandler(http.server.BaseHTTPRequestHandler):
    def do_GET(self):  # pylint: disable=invalid-name
        body = b"hello"
        self.send_response(200)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):  # pylint: disable=redefined-builtin
        pass


@pytest.fixture(name="tls_ca")
def fixture_tls_ca():
    return trustme.CA()


@pytest.fixture(name="tls_url")
def fixture_tls_url(tls_ca, monkeypatch):
    """HTTPS server on localhost with a certificate from a private CA."""
    monkeypatch.delenv("REQUESTS_CA_BUNDLE", raising=False)
    monkeypatch.delenv("CURL_CA_BUNDLE", raising=False)
    monkeypatch.setenv("NO_PROXY", "127.0.0.1")
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    tls_ca.issue_cert("127.0.0.1").configure_cert(ctx)
    httpd = http.server.HTTPServer(("127.0.0.1", 0), _HelloHandler)
    httpd.socket = ctx.wrap_socket(httpd.socket, server_side=True)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield f"https://127.0.0.1:{httpd.server_address[1]}/index.json"
    httpd.shutdown()
    httpd.server_close()
    thread.join()


class TestUntrustedCertificate:
    """Test fetching from a server whose CA is not in any trust store."""

    def test_accepted_by_default(self, tls_url):
        """The default client ignores the unknown chain."""
        assert FeedHttpClient().fetch(tls_url) == b"hello"

    def test_accepted_with_ca_bundle_in_environment(self, tls_url, monkeypatch):
        """A system CA bundle variable does not re-enable validation."""
        monkeypatch.setenv("REQUESTS_CA_BUNDLE", requests.certs.where())
        monkeypatch.setenv("CURL_CA_BUNDLE", requests.certs.where())

        assert FeedHttpClient().fetch(tls_url) == b"hello"

    def test_rejected_when_validation_enabled(self, tls_url):
        """A strict client refuses the unknown chain."""
        client = FeedHttpClient(accept_all_certificates=False)

        with pytest.raises(TransportError):
            client.fetch(tls_url)

    def test_strict_client_honours_ca_bundle(self, tls_url, tls_ca, monkeypatch):
        """With validation on, a bundle naming the private CA is trusted."""
        with tls_ca.cert_pem.tempfile() as ca_path:
            monkeypatch.setenv("REQUESTS_CA_BUNDLE", ca_path)

            body = FeedHttpClient(accept_all_certificates=False).fetch(tls_url)

        assert body == b"hello"
