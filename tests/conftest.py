"""
Shared pytest fixtures for Origin Finder tests.

Provides:
- A run configuration with small, fast settings
- Local HTTP, HTTPS and IPv6 servers whose responses echo the request
- A local server that trickles its body slower than any test timeout
- Restoring the package logger after CLI runs
"""

from __future__ import annotations

import logging
import socket
import ssl
import threading
import time
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from origin_finder.config import ProbeConfig

TEST_UA = "origin-finder-tests/1.0"


class EchoHandler(BaseHTTPRequestHandler):
    """Answers every GET with a body naming the Host header and User-Agent."""

    def do_GET(self) -> None:
        if self.path == "/redirect":
            body = b"redirecting elsewhere, this body is what gets compared"
            self.send_response(301)
            self.send_header("Location", "http://127.0.0.1:1/elsewhere")
        elif self.path == "/big":
            body = b"0123456789" * 500
            self.send_response(200)
        else:
            body = (f"host={self.headers.get('Host')} "
                    f"ua={self.headers.get('User-Agent')} "
                    f"path={self.path}").encode()
            self.send_response(200)
        self.send_header("Content-Type", "text/plain")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args) -> None:
        pass


class TrickleHandler(BaseHTTPRequestHandler):
    """Promises a 500-byte body, then sends one byte every 0.2s or nothing at all."""

    def do_GET(self) -> None:
        self.send_response(200)
        self.send_header("Content-Type", "text/plain")
        self.send_header("Content-Length", "500")
        self.end_headers()
        if self.path == "/stall":
            time.sleep(10)
            return
        for _ in range(500):
            time.sleep(0.2)
            try:
                self.wfile.write(b"x")
            except OSError:
                return

    def log_message(self, format: str, *args) -> None:
        pass


class IPv6HTTPServer(ThreadingHTTPServer):
    address_family = socket.AF_INET6


@contextmanager
def serving(server: ThreadingHTTPServer) -> Generator[int, None, None]:
    """Run `server` in a background thread and yield its port."""
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server.server_address[1]
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def echo_server() -> Generator[int, None, None]:
    """Port of a local echo server on 127.0.0.1."""
    with serving(ThreadingHTTPServer(("127.0.0.1", 0), EchoHandler)) as port:
        yield port


@pytest.fixture
def trickle_server() -> Generator[int, None, None]:
    """Port of a local server that never finishes its body in time."""
    with serving(ThreadingHTTPServer(("127.0.0.1", 0), TrickleHandler)) as port:
        yield port


@pytest.fixture
def ipv6_echo_server() -> Generator[int, None, None]:
    """Port of a local echo server bound on ::1 only."""
    if not socket.has_ipv6:
        pytest.skip("IPv6 not supported")
    try:
        server = IPv6HTTPServer(("::1", 0), EchoHandler)
    except OSError as e:
        pytest.skip(f"IPv6 loopback unavailable: {e}")
    with serving(server) as port:
        yield port


@pytest.fixture(scope="session")
def self_signed_cert(tmp_path_factory) -> tuple[Path, Path]:
    """Certificate and key files for a name unrelated to any test URL."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "unrelated.test")])
    now = datetime.now(timezone.utc)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(minutes=1))
        .not_valid_after(now + timedelta(days=1))
        .sign(private_key=key, algorithm=hashes.SHA256())
    )
    directory = tmp_path_factory.mktemp("tls")
    cert_path = directory / "server.crt"
    key_path = directory / "server.key"
    cert_path.write_bytes(certificate.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ))
    return cert_path, key_path


@pytest.fixture
def tls_echo_server(self_signed_cert) -> Generator[tuple[int, list], None, None]:
    """Port of a local HTTPS echo server and the SNI names it has seen."""
    cert_path, key_path = self_signed_cert
    seen_sni: list = []
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(certfile=str(cert_path), keyfile=str(key_path))
    context.sni_callback = lambda sslobj, server_name, ctx: seen_sni.append(server_name)
    server = ThreadingHTTPServer(("127.0.0.1", 0), EchoHandler)
    server.socket = context.wrap_socket(server.socket, server_side=True)
    with serving(server) as port:
        yield port, seen_sni


@pytest.fixture
def closed_port() -> int:
    """A local port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def make_config():
    """Factory for run configurations with test defaults."""

    def _make(url: str = "https://origin.test", **overrides) -> ProbeConfig:
        settings = {"user_agent": TEST_UA, "timeout": 5.0, "workers": 4}
        settings.update(overrides)
        return ProbeConfig(url=url, **settings)

    return _make


@pytest.fixture(autouse=True)
def restore_logger() -> Generator[None, None, None]:
    """Undo any handler setup the CLI does on the package logger."""
    logger = logging.getLogger("origin_finder")
    handlers, level, propagate = logger.handlers[:], logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
