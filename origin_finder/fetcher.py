"""
Baseline and probe fetches

Both read at most `limit` bytes of the body. Failures never raise: they come
back as an empty FetchResult carrying the reason.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

import requests

from .config import ProbeConfig
from .transport import FixedRoute, SystemRoute, build_session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchResult:
    """Body prefix of one fetch, or the reason it failed"""
    body: bytes = b""
    error: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, error: str) -> "FetchResult":
        return cls(body=b"", error=error)


def _socket_of(response: requests.Response):
    connection = getattr(response.raw, 'connection', None)
    return getattr(connection, 'sock', None)


def _arm(sock, deadline: float, received: int):
    """Give the next socket read only the time left until `deadline`"""
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise requests.exceptions.ReadTimeout(
            f"body not read within the deadline ({received} bytes received)")
    if sock is not None:
        sock.settimeout(remaining)


def read_prefix(response: requests.Response, limit: int, deadline: float) -> bytes:
    """
    Read up to `limit` decoded body bytes and stop.

    Reads go one byte at a time from the buffered socket, each with the time
    left until `deadline` as its timeout, so a server trickling bytes cannot
    hold the read past the deadline.
    """
    buf = bytearray()
    sock = _socket_of(response)
    _arm(sock, deadline, 0)
    for chunk in response.iter_content(chunk_size=1):
        buf.extend(chunk)
        if len(buf) >= limit:
            break
        _arm(sock, deadline, len(buf))
    return bytes(buf[:limit])


def fetch(config: ProbeConfig, route) -> FetchResult:
    """GET config.url over `route`, no redirects, single attempt, one deadline"""
    deadline = time.monotonic() + config.timeout
    session = build_session(route, config.user_agent)
    try:
        with session.get(
            config.url,
            timeout=config.timeout,
            allow_redirects=False,
            stream=True,
        ) as response:
            body = read_prefix(response, config.limit, deadline)
            return FetchResult(body=body, status_code=response.status_code)
    except requests.RequestException as e:
        if isinstance(e, requests.Timeout) or time.monotonic() >= deadline:
            return FetchResult.failed(f"Timeout: no response within {config.timeout:g}s ({e})")
        return FetchResult.failed(f"{type(e).__name__}: {e}")
    finally:
        session.close()


def fetch_baseline(config: ProbeConfig) -> FetchResult:
    """Reference response through normal DNS routing"""
    result = fetch(config, SystemRoute())
    if result.success:
        logger.info("[+] Baseline for %s: %d bytes (status %s)",
                    config.url, len(result.body), result.status_code)
    else:
        logger.error("[-] Baseline fetch of %s failed: %s", config.url, result.error)
    return result


def probe(config: ProbeConfig, candidate: str) -> FetchResult:
    """Same request as the baseline, delivered straight to `candidate`"""
    result = fetch(config, FixedRoute(candidate))
    if result.success:
        logger.debug("[+] %s via %s: %d bytes (status %s)",
                     config.url, candidate, len(result.body), result.status_code)
    else:
        logger.warning("[-] %s via %s failed: %s", config.url, candidate, result.error)
    return result
