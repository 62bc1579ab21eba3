"""
Connection routing for requests sessions

A route decides which address a socket is actually opened to. SystemRoute
leaves resolution to DNS; FixedRoute dials a chosen IP on the port taken from
the request URL while the URL, Host header and TLS SNI stay untouched, which
is how a request is delivered straight to a suspected origin behind a CDN.
"""

import socket

import requests
import urllib3
from requests.adapters import HTTPAdapter
from urllib3.connection import HTTPConnection, HTTPSConnection
from urllib3.connectionpool import HTTPConnectionPool, HTTPSConnectionPool
from urllib3.exceptions import ConnectTimeoutError, NewConnectionError
from urllib3.util import connection

# Disable SSL warnings, origins are probed with verification off
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)


class _FixedDialMixin:
    """Open the socket to dial_address instead of resolving the URL host"""
    dial_address = None

    def _new_conn(self):
        try:
            return connection.create_connection(
                (self.dial_address, self.port),
                self.timeout,
                source_address=self.source_address,
                socket_options=self.socket_options,
            )
        except socket.timeout as e:
            raise ConnectTimeoutError(
                self,
                f"Connection to {self.dial_address}:{self.port} timed out "
                f"(connect timeout={self.timeout})",
            ) from e
        except OSError as e:
            raise NewConnectionError(
                self, f"Failed to connect to {self.dial_address}:{self.port}: {e}"
            ) from e


def _pool_classes(address: str) -> dict:
    """Connection pool classes whose connections all dial `address`"""
    attrs = {'dial_address': address}
    http_conn = type('FixedHTTPConnection', (_FixedDialMixin, HTTPConnection), attrs)
    https_conn = type('FixedHTTPSConnection', (_FixedDialMixin, HTTPSConnection), attrs)
    return {
        'http': type('FixedHTTPConnectionPool', (HTTPConnectionPool,),
                     {'ConnectionCls': http_conn}),
        'https': type('FixedHTTPSConnectionPool', (HTTPSConnectionPool,),
                      {'ConnectionCls': https_conn}),
    }


class FixedAddressAdapter(HTTPAdapter):
    """Transport adapter that sends every request to one IP address"""

    def __init__(self, address: str, **kwargs):
        # init_poolmanager runs inside HTTPAdapter.__init__
        self.address = address
        super().__init__(**kwargs)

    def init_poolmanager(self, connections, maxsize, block=False, **pool_kwargs):
        super().init_poolmanager(connections, maxsize, block=block, **pool_kwargs)
        self.poolmanager.pool_classes_by_scheme = _pool_classes(self.address)


class SystemRoute:
    """Normal routing: the URL host is resolved through DNS"""

    def adapter(self) -> HTTPAdapter:
        return HTTPAdapter(max_retries=0)

    def describe(self, url: str) -> str:
        return url


class FixedRoute:
    """Route every connection to a fixed address, keeping hostname and SNI"""

    def __init__(self, address: str):
        self.address = address

    def adapter(self) -> HTTPAdapter:
        return FixedAddressAdapter(self.address, max_retries=0)

    def describe(self, url: str) -> str:
        return f"{url} via {self.address}"


def build_session(route, user_agent: str) -> requests.Session:
    """A single-use session whose transport follows `route`"""
    session = requests.Session()
    session.verify = False
    # Environment proxies would take the connection away from the route
    session.trust_env = False
    session.headers['User-Agent'] = user_agent
    adapter = route.adapter()
    session.mount('http://', adapter)
    session.mount('https://', adapter)
    return session
