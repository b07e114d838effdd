# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
HTTP transport for ECP requests.

Each request uses its own requests.Session, closed before returning; there is no
connection pooling and no retrying. Failures are normalized into:

    EcpTransportError     -- the device could not be reached (DNS, refused, timeout)
    EcpAccessDeniedError  -- HTTP 401; ECP is disabled on the device
    EcpHttpError          -- any other status than 200 OK
"""

from __future__ import annotations

import requests

from .internal_types import *
from .pkg_logging import logger
from .constants import DEFAULT_HTTP_TIMEOUT
from .exceptions import EcpTransportError, EcpHttpError, EcpAccessDeniedError

HTTP_METHODS = ("GET", "POST")

class EcpResponse(NamedTuple):
    """A successful (HTTP 200) ECP response."""
    payload: bytes
    content_type: str

class EcpTransport:
    """Sends single HTTP requests to Roku devices."""

    timeout: Optional[float]
    """Timeout (in seconds) for connecting to the device and for each read. None waits forever."""

    def __init__(self, timeout: Optional[float]=DEFAULT_HTTP_TIMEOUT) -> None:
        self.timeout = timeout

    def fetch(self, url: str, method: str="GET") -> EcpResponse:
        """Performs exactly one HTTP request.

        Raises:
            EcpTransportError:    The request could not be completed.
            EcpAccessDeniedError: The device responded 401 Unauthorized.
            EcpHttpError:         The device responded with a status other than 200.
        """
        method = method.upper()
        if not method in HTTP_METHODS:
            raise ValueError(f"Unsupported ECP HTTP method: {method}")
        logger.debug(f"ECP {method} {url}")
        with requests.Session() as session:
            try:
                resp = session.request(method, url, timeout=self.timeout)
            except requests.RequestException as e:
                logger.debug(f"ECP {method} {url} failed: {e}")
                raise EcpTransportError(f"ECP {method} request failed: {url}: {e}") from e
            status_code = resp.status_code
            payload = resp.content
            content_type = resp.headers.get("Content-Type", "")
        logger.debug(f"ECP {method} {url} -> {status_code} ({len(payload)} bytes)")
        if status_code == 401:
            raise EcpAccessDeniedError(url=url)
        if status_code != 200:
            raise EcpHttpError(status_code, url=url)
        return EcpResponse(payload, content_type)

    def send(self, url: str, method: str="GET") -> bytes:
        """Performs exactly one HTTP request and returns the response body. See fetch()."""
        return self.fetch(url, method).payload

    def get(self, url: str) -> bytes:
        return self.send(url, "GET")

    def post(self, url: str) -> bytes:
        return self.send(url, "POST")

