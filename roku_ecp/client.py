# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
SsdpClient -- An SSDP client that can:

  1. Send an M-SEARCH request to the SSDP multicast address (239.255.255.250:1900)
  2. Receive and decode search response SsdpDatagram's from remote nodes
  3. Yield responses as they arrive, until a deadline passes or enough responses have been received
"""

from __future__ import annotations


import asyncio
import socket
import sys
import re
import time
import datetime

from .internal_types import *
from .pkg_logging import logger
from .constants import SSDP_MULTICAST_ADDRESS, SSDP_PORT, DEFAULT_SEARCH_MX, DISCOVERY_TIME_BUDGET

from .ssdp_datagram import SsdpDatagram
from .ssdp_socket import SsdpSocket, SsdpSocketBinding, SsdpDatagramSubscriber
from .util import get_local_ip_addresses

class SsdpResponseInfo:
    socket_binding: SsdpSocketBinding
    """The socket binding on which the response was received"""

    src_addr: HostAndPort
    """The source address of the response"""

    datagram: SsdpDatagram
    """The response datagram"""

    http_version: str
    """The HTTP version string in the statement line (e.g. "1.1")"""

    status_code: int
    """The status code in the statement line (e.g. 200)"""

    status: str
    """The status string in the statement line (e.g. "OK")"""

    monotonic_time: float
    """The local time (in seconds) since an arbitrary point in the past at which
       the response was received, as returned by time.monotonic()."""

    utc_time: datetime.datetime
    """The UTC time at which the response was received."""

    def __init__(
            self,
            socket_binding: SsdpSocketBinding,
            src_addr: HostAndPort,
            datagram: SsdpDatagram,
            http_version: str,
            status_code: int,
            status: str
          ) -> None:
        self.socket_binding = socket_binding
        self.src_addr = src_addr
        self.datagram = datagram
        self.http_version = http_version
        self.status_code = status_code
        self.status = status
        self.monotonic_time = time.monotonic()
        self.utc_time = datetime.datetime.now(datetime.timezone.utc)

    @property
    def location(self) -> Optional[str]:
        """The advertised LOCATION URL of the responding device, or None."""
        return self.datagram.hdr_location

    @property
    def usn(self) -> Optional[str]:
        """The USN of the responding device, or None."""
        return self.datagram.hdr_usn

    @property
    def search_target(self) -> Optional[str]:
        """The ST header of the response, or None."""
        return self.datagram.hdr_st

    def __str__(self) -> str:
        return f"SsdpResponseInfo(src={self.src_addr}, status={self.status_code}, location={self.location}, usn={self.usn})"

    def __repr__(self) -> str:
        return str(self)

_response_statement_re = re.compile(r'^HTTP/(?P<version_major>[0-9]+)\.(?P<version_minor>[0-9]+) +(?P<status_code>[0-9]+)(?: +(?P<status>.*[^ ]))? *$')

def parse_response_statement(statement_line: str) -> Optional[Tuple[str, int, str]]:
    """Parses an HTTP-style response statement line ("HTTP/1.1 200 OK").

       Returns (http_version, status_code, status), or None if the line is not a response
       (e.g., it is an M-SEARCH or NOTIFY request from another node)."""
    m = _response_statement_re.match(statement_line)
    if m is None:
        return None
    http_version = f"{int(m.group('version_major'))}.{int(m.group('version_minor'))}"
    status_code = int(m.group('status_code'))
    status = m.group('status') or ''
    return (http_version, status_code, status)

class SsdpSearchRequest(
        AsyncContextManager['SsdpSearchRequest'],
        AsyncIterable[SsdpResponseInfo]
      ):
    """An object that manages a single M-SEARCH request on an SsdpClient and all of the received responses
       within an AsyncContextManager/AsyncIterable interface."""

    ssdp_client: SsdpClient
    search_target: str
    include_error_responses: bool

    dg_subscriber: SsdpDatagramSubscriber
    response_wait_time: float
    max_responses: int
    mx: int
    end_time: float = 0.0

    def __init__(
            self,
            ssdp_client: SsdpClient,
            search_target: str,
            response_wait_time: Optional[float]=None,
            max_responses: int=0,
            include_error_responses: bool=False,
            mx: int=DEFAULT_SEARCH_MX,
          ):
        """Create an async context manager/iterable that sends a multicast M-SEARCH request and returns
        the responses as they arrive.

        Parameters:
            ssdp_client:             The SsdpClient instance to use for sending the search request and receiving responses.
            search_target:           The ST value to search for (e.g., "roku:ecp").
            response_wait_time:      The amount of time (in seconds) to wait for responses to come in. Defaults to
                                        ssdp_client.response_wait_time.
            max_responses:           The maximum number of responses to return. If 0 (the default), all responses received
                                        within response_wait_time will be returned.
            include_error_responses: If True, responses with a non-200 status code will be included in the results.
                                        Defaults to False.
            mx:                      The MX (maximum response delay) to request from responders.

        Usage:
            async with SsdpSearchRequest(ssdp_client, "roku:ecp") as search_request:
                async for response in search_request:
                    print(response.location)
        """
        self.ssdp_client = ssdp_client
        self.search_target = search_target
        self.response_wait_time = ssdp_client.response_wait_time if response_wait_time is None else response_wait_time
        self.max_responses = max_responses
        self.include_error_responses = include_error_responses
        self.mx = mx

    def accept_response(self, info: SsdpResponseInfo) -> bool:
        """Returns True if a response should be yielded to the caller."""
        if not self.include_error_responses and info.status_code != 200:
            return False
        st = info.search_target
        if self.search_target != 'ssdp:all' and st is not None and st != self.search_target:
            return False
        return True

    async def __aenter__(self) -> SsdpSearchRequest:
        self.dg_subscriber = SsdpDatagramSubscriber(self.ssdp_client)
        # The subscriber must be started before the search request is sent so that no responses are missed.
        await self.dg_subscriber.__aenter__()
        try:
            search_datagram = SsdpDatagram.m_search(
                self.search_target,
                mx=self.mx,
                multicast_address=self.ssdp_client.multicast_address,
                multicast_port=self.ssdp_client.multicast_port,
              )
            for socket_binding in self.ssdp_client.socket_bindings:
                socket_binding.sendto(search_datagram, (self.ssdp_client.multicast_address, self.ssdp_client.multicast_port))
            self.end_time = time.monotonic() + self.response_wait_time
        except BaseException as e:
            # __aexit__ is not called if __aenter__ raises, so the subscriber must be cleaned up here.
            await self.dg_subscriber.__aexit__(type(e), e, e.__traceback__)
            raise
        return self

    async def __aexit__(
            self,
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
      ) -> bool:
        return await self.dg_subscriber.__aexit__(exc_type, exc, tb)

    async def iter_responses(self) -> AsyncIterator[SsdpResponseInfo]:
        n = 0
        while True:
            if self.max_responses > 0 and n >= self.max_responses:
                break
            remaining_time = self.end_time - time.monotonic()
            if remaining_time <= 0.0:
                break
            try:
                resp_tuple = await asyncio.wait_for(self.dg_subscriber.receive(), remaining_time)
            except asyncio.TimeoutError:
                break
            if resp_tuple is None:
                break
            socket_binding, addr, datagram = resp_tuple
            parsed = parse_response_statement(datagram.statement_line)
            if parsed is None:
                logger.debug(f"Ignoring non-response datagram from {addr}: {datagram.statement_line}")
                continue
            http_version, status_code, status = parsed
            info = SsdpResponseInfo(socket_binding, addr, datagram, http_version, status_code, status)
            logger.debug(f"Received SSDP response from {addr} on {socket_binding}: status_code={status_code}, headers={dict(datagram.headers)}")
            if self.accept_response(info):
                n += 1
                yield info

    def __aiter__(self) -> AsyncIterator[SsdpResponseInfo]:
        return self.iter_responses()


class SsdpClient(SsdpSocket, AsyncContextManager['SsdpClient']):
    """
    An SSDP client that can:

      1. Send an M-SEARCH request to the SSDP multicast address (239.255.255.250:1900)
      2. Receive and decode search response SsdpDatagram's from remote nodes
      3. Yield responses received within a configurable timeout period
    """
    response_wait_time: float
    """The amount of time (in seconds) to wait for all responses to come in."""

    multicast_address: str = SSDP_MULTICAST_ADDRESS
    """The multicast address to send requests to."""

    multicast_port: int = SSDP_PORT
    """The multicast port to send requests to."""

    bind_addresses: List[str]
    """The local IP addresses to bind to. One socket is created per address."""

    include_loopback: bool = False
    """If True, loopback addresses will be included in the list of local IP addresses to bind to."""

    def __init__(
            self,
            response_wait_time: float=DISCOVERY_TIME_BUDGET,
            multicast_address: str=SSDP_MULTICAST_ADDRESS,
            multicast_port: int=SSDP_PORT,
            bind_addresses: Optional[Iterable[str]]=None,
            include_loopback: bool = False
          ) -> None:
        super().__init__()
        self.response_wait_time = response_wait_time
        self.multicast_address = multicast_address
        self.multicast_port = multicast_port
        self.include_loopback = include_loopback
        if bind_addresses is None:
            bind_addresses = get_local_ip_addresses(include_loopback=self.include_loopback)
        self.bind_addresses = list(bind_addresses)

    async def add_socket_bindings(self) -> None:
        """Creates one UDP socket for each bind address. Search responses are unicast back
           to the socket that sent the M-SEARCH, so no multicast group membership is needed."""
        addrinfo = socket.getaddrinfo(self.multicast_address, self.multicast_port)[0]
        address_family = addrinfo[0]
        assert address_family in (socket.AF_INET, socket.AF_INET6)
        logger.debug(f"Creating socket bindings to {self.bind_addresses}")
        for bind_address in self.bind_addresses:
            sock = socket.socket(address_family, socket.SOCK_DGRAM)
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                if sys.platform not in ( 'win32', 'cygwin' ):
                    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
                if address_family == socket.AF_INET:
                    sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, 2)
                    sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_IF, socket.inet_aton(bind_address))
                sock.bind((bind_address, 0))
                sock.setblocking(False)
            except BaseException:
                sock.close()
                raise
            socket_binding = SsdpSocketBinding(sock)
            self.add_socket_binding(socket_binding)

    def search(
            self,
            search_target: str,
            response_wait_time: Optional[float]=None,
            max_responses: int=0,
            include_error_responses: bool=False,
            mx: int=DEFAULT_SEARCH_MX,
          ) -> SsdpSearchRequest:
        """Create an async context manager/iterable that sends a multicast M-SEARCH request and returns the responses
           as they arrive. See SsdpSearchRequest.

        Usage:
            async with ssdp_client.search("roku:ecp") as search_request:
                async for response in search_request:
                    print(response.location)
                    # It is possible to break out of the loop early if desired
        """
        return SsdpSearchRequest(
                self,
                search_target,
                response_wait_time=response_wait_time,
                max_responses=max_responses,
                include_error_responses=include_error_responses,
                mx=mx,
              )

    async def simple_search(
            self,
            search_target: str,
            response_wait_time: Optional[float]=None,
            max_responses: int=0,
            include_error_responses: bool=False,
          ) -> List[SsdpResponseInfo]:
        """A simple search that creates a search request, collects responses until response_wait_time
           elapses or max_responses have arrived, and returns them as a list.

           Incremental results can be obtained by using the search() method.
        """
        results: List[SsdpResponseInfo] = []
        async with self.search(
                search_target,
                response_wait_time=response_wait_time,
                max_responses=max_responses,
                include_error_responses=include_error_responses,
              ) as search_request:
            async for response in search_request:
                results.append(response)
        return results

    async def __aenter__(self) -> SsdpClient:
        await super().__aenter__()
        return self
