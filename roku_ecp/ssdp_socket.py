#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
SsdpSocket -- the datagram layer under SsdpClient.

An SsdpSocket owns one bound UDP socket per local interface address (an SsdpSocketBinding),
decodes every datagram received on any of them, and hands the decoded SsdpDatagrams to its
subscribers. A subscriber is a queue read by a single async consumer.

A failure on one binding (e.g., ENETUNREACH on an interface with no multicast route) closes
that binding only. Subscribers see end-of-stream once every binding is closed.

Subclasses implement add_socket_bindings() to create the sockets.
"""

from __future__ import annotations

import asyncio
import socket
from abc import abstractmethod

from .internal_types import *
from .pkg_logging import logger
from .exceptions import DiscoveryError
from .ssdp_datagram import SsdpDatagram

MAX_QUEUE_SIZE = 1000

ReceivedDatagram = Tuple['SsdpSocketBinding', HostAndPort, SsdpDatagram]
"""A datagram as delivered to subscribers: (socket_binding, src_addr, datagram)"""

class SsdpSocketBinding:
    """One low-level bound datagram socket of an SsdpSocket (typically one per network interface)."""

    index: int = -1
    """Position within SsdpSocket.socket_bindings; -1 until added."""

    sock: Optional[socket.socket]
    """The bound socket. Owned by the asyncio transport once the endpoint is created."""

    transport: Optional[asyncio.DatagramTransport] = None

    unicast_addr: HostAndPort
    """The local address the socket is bound to; search responses arrive here."""

    sockname: str

    closed: bool = False

    def __init__(self, sock: socket.socket, sockname: Optional[str]=None):
        self.sock = sock
        unicast_addr = sock.getsockname()
        self.unicast_addr = (unicast_addr[0], unicast_addr[1])
        self.sockname = f"{self.unicast_addr[0]}:{self.unicast_addr[1]}" if sockname is None else sockname

    def sendto(self, datagram: SsdpDatagram, addr: HostAndPort) -> None:
        if self.closed or self.transport is None:
            logger.debug(f"Not sending via closed {self}")
            return
        logger.debug(f"Sending SsdpDatagram via {self} to {addr}: {datagram}")
        self.transport.sendto(datagram.raw_data, addr)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.transport is not None:
            # closes the socket as well
            self.transport.close()
        elif self.sock is not None:
            self.sock.close()
        self.sock = None

    def __str__(self) -> str:
        return f"SsdpSocketBinding({self.index}: {self.sockname})"

    def __repr__(self) -> str:
        return str(self)

class _SsdpSocketProtocol(asyncio.DatagramProtocol):
    """Routes asyncio transport callbacks for one binding to its SsdpSocket."""

    def __init__(self, ssdp_socket: SsdpSocket, socket_binding: SsdpSocketBinding):
        self.ssdp_socket = ssdp_socket
        self.socket_binding = socket_binding

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        # asyncio datagram transports do not inherit from asyncio.DatagramTransport
        self.socket_binding.transport = transport # type: ignore[assignment]

    def datagram_received(self, data: bytes, addr: Tuple[str, int]) -> None:
        self.ssdp_socket.datagram_received(self.socket_binding, addr, data)

    def error_received(self, exc: Exception) -> None:
        self.ssdp_socket.error_received(self.socket_binding, exc)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        self.ssdp_socket.connection_lost(self.socket_binding, exc)

class SsdpDatagramSubscriber(AsyncContextManager['SsdpDatagramSubscriber']):
    """A queue of datagrams received by an SsdpSocket, consumed by a single async reader.

       receive() may be cancelled (e.g., by asyncio.wait_for) without affecting later calls."""

    ssdp_socket: SsdpSocket
    queue: asyncio.Queue[Optional[ReceivedDatagram]]
    eos: bool = False

    def __init__(self, ssdp_socket: SsdpSocket, max_queue_size: int=MAX_QUEUE_SIZE):
        self.ssdp_socket = ssdp_socket
        # one slot is reserved for the end-of-stream marker
        self.queue = asyncio.Queue(max_queue_size + 1)
        self.max_queue_size = max_queue_size

    async def __aenter__(self) -> SsdpDatagramSubscriber:
        self.ssdp_socket.add_subscriber(self)
        if self.ssdp_socket.closed:
            self.on_end_of_stream()
        return self

    async def __aexit__(
            self,
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
      ) -> bool:
        self.ssdp_socket.remove_subscriber(self)
        self.eos = True
        return False

    async def receive(self) -> Optional[ReceivedDatagram]:
        """Waits for the next datagram. Returns None at end-of-stream."""
        result = await self.queue.get()
        if result is None:
            # leave the marker for any later call
            self.queue.put_nowait(None)
        return result

    def on_datagram(self, socket_binding: SsdpSocketBinding, addr: HostAndPort, datagram: SsdpDatagram) -> None:
        if self.eos:
            return
        if self.queue.qsize() >= self.max_queue_size:
            logger.warning(f"Queue full, dropping datagram from {socket_binding} {addr}: {datagram}")
            return
        self.queue.put_nowait((socket_binding, addr, datagram))

    def on_end_of_stream(self) -> None:
        if not self.eos:
            self.eos = True
            self.queue.put_nowait(None)

class SsdpSocket(AsyncContextManager['SsdpSocket']):
    """An abstract set of bound UDP sockets that decodes SsdpDatagrams and delivers them to subscribers."""

    socket_bindings: List[SsdpSocketBinding]
    """One SsdpSocketBinding per low-level socket, in the order they were added."""

    datagram_subscribers: Set[SsdpDatagramSubscriber]

    def __init__(self) -> None:
        self.socket_bindings = []
        self.datagram_subscribers = set()

    @property
    def closed(self) -> bool:
        """True once every binding has been closed (or if there are none)."""
        return all(b.closed for b in self.socket_bindings)

    def add_subscriber(self, subscriber: SsdpDatagramSubscriber) -> None:
        self.datagram_subscribers.add(subscriber)

    def remove_subscriber(self, subscriber: SsdpDatagramSubscriber) -> None:
        self.datagram_subscribers.discard(subscriber)

    def add_socket_binding(self, socket_binding: SsdpSocketBinding) -> None:
        if socket_binding.index >= 0:
            raise DiscoveryError(f"Attempt to reattach SsdpSocketBinding: {socket_binding}")
        socket_binding.index = len(self.socket_bindings)
        self.socket_bindings.append(socket_binding)
        logger.debug(f"Added socket binding {socket_binding}")

    @abstractmethod
    async def add_socket_bindings(self) -> None:
        """Creates and binds the sockets (typically one per interface) and adds each
           with self.add_socket_binding()."""
        raise NotImplementedError()

    async def start(self) -> None:
        """Creates the sockets and their asyncio datagram endpoints. On failure every
           socket created so far is closed and the exception is raised."""
        loop = asyncio.get_running_loop()
        try:
            await self.add_socket_bindings()
            if len(self.socket_bindings) == 0:
                raise DiscoveryError("No local addresses to bind SSDP sockets to")
            for socket_binding in self.socket_bindings:
                await loop.create_datagram_endpoint(
                    lambda b=socket_binding: _SsdpSocketProtocol(self, b),
                    sock=socket_binding.sock
                  )
                logger.debug(f"Created datagram endpoint for {socket_binding}")
        except BaseException:
            self.close()
            raise

    def close(self) -> None:
        for socket_binding in self.socket_bindings:
            socket_binding.close()
        self._end_streams()

    def _end_streams(self) -> None:
        for subscriber in list(self.datagram_subscribers):
            subscriber.on_end_of_stream()

    def datagram_received(self, socket_binding: SsdpSocketBinding, addr: HostAndPort, data: bytes) -> None:
        """Decodes a received datagram and delivers it to every subscriber. Malformed datagrams are dropped."""
        try:
            datagram = SsdpDatagram(raw_data=data)
        except Exception as e:
            logger.warning(f"Error parsing datagram from {addr}, raw=[{data!r}]: {e}")
            return
        logger.debug(f"Received datagram from {socket_binding} {addr}: {datagram}")
        for subscriber in list(self.datagram_subscribers):
            subscriber.on_datagram(socket_binding, addr, datagram)

    def error_received(self, socket_binding: SsdpSocketBinding, exc: Exception) -> None:
        """A send or receive on one binding failed. Only that binding is closed."""
        logger.warning(f"Closing {socket_binding} after error: {exc}")
        socket_binding.close()
        if self.closed:
            self._end_streams()

    def connection_lost(self, socket_binding: SsdpSocketBinding, exc: Optional[Exception]) -> None:
        logger.debug(f"Transport closed on {socket_binding}, exc={exc}")
        socket_binding.closed = True
        if self.closed:
            self._end_streams()

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
            self,
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
      ) -> bool:
        self.close()
        return False
