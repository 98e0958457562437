"""
=============================================================================
TCP SOCKETS AND LISTENERS
=============================================================================

TcpSocket is the connection-oriented data plane; TcpListener accepts new
connections and hands them out as TcpSockets.

=============================================================================
TCP SOCKET STATE MACHINE
=============================================================================

    UNCONNECTED ──connect()──► CONNECTING ──────────► CONNECTED
         ▲                         │                      │
         │                         │ timeout / refused    │ disconnect()
         │                         ▼                      │ peer close
         └──────────────────── (ERROR) ◄──────────────────┘ reset

=============================================================================
TCP IS A BYTE STREAM - PACKET FRAMING
=============================================================================

TCP does not preserve message boundaries. Two send() calls may arrive as
one recv(), or one send() as several. Packet-level send/receive restore
the boundaries with a length prefix:

    ┌────────────────────┬──────────────────────────────────────────┐
    │ length (4 bytes,   │ payload (length bytes, after the packet  │
    │ big-endian UINT32) │ transform's on_send())                    │
    └────────────────────┴──────────────────────────────────────────┘

The receiver reads exactly 4 bytes, then exactly `length` bytes, then
hands the payload to the packet's on_receive(). Both phases keep their
progress in the socket between calls:

    receive(packet) → PARTIAL    (2 of 4 header bytes so far)
    receive(packet) → PARTIAL    (header done, 300 of 1000 payload bytes)
    receive(packet) → DONE       (packet now holds the payload)

On the sending side a PARTIAL result stores the progress in the packet
itself; call send() again with the SAME packet, unmodified, to finish.

Raw send(bytes) is different: it returns (PARTIAL, sent) and the caller
resends only data[sent:].

=============================================================================
"""

import select
import socket
import struct
import zlib
import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from ..config import NetConfig
from .address import IpAddress, to_address
from .packet import Packet
from .socket_base import Socket, SocketType, check_port
from .status import Status, status_from_error, status_from_errno


logger = logging.getLogger(__name__)

_HEADER = struct.Struct("!I")

AddressLike = Union[IpAddress, str, int]


@dataclass
class _PendingPacket:
    """Read-so-far state of a framed packet being received."""
    
    header: bytearray = field(default_factory=bytearray)
    size: Optional[int] = None
    data: bytearray = field(default_factory=bytearray)
    
    @property
    def started(self) -> bool:
        return bool(self.header)
    
    def reset(self) -> None:
        self.header.clear()
        self.size = None
        self.data.clear()


class TcpSocket(Socket):
    """
    Connected TCP endpoint with raw and packet-level I/O.
    
    Usage:
        sock = TcpSocket()
        if sock.connect("127.0.0.1", 55001, timeout=5.0) is Status.DONE:
            sock.send(Packet().write("hello"))
            packet = Packet()
            status = sock.receive(packet)
    """
    
    def __init__(self, config: Optional[NetConfig] = None):
        super().__init__(SocketType.TCP, config)
        self._pending = _PendingPacket()
    
    # =========================================================================
    # ENDPOINT INFORMATION
    # =========================================================================
    
    @property
    def local_port(self) -> int:
        """Local port the socket is bound to, 0 if it has none."""
        if self._handle is None:
            return 0
        try:
            return self._handle.getsockname()[1]
        except OSError:
            return 0
    
    @property
    def remote_address(self) -> IpAddress:
        """Address of the connected peer, IpAddress.NONE if unconnected."""
        peer = self._peer()
        return IpAddress(peer[0]) if peer else IpAddress.NONE
    
    @property
    def remote_port(self) -> int:
        """Port of the connected peer, 0 if unconnected."""
        peer = self._peer()
        return peer[1] if peer else 0
    
    def _peer(self) -> Optional[Tuple[str, int]]:
        if self._handle is None:
            return None
        try:
            return self._handle.getpeername()
        except OSError:
            return None
    
    # =========================================================================
    # CONNECTION
    # =========================================================================
    
    def connect(
        self,
        remote_address: AddressLike,
        remote_port: int,
        timeout: float = 0.0
    ) -> Status:
        """
        Connect to a remote peer.
        
        Any existing connection is closed first, and a failed attempt
        leaves the socket closed.
        
        With a timeout, a blocking socket is switched to non-blocking for
        the attempt, waits for writability within the deadline with
        select(), then gets its blocking mode back:
        
            setblocking(False) ─► connect_ex() ─► EINPROGRESS
                                        │
                          select([], [sock], [], timeout)
                                        │
                        writable? ──────┴────── deadline passed?
                            │                         │
                     SO_ERROR == 0 ?              close, ERROR
                       DONE / ERROR
        
        A non-blocking socket returns NOT_READY at once while the
        connection is in progress, timeout or not.
        
        Args:
            remote_address: Peer address (IpAddress, dotted string or host name).
            remote_port: Peer port.
            timeout: Seconds to wait; 0 means the OS default.
        
        Returns:
            DONE, NOT_READY (non-blocking, in progress) or ERROR.
        """
        check_port(remote_port)
        self.disconnect()
        
        address = to_address(remote_address)
        if not address.is_valid:
            logger.error(f"Cannot connect to invalid address {remote_address!r}")
            return Status.ERROR
        
        handle = self._create()
        target = (str(address), remote_port)
        
        if timeout <= 0:
            try:
                handle.connect(target)
            except OSError as e:
                status = status_from_error(e)
                if status is Status.ERROR:
                    self.disconnect()
                return status
            logger.debug(f"Connected to {target[0]}:{target[1]}")
            return Status.DONE
        
        was_blocking = self.blocking
        if was_blocking:
            handle.setblocking(False)
        
        try:
            status = status_from_errno(handle.connect_ex(target))
            if status is Status.ERROR:
                self.disconnect()
                return status
            
            if status is not Status.NOT_READY or not was_blocking:
                return status
            
            _, writable, _ = select.select([], [handle], [], timeout)
            if not writable:
                logger.warning(f"Connection to {target[0]}:{target[1]} timed out after {timeout}s")
                self.disconnect()
                return Status.ERROR
            
            status = status_from_errno(handle.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR))
            if status is Status.DONE and self._peer() is None:
                status = Status.ERROR
            
            if status is Status.DONE:
                logger.debug(f"Connected to {target[0]}:{target[1]}")
            else:
                self.disconnect()
            return status
        finally:
            if was_blocking and self._handle is not None:
                self._handle.setblocking(True)
    
    def disconnect(self) -> None:
        """Close the connection and forget any partially received packet."""
        self.close()
        self._pending.reset()
    
    def _adopt(self, handle: socket.socket) -> None:
        """Take over an accepted connection's handle."""
        self._create(handle)
        self._pending.reset()
    
    # =========================================================================
    # RAW BYTES
    # =========================================================================
    
    def send(self, data: Union[bytes, bytearray, memoryview, Packet]) -> Union[Tuple[Status, int], Status]:
        """
        Send raw bytes, or a Packet (see send_packet()).
        
        For raw bytes the result is (status, sent). In non-blocking mode a
        send that stops midway returns (PARTIAL, sent); resend data[sent:].
        
        Returns:
            (Status, bytes sent) for raw data, a Status for packets.
        """
        if isinstance(data, Packet):
            return self.send_packet(data)
        return self.send_bytes(data)
    
    def send_bytes(self, data: Union[bytes, bytearray, memoryview]) -> Tuple[Status, int]:
        """Send raw bytes; see send()."""
        if self._handle is None:
            logger.error("Cannot send data, the socket is not connected")
            return Status.ERROR, 0
        
        if not data:
            logger.error("Cannot send data over the network (no data to send)")
            return Status.ERROR, 0
        
        view = memoryview(data)
        sent = 0
        while sent < len(view):
            try:
                sent += self._handle.send(view[sent:])
            except OSError as e:
                status = status_from_error(e)
                if status is Status.NOT_READY and sent > 0:
                    return Status.PARTIAL, sent
                return status, sent
        
        return Status.DONE, sent
    
    def receive(self, target: Union[int, Packet]) -> Union[Tuple[Status, bytes], Status]:
        """
        Receive raw bytes (target is a maximum size) or a Packet.
        
        Raw receives return whatever is available, up to the size given.
        
        Returns:
            (Status, data) for raw reads, a Status for packets.
            An orderly close by the peer gives DISCONNECTED, a reset ERROR.
        """
        if isinstance(target, Packet):
            return self.receive_packet(target)
        return self.receive_bytes(target)
    
    def receive_bytes(self, size: int) -> Tuple[Status, bytes]:
        """Receive up to `size` raw bytes; see receive()."""
        if self._handle is None:
            logger.error("Cannot receive data, the socket is not connected")
            return Status.ERROR, b""
        
        if size <= 0:
            logger.error("Cannot receive data from the network (the destination buffer is invalid)")
            return Status.ERROR, b""
        
        try:
            data = self._handle.recv(size)
        except OSError as e:
            return status_from_error(e), b""
        
        if not data:
            return Status.DISCONNECTED, b""
        return Status.DONE, data
    
    # =========================================================================
    # PACKETS
    # =========================================================================
    
    def send_packet(self, packet: Packet) -> Status:
        """
        Send a packet with its 4-byte length prefix.
        
        PARTIAL means part of the frame left; call again with the same
        packet and it continues from where it stopped.
        """
        payload = packet.on_send()
        block = _HEADER.pack(len(payload)) + payload
        
        status, sent = self.send_bytes(memoryview(block)[packet._send_pos:])
        
        if status is Status.PARTIAL:
            packet._send_pos += sent
        elif status is Status.DONE:
            packet._send_pos = 0
            logger.debug(f"Sent packet: {len(payload)} payload bytes")
        
        return status
    
    def receive_packet(self, packet: Packet) -> Status:
        """
        Receive one framed packet.
        
        The packet is cleared, then filled only when the whole frame has
        arrived. PARTIAL means some of the frame is buffered in the
        socket; call again (same socket, any packet) to continue.
        """
        packet.clear()
        pending = self._pending
        
        # ─────────────────────────────────────────────────────────────────
        # PHASE 1: the 4-byte length prefix
        # ─────────────────────────────────────────────────────────────────
        while len(pending.header) < _HEADER.size:
            status, chunk = self.receive_bytes(_HEADER.size - len(pending.header))
            if status is not Status.DONE:
                return self._interrupted(status)
            pending.header += chunk
        
        if pending.size is None:
            (pending.size,) = _HEADER.unpack(pending.header)
        
        # ─────────────────────────────────────────────────────────────────
        # PHASE 2: exactly `size` payload bytes
        # ─────────────────────────────────────────────────────────────────
        while len(pending.data) < pending.size:
            wanted = min(pending.size - len(pending.data), self.config.buffer_size)
            status, chunk = self.receive_bytes(wanted)
            if status is not Status.DONE:
                return self._interrupted(status)
            pending.data += chunk
        
        raw = bytes(pending.data)
        pending.reset()
        
        try:
            packet.on_receive(raw)
        except (zlib.error, ValueError) as e:
            logger.error(f"Packet transform rejected {len(raw)} received bytes: {e}")
            return Status.ERROR
        
        logger.debug(f"Received packet: {len(raw)} payload bytes")
        return Status.DONE
    
    def _interrupted(self, status: Status) -> Status:
        """Status to report when a framed receive stops early."""
        if status is Status.NOT_READY:
            return Status.PARTIAL if self._pending.started else Status.NOT_READY
        
        # Disconnected or failed: the frame can never complete
        self._pending.reset()
        return status


class TcpListener(Socket):
    """
    Passive TCP socket producing TcpSockets for incoming connections.
    
    Usage:
        listener = TcpListener()
        listener.listen(55001)
        client = TcpSocket()
        if listener.accept(client) is Status.DONE:
            print(f"New connection from {client.remote_address}")
    """
    
    def __init__(self, config: Optional[NetConfig] = None):
        super().__init__(SocketType.TCP, config)
    
    @property
    def local_port(self) -> int:
        """Port the listener is bound to, 0 when not listening."""
        if self._handle is None:
            return 0
        try:
            return self._handle.getsockname()[1]
        except OSError:
            return 0
    
    def listen(self, port: int, address: AddressLike = IpAddress.ANY) -> Status:
        """
        Bind to a local port and start accepting connections.
        
        Args:
            port: Local port, or Socket.ANY_PORT to let the OS choose.
            address: Local interface to bind (default: all interfaces).
        
        Returns:
            DONE, or ERROR (address in use, permission denied, ...).
        """
        check_port(port)
        self.close()
        
        address = to_address(address)
        if not address.is_valid or address == IpAddress.BROADCAST:
            logger.error(f"Cannot listen on address {address!r}")
            return Status.ERROR
        
        handle = self._create()
        handle.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        
        try:
            handle.bind((str(address), port))
            handle.listen(socket.SOMAXCONN)
        except OSError as e:
            logger.error(f"Failed to bind listener socket to port {port}: {e}")
            self.close()
            return Status.ERROR
        
        logger.info(f"Listening on {address}:{self.local_port}")
        return Status.DONE
    
    def accept(self, sock: TcpSocket) -> Status:
        """
        Accept a pending connection into `sock`.
        
        Blocks until a peer connects, unless the listener is non-blocking,
        in which case NOT_READY means nobody is waiting.
        """
        if self._handle is None:
            logger.error("Failed to accept a new connection, the socket is not listening")
            return Status.ERROR
        
        try:
            handle, peer = self._handle.accept()
        except OSError as e:
            return status_from_error(e)
        
        sock._adopt(handle)
        logger.debug(f"Accepted connection from {peer[0]}:{peer[1]}")
        return Status.DONE
