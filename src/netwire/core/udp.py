"""
=============================================================================
UDP SOCKETS
=============================================================================

A UdpSocket is connectionless: every send names its destination and
every receive reports its sender.

DATAGRAMS KEEP THEIR BOUNDARIES
───────────────────────────────

Unlike TCP, one send() arrives as exactly one receive() (if it arrives
at all), so packets travel WITHOUT a length prefix:

    TCP packet:   [ 4-byte length ][ payload ]
    UDP packet:                    [ payload ]      one datagram

UDP is unreliable: datagrams can be lost, duplicated or reordered, but a
datagram that arrives is intact. Packets are never split across
datagrams, so anything larger than MAX_DATAGRAM_SIZE is refused with
ERROR before a single byte is sent.

    65535  max IP packet
  -    20  IPv4 header
  -     8  UDP header
  ───────
    65507  MAX_DATAGRAM_SIZE

=============================================================================
"""

import zlib
import logging
from typing import Optional, Tuple, Union

from ..config import NetConfig
from .address import IpAddress, to_address
from .packet import Packet
from .socket_base import Socket, SocketType, check_port
from .status import Status, status_from_error


logger = logging.getLogger(__name__)

AddressLike = Union[IpAddress, str, int]


class UdpSocket(Socket):
    """
    Datagram socket, optionally bound to a local port.
    
    Usage:
        sock = UdpSocket()
        sock.bind(55002)
        status, data, sender, port = sock.receive(1024)
        sock.send(b"welcome", sender, port)
    """
    
    MAX_DATAGRAM_SIZE = 65507
    
    def __init__(self, config: Optional[NetConfig] = None):
        super().__init__(SocketType.UDP, config)
    
    @property
    def local_port(self) -> int:
        """Port the socket is bound to, 0 if unbound."""
        if self._handle is None:
            return 0
        try:
            return self._handle.getsockname()[1]
        except OSError:
            return 0
    
    def bind(self, port: int, address: AddressLike = IpAddress.ANY) -> Status:
        """
        Bind to a local port so the socket can receive.
        
        Args:
            port: Local port, or Socket.ANY_PORT to let the OS choose.
            address: Local interface (default: all interfaces).
        """
        check_port(port)
        self.unbind()
        
        address = to_address(address)
        if not address.is_valid:
            logger.error(f"Cannot bind UDP socket to invalid address {address!r}")
            return Status.ERROR
        
        handle = self._create()
        try:
            handle.bind((str(address), port))
        except OSError as e:
            logger.error(f"Failed to bind UDP socket to port {port}: {e}")
            self.close()
            return Status.ERROR
        
        logger.info(f"UDP socket bound to {address}:{self.local_port}")
        return Status.DONE
    
    def unbind(self) -> None:
        """Release the port. The socket can still send afterwards."""
        self.close()
    
    # =========================================================================
    # RAW DATAGRAMS
    # =========================================================================
    
    def send(
        self,
        data: Union[bytes, bytearray, memoryview, Packet],
        remote_address: AddressLike,
        remote_port: int
    ) -> Status:
        """Send raw bytes or a Packet as one datagram."""
        if isinstance(data, Packet):
            return self.send_packet(data, remote_address, remote_port)
        return self.send_bytes(data, remote_address, remote_port)
    
    def send_bytes(
        self,
        data: Union[bytes, bytearray, memoryview],
        remote_address: AddressLike,
        remote_port: int
    ) -> Status:
        """
        Send raw bytes as one datagram.
        
        Returns:
            DONE, NOT_READY (non-blocking, buffer full) or ERROR
            (oversized datagram, invalid address, OS failure).
        """
        check_port(remote_port)
        if len(data) > self.MAX_DATAGRAM_SIZE:
            logger.error(
                f"Cannot send {len(data)} bytes in one datagram "
                f"(maximum is {self.MAX_DATAGRAM_SIZE})"
            )
            return Status.ERROR
        
        address = to_address(remote_address)
        if not address.is_valid:
            logger.error(f"Cannot send to invalid address {remote_address!r}")
            return Status.ERROR
        
        handle = self._create()
        try:
            handle.sendto(data, (str(address), remote_port))
        except OSError as e:
            return status_from_error(e)
        
        return Status.DONE
    
    def receive(
        self,
        target: Union[int, Packet]
    ) -> Union[Tuple[Status, bytes, IpAddress, int], Tuple[Status, IpAddress, int]]:
        """
        Receive one datagram as raw bytes (target = max size) or into a Packet.
        
        Returns:
            (status, data, sender, port) for raw reads,
            (status, sender, port) for packets.
        """
        if isinstance(target, Packet):
            return self.receive_packet(target)
        return self.receive_bytes(target)
    
    def receive_bytes(self, size: int) -> Tuple[Status, bytes, IpAddress, int]:
        """
        Receive one datagram of at most `size` bytes.
        
        Bytes of the datagram beyond `size` are discarded by the OS.
        """
        if self._handle is None:
            logger.error("Cannot receive data, the UDP socket is not bound")
            return Status.ERROR, b"", IpAddress.NONE, 0
        
        try:
            data, (host, port) = self._handle.recvfrom(size)
        except OSError as e:
            return status_from_error(e), b"", IpAddress.NONE, 0
        
        return Status.DONE, data, IpAddress(host), port
    
    # =========================================================================
    # PACKETS
    # =========================================================================
    
    def send_packet(self, packet: Packet, remote_address: AddressLike, remote_port: int) -> Status:
        """Send a packet's wire bytes as one datagram, without a length prefix."""
        return self.send_bytes(packet.on_send(), remote_address, remote_port)
    
    def receive_packet(self, packet: Packet) -> Tuple[Status, IpAddress, int]:
        """Receive one datagram into a packet (cleared first)."""
        packet.clear()
        
        status, data, sender, port = self.receive_bytes(self.MAX_DATAGRAM_SIZE)
        if status is Status.DONE and data:
            try:
                packet.on_receive(data)
            except (zlib.error, ValueError) as e:
                logger.error(f"Packet transform rejected datagram from {sender}:{port}: {e}")
                return Status.ERROR, sender, port
        
        return status, sender, port
