"""
Unit tests for UdpSocket.
"""

from netwire.core.address import IpAddress
from netwire.core.packet import Packet
from netwire.core.socket_base import Socket
from netwire.core.status import Status
from netwire.core.udp import UdpSocket


def bound_socket() -> UdpSocket:
    sock = UdpSocket()
    assert sock.bind(Socket.ANY_PORT, "127.0.0.1") is Status.DONE
    return sock


class TestUdpDatagrams:
    """Tests for raw datagrams."""
    
    def test_send_and_receive(self):
        receiver = bound_socket()
        sender = bound_socket()
        
        assert sender.send(b"hello", IpAddress.LOCALHOST, receiver.local_port) is Status.DONE
        status, data, address, port = receiver.receive(1024)
        
        assert status is Status.DONE
        assert data == b"hello"
        assert address == IpAddress.LOCALHOST
        assert port == sender.local_port
        
        receiver.close()
        sender.close()
    
    def test_oversized_datagram_rejected(self):
        """65508 bytes is one too many; nothing is sent."""
        receiver = bound_socket()
        receiver.blocking = False
        sender = UdpSocket()
        
        status = sender.send(b"x" * (UdpSocket.MAX_DATAGRAM_SIZE + 1), "127.0.0.1", receiver.local_port)
        
        assert status is Status.ERROR
        assert sender.handle is None
        assert receiver.receive(70000)[0] is Status.NOT_READY
        receiver.close()
    
    def test_maximum_datagram_accepted(self):
        receiver = bound_socket()
        sender = UdpSocket()
        
        status = sender.send(b"x" * UdpSocket.MAX_DATAGRAM_SIZE, "127.0.0.1", receiver.local_port)
        
        assert status is Status.DONE
        assert len(receiver.receive(UdpSocket.MAX_DATAGRAM_SIZE)[1]) == UdpSocket.MAX_DATAGRAM_SIZE
        receiver.close()
        sender.close()
    
    def test_send_to_invalid_address(self):
        assert UdpSocket().send(b"x", IpAddress.NONE, 9) is Status.ERROR
    
    def test_receive_unbound_is_error(self):
        status, data, address, port = UdpSocket().receive(16)
        
        assert status is Status.ERROR
        assert address == IpAddress.NONE
        assert port == 0
    
    def test_unbind_releases_port(self):
        sock = bound_socket()
        sock.unbind()
        
        assert sock.local_port == 0
        assert sock.handle is None


class TestUdpPackets:
    def test_packet_has_no_length_prefix(self):
        receiver = bound_socket()
        sender = UdpSocket()
        
        sender.send(Packet().write(7), "127.0.0.1", receiver.local_port)
        status, data, _, _ = receiver.receive(1024)
        
        assert data == (7).to_bytes(8, "big")
        receiver.close()
        sender.close()
    
    def test_packet_round_trip(self):
        receiver = bound_socket()
        sender = bound_socket()
        
        sender.send(Packet().write("datagram").write(True), "127.0.0.1", receiver.local_port)
        packet = Packet()
        status, address, port = receiver.receive(packet)
        
        assert status is Status.DONE
        assert port == sender.local_port
        assert packet.read(str) == "datagram"
        assert packet.read(bool) is True
        receiver.close()
        sender.close()
