"""
Core transport components: addresses, packets, sockets and the selector.

    core/
    ├── status.py        # Status enum, OSError → Status mapping
    ├── address.py       # IpAddress value type
    ├── packet.py        # Packet container and transforms
    ├── socket_base.py   # Socket base class (handle + blocking flag)
    ├── tcp.py           # TcpSocket, TcpListener
    ├── udp.py           # UdpSocket
    └── selector.py      # SocketSelector
"""

from .status import Status
from .address import IpAddress
from .packet import Packet, Kind, PacketTransform, ZlibTransform
from .socket_base import Socket, SocketType
from .tcp import TcpSocket, TcpListener
from .udp import UdpSocket
from .selector import SocketSelector

__all__ = [
    "Status",
    "IpAddress",
    "Packet",
    "Kind",
    "PacketTransform",
    "ZlibTransform",
    "Socket",
    "SocketType",
    "TcpSocket",
    "TcpListener",
    "UdpSocket",
    "SocketSelector",
]
