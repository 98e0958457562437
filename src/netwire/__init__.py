"""
=============================================================================
NETWIRE - Socket Primitives, Packet Framing and Protocol Clients
=============================================================================

A small networking library on top of the standard socket module:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        NETWIRE LAYERS                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   PROTOCOL CLIENTS        Ftp            Http                        │
    │                             │              │                         │
    │   ─────────────────────────┼──────────────┼──────────────────────── │
    │                             ▼              ▼                         │
    │   TRANSPORT          TcpSocket  TcpListener  UdpSocket              │
    │                             │        │          │                    │
    │                             └────────┴────┬─────┘                    │
    │                                           ▼                          │
    │   MULTIPLEXING                     SocketSelector                    │
    │                                                                      │
    │   VALUES             IpAddress   Packet   Status                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Transport calls never raise for network conditions; they return a Status
(DONE, NOT_READY, PARTIAL, DISCONNECTED, ERROR). Protocol clients return
response objects whose codes are the server's, or 1000+ for failures
detected locally.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    netwire/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m netwire)
    ├── config.py            # NetConfig dataclass
    ├── core/
    │   ├── status.py        # Status enum, OS error mapping
    │   ├── address.py       # IpAddress
    │   ├── packet.py        # Packet, PacketTransform
    │   ├── socket_base.py   # Socket base class
    │   ├── tcp.py           # TcpSocket, TcpListener
    │   ├── udp.py           # UdpSocket
    │   └── selector.py      # SocketSelector
    ├── ftp/
    │   ├── response.py      # FtpStatus, FtpResponse, reply parsing
    │   └── client.py        # Ftp
    └── http/
        ├── status_codes.py  # HttpStatus
        ├── request.py       # HttpMethod, HttpRequest
        ├── response.py      # HttpResponse, response parsing
        └── client.py        # Http

=============================================================================
QUICK START
=============================================================================

    from netwire import TcpSocket, Packet, Status
    
    sock = TcpSocket()
    if sock.connect("127.0.0.1", 5000, timeout=2.0) is Status.DONE:
        sock.send(Packet().write("hello").write(42))

=============================================================================
"""

__version__ = "1.0.0"
__author__ = "netwire contributors"

from .config import NetConfig
from .core import (
    IpAddress,
    Kind,
    Packet,
    PacketTransform,
    Socket,
    SocketSelector,
    SocketType,
    Status,
    TcpListener,
    TcpSocket,
    UdpSocket,
    ZlibTransform,
)
from .ftp import Ftp, FtpResponse, FtpStatus, TransferMode
from .http import Http, HttpMethod, HttpRequest, HttpResponse, HttpStatus

__all__ = [
    "__version__",
    "NetConfig",
    "IpAddress",
    "Kind",
    "Packet",
    "PacketTransform",
    "ZlibTransform",
    "Socket",
    "SocketType",
    "SocketSelector",
    "Status",
    "TcpListener",
    "TcpSocket",
    "UdpSocket",
    "Ftp",
    "FtpResponse",
    "FtpStatus",
    "TransferMode",
    "Http",
    "HttpMethod",
    "HttpRequest",
    "HttpResponse",
    "HttpStatus",
]
