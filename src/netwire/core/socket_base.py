"""
=============================================================================
SOCKET BASE CLASS
=============================================================================

Common state shared by TcpSocket, TcpListener and UdpSocket:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         Socket (base)                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   _handle     at most one OS socket, created lazily on first use    │
    │               (connect / bind / listen) and released by close()     │
    │                                                                      │
    │   _blocking   per-socket flag, True by default. Remembered while    │
    │               there is no handle and applied when one is created    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

BLOCKING VS NON-BLOCKING
────────────────────────

    blocking = True    connect/accept/send/receive wait until done
    blocking = False   they return at once with NOT_READY or PARTIAL

In non-blocking mode the caller owns retrying. The only notification
mechanism is polling, usually through a SocketSelector.

Sockets are owned by one thread at a time; nothing here is locked.

=============================================================================
"""

import socket
import logging
from enum import Enum
from typing import Optional

from ..config import NetConfig


logger = logging.getLogger(__name__)


def check_port(port: int) -> int:
    """Reject port numbers the OS could never accept."""
    if isinstance(port, bool) or not isinstance(port, int) or not 0 <= port <= 65535:
        raise ValueError(f"Invalid port: {port!r}. Must be 0-65535.")
    return port


class SocketType(Enum):
    TCP = "tcp"
    UDP = "udp"


class Socket:
    """
    Base class holding the OS handle and the blocking flag.
    
    Not used directly; see TcpSocket, TcpListener and UdpSocket.
    """
    
    ANY_PORT = 0
    """Port value asking the OS to pick any free port."""
    
    def __init__(self, socket_type: SocketType, config: Optional[NetConfig] = None):
        self.config = config or NetConfig()
        self._type = socket_type
        self._handle: Optional[socket.socket] = None
        self._blocking = True
    
    # =========================================================================
    # BLOCKING STATE
    # =========================================================================
    
    @property
    def blocking(self) -> bool:
        """Whether calls on this socket wait for completion."""
        return self._blocking
    
    @blocking.setter
    def blocking(self, blocking: bool) -> None:
        self._blocking = bool(blocking)
        if self._handle is not None:
            self._handle.setblocking(self._blocking)
    
    # =========================================================================
    # HANDLE LIFECYCLE
    # =========================================================================
    
    @property
    def handle(self) -> Optional[socket.socket]:
        """The underlying socket.socket, or None before first use."""
        return self._handle
    
    def fileno(self) -> int:
        """OS descriptor of the handle, -1 when there is none."""
        if self._handle is None:
            return -1
        return self._handle.fileno()
    
    def _create(self, handle: Optional[socket.socket] = None) -> socket.socket:
        """
        Make sure a handle exists, optionally adopting an existing one.
        
        Adopting (used by TcpListener.accept) closes any previous handle
        first. Creating is a no-op when a handle already exists.
        """
        if handle is not None:
            self.close()
        elif self._handle is not None:
            return self._handle
        else:
            if self._type is SocketType.TCP:
                handle = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            else:
                handle = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        
        self._handle = handle
        self._configure(handle)
        handle.setblocking(self._blocking)
        return handle
    
    def _configure(self, handle: socket.socket) -> None:
        """Apply protocol-specific socket options to a fresh handle."""
        if self._type is SocketType.TCP:
            # Small framed messages should leave immediately
            try:
                handle.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            except OSError:
                pass  # Not a connected-stream socket yet on some platforms
        else:
            handle.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
    
    def close(self) -> None:
        """Release the OS handle. Safe to call more than once."""
        if self._handle is None:
            return
        
        try:
            self._handle.close()
        except OSError:
            pass  # Already closed
        self._handle = None
    
    def __enter__(self):
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
    
    def __repr__(self) -> str:
        mode = "blocking" if self._blocking else "non-blocking"
        return f"{type(self).__name__}(fd={self.fileno()}, {mode})"
