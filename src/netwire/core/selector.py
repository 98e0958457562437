"""
=============================================================================
SOCKET SELECTOR - READINESS MULTIPLEXING
=============================================================================

A SocketSelector waits on many sockets at once so one thread can serve
them all without blocking on any single one.

    selector = SocketSelector()
    selector.add(listener)

    while running:
        if selector.wait(timeout=1.0):
            if selector.is_ready(listener):
                client = TcpSocket()
                if listener.accept(client) is Status.DONE:
                    clients.append(client)
                    selector.add(client)
            for client in clients:
                if selector.is_ready(client):
                    client.receive(packet)

"Ready" means a receive will not block: data is pending, the peer
closed, or (for a TcpListener) a connection is waiting to be accepted.

=============================================================================
NON-OWNING REFERENCES
=============================================================================

    ┌─────────────────────┐        weakref         ┌──────────────┐
    │   SocketSelector    │  ─ ─ ─ ─ ─ ─ ─ ─ ─ ─►  │  TcpSocket   │
    │                     │                        │ (owned by    │
    │  token 1 ─► ref ────┤                        │  the caller) │
    │  token 2 ─► ref ────┤  ─ ─ ─ ─ ─ ─ ─ ─ ─ ─►  │  UdpSocket   │
    └─────────────────────┘                        └──────────────┘

The selector never keeps a socket alive and never closes one. add()
returns a registration token that can stand in for the socket in
remove() and is_ready(). A socket collected while still registered is
a caller bug; wait() detects the dead reference, logs it and drops it.

wait() is one select() call over the handles' descriptors, looked up at
wait time, so a socket that reconnects keeps its registration.

select() only takes descriptors below FD_SETSIZE (1024 on Linux). A
process holding more open files than that gets a ValueError from
wait() once a watched socket's descriptor crosses the limit.

=============================================================================
"""

import itertools
import logging
import select
import weakref
from typing import Dict, Optional, Set, Union

from .socket_base import Socket


logger = logging.getLogger(__name__)

SocketOrToken = Union[Socket, int]


class SocketSelector:
    """Readiness multiplexer over weakly referenced sockets."""
    
    def __init__(self):
        self._entries: Dict[int, "weakref.ReferenceType[Socket]"] = {}
        self._ready: Set[int] = set()
        self._counter = itertools.count(1)
    
    # =========================================================================
    # WATCH SET
    # =========================================================================
    
    def add(self, sock: Socket) -> Optional[int]:
        """
        Start watching a socket.
        
        Adding a socket already in the selector returns its existing
        token. A socket without an OS handle (never connected, bound or
        listening) cannot be watched and is ignored.
        
        Returns:
            The registration token, or None if the socket was ignored.
        """
        token = self._token_of(sock)
        if token is not None:
            return token
        
        if sock.fileno() < 0:
            logger.warning(f"Not adding {sock!r} to selector: it has no handle")
            return None
        
        token = next(self._counter)
        self._entries[token] = weakref.ref(sock)
        return token
    
    def remove(self, sock: SocketOrToken) -> None:
        """Stop watching a socket (by object or token). Unknown ones are ignored."""
        token = self._resolve(sock)
        if token is None:
            return
        self._entries.pop(token, None)
        self._ready.discard(token)
    
    def clear(self) -> None:
        """Forget every socket. None of them is closed."""
        self._entries.clear()
        self._ready.clear()
    
    def __len__(self) -> int:
        return len(self._entries)
    
    def __contains__(self, sock: SocketOrToken) -> bool:
        return self._resolve(sock) is not None
    
    # =========================================================================
    # WAITING
    # =========================================================================
    
    def wait(self, timeout: float = 0.0) -> bool:
        """
        Block until at least one watched socket is ready to receive.
        
        Args:
            timeout: Maximum seconds to wait; 0 waits indefinitely.
        
        Returns:
            True if some socket is ready, False on timeout or failure.
        
        Raises:
            ValueError: If a descriptor is too large for select().
        """
        self._ready.clear()
        
        descriptors: Dict[int, int] = {}
        for token, ref in list(self._entries.items()):
            sock = ref()
            if sock is None:
                logger.warning(f"Socket with token {token} was destroyed while in a selector")
                del self._entries[token]
                continue
            fd = sock.fileno()
            if fd >= 0:
                descriptors[fd] = token
        
        if not descriptors:
            logger.debug("Selector has no open sockets to wait on")
            return False
        
        try:
            readable, _, _ = select.select(
                list(descriptors),
                [],
                [],
                timeout if timeout > 0 else None,
            )
        except OSError as e:
            logger.error(f"Selector wait failed: {e}")
            return False
        
        self._ready = {descriptors[fd] for fd in readable}
        return bool(self._ready)
    
    def is_ready(self, sock: SocketOrToken) -> bool:
        """
        Whether a socket was reported ready by the last wait().
        
        Always False before the first wait() and for unknown sockets.
        """
        token = self._resolve(sock)
        return token is not None and token in self._ready
    
    # =========================================================================
    # LOOKUP
    # =========================================================================
    
    def _token_of(self, sock: Socket) -> Optional[int]:
        for token, ref in self._entries.items():
            if ref() is sock:
                return token
        return None
    
    def _resolve(self, sock: SocketOrToken) -> Optional[int]:
        if isinstance(sock, Socket):
            return self._token_of(sock)
        return sock if sock in self._entries else None
