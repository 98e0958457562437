"""
=============================================================================
SOCKET STATUS CODES
=============================================================================

Every socket operation in netwire reports its outcome as a Status value.
Transport conditions are RETURNED, never raised:

    ┌──────────────┬──────────────────────────────────────────────────────┐
    │  Status      │  Meaning                                             │
    ├──────────────┼──────────────────────────────────────────────────────┤
    │  DONE        │  The operation completed                             │
    │  NOT_READY   │  Non-blocking socket, nothing could be done yet      │
    │  PARTIAL     │  Some bytes moved; call again to finish              │
    │  DISCONNECTED│  The peer closed the connection in an orderly way    │
    │  ERROR       │  Anything else the OS reported                       │
    └──────────────┴──────────────────────────────────────────────────────┘

OS ERRORS TO STATUS
───────────────────

The socket module raises OSError subclasses. They collapse as follows:

    BlockingIOError (EAGAIN, EWOULDBLOCK, EINPROGRESS, EALREADY)
    socket.timeout                                  ──►  NOT_READY

    recv() returned b""                             ──►  DISCONNECTED

    ConnectionResetError, BrokenPipeError,
    EADDRINUSE, ECONNREFUSED, everything else       ──►  ERROR

A reset is an ERROR, not a DISCONNECTED: only an orderly FIN from the
peer counts as a disconnection.

=============================================================================
"""

import errno
import socket
import logging
from enum import Enum


logger = logging.getLogger(__name__)


class Status(Enum):
    """Outcome of a socket operation."""
    
    DONE = "done"
    NOT_READY = "not_ready"
    PARTIAL = "partial"
    DISCONNECTED = "disconnected"
    ERROR = "error"


# errno values meaning "try again later"
_WOULD_BLOCK = {
    errno.EAGAIN,
    errno.EWOULDBLOCK,
    errno.EINPROGRESS,
    errno.EALREADY,
}


def status_from_error(error: OSError) -> Status:
    """
    Translate an OSError raised by the socket module into a Status.
    
    Args:
        error: The exception caught around a socket call.
    
    Returns:
        NOT_READY for would-block conditions and timeouts, ERROR otherwise.
    """
    if isinstance(error, (BlockingIOError, socket.timeout)):
        return Status.NOT_READY
    
    if error.errno in _WOULD_BLOCK:
        return Status.NOT_READY
    
    logger.error(f"Socket error: {error}")
    return Status.ERROR


def status_from_errno(code: int) -> Status:
    """Same mapping as status_from_error() for a bare errno (connect_ex)."""
    if code == 0:
        return Status.DONE
    if code in _WOULD_BLOCK:
        return Status.NOT_READY
    logger.error(f"Socket error: [Errno {code}] {errno.errorcode.get(code, 'unknown')}")
    return Status.ERROR
