"""
=============================================================================
IPv4 ADDRESSES
=============================================================================

IpAddress is a small value type around a 32-bit IPv4 address.

    IpAddress()                    # invalid (same as IpAddress.NONE)
    IpAddress("127.0.0.1")         # dotted decimal
    IpAddress("localhost")         # host name, resolved with DNS
    IpAddress(192, 168, 1, 56)     # four bytes
    IpAddress(0x7F000001)          # 32-bit integer (first byte most significant)

THE "INVALID" SENTINEL
──────────────────────

Every 32-bit value is a legal IPv4 address, including 255.255.255.255
(the broadcast address). So "invalid" cannot be encoded in the integer
itself; it is a separate flag:

    ┌──────────────────────┬───────────┬─────────────┐
    │  Address             │  integer  │  valid      │
    ├──────────────────────┼───────────┼─────────────┤
    │  IpAddress.NONE      │  0        │  False      │
    │  IpAddress.ANY       │  0        │  True       │
    │  IpAddress.LOCALHOST │  0x7F000001│ True       │
    │  IpAddress.BROADCAST │  0xFFFFFFFF│ True       │
    └──────────────────────┴───────────┴─────────────┘

A failed host name lookup yields an invalid address instead of raising.

Resolution (host names, local_address, public_address) is synchronous
and may block.

=============================================================================
"""

import socket
import struct
import logging
from functools import total_ordering
from typing import Tuple, Union


logger = logging.getLogger(__name__)


@total_ordering
class IpAddress:
    """
    Immutable IPv4 address.
    
    Instances compare, sort and hash by (validity, integer value), so
    invalid addresses sort before every valid one.
    """
    
    __slots__ = ("_address", "_valid")
    
    NONE: "IpAddress"
    ANY: "IpAddress"
    LOCALHOST: "IpAddress"
    BROADCAST: "IpAddress"
    
    def __init__(self, *args: Union[str, int]):
        """
        Build an address from nothing, a string, four bytes or an integer.
        
        Raises:
            TypeError: If the arguments match none of the forms above.
            ValueError: If a byte or integer is out of range.
        """
        address, valid = 0, False
        
        if len(args) == 1 and isinstance(args[0], str):
            address, valid = _resolve(args[0])
        elif len(args) == 1 and isinstance(args[0], int):
            if not 0 <= args[0] <= 0xFFFFFFFF:
                raise ValueError(f"IPv4 address out of range: {args[0]}")
            address, valid = args[0], True
        elif len(args) == 4 and all(isinstance(b, int) for b in args):
            if not all(0 <= b <= 255 for b in args):
                raise ValueError(f"IPv4 bytes out of range: {args}")
            address = (args[0] << 24) | (args[1] << 16) | (args[2] << 8) | args[3]
            valid = True
        elif args:
            raise TypeError(f"Cannot build an IpAddress from {args!r}")
        
        object.__setattr__(self, "_address", address)
        object.__setattr__(self, "_valid", valid)
    
    def __setattr__(self, name, value):
        raise AttributeError("IpAddress is immutable")
    
    # =========================================================================
    # ACCESSORS
    # =========================================================================
    
    @property
    def is_valid(self) -> bool:
        """False only for the NONE sentinel (or a failed resolution)."""
        return self._valid
    
    def to_integer(self) -> int:
        """Return the address as a 32-bit integer (0 for invalid addresses)."""
        return self._address if self._valid else 0
    
    def to_bytes(self) -> bytes:
        """Return the four address bytes in network order."""
        return struct.pack("!I", self.to_integer())
    
    def __str__(self) -> str:
        if not self._valid:
            return ""
        return socket.inet_ntoa(self.to_bytes())
    
    def __repr__(self) -> str:
        if not self._valid:
            return "IpAddress.NONE"
        return f"IpAddress('{self}')"
    
    # =========================================================================
    # COMPARISON
    # =========================================================================
    
    def _key(self) -> Tuple[bool, int]:
        return (self._valid, self._address)
    
    def __eq__(self, other) -> bool:
        if not isinstance(other, IpAddress):
            return NotImplemented
        return self._key() == other._key()
    
    def __lt__(self, other) -> bool:
        if not isinstance(other, IpAddress):
            return NotImplemented
        return self._key() < other._key()
    
    def __hash__(self) -> int:
        return hash(self._key())
    
    def __bool__(self) -> bool:
        return self._valid
    
    # =========================================================================
    # DISCOVERY
    # =========================================================================
    
    @classmethod
    def local_address(cls) -> "IpAddress":
        """
        Get this computer's address on the local network.
        
        Connecting a UDP socket sends nothing; it only makes the OS pick
        the outgoing interface, whose address getsockname() then reports.
        
        Returns:
            The LAN address, or IpAddress.NONE if no route exists.
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.connect(("10.255.255.255", 9))
            host, _ = sock.getsockname()
            return cls(host)
        except OSError as e:
            logger.warning(f"Could not determine local address: {e}")
            return cls.NONE
        finally:
            sock.close()
    
    @classmethod
    def public_address(cls, timeout: float = 0.0, config=None) -> "IpAddress":
        """
        Get this computer's address as seen from the internet.
        
        The only way to learn it is to ask a remote web service, so this
        performs an HTTP request and can be slow. A timeout of 0 uses the
        system default.
        
        Args:
            timeout: Maximum time to wait, in seconds.
            config: Optional NetConfig naming the address provider.
        
        Returns:
            The public address, or IpAddress.NONE on any failure.
        """
        from ..config import NetConfig
        from ..http import Http, HttpRequest, HttpStatus
        
        config = config or NetConfig()
        http = Http(config.public_address_host, config=config)
        request = HttpRequest(config.public_address_uri)
        request.set_http_version(1, 0)
        
        response = http.send_request(request, timeout)
        if response.status != HttpStatus.OK:
            logger.warning(f"Public address lookup failed with status {int(response.status)}")
            return cls.NONE
        
        return cls(response.body.decode("ascii", errors="replace").strip())


def _resolve(text: str) -> Tuple[int, bool]:
    """Resolve dotted decimal or a host name to (integer, valid)."""
    text = text.strip()
    if not text:
        return 0, False
    
    # inet_aton() accepts 255.255.255.255, which inet_addr() could not
    # tell apart from INADDR_NONE
    try:
        return struct.unpack("!I", socket.inet_aton(text))[0], True
    except OSError:
        pass
    
    try:
        resolved = socket.gethostbyname(text)
    except OSError as e:
        logger.debug(f"Could not resolve '{text}': {e}")
        return 0, False
    
    return struct.unpack("!I", socket.inet_aton(resolved))[0], True


def to_address(value: Union["IpAddress", str, int]) -> IpAddress:
    """Coerce a string or integer to an IpAddress, passing IpAddress through."""
    if isinstance(value, IpAddress):
        return value
    return IpAddress(value)


IpAddress.NONE = IpAddress()
IpAddress.ANY = IpAddress(0, 0, 0, 0)
IpAddress.LOCALHOST = IpAddress(127, 0, 0, 1)
IpAddress.BROADCAST = IpAddress(255, 255, 255, 255)
