"""
=============================================================================
PACKETS - TYPED SERIALIZATION CONTAINER
=============================================================================

A Packet is a growable byte buffer with a read cursor. Values are written
in a fixed wire encoding and read back in the same order:

    packet = Packet()
    packet.write(24, Kind.UINT32).write("hello").write(5.89)

    # ... send it, receive it at the other end ...

    x = packet.read(Kind.UINT32)     # 24
    s = packet.read(str)             # "hello"
    d = packet.read(float)           # 5.89
    if packet:                       # every read succeeded
        ...

=============================================================================
WIRE ENCODING
=============================================================================

All fixed-width numbers are BIG-ENDIAN (network byte order), so two
machines agree no matter what their native byte order is.

    ┌───────────────┬────────┬──────────────────────────────────────────┐
    │  Kind         │ Bytes  │  Encoding                                │
    ├───────────────┼────────┼──────────────────────────────────────────┤
    │  BOOL         │  1     │  0x00 / 0x01                             │
    │  INT8/UINT8   │  1     │  two's complement / unsigned             │
    │  INT16/UINT16 │  2     │  big-endian                              │
    │  INT32/UINT32 │  4     │  big-endian                              │
    │  INT64/UINT64 │  8     │  big-endian                              │
    │  FLOAT32      │  4     │  IEEE 754, big-endian                    │
    │  FLOAT64      │  8     │  IEEE 754, big-endian                    │
    │  STRING       │  4 + n │  UINT32 byte count, then UTF-8 bytes     │
    │  BYTES        │  4 + n │  UINT32 byte count, then raw bytes       │
    └───────────────┴────────┴──────────────────────────────────────────┘

Strings are NOT null-terminated.

=============================================================================
READ VALIDITY
=============================================================================

Reading past the end never raises. Instead the packet flips to invalid:

    offset ─────────────────────┐
                                ▼
    data:   [ 00 00 00 18 | 00 00 00 05 h e l l o ]
                                          ▲
    read(Kind.FLOAT64) needs 8 bytes, only 5 remain
        → returns 0.0, packet.valid = False, offset unchanged
        → every later read returns its default too

Only clear() makes a packet valid again.

=============================================================================
TRANSFORMS
=============================================================================

A PacketTransform is called at two points:

    Packet data ──► on_send() ──► bytes on the wire ──► on_receive() ──► Packet data

The default is identity. ZlibTransform compresses; anything with the same
two methods (encryption, checksums, ...) can be plugged in the same way.

=============================================================================
"""

import copy
import struct
import zlib
import logging
from enum import Enum
from typing import Any, Optional, Union


logger = logging.getLogger(__name__)


class Kind(Enum):
    """Wire types a Packet can encode. Values are struct format codes."""
    
    BOOL = "?"
    INT8 = "b"
    UINT8 = "B"
    INT16 = "h"
    UINT16 = "H"
    INT32 = "i"
    UINT32 = "I"
    INT64 = "q"
    UINT64 = "Q"
    FLOAT32 = "f"
    FLOAT64 = "d"
    STRING = "string"
    BYTES = "bytes"
    
    @property
    def is_sized(self) -> bool:
        """True for the length-prefixed kinds (STRING, BYTES)."""
        return self in (Kind.STRING, Kind.BYTES)


# Python types accepted in place of a Kind, and the Kind each one means
_PYTHON_KINDS = {
    bool: Kind.BOOL,
    int: Kind.INT64,
    float: Kind.FLOAT64,
    str: Kind.STRING,
    bytes: Kind.BYTES,
}

_DEFAULTS = {
    Kind.BOOL: False,
    Kind.FLOAT32: 0.0,
    Kind.FLOAT64: 0.0,
    Kind.STRING: "",
    Kind.BYTES: b"",
}

_LENGTH = struct.Struct("!I")

KindLike = Union[Kind, type]


def _as_kind(kind: KindLike) -> Kind:
    if isinstance(kind, Kind):
        return kind
    try:
        return _PYTHON_KINDS[kind]
    except (KeyError, TypeError):
        raise TypeError(f"Packet cannot encode values of type {kind!r}")


def _infer_kind(value: Any) -> Kind:
    # bool before int: bool is a subclass of int
    for python_type in (bool, int, float, str, bytes):
        if isinstance(value, python_type):
            return _PYTHON_KINDS[python_type]
    if isinstance(value, (bytearray, memoryview)):
        return Kind.BYTES
    raise TypeError(f"Packet cannot encode values of type {type(value).__name__}")


# =============================================================================
# TRANSFORMS
# =============================================================================

class PacketTransform:
    """
    Identity transform; subclass or duck-type to alter wire bytes.
    
    on_send() receives the packet's logical bytes and returns the bytes
    to transmit. on_receive() receives the transmitted bytes and returns
    the logical bytes. The two must be inverses.
    """
    
    def on_send(self, data: bytes) -> bytes:
        return data
    
    def on_receive(self, data: bytes) -> bytes:
        return data


class ZlibTransform(PacketTransform):
    """Compress packet payloads with zlib."""
    
    def __init__(self, level: int = 6):
        """
        Args:
            level: Compression level (1-9). 1 = fastest, 9 = smallest.
        """
        if not 1 <= level <= 9:
            raise ValueError(f"zlib level must be 1-9, got {level}")
        self.level = level
    
    def on_send(self, data: bytes) -> bytes:
        return zlib.compress(data, self.level)
    
    def on_receive(self, data: bytes) -> bytes:
        return zlib.decompress(data)


IDENTITY = PacketTransform()


# =============================================================================
# PACKET
# =============================================================================

class Packet:
    """
    Byte buffer with typed, cursor-based reads and appending writes.
    
    Attributes:
        transform: Hook pair applied when the packet goes over a socket.
    """
    
    def __init__(self, data: bytes = b"", transform: Optional[PacketTransform] = None):
        self.transform = transform or IDENTITY
        self._data = bytearray(data)
        self._read_pos = 0
        self._valid = True
        
        # Bytes of the framed block already handed to a TCP socket by a
        # send() that returned PARTIAL
        self._send_pos = 0
    
    # =========================================================================
    # RAW ACCESS
    # =========================================================================
    
    def append(self, data: bytes) -> "Packet":
        """Append pre-encoded bytes to the end of the packet."""
        self._data += data
        return self
    
    def clear(self) -> None:
        """Empty the packet and reset the cursor and the validity flag."""
        self._data.clear()
        self._read_pos = 0
        self._valid = True
        self._send_pos = 0
    
    @property
    def data(self) -> bytes:
        """A copy of the packet's bytes."""
        return bytes(self._data)
    
    @property
    def size(self) -> int:
        """Number of bytes in the packet."""
        return len(self._data)
    
    def __len__(self) -> int:
        return len(self._data)
    
    @property
    def read_position(self) -> int:
        return self._read_pos
    
    @property
    def send_position(self) -> int:
        """Framed bytes already sent by a TCP send that returned PARTIAL."""
        return self._send_pos
    
    def end_of_packet(self) -> bool:
        """True when the cursor has consumed every byte (not an error)."""
        return self._read_pos >= len(self._data)
    
    @property
    def valid(self) -> bool:
        """False once any read ran past the end of the data."""
        return self._valid
    
    def __bool__(self) -> bool:
        return self._valid
    
    def copy(self) -> "Packet":
        """Independent copy sharing only the transform."""
        return copy.copy(self)
    
    def __copy__(self) -> "Packet":
        clone = Packet(bytes(self._data), self.transform)
        clone._read_pos = self._read_pos
        clone._valid = self._valid
        return clone
    
    def __repr__(self) -> str:
        return f"Packet(size={len(self._data)}, read_position={self._read_pos}, valid={self._valid})"
    
    # =========================================================================
    # WRITING
    # =========================================================================
    
    def write(self, value: Any, kind: Optional[KindLike] = None) -> "Packet":
        """
        Append one value in its wire encoding.
        
        Without an explicit kind, the Python type decides:
        bool → BOOL, int → INT64, float → FLOAT64, str → STRING,
        bytes → BYTES.
        
        Args:
            value: The value to encode.
            kind: Wire type (a Kind, or one of bool/int/float/str/bytes).
        
        Returns:
            Self for method chaining.
        
        Raises:
            TypeError: If the value cannot be encoded.
            ValueError: If an integer does not fit the requested width.
        """
        kind = _infer_kind(value) if kind is None else _as_kind(kind)
        
        if kind is Kind.STRING:
            encoded = str(value).encode("utf-8")
            self._data += _LENGTH.pack(len(encoded)) + encoded
        elif kind is Kind.BYTES:
            encoded = bytes(value)
            self._data += _LENGTH.pack(len(encoded)) + encoded
        else:
            try:
                self._data += struct.pack("!" + kind.value, value)
            except struct.error as e:
                raise ValueError(f"Cannot encode {value!r} as {kind.name}: {e}")
        
        return self
    
    def write_many(self, *values: Any) -> "Packet":
        """Write several values with inferred kinds."""
        for value in values:
            self.write(value)
        return self
    
    # =========================================================================
    # READING
    # =========================================================================
    
    def read(self, kind: KindLike) -> Any:
        """
        Consume one value from the cursor.
        
        Args:
            kind: Wire type to decode (a Kind, or bool/int/float/str/bytes).
        
        Returns:
            The decoded value, or the kind's default (False, 0, 0.0, "", b"")
            if the packet is already invalid or too few bytes remain.
        """
        kind = _as_kind(kind)
        default = _DEFAULTS.get(kind, 0)
        
        if kind.is_sized:
            if not self._check_size(_LENGTH.size):
                return default
            (length,) = _LENGTH.unpack_from(self._data, self._read_pos)
            if not self._check_size(_LENGTH.size + length):
                return default
            
            start = self._read_pos + _LENGTH.size
            raw = bytes(self._data[start:start + length])
            self._read_pos = start + length
            
            if kind is Kind.STRING:
                return raw.decode("utf-8", errors="replace")
            return raw
        
        fmt = struct.Struct("!" + kind.value)
        if not self._check_size(fmt.size):
            return default
        
        (value,) = fmt.unpack_from(self._data, self._read_pos)
        self._read_pos += fmt.size
        return value
    
    def _check_size(self, size: int) -> bool:
        self._valid = self._valid and self._read_pos + size <= len(self._data)
        return self._valid
    
    # =========================================================================
    # TRANSFORM HOOKS
    # =========================================================================
    
    def on_send(self) -> bytes:
        """Bytes to place on the wire for this packet."""
        return self.transform.on_send(bytes(self._data))
    
    def on_receive(self, data: bytes) -> None:
        """Replace the contents with the logical form of received bytes."""
        self.clear()
        self.append(self.transform.on_receive(data))
        logger.debug(f"Packet loaded: {len(data)} wire bytes -> {len(self._data)} bytes")
