"""
=============================================================================
FTP REPLIES
=============================================================================

Every FTP command gets a reply made of a 3-digit code and text (RFC 959):

    SINGLE LINE                      MULTI LINE

    250 Okay.\r\n                    211-Features:\r\n
                                     211-MDTM\r\n
                                      SIZE\r\n
                                     211 End\r\n

A multi-line reply starts with "CODE-" and ends at the first line that
starts with "CODE " (same code, then a SPACE). Lines in between may or
may not repeat the code; both forms are accepted.

=============================================================================
REPLY CODE RANGES
=============================================================================

    ┌───────────┬──────────────────────────────────────────────────────────┐
    │  1xx      │  Preliminary - more replies follow                      │
    │  2xx      │  Completed                                               │
    │  3xx      │  Intermediate - send the next command (e.g. PASS)       │
    │  4xx      │  Transient failure                                       │
    │  5xx      │  Permanent failure                                       │
    │  1000+    │  LOCAL - minted by this client, never sent by a server  │
    └───────────┴──────────────────────────────────────────────────────────┘

    1000  INVALID_RESPONSE    the server's reply could not be parsed
    1001  CONNECTION_FAILED   the control connection could not be opened
    1002  CONNECTION_CLOSED   the control connection broke mid-exchange
    1003  INVALID_FILE        a local file could not be read or written

A response is "ok" when its code is below 400.

=============================================================================
"""

import re
import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional, Union


logger = logging.getLogger(__name__)


class FtpStatus(IntEnum):
    """FTP reply codes, plus the local 1000+ range."""
    
    # 1xx Preliminary
    RESTART_MARKER_REPLY = 110
    SERVICE_READY_SOON = 120
    DATA_CONNECTION_ALREADY_OPENED = 125
    OPENING_DATA_CONNECTION = 150
    
    # 2xx Completed
    OK = 200
    POINTLESS_COMMAND = 202
    SYSTEM_STATUS = 211
    DIRECTORY_STATUS = 212
    FILE_STATUS = 213
    HELP_MESSAGE = 214
    SYSTEM_TYPE = 215
    SERVICE_READY = 220
    CLOSING_CONNECTION = 221
    DATA_CONNECTION_OPENED = 225
    CLOSING_DATA_CONNECTION = 226
    ENTERING_PASSIVE_MODE = 227
    LOGGED_IN = 230
    FILE_ACTION_OK = 250
    DIRECTORY_OK = 257
    
    # 3xx Intermediate
    NEED_PASSWORD = 331
    NEED_ACCOUNT_TO_LOG_IN = 332
    NEED_INFORMATION = 350
    
    # 4xx Transient failures
    SERVICE_UNAVAILABLE = 421
    DATA_CONNECTION_UNAVAILABLE = 425
    TRANSFER_ABORTED = 426
    FILE_ACTION_ABORTED = 450
    LOCAL_ERROR = 451
    INSUFFICIENT_STORAGE_SPACE = 452
    
    # 5xx Permanent failures
    COMMAND_UNKNOWN = 500
    PARAMETERS_UNKNOWN = 501
    COMMAND_NOT_IMPLEMENTED = 502
    BAD_COMMAND_SEQUENCE = 503
    PARAMETER_NOT_IMPLEMENTED = 504
    NOT_LOGGED_IN = 530
    NEED_ACCOUNT_TO_STORE = 532
    FILE_UNAVAILABLE = 550
    PAGE_TYPE_UNKNOWN = 551
    NOT_ENOUGH_MEMORY = 552
    FILENAME_NOT_ALLOWED = 553
    
    # 1000+ Local
    INVALID_RESPONSE = 1000
    CONNECTION_FAILED = 1001
    CONNECTION_CLOSED = 1002
    INVALID_FILE = 1003
    
    @property
    def is_local(self) -> bool:
        """True for codes minted by the client rather than the server."""
        return self >= 1000


StatusCode = Union[FtpStatus, int]


def to_status(code: int) -> StatusCode:
    """Map a numeric code to FtpStatus, keeping unknown codes as plain ints."""
    try:
        return FtpStatus(code)
    except ValueError:
        return code


class ReplyParseError(Exception):
    """Raised when control-channel text is not a valid FTP reply."""
    
    def __init__(self, message: str, status_code: int = FtpStatus.INVALID_RESPONSE):
        super().__init__(message)
        self.status_code = status_code


# =============================================================================
# RESPONSE TYPES
# =============================================================================

@dataclass
class FtpResponse:
    """
    A reply from the server, or a locally synthesized failure.
    
    Attributes:
        status: Reply code (FtpStatus when known, int otherwise).
        message: Reply text; lines of a multi-line reply joined with "\\n".
    """
    
    status: StatusCode = FtpStatus.INVALID_RESPONSE
    message: str = ""
    
    def __post_init__(self):
        self.status = to_status(int(self.status))
    
    @property
    def is_ok(self) -> bool:
        """True iff the code is below 400."""
        return self.status < 400
    
    def __bool__(self) -> bool:
        return self.is_ok


@dataclass
class DirectoryResponse(FtpResponse):
    """Reply to PWD, carrying the directory named in double quotes."""
    
    directory: str = ""
    
    @classmethod
    def from_response(cls, response: FtpResponse) -> "DirectoryResponse":
        directory = ""
        if response.is_ok:
            # 257 "/home/user" is the current directory
            begin = response.message.find('"')
            end = response.message.find('"', begin + 1)
            if begin != -1 and end != -1:
                directory = response.message[begin + 1:end]
        return cls(response.status, response.message, directory)


@dataclass
class ListingResponse(FtpResponse):
    """Reply to NLST, carrying the names sent over the data channel."""
    
    listing: List[str] = field(default_factory=list)
    
    @classmethod
    def from_response(cls, response: FtpResponse, data: bytes = b"") -> "ListingResponse":
        listing: List[str] = []
        if response.is_ok:
            text = data.decode("utf-8", errors="replace")
            listing = [line.rstrip("\r") for line in text.split("\n") if line.strip()]
        return cls(response.status, response.message, listing)


# =============================================================================
# REPLY PARSING
# =============================================================================

class ReplyReader:
    """
    Incremental parser for the control channel.
    
    Bytes arrive in arbitrary chunks; feed() them in and call
    next_reply() until it returns None (reply incomplete so far).
    Bytes after a complete reply stay buffered for the next one.
    """
    
    FIRST_LINE_PATTERN = re.compile(r"^(\d{3})([ -])(.*)$")
    
    def __init__(self):
        self._buffer = b""
    
    def reset(self) -> None:
        self._buffer = b""
    
    def feed(self, data: bytes) -> None:
        self._buffer += data
    
    def next_reply(self) -> Optional[FtpResponse]:
        """
        Extract one complete reply from the buffer.
        
        Returns:
            The reply, or None if more bytes are needed.
        
        Raises:
            ReplyParseError: If the first line has no valid code. The
                offending bytes are discarded.
        """
        lines: List[str] = []
        position = 0
        code: Optional[str] = None
        
        while True:
            newline = self._buffer.find(b"\n", position)
            if newline == -1:
                return None
            
            line = self._buffer[position:newline].decode("utf-8", errors="replace").rstrip("\r")
            position = newline + 1
            
            if code is None:
                match = self.FIRST_LINE_PATTERN.match(line)
                if not match:
                    self._buffer = self._buffer[position:]
                    raise ReplyParseError(f"Invalid FTP reply line: {line!r}")
                
                code, separator, text = match.groups()
                lines.append(text)
                if separator == " ":
                    break
                continue
            
            if line.startswith(code + " "):
                lines.append(line[4:])
                break
            if line.startswith(code + "-"):
                lines.append(line[4:])
            else:
                lines.append(line)
        
        self._buffer = self._buffer[position:]
        response = FtpResponse(int(code), "\n".join(lines))
        logger.debug(f"FTP reply {int(response.status)}: {lines[0]}")
        return response


def parse_reply(data: Union[bytes, str]) -> FtpResponse:
    """
    Parse one complete reply held in memory.
    
    Raises:
        ReplyParseError: If the data is malformed or incomplete.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    
    reader = ReplyReader()
    reader.feed(data)
    response = reader.next_reply()
    if response is None:
        raise ReplyParseError("Incomplete FTP reply")
    return response
