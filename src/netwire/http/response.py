"""
=============================================================================
HTTP RESPONSES
=============================================================================

Parses what a server sends back:

    HTTP/1.1 200 OK\r\n                  ◄── status line
    Content-Type: text/plain\r\n         ◄── header fields
    Content-Length: 5\r\n
    \r\n                                 ◄── blank line
    hello                                ◄── body

=============================================================================
BODY LENGTH
=============================================================================

    ┌──────────────────────────────────┬─────────────────────────────────┐
    │ Response to HEAD, or 1xx/204/304 │ no body                         │
    ├──────────────────────────────────┼─────────────────────────────────┤
    │ Content-Length: N                │ exactly N bytes                 │
    ├──────────────────────────────────┼─────────────────────────────────┤
    │ anything else                    │ everything until the server     │
    │                                  │ closes the connection           │
    └──────────────────────────────────┴─────────────────────────────────┘

Chunked transfer encoding is not decoded; such a body is returned raw.

=============================================================================
"""

import re
import logging
from typing import Dict, Optional, Union

from .status_codes import HttpStatus, to_status


logger = logging.getLogger(__name__)


class ResponseParseError(Exception):
    """Raised when a server's reply is not a valid HTTP response."""
    
    def __init__(self, message: str, status_code: int = HttpStatus.INVALID_RESPONSE):
        super().__init__(message)
        self.status_code = status_code


class HttpResponse:
    """
    A parsed HTTP response, or a local failure (status 1000 / 1001).
    
    Field names are stored lowercase; get_field() is case-insensitive.
    """
    
    def __init__(
        self,
        status: Union[HttpStatus, int] = HttpStatus.CONNECTION_FAILED,
        major_version: int = 0,
        minor_version: int = 0,
        fields: Optional[Dict[str, str]] = None,
        body: bytes = b""
    ):
        self.status = to_status(int(status))
        self.major_http_version = major_version
        self.minor_http_version = minor_version
        self.fields: Dict[str, str] = dict(fields or {})
        self.body = body
    
    def get_field(self, name: str, default: str = "") -> str:
        return self.fields.get(name.lower(), default)
    
    @property
    def text(self) -> str:
        """Body decoded as UTF-8, with undecodable bytes replaced."""
        return self.body.decode("utf-8", errors="replace")
    
    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 400
    
    @property
    def content_length(self) -> Optional[int]:
        """The Content-Length field, or None when absent or unparseable."""
        value = self.get_field("content-length").strip()
        if not value.isdigit():
            return None
        return int(value)
    
    def has_body(self, head_request: bool = False) -> bool:
        if head_request:
            return False
        return not (100 <= self.status < 200 or self.status in (204, 304))
    
    def __repr__(self) -> str:
        return (
            f"HttpResponse({int(self.status)}, "
            f"HTTP/{self.major_http_version}.{self.minor_http_version}, "
            f"{len(self.body)} bytes)"
        )


# =============================================================================
# PARSING
# =============================================================================

STATUS_LINE_PATTERN = re.compile(r"^HTTP/(\d+)\.(\d+)\s+(\d{3})(?:\s+(.*))?$", re.IGNORECASE)
FIELD_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")


def find_head_end(data: bytes) -> int:
    """
    Locate the end of the header section.
    
    Returns:
        Index of the first body byte, or -1 if the blank line has not
        arrived yet. Bare LF line endings are tolerated.
    """
    crlf = data.find(b"\r\n\r\n")
    lf = data.find(b"\n\n")
    
    candidates = []
    if crlf != -1:
        candidates.append(crlf + 4)
    if lf != -1:
        candidates.append(lf + 2)
    return min(candidates) if candidates else -1


def parse_head(head: bytes) -> HttpResponse:
    """
    Parse the status line and header fields.
    
    Args:
        head: Bytes up to (and optionally including) the blank line.
    
    Returns:
        A response with an empty body.
    
    Raises:
        ResponseParseError: If the status line is malformed.
    """
    text = head.decode("latin-1")
    lines = [line.rstrip("\r") for line in text.split("\n")]
    
    match = STATUS_LINE_PATTERN.match(lines[0].strip())
    if not match:
        raise ResponseParseError(f"Invalid status line: {lines[0]!r}")
    
    major, minor, code, _reason = match.groups()
    
    fields: Dict[str, str] = {}
    current_name = None
    for line in lines[1:]:
        if not line:
            break
        
        # Obsolete line folding: continuation of the previous field
        if line[0] in (" ", "\t"):
            if current_name is not None:
                fields[current_name] += " " + line.strip()
            continue
        
        field_match = FIELD_PATTERN.match(line)
        if not field_match:
            logger.debug(f"Ignoring malformed header line: {line!r}")
            continue
        
        current_name = field_match.group(1).strip().lower()
        fields[current_name] = field_match.group(2).strip()
    
    return HttpResponse(int(code), int(major), int(minor), fields)


def parse_response(data: bytes, head_request: bool = False) -> HttpResponse:
    """
    Parse a complete response held in memory.
    
    Without Content-Length, every byte after the blank line is body,
    as if the connection had closed there. Data that stops inside the
    header section is parsed as headers only.
    
    Raises:
        ResponseParseError: If the data has no valid status line.
    """
    end = find_head_end(data)
    if end == -1:
        end = len(data)
    
    response = parse_head(data[:end])
    if response.has_body(head_request):
        body = data[end:]
        length = response.content_length
        response.body = body[:length] if length is not None else body
    return response
