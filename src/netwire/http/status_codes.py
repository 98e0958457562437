"""
=============================================================================
HTTP STATUS CODES
=============================================================================

Status codes the client knows by name, plus two local codes for
failures where no server reply exists.

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  2xx   │ SUCCESS                                                   │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  3xx   │ REDIRECTION (not followed automatically)                  │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  4xx   │ CLIENT ERROR                                              │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  5xx   │ SERVER ERROR                                              │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  1000  │ INVALID_RESPONSE  - reply could not be parsed             │
    │  1001  │ CONNECTION_FAILED - could not reach the server            │
    └────────┴───────────────────────────────────────────────────────────┘

Codes outside this enum are still accepted from servers; they stay plain
integers (see to_status()).

=============================================================================
"""

from enum import IntEnum
from typing import Union


class HttpStatus(IntEnum):
    """
    HTTP status codes, usable as integers:
    
        >>> HttpStatus.NOT_FOUND == 404
        True
        >>> HttpStatus.NOT_FOUND.phrase
        'Not Found'
    """
    
    # 2xx Success
    OK = 200
    CREATED = 201
    ACCEPTED = 202
    NO_CONTENT = 204
    RESET_CONTENT = 205
    PARTIAL_CONTENT = 206
    
    # 3xx Redirection
    MULTIPLE_CHOICES = 300
    MOVED_PERMANENTLY = 301
    MOVED_TEMPORARILY = 302
    NOT_MODIFIED = 304
    
    # 4xx Client errors
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    PROXY_AUTHENTICATION_REQUIRED = 407
    RANGE_NOT_SATISFIABLE = 416
    
    # 5xx Server errors
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    BAD_GATEWAY = 502
    SERVICE_NOT_AVAILABLE = 503
    GATEWAY_TIMEOUT = 504
    VERSION_NOT_SUPPORTED = 505
    
    # Local
    INVALID_RESPONSE = 1000
    CONNECTION_FAILED = 1001
    
    @property
    def phrase(self) -> str:
        return _STATUS_PHRASES.get(self, "Unknown")
    
    @property
    def is_success(self) -> bool:
        return 200 <= self < 300
    
    @property
    def is_redirect(self) -> bool:
        return 300 <= self < 400
    
    @property
    def is_error(self) -> bool:
        """4xx, 5xx and the local failure codes."""
        return self >= 400


_STATUS_PHRASES = {
    HttpStatus.OK: "OK",
    HttpStatus.CREATED: "Created",
    HttpStatus.ACCEPTED: "Accepted",
    HttpStatus.NO_CONTENT: "No Content",
    HttpStatus.RESET_CONTENT: "Reset Content",
    HttpStatus.PARTIAL_CONTENT: "Partial Content",
    HttpStatus.MULTIPLE_CHOICES: "Multiple Choices",
    HttpStatus.MOVED_PERMANENTLY: "Moved Permanently",
    HttpStatus.MOVED_TEMPORARILY: "Moved Temporarily",
    HttpStatus.NOT_MODIFIED: "Not Modified",
    HttpStatus.BAD_REQUEST: "Bad Request",
    HttpStatus.UNAUTHORIZED: "Unauthorized",
    HttpStatus.FORBIDDEN: "Forbidden",
    HttpStatus.NOT_FOUND: "Not Found",
    HttpStatus.PROXY_AUTHENTICATION_REQUIRED: "Proxy Authentication Required",
    HttpStatus.RANGE_NOT_SATISFIABLE: "Range Not Satisfiable",
    HttpStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HttpStatus.NOT_IMPLEMENTED: "Not Implemented",
    HttpStatus.BAD_GATEWAY: "Bad Gateway",
    HttpStatus.SERVICE_NOT_AVAILABLE: "Service Not Available",
    HttpStatus.GATEWAY_TIMEOUT: "Gateway Timeout",
    HttpStatus.VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
    HttpStatus.INVALID_RESPONSE: "Invalid Response",
    HttpStatus.CONNECTION_FAILED: "Connection Failed",
}


def to_status(code: int) -> Union[HttpStatus, int]:
    """Map a numeric code to HttpStatus, keeping unknown codes as plain ints."""
    try:
        return HttpStatus(code)
    except ValueError:
        return code
