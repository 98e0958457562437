"""HTTP/1.x client: one request per connection over TcpSocket."""

from .client import Http
from .request import HttpMethod, HttpRequest
from .response import HttpResponse, ResponseParseError, parse_response
from .status_codes import HttpStatus

__all__ = [
    "Http",
    "HttpMethod",
    "HttpRequest",
    "HttpResponse",
    "HttpStatus",
    "ResponseParseError",
    "parse_response",
]
