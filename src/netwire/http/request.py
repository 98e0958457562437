"""
=============================================================================
HTTP REQUESTS
=============================================================================

Builds the bytes of an HTTP/1.x request (RFC 1945 / RFC 2616 subset):

    POST /form HTTP/1.1\r\n              ◄── request line
    Host: example.com\r\n                ◄── header fields
    Content-Length: 9\r\n
    \r\n                                 ◄── blank line
    name=anna                            ◄── body

Field names are case-insensitive: "content-type" and "Content-Type" name
the same field, and the last value set wins. The spelling used on the
wire is the one from the most recent set_field() call.

=============================================================================
"""

from enum import Enum
from typing import Dict, Iterator, Tuple, Union


class HttpMethod(Enum):
    GET = "GET"
    POST = "POST"
    HEAD = "HEAD"
    PUT = "PUT"
    DELETE = "DELETE"


class HttpRequest:
    """
    An HTTP request to be sent with Http.send_request().
    
    Example:
        request = HttpRequest("/login", HttpMethod.POST, "user=anna")
        request.set_field("Accept", "text/plain")
        request.set_http_version(1, 1)
    """
    
    def __init__(
        self,
        uri: str = "/",
        method: HttpMethod = HttpMethod.GET,
        body: Union[str, bytes] = b""
    ):
        # lowercase name -> (name as given, value)
        self._fields: Dict[str, Tuple[str, str]] = {}
        self.method = method
        self.uri = uri
        self.body = body
        self.major_version = 1
        self.minor_version = 0
    
    # =========================================================================
    # FIELDS
    # =========================================================================
    
    def set_field(self, name: str, value: str) -> None:
        self._fields[name.lower()] = (name, str(value))
    
    def has_field(self, name: str) -> bool:
        return name.lower() in self._fields
    
    def get_field(self, name: str, default: str = "") -> str:
        entry = self._fields.get(name.lower())
        return entry[1] if entry else default
    
    def fields(self) -> Iterator[Tuple[str, str]]:
        """Yield (name, value) pairs in insertion order."""
        yield from self._fields.values()
    
    # =========================================================================
    # REQUEST LINE AND BODY
    # =========================================================================
    
    @property
    def method(self) -> HttpMethod:
        return self._method
    
    @method.setter
    def method(self, method: HttpMethod) -> None:
        if not isinstance(method, HttpMethod):
            method = HttpMethod(str(method).upper())
        self._method = method
    
    @property
    def uri(self) -> str:
        return self._uri
    
    @uri.setter
    def uri(self, uri: str) -> None:
        """The target always starts with "/"."""
        if not uri.startswith("/"):
            uri = "/" + uri
        self._uri = uri
    
    @property
    def body(self) -> bytes:
        return self._body
    
    @body.setter
    def body(self, body: Union[str, bytes]) -> None:
        self._body = body.encode("utf-8") if isinstance(body, str) else bytes(body)
    
    def set_http_version(self, major: int, minor: int) -> None:
        self.major_version = major
        self.minor_version = minor
    
    @property
    def version_string(self) -> str:
        return f"HTTP/{self.major_version}.{self.minor_version}"
    
    def is_version_at_least(self, major: int, minor: int) -> bool:
        return (self.major_version, self.minor_version) >= (major, minor)
    
    def copy(self) -> "HttpRequest":
        clone = HttpRequest(self.uri, self.method, self.body)
        clone._fields = dict(self._fields)
        clone.set_http_version(self.major_version, self.minor_version)
        return clone
    
    # =========================================================================
    # SERIALIZATION
    # =========================================================================
    
    def to_bytes(self) -> bytes:
        """Serialize request line, fields, blank line and body."""
        lines = [f"{self.method.value} {self.uri} {self.version_string}"]
        lines.extend(f"{name}: {value}" for name, value in self.fields())
        head = "\r\n".join(lines) + "\r\n\r\n"
        return head.encode("utf-8") + self.body
    
    def __repr__(self) -> str:
        return f"HttpRequest({self.method.value} {self.uri} {self.version_string})"
