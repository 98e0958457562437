"""
=============================================================================
HTTP CLIENT
=============================================================================

One request per connection: send_request() connects, sends, reads the
whole response and disconnects. There is no keep-alive and no TLS.

    Http("http://example.com")
        │
        │  send_request(HttpRequest("/index.html"))
        ▼
    ┌──────────────────────────────────────────────────────────────────┐
    │ 1. copy the request and fill in missing fields:                  │
    │       From, User-Agent, Host, Content-Length,                    │
    │       Content-Type (POST), Connection: close (HTTP/1.1+)         │
    │ 2. connect TcpSocket to host:port (timeout optional)             │
    │ 3. send the serialized request                                   │
    │ 4. read until the blank line, parse status line and fields       │
    │ 5. read the body (Content-Length bytes, or until close)          │
    │ 6. disconnect                                                    │
    └──────────────────────────────────────────────────────────────────┘

Failures come back as responses, never as exceptions:

    1000 INVALID_RESPONSE   - the server's reply was not HTTP
    1001 CONNECTION_FAILED  - no host set, https requested, connect or
                              send failed

=============================================================================
"""

import logging
from typing import Optional

from ..config import NetConfig
from ..core.address import IpAddress, to_address
from ..core.status import Status
from ..core.tcp import TcpSocket
from .request import HttpMethod, HttpRequest
from .response import HttpResponse, ResponseParseError, find_head_end, parse_head
from .status_codes import HttpStatus


logger = logging.getLogger(__name__)


class Http:
    """
    HTTP client bound to one host.
    
    Example:
        http = Http("http://www.example.com")
        response = http.send_request(HttpRequest("/"), timeout=5.0)
        if response.status == HttpStatus.OK:
            print(response.text)
    """
    
    def __init__(self, host: str = "", port: int = 0, config: Optional[NetConfig] = None):
        self.config = config or NetConfig()
        self._host_name = ""
        self._port = 0
        self._secure = False
        self._address: Optional[IpAddress] = None
        if host:
            self.set_host(host, port)
    
    @property
    def host(self) -> str:
        return self._host_name
    
    @property
    def port(self) -> int:
        return self._port
    
    def set_host(self, host: str, port: int = 0) -> None:
        """
        Set the target host.
        
        Accepts "example.com", "http://example.com/" or "example.com:8080".
        A port of 0 means the scheme default (80). "https://" hosts are
        remembered but every request to them fails with CONNECTION_FAILED.
        
        Args:
            host: Host name or address, optionally with scheme and port.
            port: Port, overriding one given in host.
        """
        name = host.strip()
        lowered = name.lower()
        
        self._secure = False
        if lowered.startswith("http://"):
            name = name[len("http://"):]
        elif lowered.startswith("https://"):
            name = name[len("https://"):]
            self._secure = True
            logger.warning(f"HTTPS is not supported; requests to {name} will fail")
        
        name = name.rstrip("/")
        
        if ":" in name:
            name, _, given_port = name.partition(":")
            if not port and given_port.isdigit():
                port = int(given_port)
        
        self._host_name = name
        self._port = port or (443 if self._secure else self.config.http_port)
        self._address = None
    
    def _resolve(self) -> IpAddress:
        if self._address is None:
            self._address = to_address(self._host_name)
        return self._address
    
    # =========================================================================
    # REQUEST / RESPONSE
    # =========================================================================
    
    def prepare(self, request: HttpRequest) -> HttpRequest:
        """Return a copy of request with the automatic fields filled in."""
        prepared = request.copy()
        
        if not prepared.has_field("From"):
            prepared.set_field("From", self.config.http_from)
        if not prepared.has_field("User-Agent"):
            prepared.set_field("User-Agent", self.config.user_agent)
        if not prepared.has_field("Host"):
            host = self._host_name
            if self._port != self.config.http_port:
                host = f"{host}:{self._port}"
            prepared.set_field("Host", host)
        if not prepared.has_field("Content-Length"):
            prepared.set_field("Content-Length", str(len(prepared.body)))
        if prepared.method == HttpMethod.POST and not prepared.has_field("Content-Type"):
            prepared.set_field("Content-Type", "application/x-www-form-urlencoded")
        if prepared.is_version_at_least(1, 1) and not prepared.has_field("Connection"):
            prepared.set_field("Connection", "close")
        
        return prepared
    
    def send_request(self, request: HttpRequest, timeout: float = 0.0) -> HttpResponse:
        """
        Send a request and wait for the complete response.
        
        Args:
            request: The request; it is not modified.
            timeout: Connect timeout in seconds (0 = OS default).
        
        Returns:
            The server's response, or a 1000/1001 local failure.
        """
        if not self._host_name or self._secure:
            return HttpResponse(HttpStatus.CONNECTION_FAILED)
        
        address = self._resolve()
        if not address.is_valid:
            logger.warning(f"Cannot resolve HTTP host {self._host_name}")
            return HttpResponse(HttpStatus.CONNECTION_FAILED)
        
        prepared = self.prepare(request)
        
        with TcpSocket(self.config) as connection:
            if connection.connect(address, self._port, timeout) is not Status.DONE:
                logger.warning(f"HTTP connection to {self._host_name}:{self._port} failed")
                return HttpResponse(HttpStatus.CONNECTION_FAILED)
            
            logger.debug(f"HTTP > {prepared.method.value} {prepared.uri} to {self._host_name}")
            status, _ = connection.send_bytes(prepared.to_bytes())
            if status is not Status.DONE:
                return HttpResponse(HttpStatus.CONNECTION_FAILED)
            
            response = self._read_response(connection, prepared.method == HttpMethod.HEAD)
        
        logger.debug(f"HTTP < {int(response.status)} ({len(response.body)} bytes)")
        return response
    
    def _read_response(self, connection: TcpSocket, head_request: bool) -> HttpResponse:
        """Read the head, then the body as long as the response calls for."""
        buffer = bytearray()
        closed = False
        
        end = -1
        while end == -1:
            status, data = connection.receive_bytes(self.config.buffer_size)
            if status is not Status.DONE:
                closed = True
                break
            buffer += data
            end = find_head_end(buffer)
        
        if end == -1:
            end = len(buffer)
        
        try:
            response = parse_head(bytes(buffer[:end]))
        except ResponseParseError as e:
            logger.warning(f"HTTP response rejected: {e}")
            return HttpResponse(e.status_code)
        
        if not response.has_body(head_request):
            return response
        
        body = buffer[end:]
        length = response.content_length
        
        while not closed and (length is None or len(body) < length):
            status, data = connection.receive_bytes(self.config.buffer_size)
            if status is not Status.DONE:
                break
            body += data
        
        response.body = bytes(body[:length] if length is not None else body)
        return response
