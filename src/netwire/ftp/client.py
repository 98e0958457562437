"""
=============================================================================
FTP CLIENT
=============================================================================

A blocking FTP client built on TcpSocket. Every operation returns a
response object; nothing here raises on network or protocol failure.

=============================================================================
TWO CONNECTIONS
=============================================================================

    ┌──────────┐   control (port 21): commands and replies   ┌──────────┐
    │          │ ◄─────────────────────────────────────────► │          │
    │  Ftp     │                                              │  server  │
    │          │ ◄─────────────────────────────────────────── │          │
    └──────────┘   data (port from PASV): listings, files     └──────────┘

The control connection lives as long as the session. A data connection
is opened per transfer, in passive mode only:

    1. PASV          → 227 Entering Passive Mode (h1,h2,h3,h4,p1,p2)
    2. connect to h1.h2.h3.h4 : p1*256 + p2
    3. TYPE I|A|E    → 200
    4. RETR / STOR / APPE / NLST  → 150 (preliminary)
    5. move the bytes, then close the data connection
    6. read the final reply on the control connection → 226

Step 5 must finish before step 6: many servers only send the final
reply once they see the data connection close.

=============================================================================
USAGE
=============================================================================

    ftp = Ftp()
    if ftp.connect("ftp.example.com").is_ok:
        ftp.login("user", "secret")
        listing = ftp.directory_listing("pub")
        for name in listing.listing:
            print(name)
        ftp.download("pub/readme.txt", "/tmp")
        ftp.disconnect()

=============================================================================
"""

import os
import re
import logging
from enum import Enum
from typing import BinaryIO, Callable, Optional, Union

from ..config import NetConfig
from ..core.address import IpAddress
from ..core.status import Status
from ..core.tcp import TcpSocket
from .response import (
    DirectoryResponse,
    FtpResponse,
    FtpStatus,
    ListingResponse,
    ReplyParseError,
    ReplyReader,
)


logger = logging.getLogger(__name__)


class TransferMode(Enum):
    """Representation type sent with TYPE before each transfer."""
    
    BINARY = "I"
    ASCII = "A"
    EBCDIC = "E"


# =============================================================================
# DATA CHANNEL
# =============================================================================

class _DataChannel:
    """One passive-mode data connection, used for a single transfer."""
    
    PASV_PATTERN = re.compile(r"(\d+),(\d+),(\d+),(\d+),(\d+),(\d+)")
    
    def __init__(self, owner: "Ftp"):
        self._owner = owner
        self._socket = TcpSocket(owner.config)
    
    def open(self, mode: TransferMode) -> FtpResponse:
        """Ask for a passive port, connect to it, then set the transfer type."""
        response = self._owner.send_command("PASV")
        if not response.is_ok:
            return response
        
        match = self.PASV_PATTERN.search(response.message)
        if not match:
            logger.warning(f"Unparseable PASV reply: {response.message!r}")
            return FtpResponse(FtpStatus.INVALID_RESPONSE)
        
        numbers = [int(value) for value in match.groups()]
        if any(number > 255 for number in numbers):
            return FtpResponse(FtpStatus.INVALID_RESPONSE)
        
        address = IpAddress(*numbers[:4])
        port = numbers[4] * 256 + numbers[5]
        
        status = self._socket.connect(address, port, self._owner.timeout)
        if status is not Status.DONE:
            logger.warning(f"Data connection to {address}:{port} failed ({status.name})")
            return FtpResponse(FtpStatus.CONNECTION_FAILED)
        
        logger.debug(f"Data connection open to {address}:{port}")
        return self._owner.send_command("TYPE", mode.value)
    
    def receive(self, sink: Callable[[bytes], object]) -> int:
        """Pass every chunk to sink until the server closes the connection."""
        total = 0
        buffer_size = self._owner.config.buffer_size
        while True:
            status, data = self._socket.receive_bytes(buffer_size)
            if status is not Status.DONE:
                break
            sink(data)
            total += len(data)
        self.close()
        return total
    
    def send(self, source: BinaryIO) -> int:
        """Stream a file over the connection, then close it to mark the end."""
        total = 0
        buffer_size = self._owner.config.buffer_size
        while True:
            chunk = source.read(buffer_size)
            if not chunk:
                break
            status, sent = self._socket.send_bytes(chunk)
            total += sent
            if status is not Status.DONE:
                logger.warning(f"Upload interrupted after {total} bytes ({status.name})")
                break
        self.close()
        return total
    
    def close(self) -> None:
        self._socket.disconnect()


# =============================================================================
# CLIENT
# =============================================================================

class Ftp:
    """
    FTP client session.
    
    Commands run synchronously on the control connection. Replies are
    read line by line; bytes following a complete reply are kept for the
    next one.
    """
    
    def __init__(self, config: Optional[NetConfig] = None):
        self.config = config or NetConfig()
        self.timeout = self.config.connect_timeout
        self._control = TcpSocket(self.config)
        self._reader = ReplyReader()
    
    def __enter__(self):
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._control.handle is not None:
            self.disconnect()
        self._control.close()
    
    # =========================================================================
    # SESSION
    # =========================================================================
    
    def connect(
        self,
        server: Union[IpAddress, str],
        port: Optional[int] = None,
        timeout: Optional[float] = None
    ) -> FtpResponse:
        """
        Open the control connection and read the greeting.
        
        A "120 service ready soon" greeting is skipped over until the
        real one arrives.
        
        Args:
            server: Server address or host name.
            port: Control port (default: config.ftp_port).
            timeout: Connect timeout in seconds (default: config.connect_timeout).
        """
        port = port or self.config.ftp_port
        if timeout is not None:
            self.timeout = timeout
        
        self._reader.reset()
        status = self._control.connect(server, port, self.timeout)
        if status is not Status.DONE:
            logger.warning(f"FTP connection to {server}:{port} failed ({status.name})")
            return FtpResponse(FtpStatus.CONNECTION_FAILED)
        
        logger.info(f"Connected to FTP server {server}:{port}")
        
        response = self._get_response()
        while response.status == FtpStatus.SERVICE_READY_SOON:
            response = self._get_response()
        return response
    
    def login(self, name: Optional[str] = None, password: Optional[str] = None) -> FtpResponse:
        """
        Log in, anonymously when no name is given.
        
        PASS is only sent when USER did not already log the session in.
        """
        if name is None:
            name = self.config.ftp_anonymous_user
            password = self.config.ftp_anonymous_password if password is None else password
        
        response = self.send_command("USER", name)
        if response.is_ok and response.status != FtpStatus.LOGGED_IN:
            response = self.send_command("PASS", password or "")
        
        if response.is_ok:
            logger.info(f"Logged in as {name}")
        return response
    
    def disconnect(self) -> FtpResponse:
        """Send QUIT and close the control connection."""
        response = self.send_command("QUIT")
        if response.is_ok:
            self._control.disconnect()
            self._reader.reset()
        return response
    
    def keep_alive(self) -> FtpResponse:
        """Send a NOOP so the server does not drop an idle session."""
        return self.send_command("NOOP")
    
    # =========================================================================
    # DIRECTORIES
    # =========================================================================
    
    def working_directory(self) -> DirectoryResponse:
        return DirectoryResponse.from_response(self.send_command("PWD"))
    
    def directory_listing(self, directory: str = "") -> ListingResponse:
        """List the names in a directory (NLST) over an ASCII data connection."""
        chunks = []
        channel = _DataChannel(self)
        
        response = channel.open(TransferMode.ASCII)
        if response.is_ok:
            response = self.send_command("NLST", directory)
            if response.is_ok:
                channel.receive(chunks.append)
                response = self._get_response()
        
        channel.close()
        return ListingResponse.from_response(response, b"".join(chunks))
    
    def change_directory(self, directory: str) -> FtpResponse:
        return self.send_command("CWD", directory)
    
    def parent_directory(self) -> FtpResponse:
        return self.send_command("CDUP")
    
    def create_directory(self, name: str) -> FtpResponse:
        return self.send_command("MKD", name)
    
    def delete_directory(self, name: str) -> FtpResponse:
        return self.send_command("RMD", name)
    
    # =========================================================================
    # FILES
    # =========================================================================
    
    def rename_file(self, file: str, new_name: str) -> FtpResponse:
        response = self.send_command("RNFR", file)
        if response.is_ok:
            response = self.send_command("RNTO", new_name)
        return response
    
    def delete_file(self, name: str) -> FtpResponse:
        return self.send_command("DELE", name)
    
    def download(
        self,
        remote_file: str,
        local_path: str,
        mode: TransferMode = TransferMode.BINARY
    ) -> FtpResponse:
        """
        Download a remote file into a local directory.
        
        The local file takes the remote file's name. It is removed again
        if the server reports a failed transfer.
        
        Args:
            remote_file: Path of the file on the server.
            local_path: Local directory to write into.
            mode: Transfer mode.
        """
        channel = _DataChannel(self)
        
        response = channel.open(mode)
        if response.is_ok:
            response = self.send_command("RETR", remote_file)
            if response.is_ok:
                filename = remote_file.rstrip("/").rsplit("/", 1)[-1]
                destination = os.path.join(local_path, filename)
                
                try:
                    local = open(destination, "wb")
                except OSError as e:
                    logger.error(f"Cannot create {destination}: {e}")
                    channel.close()
                    self._get_response()
                    return FtpResponse(FtpStatus.INVALID_FILE)
                
                try:
                    with local:
                        received = channel.receive(local.write)
                except OSError as e:
                    logger.error(f"Writing {destination} failed: {e}")
                    channel.close()
                    self._get_response()
                    os.remove(destination)
                    return FtpResponse(FtpStatus.INVALID_FILE)
                
                response = self._get_response()
                if response.is_ok:
                    logger.info(f"Downloaded {remote_file} ({received} bytes)")
                else:
                    os.remove(destination)
        
        channel.close()
        return response
    
    def upload(
        self,
        local_file: str,
        remote_path: str,
        mode: TransferMode = TransferMode.BINARY,
        append: bool = False
    ) -> FtpResponse:
        """
        Upload a local file into a remote directory.
        
        Args:
            local_file: Path of the file to send.
            remote_path: Remote directory; the file keeps its local name.
            mode: Transfer mode.
            append: Append to an existing remote file (APPE) instead of
                replacing it (STOR).
        """
        try:
            source = open(local_file, "rb")
        except OSError as e:
            logger.error(f"Cannot read {local_file}: {e}")
            return FtpResponse(FtpStatus.INVALID_FILE)
        
        filename = os.path.basename(local_file)
        if remote_path and not remote_path.endswith("/"):
            remote_path += "/"
        destination = remote_path + filename
        
        with source:
            channel = _DataChannel(self)
            response = channel.open(mode)
            if response.is_ok:
                response = self.send_command("APPE" if append else "STOR", destination)
                if response.is_ok:
                    try:
                        sent = channel.send(source)
                    except OSError as e:
                        logger.error(f"Reading {local_file} failed: {e}")
                        channel.close()
                        self._get_response()
                        return FtpResponse(FtpStatus.INVALID_FILE)
                    response = self._get_response()
                    if response.is_ok:
                        logger.info(f"Uploaded {local_file} ({sent} bytes)")
            channel.close()
        
        return response
    
    # =========================================================================
    # CONTROL CHANNEL
    # =========================================================================
    
    def send_command(self, command: str, parameter: str = "") -> FtpResponse:
        """
        Send a raw command and wait for its reply.
        
        Args:
            command: Command verb, e.g. "SITE".
            parameter: Optional argument; omitted from the line when empty.
        """
        line = f"{command} {parameter}\r\n" if parameter else f"{command}\r\n"
        logger.debug(f"FTP > {command} ****" if command == "PASS" else f"FTP > {line.strip()}")
        
        status, _ = self._control.send_bytes(line.encode("utf-8"))
        if status is not Status.DONE:
            return FtpResponse(FtpStatus.CONNECTION_CLOSED)
        
        return self._get_response()
    
    def _get_response(self) -> FtpResponse:
        """Read one complete reply from the control connection."""
        while True:
            try:
                reply = self._reader.next_reply()
            except ReplyParseError as e:
                logger.warning(f"FTP reply rejected: {e}")
                self._reader.reset()
                return FtpResponse(e.status_code)
            
            if reply is not None:
                return reply
            
            status, data = self._control.receive_bytes(self.config.buffer_size)
            if status is not Status.DONE:
                return FtpResponse(FtpStatus.CONNECTION_CLOSED)
            self._reader.feed(data)
