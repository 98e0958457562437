"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Callable, Dict, Generator, List, Optional, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from netwire import NetConfig, Status, TcpListener, TcpSocket


@pytest.fixture
def config() -> NetConfig:
    """Test configuration with short timeouts and a small read buffer."""
    return NetConfig(connect_timeout=2.0, buffer_size=64, log_level="WARNING")


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def tcp_pair(config: NetConfig) -> Generator[Tuple[TcpSocket, TcpSocket], None, None]:
    """A connected (client, server) pair of TcpSockets over loopback."""
    listener = TcpListener(config)
    assert listener.listen(0, "127.0.0.1") is Status.DONE
    
    client = TcpSocket(config)
    server = TcpSocket(config)
    assert client.connect("127.0.0.1", listener.local_port, timeout=2.0) is Status.DONE
    assert listener.accept(server) is Status.DONE
    listener.close()
    
    yield client, server
    
    client.disconnect()
    server.disconnect()


# =============================================================================
# SCRIPTED SERVERS
# =============================================================================

class ThreadedServer:
    """Loopback server running handle(conn) per connection in a background thread."""
    
    def __init__(self, handle: Callable[[socket.socket], None]):
        self.handle = handle
        self._stop = threading.Event()
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._listener.bind(("127.0.0.1", 0))
        self._listener.listen(5)
        self._listener.settimeout(0.1)
        self.port = self._listener.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)
    
    def start(self) -> "ThreadedServer":
        self._thread.start()
        return self
    
    def stop(self) -> None:
        self._stop.set()
        self._thread.join(timeout=5.0)
        self._listener.close()
    
    def _serve(self) -> None:
        while not self._stop.is_set():
            try:
                conn, _ = self._listener.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            conn.settimeout(5.0)
            with conn:
                try:
                    self.handle(conn)
                except OSError:
                    pass


class FakeFtpServer(ThreadedServer):
    """
    Minimal passive-mode FTP server holding files in memory.
    
    Records every command line it receives in `commands`.
    """
    
    def __init__(
        self,
        files: Optional[Dict[str, bytes]] = None,
        greeting: bytes = b"220 Fake FTP ready\r\n",
        user_needs_password: bool = True,
    ):
        super().__init__(self._session)
        self.files: Dict[str, bytes] = dict(files or {})
        self.directories: List[str] = []
        self.greeting = greeting
        self.user_needs_password = user_needs_password
        self.commands: List[str] = []
        self.cwd = "/"
    
    def _session(self, conn: socket.socket) -> None:
        conn.sendall(self.greeting)
        reader = conn.makefile("rb")
        data_listener: Optional[socket.socket] = None
        rename_from: Optional[str] = None
        
        try:
            for raw in reader:
                line = raw.decode("utf-8").rstrip("\r\n")
                self.commands.append(line)
                verb, _, arg = line.partition(" ")
                verb = verb.upper()
                
                if verb == "USER":
                    conn.sendall(b"331 Password required\r\n" if self.user_needs_password else b"230 Logged in\r\n")
                elif verb == "PASS":
                    conn.sendall(b"230 Logged in\r\n")
                elif verb == "NOOP":
                    conn.sendall(b"200 NOOP ok\r\n")
                elif verb == "PWD":
                    conn.sendall(f'257 "{self.cwd}" is the current directory\r\n'.encode())
                elif verb == "CWD":
                    self.cwd = arg
                    conn.sendall(b"250 Directory changed\r\n")
                elif verb == "CDUP":
                    self.cwd = "/"
                    conn.sendall(b"250 Directory changed\r\n")
                elif verb == "MKD":
                    self.directories.append(arg)
                    conn.sendall(f'257 "{arg}" created\r\n'.encode())
                elif verb == "RMD":
                    if arg in self.directories:
                        self.directories.remove(arg)
                        conn.sendall(b"250 Removed\r\n")
                    else:
                        conn.sendall(b"550 No such directory\r\n")
                elif verb == "DELE":
                    if self.files.pop(arg, None) is not None:
                        conn.sendall(b"250 Deleted\r\n")
                    else:
                        conn.sendall(b"550 No such file\r\n")
                elif verb == "RNFR":
                    if arg in self.files:
                        rename_from = arg
                        conn.sendall(b"350 Ready for RNTO\r\n")
                    else:
                        conn.sendall(b"550 No such file\r\n")
                elif verb == "RNTO":
                    self.files[arg] = self.files.pop(rename_from)
                    conn.sendall(b"250 Renamed\r\n")
                elif verb == "FEAT":
                    conn.sendall(b"211-Features:\r\n SIZE\r\n211-MDTM\r\n211 End\r\n")
                elif verb == "TYPE":
                    conn.sendall(f"200 Type set to {arg}\r\n".encode())
                elif verb == "PASV":
                    data_listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
                    data_listener.bind(("127.0.0.1", 0))
                    data_listener.listen(1)
                    data_listener.settimeout(5.0)
                    port = data_listener.getsockname()[1]
                    conn.sendall(
                        f"227 Entering Passive Mode (127,0,0,1,{port // 256},{port % 256})\r\n".encode()
                    )
                elif verb == "NLST":
                    names = [name for name in self.files if name.startswith(arg)]
                    self._send_data(conn, data_listener, "\r\n".join(names).encode() + b"\r\n")
                    data_listener = None
                elif verb == "RETR":
                    if arg not in self.files:
                        data_listener.close()
                        conn.sendall(b"550 No such file\r\n")
                    else:
                        self._send_data(conn, data_listener, self.files[arg])
                    data_listener = None
                elif verb in ("STOR", "APPE"):
                    conn.sendall(b"150 Ready to receive\r\n")
                    data_conn, _ = data_listener.accept()
                    with data_conn:
                        received = b""
                        while True:
                            chunk = data_conn.recv(4096)
                            if not chunk:
                                break
                            received += chunk
                    if verb == "APPE":
                        received = self.files.get(arg, b"") + received
                    self.files[arg] = received
                    data_listener.close()
                    data_listener = None
                    conn.sendall(b"226 Transfer complete\r\n")
                elif verb == "QUIT":
                    conn.sendall(b"221 Goodbye\r\n")
                    return
                else:
                    conn.sendall(b"502 Command not implemented\r\n")
        finally:
            reader.close()
            if data_listener is not None:
                data_listener.close()
    
    @staticmethod
    def _send_data(conn: socket.socket, data_listener: socket.socket, payload: bytes) -> None:
        conn.sendall(b"150 Opening data connection\r\n")
        data_conn, _ = data_listener.accept()
        try:
            with data_conn:
                data_conn.sendall(payload)
        except OSError:
            data_listener.close()
            conn.sendall(b"426 Transfer aborted\r\n")
            return
        data_listener.close()
        conn.sendall(b"226 Transfer complete\r\n")


class FakeHttpServer(ThreadedServer):
    """
    Answers every request with a canned raw response, then closes.
    
    Received requests (head and body) are kept in `requests`.
    """
    
    def __init__(self, response: bytes):
        super().__init__(self._exchange)
        self.response = response
        self.requests: List[bytes] = []
    
    def _exchange(self, conn: socket.socket) -> None:
        data = b""
        while b"\r\n\r\n" not in data:
            chunk = conn.recv(4096)
            if not chunk:
                return
            data += chunk
        
        head, _, body = data.partition(b"\r\n\r\n")
        length = 0
        for line in head.split(b"\r\n")[1:]:
            name, _, value = line.partition(b":")
            if name.strip().lower() == b"content-length":
                length = int(value.strip())
        while len(body) < length:
            chunk = conn.recv(4096)
            if not chunk:
                break
            body += chunk
        
        self.requests.append(head + b"\r\n\r\n" + body)
        conn.sendall(self.response)


@pytest.fixture
def ftp_server() -> Generator[FakeFtpServer, None, None]:
    """Fake FTP server with a couple of files."""
    server = FakeFtpServer(files={
        "pub/readme.txt": b"hello from ftp\r\n",
        "pub/data.bin": bytes(range(256)) * 8,
    }).start()
    yield server
    server.stop()


@pytest.fixture
def http_server_factory() -> Generator[Callable[[bytes], FakeHttpServer], None, None]:
    """Start FakeHttpServers with a given canned response."""
    servers: List[FakeHttpServer] = []
    
    def factory(response: bytes) -> FakeHttpServer:
        server = FakeHttpServer(response).start()
        servers.append(server)
        return server
    
    yield factory
    
    for server in servers:
        server.stop()
