"""
=============================================================================
NETWIRE CLI ENTRY POINT
=============================================================================

Small command-line tools built on the library.

=============================================================================
USAGE
=============================================================================

    # Local and public address of this machine
    python -m netwire ip
    
    # GET a URL and print status, fields and body
    python -m netwire http http://example.com/index.html
    
    # List a directory on an FTP server (anonymous unless --user is given)
    python -m netwire ftp-list ftp.example.com pub --user anna --password secret
    
    # Echo framed packets back to every client, multiplexed with a selector
    python -m netwire echo --port 5000
    
    # More detail from any command
    python -m netwire --log-level DEBUG http example.com

=============================================================================
"""

import argparse
import logging
import sys
from typing import Callable, Dict, List, Optional, Tuple

from . import __version__
from .config import NetConfig
from .core.address import IpAddress
from .core.packet import Packet
from .core.selector import SocketSelector
from .core.status import Status
from .core.tcp import TcpListener, TcpSocket
from .ftp import Ftp
from .http import Http, HttpRequest


logger = logging.getLogger(__name__)

# Selector timeout while echoes are waiting on slow readers
_RESEND_INTERVAL = 0.01


def _setup_logging(log_level: str) -> None:
    """Configure logging based on the requested level."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    
    logging.getLogger("netwire").setLevel(level)


def split_url(url: str) -> Tuple[str, str]:
    """
    Split a URL into the host part and the request target.
    
        >>> split_url("http://example.com:8080/a/b?c=1")
        ('http://example.com:8080', '/a/b?c=1')
    """
    scheme = ""
    rest = url
    if "://" in url:
        scheme, rest = url.split("://", 1)
        scheme += "://"
    
    host, slash, path = rest.partition("/")
    return scheme + host, slash + path if slash else "/"


# =============================================================================
# COMMANDS
# =============================================================================

def cmd_ip(args, config: NetConfig) -> int:
    print(f"local:  {IpAddress.local_address() or '(unknown)'}")
    if not args.no_public:
        print(f"public: {IpAddress.public_address(args.timeout, config) or '(unknown)'}")
    return 0


def cmd_http(args, config: NetConfig) -> int:
    host, target = split_url(args.url)
    http = Http(host, config=config)
    response = http.send_request(HttpRequest(target), args.timeout)
    
    print(f"HTTP/{response.major_http_version}.{response.minor_http_version} {int(response.status)}")
    for name, value in response.fields.items():
        print(f"{name}: {value}")
    print()
    print(response.text)
    
    return 0 if response.is_success else 1


def cmd_ftp_list(args, config: NetConfig) -> int:
    with Ftp(config) as ftp:
        response = ftp.connect(args.host, args.port, args.timeout)
        if not response.is_ok:
            print(f"connect failed: {int(response.status)} {response.message}", file=sys.stderr)
            return 1
        
        response = ftp.login(args.user, args.password)
        if not response.is_ok:
            print(f"login failed: {int(response.status)} {response.message}", file=sys.stderr)
            return 1
        
        listing = ftp.directory_listing(args.directory)
        if not listing.is_ok:
            print(f"listing failed: {int(listing.status)} {listing.message}", file=sys.stderr)
            return 1
        
        for name in listing.listing:
            print(name)
    return 0


def run_echo_server(
    port: int,
    config: Optional[NetConfig] = None,
    should_stop: Callable[[], bool] = lambda: False,
    on_listening: Optional[Callable[[int], None]] = None,
) -> int:
    """
    Echo every received packet back to its sender.
    
    One thread serves all clients: the selector reports which sockets
    have data, and client sockets are non-blocking. An echo the client
    is not reading yet is kept and resent on later passes, and that
    client is not read again until it has been fully sent.
    
    Args:
        port: Port to listen on (0 picks a free one).
        config: Socket configuration.
        should_stop: Polled between selector waits.
        on_listening: Called with the bound port once listening.
    
    Returns:
        Process exit code.
    """
    config = config or NetConfig()
    listener = TcpListener(config)
    if listener.listen(port) is not Status.DONE:
        return 1
    
    if on_listening is not None:
        on_listening(listener.local_port)
    
    selector = SocketSelector()
    selector.add(listener)
    clients: List[TcpSocket] = []
    # Echoes a slow reader has not taken yet, resent on each pass.
    pending: Dict[TcpSocket, Packet] = {}
    
    try:
        while not should_stop():
            ready = selector.wait(_RESEND_INTERVAL if pending else 0.2)
            
            for client, packet in list(pending.items()):
                status = client.send(packet)
                if status is Status.DONE:
                    del pending[client]
                elif status in (Status.DISCONNECTED, Status.ERROR):
                    _drop_client(client, status, selector, clients, pending)
            
            if not ready:
                continue
            
            if selector.is_ready(listener):
                client = TcpSocket(config)
                client.blocking = False
                if listener.accept(client) is Status.DONE:
                    logger.info(f"Client connected from {client.remote_address}:{client.remote_port}")
                    selector.add(client)
                    clients.append(client)
            
            for client in list(clients):
                # A client with an unsent echo is not read until it drains.
                if client in pending or not selector.is_ready(client):
                    continue
                
                packet = Packet()
                status = client.receive(packet)
                if status is Status.DONE:
                    status = client.send(packet)
                    if status in (Status.PARTIAL, Status.NOT_READY):
                        pending[client] = packet
                
                if status in (Status.DISCONNECTED, Status.ERROR):
                    _drop_client(client, status, selector, clients, pending)
    finally:
        for client in clients:
            client.disconnect()
        listener.close()
    
    return 0


def _drop_client(
    client: TcpSocket,
    status: Status,
    selector: SocketSelector,
    clients: List[TcpSocket],
    pending: Dict[TcpSocket, Packet],
) -> None:
    logger.info(f"Client gone ({status.name})")
    selector.remove(client)
    client.disconnect()
    clients.remove(client)
    pending.pop(client, None)


def cmd_echo(args, config: NetConfig) -> int:
    try:
        return run_echo_server(args.port, config, on_listening=lambda p: print(f"listening on {p}"))
    except KeyboardInterrupt:
        return 0


# =============================================================================
# ARGUMENT PARSING
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="netwire",
        description="Socket, FTP and HTTP tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: NETWIRE_LOG_LEVEL or INFO)"
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"netwire {__version__}"
    )
    
    commands = parser.add_subparsers(dest="command", required=True)
    
    # ─────────────────────────────────────────────────────────────────────
    # ip
    # ─────────────────────────────────────────────────────────────────────
    
    ip = commands.add_parser("ip", help="Show local and public addresses")
    ip.add_argument("--timeout", "-t", type=float, default=5.0)
    ip.add_argument("--no-public", action="store_true", help="Skip the public address lookup")
    ip.set_defaults(handler=cmd_ip)
    
    # ─────────────────────────────────────────────────────────────────────
    # http
    # ─────────────────────────────────────────────────────────────────────
    
    http = commands.add_parser("http", help="GET a URL")
    http.add_argument("url")
    http.add_argument("--timeout", "-t", type=float, default=0.0)
    http.set_defaults(handler=cmd_http)
    
    # ─────────────────────────────────────────────────────────────────────
    # ftp-list
    # ─────────────────────────────────────────────────────────────────────
    
    ftp = commands.add_parser("ftp-list", help="List a directory on an FTP server")
    ftp.add_argument("host")
    ftp.add_argument("directory", nargs="?", default="")
    ftp.add_argument("--port", "-p", type=int, default=None)
    ftp.add_argument("--user", "-u", default=None, help="User name (default: anonymous)")
    ftp.add_argument("--password", default=None)
    ftp.add_argument("--timeout", "-t", type=float, default=None)
    ftp.set_defaults(handler=cmd_ftp_list)
    
    # ─────────────────────────────────────────────────────────────────────
    # echo
    # ─────────────────────────────────────────────────────────────────────
    
    echo = commands.add_parser("echo", help="Run a packet echo server")
    echo.add_argument("--port", "-p", type=int, default=5000)
    echo.set_defaults(handler=cmd_echo)
    
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    
    config = NetConfig.from_env()
    if args.log_level:
        config.log_level = args.log_level
    config.validate()
    
    _setup_logging(config.log_level)
    
    return args.handler(args, config)


if __name__ == "__main__":
    sys.exit(main())
