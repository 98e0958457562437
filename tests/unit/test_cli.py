"""
Unit tests for the command-line entry point.
"""

import threading
import time

import pytest

from netwire.__main__ import build_parser, main, run_echo_server, split_url
from netwire.config import NetConfig
from netwire.core.packet import Packet
from netwire.core.status import Status
from netwire.core.tcp import TcpSocket


class TestArguments:
    def test_split_url(self):
        assert split_url("http://example.com:8080/a/b?c=1") == ("http://example.com:8080", "/a/b?c=1")
        assert split_url("example.com") == ("example.com", "/")
    
    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])
    
    def test_ftp_list_defaults(self):
        args = build_parser().parse_args(["ftp-list", "ftp.example.com"])
        
        assert args.directory == ""
        assert args.user is None
        assert args.port is None


class TestCommands:
    def test_http_command(self, http_server_factory, capsys):
        server = http_server_factory(b"HTTP/1.0 200 OK\r\nX-Test: yes\r\n\r\nbody text")
        
        code = main(["--log-level", "WARNING", "http", f"http://127.0.0.1:{server.port}/page"])
        
        out = capsys.readouterr().out
        assert code == 0
        assert "200" in out
        assert "x-test: yes" in out
        assert "body text" in out
        assert server.requests[0].startswith(b"GET /page HTTP/1.0")
    
    def test_http_command_failure(self, free_port, capsys):
        assert main(["http", f"127.0.0.1:{free_port}"]) == 1
    
    def test_ftp_list_command(self, ftp_server, capsys):
        code = main(["ftp-list", "127.0.0.1", "pub", "--port", str(ftp_server.port)])
        
        out = capsys.readouterr().out.split()
        assert code == 0
        assert sorted(out) == ["pub/data.bin", "pub/readme.txt"]
        assert "USER anonymous" in ftp_server.commands


@pytest.fixture
def echo_server():
    """Run the echo loop in a thread; yields its port."""
    stop = threading.Event()
    bound = []
    listening = threading.Event()
    
    def on_listening(port):
        bound.append(port)
        listening.set()
    
    thread = threading.Thread(
        target=run_echo_server,
        args=(0, NetConfig(buffer_size=64 * 1024), stop.is_set, on_listening),
        daemon=True,
    )
    thread.start()
    assert listening.wait(5.0)
    
    yield bound[0]
    
    stop.set()
    thread.join(timeout=5.0)
    assert not thread.is_alive()


class TestEchoServer:
    """Tests for the selector-driven echo loop."""
    
    def test_echoes_packets_to_several_clients(self, echo_server, config):
        clients = [TcpSocket(config) for _ in range(3)]
        try:
            for number, client in enumerate(clients):
                assert client.connect("127.0.0.1", echo_server, timeout=2.0) is Status.DONE
                assert client.send(Packet().write(f"client {number}")) is Status.DONE
            
            for number, client in enumerate(clients):
                reply = Packet()
                assert client.receive(reply) is Status.DONE
                assert reply.read(str) == f"client {number}"
        finally:
            for client in clients:
                client.disconnect()
    
    def test_client_not_reading_does_not_block_others(self, echo_server, config):
        """An echo stuck on a slow reader leaves the loop free for others."""
        slow = TcpSocket(config)
        fast = TcpSocket(config)
        try:
            assert slow.connect("127.0.0.1", echo_server, timeout=2.0) is Status.DONE
            assert slow.send(Packet(b"s" * (16 * 1024 * 1024))) is Status.DONE
            
            assert fast.connect("127.0.0.1", echo_server, timeout=2.0) is Status.DONE
            assert fast.send(Packet().write("hi")) is Status.DONE
            fast.blocking = False
            
            reply = Packet()
            status = fast.receive(reply)
            deadline = time.monotonic() + 3.0
            while status is not Status.DONE and time.monotonic() < deadline:
                time.sleep(0.01)
                status = fast.receive(reply)
            
            assert status is Status.DONE
            assert reply.read(str) == "hi"
        finally:
            slow.disconnect()
            fast.disconnect()


class TestIpCommand:
    def test_local_only(self, capsys):
        assert main(["ip", "--no-public"]) == 0
        
        out = capsys.readouterr().out
        assert out.startswith("local:")
        assert "public" not in out
