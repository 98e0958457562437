"""
Unit tests for the FTP client against an in-process fake server.
"""

import errno
import os

import pytest

from netwire.ftp import Ftp, FtpStatus, TransferMode

from conftest import FakeFtpServer


class _BrokenFile:
    """File stand-in whose reads and writes fail like a full or faulty disk."""
    
    def __init__(self, wrapped):
        self._wrapped = wrapped
    
    def read(self, size=-1):
        raise OSError(errno.EIO, "Input/output error")
    
    def write(self, data):
        raise OSError(errno.ENOSPC, "No space left on device")
    
    def __enter__(self):
        return self
    
    def __exit__(self, *exc_info):
        self._wrapped.close()


@pytest.fixture
def broken_disk(monkeypatch):
    """Make every file the FTP client opens fail on read and write."""
    def broken_open(*args, **kwargs):
        return _BrokenFile(open(*args, **kwargs))
    monkeypatch.setattr("netwire.ftp.client.open", broken_open, raising=False)


@pytest.fixture
def ftp(ftp_server, config):
    """A logged-in client session."""
    client = Ftp(config)
    assert client.connect("127.0.0.1", ftp_server.port).status == FtpStatus.SERVICE_READY
    assert client.login("anna", "secret").status == FtpStatus.LOGGED_IN
    yield client
    client.disconnect()


class TestFtpSession:
    """Tests for connecting, logging in and disconnecting."""
    
    def test_connect_failure(self, free_port, config):
        response = Ftp(config).connect("127.0.0.1", free_port)
        
        assert response.status == FtpStatus.CONNECTION_FAILED
        assert not response.is_ok
    
    def test_multi_line_greeting(self, config):
        server = FakeFtpServer(greeting=b"220-Welcome\r\n220-to the\r\n220 server\r\n").start()
        try:
            client = Ftp(config)
            response = client.connect("127.0.0.1", server.port)
            
            assert response.status == FtpStatus.SERVICE_READY
            assert response.message == "Welcome\nto the\nserver"
            client.disconnect()
        finally:
            server.stop()
    
    def test_anonymous_login(self, ftp_server, config):
        client = Ftp(config)
        client.connect("127.0.0.1", ftp_server.port)
        
        assert client.login().is_ok
        assert "USER anonymous" in ftp_server.commands
        assert f"PASS {config.ftp_anonymous_password}" in ftp_server.commands
        client.disconnect()
    
    def test_pass_skipped_when_user_suffices(self, config):
        server = FakeFtpServer(user_needs_password=False).start()
        try:
            client = Ftp(config)
            client.connect("127.0.0.1", server.port)
            
            assert client.login("guest").status == FtpStatus.LOGGED_IN
            assert not any(line.startswith("PASS") for line in server.commands)
            client.disconnect()
        finally:
            server.stop()
    
    def test_disconnect_sends_quit(self, ftp, ftp_server):
        response = ftp.disconnect()
        
        assert response.status == FtpStatus.CLOSING_CONNECTION
        assert ftp_server.commands[-1] == "QUIT"
    
    def test_commands_after_disconnect(self, ftp):
        ftp.disconnect()
        
        assert ftp.keep_alive().status == FtpStatus.CONNECTION_CLOSED
    
    def test_keep_alive(self, ftp):
        assert ftp.keep_alive().status == FtpStatus.OK
    
    def test_context_manager_quits(self, ftp_server, config):
        with Ftp(config) as client:
            client.connect("127.0.0.1", ftp_server.port)
        
        assert ftp_server.commands[-1] == "QUIT"


class TestFtpDirectories:
    """Tests for directory commands."""
    
    def test_working_directory(self, ftp):
        ftp.change_directory("/pub")
        response = ftp.working_directory()
        
        assert response.is_ok
        assert response.directory == "/pub"
    
    def test_parent_directory(self, ftp, ftp_server):
        ftp.change_directory("/pub")
        
        assert ftp.parent_directory().is_ok
        assert ftp.working_directory().directory == "/"
    
    def test_create_and_delete_directory(self, ftp, ftp_server):
        assert ftp.create_directory("new").status == FtpStatus.DIRECTORY_OK
        assert ftp.delete_directory("new").status == FtpStatus.FILE_ACTION_OK
        assert ftp.delete_directory("new").status == FtpStatus.FILE_UNAVAILABLE
    
    def test_directory_listing(self, ftp, ftp_server):
        response = ftp.directory_listing("pub")
        
        assert response.status == FtpStatus.CLOSING_DATA_CONNECTION
        assert sorted(response.listing) == ["pub/data.bin", "pub/readme.txt"]
        assert "TYPE A" in ftp_server.commands
        assert "NLST pub" in ftp_server.commands
    
    def test_unknown_command(self, ftp):
        response = ftp.send_command("SITE", "CHMOD 644 x")
        
        assert response.status == FtpStatus.COMMAND_NOT_IMPLEMENTED
    
    def test_multi_line_reply_then_next_command(self, ftp):
        """Lines after a multi-line reply are not mistaken for the next reply."""
        features = ftp.send_command("FEAT")
        
        assert features.status == FtpStatus.SYSTEM_STATUS
        assert "MDTM" in features.message
        assert ftp.keep_alive().status == FtpStatus.OK


class TestFtpFiles:
    """Tests for file commands and transfers."""
    
    def test_rename_file(self, ftp, ftp_server):
        assert ftp.rename_file("pub/readme.txt", "pub/README").is_ok
        assert "pub/README" in ftp_server.files
    
    def test_rename_missing_file_stops_after_rnfr(self, ftp, ftp_server):
        response = ftp.rename_file("nope", "other")
        
        assert response.status == FtpStatus.FILE_UNAVAILABLE
        assert not any(line.startswith("RNTO") for line in ftp_server.commands)
    
    def test_delete_file(self, ftp, ftp_server):
        assert ftp.delete_file("pub/readme.txt").is_ok
        assert "pub/readme.txt" not in ftp_server.files
    
    def test_download(self, ftp, ftp_server, tmp_path):
        response = ftp.download("pub/data.bin", str(tmp_path))
        
        assert response.status == FtpStatus.CLOSING_DATA_CONNECTION
        assert (tmp_path / "data.bin").read_bytes() == ftp_server.files["pub/data.bin"]
        assert "TYPE I" in ftp_server.commands
    
    def test_download_ascii_mode(self, ftp, ftp_server, tmp_path):
        ftp.download("pub/readme.txt", str(tmp_path), TransferMode.ASCII)
        
        assert "TYPE A" in ftp_server.commands
        assert (tmp_path / "readme.txt").read_bytes() == b"hello from ftp\r\n"
    
    def test_download_missing_file(self, ftp, tmp_path):
        response = ftp.download("pub/missing.txt", str(tmp_path))
        
        assert response.status == FtpStatus.FILE_UNAVAILABLE
        assert not os.listdir(tmp_path)
    
    def test_download_into_missing_directory(self, ftp, tmp_path):
        response = ftp.download("pub/readme.txt", str(tmp_path / "absent"))
        
        assert response.status == FtpStatus.INVALID_FILE
        assert ftp.keep_alive().is_ok
    
    def test_download_write_failure(self, ftp, tmp_path, broken_disk):
        response = ftp.download("pub/data.bin", str(tmp_path))
        
        assert response.status == FtpStatus.INVALID_FILE
        assert not os.listdir(tmp_path)
        assert ftp.keep_alive().is_ok
    
    def test_upload(self, ftp, ftp_server, tmp_path):
        local = tmp_path / "report.csv"
        local.write_bytes(b"a,b\n1,2\n" * 500)
        
        response = ftp.upload(str(local), "incoming")
        
        assert response.status == FtpStatus.CLOSING_DATA_CONNECTION
        assert ftp_server.files["incoming/report.csv"] == local.read_bytes()
    
    def test_upload_append(self, ftp, ftp_server, tmp_path):
        local = tmp_path / "readme.txt"
        local.write_bytes(b"more\r\n")
        
        assert ftp.upload(str(local), "pub/", append=True).is_ok
        assert ftp_server.files["pub/readme.txt"] == b"hello from ftp\r\nmore\r\n"
        assert "APPE pub/readme.txt" in ftp_server.commands
    
    def test_upload_missing_local_file(self, ftp, ftp_server, tmp_path):
        response = ftp.upload(str(tmp_path / "absent.txt"), "pub")
        
        assert response.status == FtpStatus.INVALID_FILE
        assert "PASV" not in ftp_server.commands
    
    def test_upload_read_failure(self, ftp, tmp_path, broken_disk):
        local = tmp_path / "report.csv"
        local.write_bytes(b"a,b\n1,2\n")
        
        response = ftp.upload(str(local), "incoming")
        
        assert response.status == FtpStatus.INVALID_FILE
        assert ftp.keep_alive().is_ok
