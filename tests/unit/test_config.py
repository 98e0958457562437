"""
Unit tests for NetConfig.
"""

import pytest

from netwire import __version__
from netwire.config import NetConfig


class TestNetConfig:
    def test_defaults(self):
        config = NetConfig()
        
        assert config.connect_timeout == 0.0
        assert config.ftp_port == 21
        assert config.http_port == 80
        assert config.user_agent == f"netwire/{__version__}"
        config.validate()
    
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("NETWIRE_CONNECT_TIMEOUT", "2.5")
        monkeypatch.setenv("NETWIRE_BUFFER_SIZE", "4096")
        monkeypatch.setenv("NETWIRE_LOG_LEVEL", "DEBUG")
        
        config = NetConfig.from_env()
        
        assert config.connect_timeout == 2.5
        assert config.buffer_size == 4096
        assert config.log_level == "DEBUG"
    
    @pytest.mark.parametrize("changes", [
        {"connect_timeout": -1},
        {"buffer_size": 0},
        {"ftp_port": 0},
        {"http_port": 70000},
        {"log_level": "LOUD"},
    ])
    def test_validate_rejects(self, changes):
        with pytest.raises(ValueError):
            NetConfig(**changes).validate()
