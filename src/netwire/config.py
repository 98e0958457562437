"""
=============================================================================
NETWIRE CONFIGURATION
=============================================================================

Centralized defaults for sockets and the FTP/HTTP clients.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Per-call arguments                                             │
    │      └── ftp.connect("ftp.example.com", timeout=5.0)               │
    │                                                                      │
    │   2. A NetConfig passed to the component                            │
    │      └── Http("example.com", config=NetConfig(user_agent="x"))     │
    │                                                                      │
    │   3. Environment variables, via NetConfig.from_env()                │
    │      └── NETWIRE_LOG_LEVEL=DEBUG python -m netwire ip              │
    │                                                                      │
    │   4. Defaults in this dataclass                                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

TIMEOUTS
────────

A timeout of 0 means "use the operating system default", which may be
very long. It never means "non-blocking": non-blocking mode is a
per-socket flag (Socket.blocking).

=============================================================================
"""

import os
from dataclasses import dataclass

from . import __version__


@dataclass
class NetConfig:
    """
    Configuration shared by sockets and protocol clients.
    
    Components that take a config fall back to NetConfig() when given None.
    """
    
    # ─────────────────────────────────────────────────────────────────────
    # SOCKET SETTINGS
    # ─────────────────────────────────────────────────────────────────────
    
    connect_timeout: float = 0.0
    """Default connect timeout in seconds for the protocol clients (0 = OS default)."""
    
    buffer_size: int = 1024
    """Chunk size for stream reads (framed packet bodies, FTP/HTTP replies)."""
    
    # ─────────────────────────────────────────────────────────────────────
    # FTP
    # ─────────────────────────────────────────────────────────────────────
    
    ftp_port: int = 21
    ftp_anonymous_user: str = "anonymous"
    ftp_anonymous_password: str = "user@netwire"
    
    # ─────────────────────────────────────────────────────────────────────
    # HTTP
    # ─────────────────────────────────────────────────────────────────────
    
    http_port: int = 80
    user_agent: str = f"netwire/{__version__}"
    http_from: str = "user@netwire"
    """Value of the From header added to requests that lack one."""
    
    public_address_host: str = "api.ipify.org"
    public_address_uri: str = "/"
    """Plain-text "what is my IP" endpoint used by IpAddress.public_address()."""
    
    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────
    
    log_level: str = "INFO"
    
    @classmethod
    def from_env(cls) -> "NetConfig":
        """
        Create configuration from environment variables.
        
        NETWIRE_CONNECT_TIMEOUT   Connect timeout in seconds (default: 0)
        NETWIRE_BUFFER_SIZE       Stream read chunk size (default: 1024)
        NETWIRE_USER_AGENT        HTTP User-Agent header
        NETWIRE_PUBLIC_HOST       Host answering public address lookups
        NETWIRE_LOG_LEVEL         Logging level (default: INFO)
        """
        defaults = cls()
        return cls(
            connect_timeout=float(os.getenv("NETWIRE_CONNECT_TIMEOUT", "0")),
            buffer_size=int(os.getenv("NETWIRE_BUFFER_SIZE", "1024")),
            user_agent=os.getenv("NETWIRE_USER_AGENT", defaults.user_agent),
            public_address_host=os.getenv("NETWIRE_PUBLIC_HOST", defaults.public_address_host),
            log_level=os.getenv("NETWIRE_LOG_LEVEL", "INFO"),
        )
    
    def validate(self) -> None:
        """Fail fast on impossible values."""
        if self.connect_timeout < 0:
            raise ValueError(f"connect_timeout must be >= 0, got {self.connect_timeout}")
        
        if self.buffer_size < 1:
            raise ValueError(f"buffer_size must be >= 1, got {self.buffer_size}")
        
        for name in ("ftp_port", "http_port"):
            port = getattr(self, name)
            if not 0 < port < 65536:
                raise ValueError(f"Invalid {name}: {port}. Must be 1-65535.")
        
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {self.log_level}")
