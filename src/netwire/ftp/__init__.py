"""FTP client: passive-mode transfers over TcpSocket."""

from .client import Ftp, TransferMode
from .response import (
    DirectoryResponse,
    FtpResponse,
    FtpStatus,
    ListingResponse,
    ReplyParseError,
    ReplyReader,
    parse_reply,
)

__all__ = [
    "Ftp",
    "TransferMode",
    "FtpResponse",
    "FtpStatus",
    "DirectoryResponse",
    "ListingResponse",
    "ReplyParseError",
    "ReplyReader",
    "parse_reply",
]
