from .client import NNTPClient, PendingOperation, with_article_number
from .config import ClientOptions
from .models import ArticleResult, ConnectionState, GroupResult, OperationState, Response
from .pipeline import Decompressor, MultilineFramer, Pipeline, ResponseParser
from .transport import SocketTransport
from .exceptions import (
    NNTPError,
    NNTPTransportError,
    NNTPParseError,
    NNTPDecompressionError,
    NNTPProtocolError,
    NNTPDomainError,
    NNTPBusyError,
    NoSuchArticleError,
    NoSuchGroupError,
    PasswordRequiredError,
    AuthenticationFailedError,
)

__all__ = [
    "NNTPClient",
    "PendingOperation",
    "with_article_number",
    "ClientOptions",
    "Response",
    "ArticleResult",
    "GroupResult",
    "ConnectionState",
    "OperationState",
    "Decompressor",
    "MultilineFramer",
    "ResponseParser",
    "Pipeline",
    "SocketTransport",
    "NNTPError",
    "NNTPTransportError",
    "NNTPParseError",
    "NNTPDecompressionError",
    "NNTPProtocolError",
    "NNTPDomainError",
    "NNTPBusyError",
    "NoSuchArticleError",
    "NoSuchGroupError",
    "PasswordRequiredError",
    "AuthenticationFailedError",
]
