# =============================================================================
# nntpctl Library – Exceptions Module
# -----------------------------------------------------------------------------
# Copyright (c) Alejandro Feránandez Rodríguez. All rights reserved.
#
# This source code is released under the GEL 3.0 License.
#
# DISCLAIMER:
# This software is provided "AS IS", without warranty of any kind, express or
# implied, including but not limited to the warranties of merchantability,
# fitness for a particular purpose, and non-infringement. In no event shall the
# authors or copyright holders be liable for any claim, damages, or other
# liability, whether in an action of contract, tort, or otherwise, arising from,
# out of, or in connection with the software or the use or other dealings in
# the software.
#
# LICENSE – GEL 3.0:
# You may use, copy, modify, and distribute this code according to the terms of
# the GEL 3.0 License. A full copy of the license text should accompany any
# redistribution. If the license text is missing, see: https://gel-license.org
#  @author
#    Alejandro Fernández Rodríguez — github.com/afernandezLuc
#  @version 1.0.0
#  @date 2026-01-07
# =============================================================================

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .models import Response


class NNTPError(Exception):
    """
    Base exception for the library.

    All custom exceptions of the nntpctl library inherit from this class so
    that callers can catch `NNTPError` to handle any library-specific failure
    in a generic way.
    """
    pass


class NNTPTransportError(NNTPError):
    """
    Errors related to the transport layer.

    This includes problems such as:
      - Connection refused or reset
      - Connection closed by the server while a response was awaited
      - Socket timeouts
      - Commands issued on a disconnected client
    """
    pass


class NNTPParseError(NNTPError):
    """
    The bytes received from the server cannot be turned into a response.

    Raised when:
      - The status line does not start with a 3-digit code
      - A structured reply (e.g. GROUP) has fewer fields than required
      - A numeric field is not an integer
    """
    pass


class NNTPDecompressionError(NNTPParseError):
    """
    A compressed multi-line body could not be inflated.
    """
    pass


class NNTPProtocolError(NNTPError):
    """
    The server answered with a well-formed status that is not expected for the
    command that was issued.

    Attributes:
        status: Raw 3-digit status code.
        message: Remainder of the status line.
    """

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"Unexpected response received: {status} {message}")
        self.status = status
        self.message = message


class NNTPDomainError(NNTPError):
    """
    A named condition the protocol defines for a specific command.

    Attributes:
        response: The response that signalled the condition, when one exists.
    """

    def __init__(self, message: str, response: Optional[Response] = None) -> None:
        super().__init__(message)
        self.response = response


class NoSuchArticleError(NNTPDomainError):
    """The requested article does not exist on the server (430)."""
    pass


class NoSuchGroupError(NNTPDomainError):
    """The requested newsgroup does not exist on the server (411)."""
    pass


class PasswordRequiredError(NNTPDomainError):
    """
    The server asked for a password (381) but none is configured. No empty
    credential is ever sent.
    """
    pass


class AuthenticationFailedError(NNTPDomainError):
    """The server rejected the submitted credentials."""
    pass


class NNTPBusyError(NNTPError):
    """
    A command was issued while another one is still awaiting its response.

    The protocol is strictly half-duplex, so the second command is rejected
    instead of being written to the socket.
    """
    pass
