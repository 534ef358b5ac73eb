# =============================================================================
# nntpctl Library – Response Models
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

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple


# ---- Status codes consumed by the client ----
SERVER_READY_POSTING = 200
SERVER_READY_NO_POSTING = 201
GROUP_SELECTED = 211
ARTICLE_FOLLOWS = 220
ARTICLE_RETRIEVED = 221
ARTICLE_EXISTS = 223
AUTHENTICATION_ACCEPTED = 281
PASSWORD_REQUIRED = 381
NO_SUCH_GROUP = 411
NO_SUCH_ARTICLE = 430
AUTHENTICATION_FAILED = 481
AUTHENTICATION_OUT_OF_SEQUENCE = 482
PERMISSION_DENIED = 502


# Per-article overview fields, keyed by lowercase header name. The flag tells
# whether the server sends the value in "Name: value" (full) form.
OverviewFormat = Dict[str, bool]
OverviewRow = Dict[str, str]


class ConnectionState(Enum):
    """
    Lifecycle of the connection owned by the client.

    AUTHENTICATED is only reached when credentials are configured.
    """

    DISCONNECTED = 0
    CONNECTED = 1
    AUTHENTICATED = 2


class OperationState(Enum):
    """
    Lifecycle of a single command: written, then resolved exactly once.
    """

    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting-response"
    DELIVERED = "delivered"
    FAILED = "failed"


@dataclass(frozen=True)
class Response:
    """
    Immutable result of one command.

    Attributes:
        status:
            3-digit status code from the status line.

        message:
            Human-readable remainder of the status line (may be empty).

        lines:
            Body lines, dot-unstuffed, in the order received. Only set for
            responses read through the multi-line path; None otherwise.
    """

    status: int
    message: str
    lines: Optional[Tuple[str, ...]] = None

    @property
    def is_multiline(self) -> bool:
        return self.lines is not None

    @property
    def is_success(self) -> bool:
        """True for 1xx, 2xx and 3xx codes."""
        return self.status < 400


@dataclass(frozen=True)
class ArticleResult:
    """
    An article split at the first blank line.

    Attributes:
        headers: Raw header lines ("Name: value"), in order.
        body: Body lines, blank lines after the separator included.
        response: The response the article was extracted from.
    """

    headers: List[str]
    body: List[str]
    response: Response


@dataclass(frozen=True)
class GroupResult:
    """
    Selected newsgroup as reported by a GROUP command.

    Attributes:
        name: Group name echoed by the server.
        count: Estimated number of articles in the group.
        first: Lowest article number.
        last: Highest article number.
    """

    name: str
    count: int
    first: int
    last: int
