# =============================================================================
# nntpctl Library – Client Configuration
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

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_PORT = 119
DEFAULT_SECURE_PORT = 563

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off", "")


@dataclass(frozen=True)
class ClientOptions:
    """
    Connection settings for NNTPClient.

    Attributes:
        host: Server host name or address.
        port: Server TCP port.
        secure: Use TLS.
        username: Username for AUTHINFO USER. Authentication is skipped by
            `connect_and_authenticate()` when unset.
        password: Password for AUTHINFO PASS.
        timeout_s: Socket timeout in seconds, None to wait forever.
        encoding: Text encoding of status and body lines.
        read_size: Maximum bytes read from the socket at once.
    """

    host: str = "localhost"
    port: int = DEFAULT_PORT
    secure: bool = False
    username: Optional[str] = None
    password: Optional[str] = None
    timeout_s: Optional[float] = 30.0
    encoding: str = "utf-8"
    read_size: int = 4096

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("host must not be empty")
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port={self.port!r}")
        if self.timeout_s is not None and self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be positive, got {self.timeout_s!r}")
        if self.read_size <= 0:
            raise ValueError(f"read_size must be positive, got {self.read_size!r}")

    @classmethod
    def from_env(cls, prefix: str = "NNTP_",
                 environ: Optional[Mapping[str, str]] = None) -> "ClientOptions":
        """
        Build options from environment variables.

        Reads `<prefix>HOST`, `PORT`, `SECURE`, `USERNAME`, `PASSWORD` and
        `TIMEOUT`. Unset variables keep their defaults; when SECURE is on and
        PORT is unset, the TLS port 563 is used.

        Raises:
            ValueError: If a variable holds an invalid value.
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            return env.get(prefix + name)

        secure = _parse_bool(get("SECURE") or "", prefix + "SECURE")

        port_raw = get("PORT")
        port = int(port_raw) if port_raw else (DEFAULT_SECURE_PORT if secure else DEFAULT_PORT)

        timeout_raw = get("TIMEOUT")
        timeout_s: Optional[float] = 30.0
        if timeout_raw:
            timeout_s = None if timeout_raw.lower() == "none" else float(timeout_raw)

        return cls(
            host=get("HOST") or "localhost",
            port=port,
            secure=secure,
            username=get("USERNAME") or None,
            password=get("PASSWORD"),
            timeout_s=timeout_s,
        )


def _parse_bool(value: str, name: str) -> bool:
    v = value.strip().lower()
    if v in _TRUE_VALUES:
        return True
    if v in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")
