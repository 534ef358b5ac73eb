# =============================================================================
# nntpctl Library – Socket Transport
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

import logging
import socket
import ssl
from typing import Callable, Optional

from .exceptions import NNTPTransportError

logger = logging.getLogger(__name__)

DataSink = Callable[[bytes], None]


class SocketTransport:
    """
    Duplex byte stream over TCP, optionally wrapped in TLS.

    Inbound data is pushed to a single subscribed sink: `pump()` reads one
    chunk from the socket and hands it over. The transport never interprets
    the bytes.
    """

    def __init__(
        self,
        host: str,
        port: int,
        secure: bool = False,
        timeout_s: Optional[float] = 30.0,
        read_size: int = 4096,
        ssl_context: Optional[ssl.SSLContext] = None,
    ) -> None:
        """
        Args:
            host: Server host name or address.
            port: Server TCP port.
            secure: Wrap the socket in TLS.
            timeout_s: Socket timeout in seconds, None to block forever.
            read_size: Maximum bytes read per `pump()` call.
            ssl_context: Context used when `secure` is set. Defaults to
                `ssl.create_default_context()`.
        """
        self.host = host
        self.port = port
        self.secure = secure
        self.timeout_s = timeout_s
        self.read_size = read_size
        self.ssl_context = ssl_context
        self._sock: Optional[socket.socket] = None
        self._sink: Optional[DataSink] = None

    @property
    def is_open(self) -> bool:
        return self._sock is not None

    def connect(self) -> None:
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.timeout_s)
        except OSError as exc:
            raise NNTPTransportError(
                f"Unable to connect to {self.host}:{self.port}: {exc}"
            ) from exc

        if self.secure:
            context = self.ssl_context or ssl.create_default_context()
            try:
                sock = context.wrap_socket(sock, server_hostname=self.host)
            except (ssl.SSLError, OSError) as exc:
                sock.close()
                raise NNTPTransportError(
                    f"TLS handshake with {self.host}:{self.port} failed: {exc}"
                ) from exc

        self._sock = sock
        logger.info("Connected to %s:%d%s", self.host, self.port, " (TLS)" if self.secure else "")

    def write(self, data: bytes) -> None:
        sock = self._require_socket()
        try:
            sock.sendall(data)
        except OSError as exc:
            raise NNTPTransportError(f"Error writing to {self.host}:{self.port}: {exc}") from exc

    def subscribe(self, sink: DataSink) -> None:
        if self._sink is not None:
            raise NNTPTransportError("Transport already has a subscriber")
        self._sink = sink

    def unsubscribe(self, sink: DataSink) -> None:
        if self._sink == sink:
            self._sink = None

    def pump(self) -> None:
        """
        Read one chunk and push it to the subscriber.

        Raises:
            NNTPTransportError: On socket errors, timeouts, or when the server
                closes the connection.
        """
        sock = self._require_socket()
        try:
            chunk = sock.recv(self.read_size)
        except socket.timeout as exc:
            raise NNTPTransportError(
                f"Timed out after {self.timeout_s}s waiting for {self.host}:{self.port}"
            ) from exc
        except OSError as exc:
            raise NNTPTransportError(f"Error reading from {self.host}:{self.port}: {exc}") from exc

        if not chunk:
            raise NNTPTransportError(f"Connection closed by {self.host}:{self.port}")

        if self._sink is None:
            logger.debug("Dropping %d unsolicited bytes", len(chunk))
            return
        self._sink(chunk)

    def close(self) -> None:
        sock, self._sock = self._sock, None
        self._sink = None
        if sock is None:
            return
        try:
            sock.close()
        except OSError as exc:
            logger.warning("Error closing connection to %s:%d: %s", self.host, self.port, exc)
        logger.info("Disconnected from %s:%d", self.host, self.port)

    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            raise NNTPTransportError("Not connected")
        return self._sock
