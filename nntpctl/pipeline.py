# =============================================================================
# nntpctl Library – Response Framing Pipeline
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
import re
import zlib
from typing import Any, List, Optional, Tuple

from .exceptions import NNTPDecompressionError, NNTPParseError
from .models import Response

logger = logging.getLogger(__name__)

CRLF = b"\r\n"
TERMINATOR = b".\r\n"
# A terminator only counts when it is a line on its own.
_TERMINATOR_LINE = CRLF + TERMINATOR

_STATUS_LINE = re.compile(r"^(\d{3})(?: (.*))?$")


def parse_status_line(line: str) -> Tuple[int, str]:
    """
    Split a status line into its numeric code and message.

    Args:
        line: Status line without the trailing CR LF.

    Returns:
        (status, message) tuple. The message may be empty.

    Raises:
        NNTPParseError: If the line does not start with a 3-digit code.
    """
    m = _STATUS_LINE.match(line)
    if not m:
        raise NNTPParseError(f"Malformed status line: {line!r}")
    return int(m.group(1)), m.group(2) or ""


class Decompressor:
    """
    Inflates a compressed multi-line body.

    The status line that precedes the body is sent uncompressed, so it is
    forwarded unchanged. Everything after it goes through zlib (zlib or gzip
    headers are detected automatically). Bytes that follow the end of the
    compressed stream, usually the ". CR LF" terminator, are forwarded as-is.
    """

    def __init__(self) -> None:
        self._head = bytearray()
        self._status_seen = False
        self._inflate = zlib.decompressobj(zlib.MAX_WBITS | 32)
        self.finished = False

    def feed(self, chunk: bytes) -> List[bytes]:
        """
        Push raw socket bytes in.

        Args:
            chunk: Bytes as read from the socket.

        Returns:
            Zero or one chunk of plain bytes: the status line and whatever
            could be inflated so far.

        Raises:
            NNTPDecompressionError: If the compressed data is malformed.
        """
        out = bytearray()

        if not self._status_seen:
            self._head.extend(chunk)
            idx = self._head.find(CRLF)
            if idx < 0:
                return []
            out.extend(self._head[:idx + 2])
            chunk = bytes(self._head[idx + 2:])
            self._head.clear()
            self._status_seen = True

        if chunk:
            out.extend(self._inflate_chunk(chunk))

        return [bytes(out)] if out else []

    def close(self) -> List[bytes]:
        """Nothing is held back once the upstream ends."""
        return []

    def _inflate_chunk(self, chunk: bytes) -> bytes:
        if self._inflate.eof:
            return chunk

        try:
            data = self._inflate.decompress(chunk)
        except zlib.error as exc:
            raise NNTPDecompressionError(f"Malformed compressed body: {exc}") from exc

        if self._inflate.eof:
            data += self._inflate.unused_data
        return data


class MultilineFramer:
    """
    Collects a dot-terminated body and emits it line by line.

    Bytes are held until the terminator line (". CR LF") has been received,
    since it can be split across chunks. Then the terminator is stripped, the
    buffer is split on CR LF, each line is dot-unstuffed and decoded, and the
    framer finishes. There is no timeout here: a body that is never terminated
    never completes.

    Args:
        encoding: Text encoding used to decode each line.
        status_line: The stream starts with a status line. It is validated as
            soon as it is complete; a 4xx/5xx status carries no body, so it is
            emitted alone.
    """

    def __init__(self, encoding: str = "utf-8", status_line: bool = False) -> None:
        self.encoding = encoding
        self._buffer = bytearray()
        self._check_status = status_line
        self.finished = False

    def feed(self, chunk: bytes) -> List[str]:
        """
        Push bytes in and collect the body once it is terminated.

        Args:
            chunk: Next piece of the response, split at any byte boundary.

        Returns:
            All lines of the response, in order, when this chunk completes
            it; an empty list otherwise.

        Raises:
            NNTPParseError: If `status_line` is set and the first line is not
                a valid status line.
        """
        if self.finished:
            logger.debug("Dropping %d bytes received after the terminator", len(chunk))
            return []

        self._buffer.extend(chunk)

        if self._check_status:
            idx = self._buffer.find(CRLF)
            if idx < 0:
                return []
            self._check_status = False
            status_line = bytes(self._buffer[:idx])
            status, _ = parse_status_line(status_line.decode(self.encoding, errors="replace"))
            if status >= 400:
                return self._finish(status_line)

        if self._buffer == TERMINATOR:
            return self._finish(None)
        if not self._buffer.endswith(_TERMINATOR_LINE):
            return []

        # Keep the CR LF that ends the last body line out of the split
        return self._finish(bytes(self._buffer[:-len(_TERMINATOR_LINE)]))

    def close(self) -> List[str]:
        """An unterminated body produces nothing."""
        return []

    def _finish(self, content: Optional[bytes]) -> List[str]:
        self.finished = True
        self._buffer.clear()
        if content is None:
            return []

        lines = []
        for raw in content.split(CRLF):
            if raw.startswith(b".."):
                raw = raw[1:]
            lines.append(raw.decode(self.encoding, errors="replace"))
        return lines


class ResponseParser:
    """
    Builds exactly one Response from the stream.

    The caller picks the mode because the protocol fixes per command whether
    the reply is single- or multi-line.

    Single-line mode consumes raw bytes up to the first CR LF. Multi-line mode
    consumes lines already framed by MultilineFramer: the first is the status
    line, the rest become the body, and the response is produced when the
    upstream stage closes.
    """

    def __init__(self, multiline: bool = False, encoding: str = "utf-8") -> None:
        self.multiline = multiline
        self.encoding = encoding
        self._buffer = bytearray()
        self._status: Optional[int] = None
        self._message = ""
        self._lines: List[str] = []
        self.finished = False

    def feed(self, item: Any) -> List[Response]:
        """
        Args:
            item: Raw bytes in single-line mode, one framed line in
                multi-line mode.

        Returns:
            The Response once the status line is complete (single-line
            mode); an empty list otherwise.

        Raises:
            NNTPParseError: If the status line is malformed.
        """
        if self.finished:
            return []

        if self.multiline:
            if self._status is None:
                self._status, self._message = parse_status_line(item)
            else:
                self._lines.append(item)
            return []

        self._buffer.extend(item)
        idx = self._buffer.find(CRLF)
        if idx < 0:
            return []

        extra = len(self._buffer) - idx - 2
        if extra:
            logger.debug("Ignoring %d bytes after a single-line response", extra)

        line = self._buffer[:idx].decode(self.encoding, errors="replace")
        status, message = parse_status_line(line)
        self.finished = True
        return [Response(status=status, message=message)]

    def close(self) -> List[Response]:
        """
        Signal the end of the framed body.

        Returns:
            The multi-line Response, or an empty list if already produced.

        Raises:
            NNTPParseError: If no status line was received.
        """
        if self.finished:
            return []
        if not self.multiline or self._status is None:
            raise NNTPParseError("Stream ended before a status line was received")

        self.finished = True
        return [Response(status=self._status, message=self._message, lines=tuple(self._lines))]


class Pipeline:
    """
    Ordered stages wired for one command.

    Each chunk pushed in travels through every stage in order. When a stage
    finishes, the next stage is closed right after receiving that stage's last
    output, which is how the end of a framed body reaches the parser.
    """

    def __init__(self, stages: List[Any]) -> None:
        if not stages:
            raise ValueError("A pipeline needs at least one stage")
        self.stages = stages
        self.response: Optional[Response] = None
        self.done = False

    @classmethod
    def build(cls, multiline: bool = False, compressed: bool = False,
              encoding: str = "utf-8") -> "Pipeline":
        """
        Assemble Decompressor -> MultilineFramer -> ResponseParser, leaving out
        the stages the command does not need.
        """
        stages: List[Any] = []
        if compressed:
            stages.append(Decompressor())
        if multiline:
            stages.append(MultilineFramer(encoding=encoding, status_line=True))
        stages.append(ResponseParser(multiline=multiline, encoding=encoding))
        return cls(stages)

    def push(self, chunk: bytes) -> None:
        if self.done:
            return

        items: List[Any] = [chunk]
        upstream_finished = False
        for stage in self.stages:
            out: List[Any] = []
            for item in items:
                out.extend(stage.feed(item))
            if upstream_finished:
                out.extend(stage.close())
            upstream_finished = stage.finished
            items = out

        if items:
            self.response = items[-1]
        if upstream_finished:
            self.done = True
