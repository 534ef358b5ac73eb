# =============================================================================
# NNTPClient - Session controller for NNTP servers
# -----------------------------------------------------------------------------
# Copyright (c) Alejandro Feránandez Rodríguez. All rights reserved.
#
# This source code is released under the GEL 3.0 License.
#
# DISCLAIMER:
# This software is provided "AS IS", without warranty of any kind, express or
# implied, including but not limited to the warranties of merchantability,
# fitness for a particular purpose and noninfringement. In no event shall the
# authors or copyright holders be liable for any claim, damages or other
# liability, whether in an action of contract, tort or otherwise, arising from,
# out of or in connection with the software or the use or other dealings in the
# software.
#
# LICENSE – GEL 3.0:
# You may use, copy, modify, and distribute this code according to the terms of
# the GEL 3.0 License. A full copy of the license should accompany any
# redistribution. If the license text is missing, see: https://gel-license.org
#  @author
#    Alejandro Fernández Rodríguez — github.com/afernandezLuc
#  @version 1.0.0
#  @date 2026-01-07
# =============================================================================

from __future__ import annotations

import dataclasses
import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple, Union

from .config import ClientOptions
from .exceptions import (
    AuthenticationFailedError,
    NNTPBusyError,
    NNTPError,
    NNTPParseError,
    NNTPProtocolError,
    NNTPTransportError,
    NoSuchArticleError,
    NoSuchGroupError,
    PasswordRequiredError,
)
from .models import (
    ARTICLE_FOLLOWS,
    ARTICLE_RETRIEVED,
    AUTHENTICATION_FAILED,
    AUTHENTICATION_OUT_OF_SEQUENCE,
    GROUP_SELECTED,
    NO_SUCH_ARTICLE,
    NO_SUCH_GROUP,
    PASSWORD_REQUIRED,
    PERMISSION_DENIED,
    SERVER_READY_NO_POSTING,
    SERVER_READY_POSTING,
    ArticleResult,
    ConnectionState,
    GroupResult,
    OperationState,
    OverviewFormat,
    OverviewRow,
    Response,
)
from .pipeline import Pipeline
from .transport import SocketTransport

logger = logging.getLogger(__name__)

ArticleRange = Union[str, int, Tuple[int, Optional[int]]]
TransportFactory = Callable[[ClientOptions], Any]


def _default_transport(options: ClientOptions) -> SocketTransport:
    return SocketTransport(
        host=options.host,
        port=options.port,
        secure=options.secure,
        timeout_s=options.timeout_s,
        read_size=options.read_size,
    )


class PendingOperation:
    """
    The single command awaiting its response on a connection.

    Holds the pipeline assembled for the command and resolves exactly once,
    either with a Response or with an error.
    """

    def __init__(self, command: Optional[str], pipeline: Pipeline) -> None:
        self.command = command
        self.pipeline = pipeline
        self.state = OperationState.IDLE
        self.response: Optional[Response] = None
        self.error: Optional[BaseException] = None

    @property
    def done(self) -> bool:
        return self.pipeline.done

    def on_data(self, chunk: bytes) -> None:
        self.pipeline.push(chunk)

    def start(self) -> None:
        self.state = OperationState.AWAITING_RESPONSE

    def deliver(self) -> Response:
        self._require_awaiting()
        if self.pipeline.response is None:
            raise NNTPParseError("Pipeline finished without producing a response")
        self.response = self.pipeline.response
        self.state = OperationState.DELIVERED
        return self.response

    def fail(self, error: BaseException) -> None:
        self._require_awaiting()
        self.error = error
        self.state = OperationState.FAILED

    def _require_awaiting(self) -> None:
        if self.state is not OperationState.AWAITING_RESPONSE:
            raise RuntimeError(f"Operation already resolved ({self.state.value})")


class NNTPClient:
    """
    Client for line-oriented NNTP servers.

    The connection is strictly half-duplex: one command is written, its
    response is read through a pipeline built for that command, and only
    then may the next command be issued. A command issued while another one
    is still awaiting its response is rejected with NNTPBusyError.

    Response bodies are framed by MultilineFramer, optionally inflated first
    by Decompressor, and parsed by ResponseParser (see `nntpctl.pipeline`).
    """

    def __init__(
        self,
        options: Optional[ClientOptions] = None,
        transport_factory: Optional[TransportFactory] = None,
        **overrides: Any,
    ) -> None:
        """
        Create an NNTPClient.

        Args:
            options:
                Connection settings. Defaults to `ClientOptions()`.
            transport_factory:
                Callable building the transport from the options. Defaults to
                a SocketTransport.
            **overrides:
                ClientOptions fields to override, e.g. `host="news.example"`.

        Raises:
            TypeError:
                If an override is not a ClientOptions field.
            ValueError:
                If an override holds an invalid value.
        """
        options = options or ClientOptions()
        if overrides:
            options = dataclasses.replace(options, **overrides)
        self.options = options
        self._transport_factory = transport_factory or _default_transport
        self._transport: Optional[Any] = None
        self._pending: Optional[PendingOperation] = None
        self.state = ConnectionState.DISCONNECTED

    @property
    def is_connected(self) -> bool:
        return self.state is not ConnectionState.DISCONNECTED

    # ---- Connection lifecycle ----

    def connect(self) -> Response:
        """
        Open the connection and read the server greeting.

        Returns:
            The greeting response (200 or 201).

        Raises:
            NNTPTransportError: If the connection cannot be established.
            NNTPProtocolError: If the server refuses service.
        """
        if self._transport is not None:
            raise NNTPTransportError("Already connected")

        transport = self._transport_factory(self.options)
        transport.connect()
        self._transport = transport
        self.state = ConnectionState.CONNECTED

        try:
            response = self._get_response(None)
            if response.status not in (SERVER_READY_POSTING, SERVER_READY_NO_POSTING):
                raise NNTPProtocolError(response.status, response.message)
        except NNTPError:
            self._close_transport()
            raise

        logger.info("Server greeting: %d %s", response.status, response.message)
        return response

    def connect_and_authenticate(self) -> Response:
        """
        Connect, then authenticate when a username is configured.

        Returns:
            The authentication response, or the greeting when no username is
            configured.
        """
        response = self.connect()
        if self.options.username is None:
            return response
        return self.authenticate()

    def disconnect(self) -> None:
        """
        Close the connection. A command still awaiting its response fails with
        NNTPTransportError.
        """
        self._close_transport()

    def authenticate(self) -> Response:
        """
        Submit the configured credentials with AUTHINFO USER / PASS.

        The password is only sent when the server asks for it (381).

        Raises:
            ValueError: If no username is configured.
            PasswordRequiredError: If the server asks for a password and none
                is configured.
            AuthenticationFailedError: If the server rejects the credentials.
            NNTPProtocolError: On any other unexpected status.
        """
        if not self.options.username:
            raise ValueError("Authentication requires a username")

        response = self._auth_info("USER", self.options.username)

        if response.status == PASSWORD_REQUIRED:
            if not self.options.password:
                raise PasswordRequiredError("Password is required", response)
            response = self._auth_info("PASS", self.options.password)

        if response.status in (AUTHENTICATION_FAILED, AUTHENTICATION_OUT_OF_SEQUENCE, PERMISSION_DENIED):
            raise AuthenticationFailedError(
                f"Authentication failed: {response.status} {response.message}", response
            )
        if not 200 <= response.status < 300:
            raise NNTPProtocolError(response.status, response.message)

        self.state = ConnectionState.AUTHENTICATED
        logger.info("Authenticated as %s", self.options.username)
        return response

    def _auth_info(self, kind: str, value: str) -> Response:
        return self._get_response(_command("AUTHINFO", kind, value))

    # ---- Article retrieval ----

    def article(self, message_id: Union[str, int]) -> ArticleResult:
        """
        Retrieve a full article and split it into headers and body.

        Args:
            message_id: Message-ID ("<id@host>") or article number.

        Raises:
            NoSuchArticleError: If the server does not have the article.
            NNTPProtocolError: On any other unexpected status.
        """
        response = self._get_response(_command("ARTICLE", message_id), multiline=True)
        _check_article(response, message_id)
        if response.status not in (ARTICLE_FOLLOWS, ARTICLE_RETRIEVED):
            raise NNTPProtocolError(response.status, response.message)

        headers, body = split_article(response.lines or ())
        return ArticleResult(headers=headers, body=body, response=response)

    def head(self, message_id: Union[str, int]) -> Response:
        """
        Check an article's headers with HEAD.

        Args:
            message_id: Message-ID ("<id@host>") or article number.

        Returns:
            The status response.

        Raises:
            NoSuchArticleError: If the server does not have the article.
            NNTPProtocolError: On any other failure status.
        """
        response = self._get_response(_command("HEAD", message_id))
        _check_article(response, message_id)
        return response

    def stat(self, message_id: Union[str, int]) -> Response:
        """Check that an article exists with STAT. Same errors as `head`."""
        response = self._get_response(_command("STAT", message_id))
        _check_article(response, message_id)
        return response

    # ---- Groups and overview ----

    def group(self, name: str) -> GroupResult:
        """
        Select a newsgroup.

        Returns:
            GroupResult with the name, estimated count and article range.

        Raises:
            NoSuchGroupError: If the group does not exist.
            NNTPParseError: If the reply carries fewer than four fields.
        """
        response = self._get_response(_command("GROUP", name))

        if response.status == NO_SUCH_GROUP:
            raise NoSuchGroupError(f"No such group: {name}", response)
        if response.status != GROUP_SELECTED:
            raise NNTPProtocolError(response.status, response.message)

        return parse_group(response.message)

    def overview_format(self) -> OverviewFormat:
        """
        Fetch the fields the server lists in overview lines.

        Returns:
            Mapping from lowercase field name to True when the field is sent
            in full ("Name: value") form, in server order.
        """
        response = self._get_response("LIST OVERVIEW.FMT", multiline=True)
        if not response.is_success:
            raise NNTPProtocolError(response.status, response.message)
        return parse_overview_format(response.lines or ())

    def overview(self, article_range: ArticleRange, fmt: OverviewFormat) -> List[OverviewRow]:
        """
        Fetch overview lines with XOVER.

        Args:
            article_range: "first-last", "first-", a single number, or a
                (first, last) tuple where last may be None.
            fmt: Field layout of each line, in order. See `with_article_number`.

        Returns:
            One field mapping per line, in the order received.
        """
        return self._overview("XOVER", article_range, fmt, compressed=False)

    def overview_compressed(self, article_range: ArticleRange, fmt: OverviewFormat) -> List[OverviewRow]:
        """Same as `overview`, using the compressed XZVER command."""
        return self._overview("XZVER", article_range, fmt, compressed=True)

    def _overview(self, verb: str, article_range: ArticleRange,
                  fmt: OverviewFormat, compressed: bool) -> List[OverviewRow]:
        response = self._get_response(
            _command(verb, format_range(article_range)), multiline=True, compressed=compressed
        )
        if not response.is_success:
            raise NNTPProtocolError(response.status, response.message)
        return parse_overview(response.lines or (), fmt)

    # ---- Request/response correlation ----

    def _get_response(self, command: Optional[str], multiline: bool = False,
                      compressed: bool = False) -> Response:
        """
        Write one command and read exactly one response.

        Args:
            command: Command line without CR LF, or None to only read (the
                server greeting).
            multiline: The reply carries a dot-terminated body.
            compressed: The body is compressed.
        """
        if self._pending is not None:
            raise NNTPBusyError(
                f"Cannot send {_redact(command)!r}: {_redact(self._pending.command)!r} "
                "is still awaiting its response"
            )
        transport = self._require_transport()

        op = PendingOperation(command, Pipeline.build(multiline, compressed, self.options.encoding))
        self._pending = op
        op.start()
        try:
            with self._subscription(transport, op):
                if command is not None:
                    logger.debug(">> %s", _redact(command))
                    transport.write(command.encode(self.options.encoding) + b"\r\n")
                while not op.done:
                    transport.pump()
            response = op.deliver()
        except NNTPError as exc:
            op.fail(exc)
            self._on_failure(op, exc)
            raise
        finally:
            self._pending = None

        logger.debug("<< %d %s", response.status, response.message)
        return response

    @contextmanager
    def _subscription(self, transport: Any, op: PendingOperation) -> Iterator[None]:
        transport.subscribe(op.on_data)
        try:
            yield
        finally:
            transport.unsubscribe(op.on_data)

    def _on_failure(self, op: PendingOperation, exc: NNTPError) -> None:
        if isinstance(exc, NNTPTransportError):
            logger.warning("%s failed: %s", _redact(op.command) or "greeting", exc)
            self._close_transport()
        elif isinstance(exc, NNTPParseError):
            logger.warning(
                "%s failed: %s; framing state is undefined, reconnect before reuse",
                _redact(op.command) or "greeting", exc,
            )

    def _require_transport(self) -> Any:
        if self._transport is None:
            raise NNTPTransportError("Not connected")
        return self._transport

    def _close_transport(self) -> None:
        transport, self._transport = self._transport, None
        self.state = ConnectionState.DISCONNECTED
        if transport is not None:
            transport.close()


# ---- Command formatting ----

def _command(verb: str, *args: Any) -> str:
    parts = [verb]
    for arg in args:
        text = str(arg)
        if not text or "\r" in text or "\n" in text:
            raise ValueError(f"Invalid argument for {verb}: {text!r}")
        parts.append(text)
    return " ".join(parts)


def _redact(command: Optional[str]) -> Optional[str]:
    if command and command.upper().startswith("AUTHINFO PASS"):
        return "AUTHINFO PASS ****"
    return command


def format_range(article_range: ArticleRange) -> str:
    if isinstance(article_range, tuple):
        first, last = article_range
        return f"{int(first)}-" if last is None else f"{int(first)}-{int(last)}"
    return str(article_range)


# ---- Response interpretation ----

def _check_article(response: Response, message_id: Union[str, int]) -> None:
    if response.status == NO_SUCH_ARTICLE:
        raise NoSuchArticleError(f"No such article: {message_id}", response)
    if not response.is_success:
        raise NNTPProtocolError(response.status, response.message)


def split_article(lines: Sequence[str]) -> Tuple[List[str], List[str]]:
    """
    Split article lines at the first blank line.

    The separator itself belongs to neither half; later blank lines stay in
    the body.
    """
    headers: List[str] = []
    body: List[str] = []
    in_body = False
    for line in lines:
        if in_body:
            body.append(line)
        elif not line.strip():
            in_body = True
        else:
            headers.append(line)
    return headers, body


def parse_group(message: str) -> GroupResult:
    """
    Parse "count first last name" from a 211 reply. Extra tokens are ignored.

    Raises:
        NNTPParseError: If fewer than four tokens are present or a number is
            not an integer.
    """
    parts = message.split()
    if len(parts) < 4:
        raise NNTPParseError(f"Expected 4 fields in GROUP reply, got {len(parts)}: {message!r}")
    try:
        count, first, last = (int(p) for p in parts[:3])
    except ValueError as exc:
        raise NNTPParseError(f"Malformed GROUP reply: {message!r}") from exc
    return GroupResult(name=parts[3], count=count, first=first, last=last)


def parse_overview_format(lines: Sequence[str]) -> OverviewFormat:
    """
    Parse LIST OVERVIEW.FMT lines ("Subject:", "Xref:full", ":bytes").
    """
    fmt: OverviewFormat = {}
    for line in lines:
        field = line.strip()
        if not field:
            continue
        if field.lower().endswith(":full"):
            fmt[field[:-5].lower()] = True
        elif field.endswith(":"):
            fmt[field[:-1].lower()] = False
        else:
            # RFC 3977 metadata items (":bytes", ":lines")
            fmt[field.lstrip(":").lower()] = False
    return fmt


def with_article_number(fmt: OverviewFormat) -> OverviewFormat:
    """
    Prepend the article number field that every overview line starts with,
    ahead of the fields listed by LIST OVERVIEW.FMT.
    """
    if "number" in fmt:
        return dict(fmt)
    return {"number": False, **fmt}


def parse_overview(lines: Sequence[str], fmt: OverviewFormat) -> List[OverviewRow]:
    """
    Map tab-separated overview lines onto the fields of `fmt`, in key order.

    Full fields keep the text after their first colon, trimmed; short fields
    keep the raw token. Fields missing from a short line are empty strings.
    """
    rows: List[OverviewRow] = []
    for line in lines:
        tokens = line.split("\t")
        row: OverviewRow = {}
        for i, (field, full) in enumerate(fmt.items()):
            token = tokens[i] if i < len(tokens) else ""
            row[field] = token[token.find(":") + 1:].strip() if full else token
        rows.append(row)
    return rows
