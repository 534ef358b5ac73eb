"""
tests/test_client.py — NNTPClient against a scripted in-memory transport.

Each test queues the server's replies on `transport.script`; the transport
releases one reply per command written, so the tests also check which
command lines were sent.
"""

from __future__ import annotations

import zlib

import pytest

from nntpctl import ClientOptions, NNTPClient
from nntpctl.client import parse_overview, parse_overview_format, split_article, with_article_number
from nntpctl.exceptions import (
    AuthenticationFailedError,
    NNTPBusyError,
    NNTPDecompressionError,
    NNTPParseError,
    NNTPProtocolError,
    NNTPTransportError,
    NoSuchArticleError,
    NoSuchGroupError,
    PasswordRequiredError,
)
from nntpctl.models import ConnectionState, GroupResult, OperationState

from .conftest import ScriptedTransport


def _client(transport: ScriptedTransport, **overrides) -> NNTPClient:
    return NNTPClient(ClientOptions(host="news.example"),
                      transport_factory=lambda _opts: transport, **overrides)


# ──────────────────────────────────────────────────────────────
# Connection lifecycle
# ──────────────────────────────────────────────────────────────

class TestConnect:

    def test_greeting(self) -> None:
        transport = ScriptedTransport(greeting=[b"200 news.example", b" ready\r\n"])
        client = _client(transport)
        response = client.connect()
        assert (response.status, response.message) == (200, "news.example ready")
        assert client.state is ConnectionState.CONNECTED
        assert transport.written == []

    def test_refused_greeting_closes(self) -> None:
        transport = ScriptedTransport(greeting=b"502 Service unavailable\r\n")
        client = _client(transport)
        with pytest.raises(NNTPProtocolError) as info:
            client.connect()
        assert info.value.status == 502
        assert transport.closed
        assert not client.is_connected

    def test_connect_twice(self, client: NNTPClient) -> None:
        with pytest.raises(NNTPTransportError):
            client.connect()

    def test_disconnect(self, client: NNTPClient, transport: ScriptedTransport) -> None:
        client.disconnect()
        assert transport.closed
        assert client.state is ConnectionState.DISCONNECTED
        with pytest.raises(NNTPTransportError):
            client.stat("<a@b>")

    def test_command_before_connect(self, transport: ScriptedTransport) -> None:
        with pytest.raises(NNTPTransportError):
            _client(transport).group("misc.test")

    def test_connect_and_authenticate_without_username(self, transport: ScriptedTransport) -> None:
        response = _client(transport).connect_and_authenticate()
        assert response.status == 200
        assert transport.written == []


class TestAuthenticate:

    def test_user_then_password(self, transport: ScriptedTransport) -> None:
        transport.script.extend([b"381 Password required\r\n", b"281 Authentication accepted\r\n"])
        client = _client(transport, username="alice", password="s3cret")
        response = client.connect_and_authenticate()
        assert response.status == 281
        assert transport.commands == ["AUTHINFO USER alice\r\n", "AUTHINFO PASS s3cret\r\n"]
        assert client.state is ConnectionState.AUTHENTICATED

    def test_user_only(self, transport: ScriptedTransport) -> None:
        transport.script.append(b"281 Authentication accepted\r\n")
        client = _client(transport, username="alice")
        client.connect_and_authenticate()
        assert transport.commands == ["AUTHINFO USER alice\r\n"]

    def test_missing_password_is_not_sent(self, transport: ScriptedTransport) -> None:
        transport.script.append(b"381 Password required\r\n")
        client = _client(transport, username="alice")
        with pytest.raises(PasswordRequiredError):
            client.connect_and_authenticate()
        assert transport.commands == ["AUTHINFO USER alice\r\n"]
        assert client.state is ConnectionState.CONNECTED

    def test_rejected(self, transport: ScriptedTransport) -> None:
        transport.script.extend([b"381 Password required\r\n", b"481 Authentication failed\r\n"])
        client = _client(transport, username="alice", password="wrong")
        with pytest.raises(AuthenticationFailedError) as info:
            client.connect_and_authenticate()
        assert info.value.response.status == 481

    def test_requires_username(self, client: NNTPClient) -> None:
        with pytest.raises(ValueError):
            client.authenticate()

    def test_password_is_masked_in_logs(self, transport: ScriptedTransport, caplog) -> None:
        transport.script.extend([b"381 more\r\n", b"281 ok\r\n"])
        client = _client(transport, username="alice", password="s3cret")
        with caplog.at_level("DEBUG", logger="nntpctl"):
            client.connect_and_authenticate()
        assert "s3cret" not in caplog.text
        assert "AUTHINFO PASS ****" in caplog.text


# ──────────────────────────────────────────────────────────────
# Articles
# ──────────────────────────────────────────────────────────────

class TestArticle:

    ARTICLE = (
        b"221 0 <abc@example> article\r\n"
        b"From: alice@example\r\n"
        b"Subject: hello\r\n"
        b"\r\n"
        b"first line\r\n"
        b"\r\n"
        b"..dotted\r\n"
        b".\r\n"
    )

    def test_split_headers_and_body(self, client: NNTPClient, transport: ScriptedTransport) -> None:
        transport.script.append([self.ARTICLE[:40], self.ARTICLE[40:]])
        article = client.article("<abc@example>")
        assert transport.commands == ["ARTICLE <abc@example>\r\n"]
        assert article.headers == ["From: alice@example", "Subject: hello"]
        assert article.body == ["first line", "", ".dotted"]
        assert article.response.status == 221

    def test_no_such_article(self, client: NNTPClient, transport: ScriptedTransport) -> None:
        transport.script.append(b"430 No article with that message-id\r\n")
        with pytest.raises(NoSuchArticleError) as info:
            client.article("<missing@example>")
        assert not isinstance(info.value, NNTPProtocolError)
        assert info.value.response.status == 430

    def test_other_failure_is_protocol_error(self, client: NNTPClient, transport: ScriptedTransport) -> None:
        transport.script.append(b"412 No newsgroup selected\r\n")
        with pytest.raises(NNTPProtocolError) as info:
            client.article(3000)
        assert (info.value.status, info.value.message) == (412, "No newsgroup selected")

    def test_head_and_stat(self, client: NNTPClient, transport: ScriptedTransport) -> None:
        transport.script.extend([b"221 1 <a@b>\r\n", b"223 1 <a@b>\r\n"])
        assert client.head("<a@b>").status == 221
        assert client.stat("<a@b>").status == 223
        assert transport.commands == ["HEAD <a@b>\r\n", "STAT <a@b>\r\n"]

    def test_stat_no_such_article(self, client: NNTPClient, transport: ScriptedTransport) -> None:
        transport.script.append(b"430 No such article\r\n")
        with pytest.raises(NoSuchArticleError):
            client.stat("<gone@b>")

    def test_rejects_line_breaks_in_arguments(self, client: NNTPClient, transport: ScriptedTransport) -> None:
        with pytest.raises(ValueError):
            client.stat("<a@b>\r\nQUIT")
        assert transport.written == []

    def test_split_article_without_body(self) -> None:
        assert split_article(["Subject: x"]) == (["Subject: x"], [])


# ──────────────────────────────────────────────────────────────
# Groups and overview
# ──────────────────────────────────────────────────────────────

class TestGroup:

    def test_selected(self, client: NNTPClient, transport: ScriptedTransport) -> None:
        transport.script.append(b"211 3 100 102 misc.test\r\n")
        assert client.group("misc.test") == GroupResult(name="misc.test", count=3, first=100, last=102)
        assert transport.commands == ["GROUP misc.test\r\n"]

    def test_extra_tokens_ignored(self, client: NNTPClient, transport: ScriptedTransport) -> None:
        transport.script.append(b"211 3 100 102 misc.test group selected\r\n")
        assert client.group("misc.test").name == "misc.test"

    def test_no_such_group(self, client: NNTPClient, transport: ScriptedTransport) -> None:
        transport.script.append(b"411 No such newsgroup\r\n")
        with pytest.raises(NoSuchGroupError):
            client.group("alt.nowhere")

    @pytest.mark.parametrize("reply", [b"211 3 100 102\r\n", b"211 three 100 102 misc.test\r\n"])
    def test_malformed_reply(self, client: NNTPClient, transport: ScriptedTransport, reply: bytes) -> None:
        transport.script.append(reply)
        with pytest.raises(NNTPParseError):
            client.group("misc.test")


class TestOverview:

    FMT_REPLY = b"215 Order of fields in overview database.\r\nSubject:\r\nFrom:\r\nXref:full\r\n:bytes\r\n.\r\n"

    def test_overview_format(self, client: NNTPClient, transport: ScriptedTransport) -> None:
        transport.script.append(self.FMT_REPLY)
        fmt = client.overview_format()
        assert transport.commands == ["LIST OVERVIEW.FMT\r\n"]
        assert fmt == {"subject": False, "from": False, "xref": True, "bytes": False}

    def test_overview_format_mixed_case(self) -> None:
        assert parse_overview_format(["Message-ID:", "XREF:FULL"]) == {"message-id": False, "xref": True}

    def test_fields_follow_format_order(self) -> None:
        rows = parse_overview(["42\tHello\tFrom: a@b"], {"subject": False, "from": True})
        assert rows == [{"subject": "42", "from": "Hello"}]

    def test_with_article_number(self) -> None:
        fmt = with_article_number({"subject": False, "from": True})
        assert list(fmt) == ["number", "subject", "from"]
        rows = parse_overview(["42\tHello\tFrom:  a@b "], fmt)
        assert rows == [{"number": "42", "subject": "Hello", "from": "a@b"}]

    def test_short_line_gives_empty_fields(self) -> None:
        assert parse_overview(["1"], {"number": False, "subject": False}) == [{"number": "1", "subject": ""}]

    def test_xover(self, client: NNTPClient, transport: ScriptedTransport) -> None:
        transport.script.append(
            b"224 Overview information follows\r\n"
            b"100\tFirst\tFrom: alice\r\n"
            b"101\tSecond\tFrom: bob\r\n"
            b".\r\n"
        )
        fmt = with_article_number({"subject": False, "from": True})
        rows = client.overview((100, 101), fmt)
        assert transport.commands == ["XOVER 100-101\r\n"]
        assert [r["number"] for r in rows] == ["100", "101"]
        assert rows[1] == {"number": "101", "subject": "Second", "from": "bob"}

    def test_xover_empty(self, client: NNTPClient, transport: ScriptedTransport) -> None:
        transport.script.append(b"224 Overview information follows\r\n.\r\n")
        assert client.overview("200-", {"number": False}) == []

    def test_xzver(self, client: NNTPClient, transport: ScriptedTransport) -> None:
        payload = b"224 compressed data follows\r\n" + zlib.compress(b"7\tCompressed\r\n.\r\n")
        transport.script.append([payload[:20], payload[20:]])
        rows = client.overview_compressed("7", {"number": False, "subject": False})
        assert transport.commands == ["XZVER 7\r\n"]
        assert rows == [{"number": "7", "subject": "Compressed"}]

    def test_xover_failure(self, client: NNTPClient, transport: ScriptedTransport) -> None:
        transport.script.append(b"423 No articles in that range\r\n")
        with pytest.raises(NNTPProtocolError):
            client.overview("1-2", {"number": False})


# ──────────────────────────────────────────────────────────────
# Request/response correlation
# ──────────────────────────────────────────────────────────────

class TestCorrelation:

    def test_second_command_is_rejected_while_awaiting(
        self, client: NNTPClient, transport: ScriptedTransport
    ) -> None:
        transport.script.append(b"223 1 <a@b>\r\n")
        errors = []

        def reenter() -> None:
            transport.on_pump = None
            try:
                client.group("misc.test")
            except NNTPBusyError as exc:
                errors.append(exc)

        transport.on_pump = reenter
        assert client.stat("<a@b>").status == 223
        assert len(errors) == 1
        assert transport.commands == ["STAT <a@b>\r\n"]

    def test_listener_detached_after_success(self, client: NNTPClient, transport: ScriptedTransport) -> None:
        transport.script.append(b"223 1 <a@b>\r\n")
        client.stat("<a@b>")
        assert transport.sink is None
        assert client._pending is None

    def test_listener_detached_after_failure(self, client: NNTPClient, transport: ScriptedTransport) -> None:
        transport.script.append(b"garbage\r\n")
        with pytest.raises(NNTPParseError):
            client.stat("<a@b>")
        assert transport.sink is None
        assert client._pending is None
        # the connection stays open; the caller decides to reconnect
        assert client.is_connected

    def test_malformed_multiline_status_keeps_connection(
        self, client: NNTPClient, transport: ScriptedTransport
    ) -> None:
        transport.script.append(b"garbage reply\r\n")
        with pytest.raises(NNTPParseError):
            client.article("<a@b>")
        assert transport.sink is None
        assert not transport.closed
        assert client.is_connected

    def test_malformed_compressed_body_reaches_caller(
        self, client: NNTPClient, transport: ScriptedTransport
    ) -> None:
        transport.script.append(b"224 compressed data follows\r\nnot deflate at all\r\n.\r\n")
        with pytest.raises(NNTPDecompressionError):
            client.overview_compressed("1-2", {"number": False})
        assert transport.sink is None
        assert not transport.closed
        assert client.is_connected

    def test_operation_resolves_once(self, client: NNTPClient, transport: ScriptedTransport) -> None:
        seen = []
        transport.script.append(b"223 1 <a@b>\r\n")
        original = client._get_response

        def spy(*args, **kwargs):
            response = original(*args, **kwargs)
            seen.append(response)
            return response

        client._get_response = spy
        client.stat("<a@b>")
        assert len(seen) == 1

    def test_transport_error_aborts_and_closes(self, client: NNTPClient, transport: ScriptedTransport) -> None:
        transport.script.append(b"224 Overview follows\r\n1\tpartial\r\n")
        with pytest.raises(NNTPTransportError):
            client.overview("1", {"number": False})
        assert transport.closed
        assert transport.sink is None
        assert client.state is ConnectionState.DISCONNECTED

    def test_responses_do_not_leak_between_commands(
        self, client: NNTPClient, transport: ScriptedTransport
    ) -> None:
        transport.script.extend([b"211 3 100 102 misc.test\r\n", b"223 101 <x@y>\r\n"])
        assert client.group("misc.test").last == 102
        assert client.stat(101).message == "101 <x@y>"


class TestPendingOperation:

    def test_states(self) -> None:
        from nntpctl.client import PendingOperation
        from nntpctl.pipeline import Pipeline

        op = PendingOperation("STAT 1", Pipeline.build())
        assert op.state is OperationState.IDLE
        op.start()
        assert op.state is OperationState.AWAITING_RESPONSE
        op.on_data(b"223 1 <a@b>\r\n")
        assert op.done
        assert op.deliver().status == 223
        assert op.state is OperationState.DELIVERED
        with pytest.raises(RuntimeError):
            op.fail(NNTPParseError("late"))
