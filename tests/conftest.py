"""
tests/conftest.py — Shared fixtures: an in-memory transport that replays
scripted server replies, one reply per command written.
"""

from __future__ import annotations

from collections import deque
from typing import Callable, Deque, List, Optional, Sequence, Union

import pytest

from nntpctl import ClientOptions, NNTPClient
from nntpctl.exceptions import NNTPTransportError

Reply = Union[bytes, Sequence[bytes]]


def _chunks(reply: Reply) -> List[bytes]:
    return [reply] if isinstance(reply, bytes) else list(reply)


class ScriptedTransport:
    """
    Stands in for SocketTransport. Each write() queues the next scripted
    reply; pump() delivers one queued chunk to the subscriber.
    """

    def __init__(self, greeting: Reply = b"200 news.example ready\r\n",
                 replies: Sequence[Reply] = ()) -> None:
        self.greeting = greeting
        self.script: Deque[Reply] = deque(replies)
        self.inbox: Deque[bytes] = deque()
        self.written: List[bytes] = []
        self.sink: Optional[Callable[[bytes], None]] = None
        self.on_pump: Optional[Callable[[], None]] = None
        self.connected = False
        self.closed = False

    def connect(self) -> None:
        self.connected = True
        self.inbox.extend(_chunks(self.greeting))

    def write(self, data: bytes) -> None:
        self.written.append(data)
        if self.script:
            self.inbox.extend(_chunks(self.script.popleft()))

    def subscribe(self, sink: Callable[[bytes], None]) -> None:
        if self.sink is not None:
            raise NNTPTransportError("Transport already has a subscriber")
        self.sink = sink

    def unsubscribe(self, sink: Callable[[bytes], None]) -> None:
        if self.sink == sink:
            self.sink = None

    def pump(self) -> None:
        if self.on_pump is not None:
            self.on_pump()
        if not self.inbox:
            raise NNTPTransportError("Connection closed by news.example:119")
        chunk = self.inbox.popleft()
        if self.sink is not None:
            self.sink(chunk)

    def close(self) -> None:
        self.closed = True
        self.sink = None

    @property
    def commands(self) -> List[str]:
        return [w.decode("utf-8") for w in self.written]


@pytest.fixture()
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture()
def client(transport: ScriptedTransport) -> NNTPClient:
    """Connected client whose replies are queued on `transport.script`."""
    c = NNTPClient(ClientOptions(host="news.example"), transport_factory=lambda _opts: transport)
    c.connect()
    return c

