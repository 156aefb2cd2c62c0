"""
Unit tests for the RelayStreamResponse ASGI response.

The response is driven with hand-written ``receive``/``send`` callables so the
request body can stay open while Ultravox audio is streamed back.
"""

import asyncio

import pytest

from app.bot.pacer import OutboundPacer
from app.bot.relay_session import RelaySession, SessionState
from app.stream_response import RelayStreamResponse
from fakes import FakeChannel, FakeInitiator


class ASGIRecorder:
    """Records messages sent by the response."""

    def __init__(self):
        self.messages = []

    async def __call__(self, message):
        self.messages.append(message)

    @property
    def body_messages(self):
        return [m for m in self.messages if m["type"] == "http.response.body"]


def streaming_receive(*chunks):
    """Request that delivers ``chunks`` and then stays open."""
    pending = list(chunks)

    async def receive():
        if pending:
            return {"type": "http.request", "body": pending.pop(0), "more_body": True}
        await asyncio.Event().wait()

    return receive


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def session(channel):
    return RelaySession("abc-123", FakeInitiator(channel), pacer=OutboundPacer(min_interval_ms=0))


@pytest.mark.asyncio
async def test_streams_paced_audio_back(session, channel):
    await session.connect()
    send = ASGIRecorder()
    finished = []
    channel.feed(b"\x01" * 200)
    channel.feed(b"\x02" * 200)
    channel.feed_close()

    response = RelayStreamResponse(session, on_finish=lambda: finished.append(True))
    await asyncio.wait_for(response({"type": "http"}, streaming_receive(), send), timeout=1)

    start = send.messages[0]
    assert start["type"] == "http.response.start"
    assert start["status"] == 200
    assert (b"content-type", b"application/octet-stream") in start["headers"]
    assert not any(name == b"content-length" for name, _ in start["headers"])

    bodies = send.body_messages
    assert bodies[0] == {"type": "http.response.body", "body": b"\x01" * 200 + b"\x02" * 200, "more_body": True}
    assert bodies[-1] == {"type": "http.response.body", "body": b"", "more_body": False}
    assert len(bodies) == 2
    assert finished == [True]
    assert session.state is SessionState.CLOSED


@pytest.mark.asyncio
async def test_request_end_ends_response(session, channel):
    await session.connect()
    send = ASGIRecorder()
    messages = [
        {"type": "http.request", "body": b"\x05" * 160, "more_body": True},
        {"type": "http.request", "body": b"\x06" * 160, "more_body": False},
    ]

    async def receive():
        return messages.pop(0)

    await asyncio.wait_for(RelayStreamResponse(session)({"type": "http"}, receive, send), timeout=1)

    assert channel.sent == [b"\x05" * 160, b"\x06" * 160]
    assert channel.close_calls == 1
    assert send.body_messages[-1]["more_body"] is False


@pytest.mark.asyncio
async def test_client_disconnect_closes_channel(session, channel):
    await session.connect()
    send = ASGIRecorder()

    async def receive():
        return {"type": "http.disconnect"}

    await asyncio.wait_for(RelayStreamResponse(session)({"type": "http"}, receive, send), timeout=1)

    assert channel.sent == []
    assert channel.close_calls == 1
    assert session.state is SessionState.CLOSED
