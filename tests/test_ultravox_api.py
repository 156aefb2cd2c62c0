"""
Unit tests for the Ultravox session initiator.

These tests verify the call-creation body, the REST exchange for the join URL,
opening the WebSocket and the UltravoxChannel wrapper around it.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK, InvalidURI
from websockets.protocol import State

from app.config.settings import RelayConfig
from app.errors import ChannelClosedError, SessionInitiationError, TransportError
from app.models.call_request import CartesiaVoice, ExternalVoice
from app.services.ultravox_api import (
    UltravoxChannel,
    UltravoxSessionInitiator,
    build_call_request,
)

JOIN_URL = "wss://voice.ultravox.ai/calls/uv-1/server_web_socket"


def mock_async_client(handler):
    """Patch httpx.AsyncClient so requests are answered by ``handler``."""
    real_client = httpx.AsyncClient

    def factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    return patch("app.services.ultravox_api.httpx.AsyncClient", side_effect=factory)


class FakeWebSocket:
    """Scripted websockets connection."""

    def __init__(self, items=(), state=State.OPEN):
        self.items = list(items)
        self.state = state
        self.send = AsyncMock()
        self.close = AsyncMock()

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for item in self.items:
            if isinstance(item, Exception):
                raise item
            yield item


def test_build_agent_call_request(agent_config):
    body = build_call_request(agent_config, "abc-123").model_dump(exclude_none=True)

    assert body == {
        "metadata": {"uuid": "abc-123"},
        "medium": {
            "serverWebSocket": {
                "inputSampleRate": 8000,
                "outputSampleRate": 8000,
                "clientBufferSizeMs": 60,
            }
        },
    }


def test_build_generic_call_request(generic_config):
    body = build_call_request(generic_config, "abc-123").model_dump(exclude_none=True)

    assert body["systemPrompt"] == "You are a helpful AI assistant."
    assert body["temperature"] == 0
    assert body["model"] == "fixie-ai/ultravox"
    assert body["voice"] == "Shaun"
    assert body["recordingEnabled"] is False
    assert body["joinTimeout"] == "30s"
    assert body["maxDuration"] == "3600s"
    assert body["metadata"] == {"uuid": "abc-123"}
    assert body["medium"]["serverWebSocket"]["inputSampleRate"] == 8000
    assert "externalVoice" not in body
    assert "selectedTools" not in body
    assert "vadSettings" not in body


def test_build_generic_call_request_with_extras():
    config = RelayConfig(
        call_type="generic",
        external_voice=ExternalVoice(cartesia=CartesiaVoice(voiceId="v-9")),
        selected_tools=[{"toolName": "hangUp"}],
        vad_settings={"turnEndpointDelay": "0.384s"},
    )

    body = build_call_request(config, None).model_dump(exclude_none=True)

    assert body["externalVoice"] == {"cartesia": {"voiceId": "v-9", "model": "cartesia-1", "speed": 1.0}}
    assert body["selectedTools"] == [{"toolName": "hangUp"}]
    assert body["vadSettings"] == {"turnEndpointDelay": "0.384s"}
    assert body["metadata"] == {}


@pytest.mark.asyncio
async def test_create_call_returns_join_url(agent_config):
    captured = {}

    def handler(request):
        captured["url"] = str(request.url)
        captured["api_key"] = request.headers.get("X-API-Key")
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json={"callId": "uv-1", "joinUrl": JOIN_URL})

    initiator = UltravoxSessionInitiator(agent_config)
    with mock_async_client(handler):
        join_url = await initiator.create_call("abc-123")

    assert join_url == JOIN_URL
    assert captured["url"] == "https://api.ultravox.ai/api/agents/agent-42/calls"
    assert captured["api_key"] == "test-api-key"
    assert captured["body"]["metadata"] == {"uuid": "abc-123"}


@pytest.mark.asyncio
async def test_create_call_generic_url(generic_config):
    captured = {}

    def handler(request):
        captured["url"] = str(request.url)
        return httpx.Response(201, json={"joinUrl": JOIN_URL})

    with mock_async_client(handler):
        await UltravoxSessionInitiator(generic_config).create_call("abc-123")

    assert captured["url"] == "https://api.ultravox.ai/api/calls"


@pytest.mark.asyncio
async def test_create_call_missing_join_url(agent_config):
    with mock_async_client(lambda request: httpx.Response(201, json={"callId": "uv-1"})):
        with pytest.raises(SessionInitiationError, match="Missing Ultravox joinUrl"):
            await UltravoxSessionInitiator(agent_config).create_call("abc-123")


@pytest.mark.asyncio
async def test_create_call_rejected(agent_config):
    with mock_async_client(lambda request: httpx.Response(403, json={"detail": "bad key"})):
        with pytest.raises(SessionInitiationError, match="call creation failed"):
            await UltravoxSessionInitiator(agent_config).create_call("abc-123")


@pytest.mark.asyncio
async def test_create_call_invalid_json(agent_config):
    with mock_async_client(lambda request: httpx.Response(200, content=b"<html>oops</html>")):
        with pytest.raises(SessionInitiationError, match="Invalid response"):
            await UltravoxSessionInitiator(agent_config).create_call("abc-123")


@pytest.mark.asyncio
async def test_create_call_network_error(agent_config):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with mock_async_client(handler):
        with pytest.raises(SessionInitiationError):
            await UltravoxSessionInitiator(agent_config).create_call("abc-123")


@pytest.mark.asyncio
async def test_open_channel(agent_config):
    ws = FakeWebSocket()
    connect = AsyncMock(return_value=ws)

    with patch("app.services.ultravox_api.websockets.connect", connect):
        channel = await UltravoxSessionInitiator(agent_config).open_channel(JOIN_URL)

    assert isinstance(channel, UltravoxChannel)
    assert channel.ws is ws
    assert channel.join_url == JOIN_URL
    assert connect.call_args[0][0] == JOIN_URL
    assert connect.call_args[1]["compression"] is None


@pytest.mark.asyncio
async def test_open_channel_failure(agent_config):
    connect = AsyncMock(side_effect=InvalidURI("nope", "not a websocket URI"))

    with patch("app.services.ultravox_api.websockets.connect", connect):
        with pytest.raises(SessionInitiationError):
            await UltravoxSessionInitiator(agent_config).open_channel("nope")


@pytest.mark.asyncio
async def test_open_channel_refused(agent_config):
    connect = AsyncMock(side_effect=ConnectionRefusedError("refused"))

    with patch("app.services.ultravox_api.websockets.connect", connect):
        with pytest.raises(SessionInitiationError):
            await UltravoxSessionInitiator(agent_config).open_channel(JOIN_URL)


@pytest.mark.asyncio
async def test_initiate_chains_create_and_open(agent_config):
    initiator = UltravoxSessionInitiator(agent_config)
    channel = MagicMock(spec=UltravoxChannel)

    with patch.object(initiator, "create_call", AsyncMock(return_value=JOIN_URL)) as create_call:
        with patch.object(initiator, "open_channel", AsyncMock(return_value=channel)) as open_channel:
            result = await initiator.initiate("abc-123")

    assert result is channel
    create_call.assert_awaited_once_with("abc-123")
    open_channel.assert_awaited_once_with(JOIN_URL)


def test_channel_is_open_follows_state():
    ws = FakeWebSocket()
    channel = UltravoxChannel(ws)
    assert channel.is_open is True

    ws.state = State.CLOSING
    assert channel.is_open is False


@pytest.mark.asyncio
async def test_channel_send():
    ws = FakeWebSocket()
    await UltravoxChannel(ws).send(b"\x01\x02")
    ws.send.assert_awaited_once_with(b"\x01\x02")


@pytest.mark.asyncio
async def test_channel_send_when_not_open():
    ws = FakeWebSocket(state=State.CLOSED)

    with pytest.raises(ChannelClosedError):
        await UltravoxChannel(ws).send(b"\x01")
    ws.send.assert_not_called()


@pytest.mark.asyncio
async def test_channel_send_connection_closed():
    ws = FakeWebSocket()
    ws.send.side_effect = ConnectionClosedOK(None, None)

    with pytest.raises(ChannelClosedError):
        await UltravoxChannel(ws).send(b"\x01")


@pytest.mark.asyncio
async def test_channel_iteration():
    ws = FakeWebSocket(items=[b"\x00" * 10, '{"type": "state"}'])

    received = [message async for message in UltravoxChannel(ws)]

    assert received == [b"\x00" * 10, '{"type": "state"}']


@pytest.mark.asyncio
async def test_channel_abnormal_close_raises_transport_error():
    ws = FakeWebSocket(items=[b"\x00", ConnectionClosedError(None, None)])

    with pytest.raises(TransportError):
        async for _ in UltravoxChannel(ws):
            pass


@pytest.mark.asyncio
async def test_channel_close_is_idempotent():
    ws = FakeWebSocket()
    channel = UltravoxChannel(ws)

    await channel.close()
    await channel.close()

    ws.close.assert_awaited_once()
