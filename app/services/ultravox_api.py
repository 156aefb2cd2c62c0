"""
Ultravox session initiation.

Creating a relay session against Ultravox takes two steps: POST a call-creation
body to the Ultravox REST API, then open a WebSocket to the ``joinUrl`` it
returns. The WebSocket carries raw audio on binary frames in both directions and
JSON control messages on text frames.
"""

import asyncio
import logging
import time
from typing import AsyncIterator, Optional, Union

import httpx
import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, WebSocketException
from websockets.protocol import State

from app.config.constants import CALL_TYPE_AGENT, LOGGER_NAME
from app.config.settings import RelayConfig
from app.errors import ChannelClosedError, SessionInitiationError, TransportError
from app.models.call_request import (
    AgentCallRequest,
    CallCreatedResponse,
    CallMedium,
    CallMetadata,
    GenericCallRequest,
    ServerWebSocketMedium,
)

logger = logging.getLogger(LOGGER_NAME)

HTTP_TIMEOUT = 30  # seconds
CONNECTION_TIMEOUT = 30  # seconds

# WebSocket configuration for low latency
WS_MAX_SIZE = 16 * 1024 * 1024  # 16MB - large enough for audio chunks
WS_MAX_QUEUE = 32  # Small queue to prevent buffering
WS_PING_INTERVAL = 5  # 5 seconds between pings


def build_call_request(
    config: RelayConfig, call_id: Optional[str]
) -> Union[AgentCallRequest, GenericCallRequest]:
    """
    Build the call-creation body for the configured call type.

    Args:
        config: The relay configuration
        call_id: Caller-supplied identifier, stored as call metadata

    Returns:
        The request model; agent calls carry only metadata and medium
    """
    metadata = CallMetadata(uuid=call_id)
    medium = CallMedium(
        serverWebSocket=ServerWebSocketMedium(
            inputSampleRate=config.sample_rate,
            outputSampleRate=config.sample_rate,
            clientBufferSizeMs=config.client_buffer_size_ms,
        )
    )

    if config.call_type == CALL_TYPE_AGENT:
        return AgentCallRequest(metadata=metadata, medium=medium)

    return GenericCallRequest(
        systemPrompt=config.system_prompt,
        temperature=config.temperature,
        model=config.model,
        voice=config.voice,
        metadata=metadata,
        medium=medium,
        recordingEnabled=config.recording_enabled,
        joinTimeout=config.join_timeout,
        maxDuration=config.max_duration,
        externalVoice=config.external_voice,
        selectedTools=config.selected_tools,
        vadSettings=config.vad_settings,
    )


class UltravoxChannel:
    """
    Bidirectional audio channel to an Ultravox call.

    Iterating the channel yields ``bytes`` for audio frames and ``str`` for
    control messages until the remote side closes.
    """

    def __init__(self, ws, join_url: Optional[str] = None):
        self.ws = ws
        self.join_url = join_url
        self._close_requested = False

    @property
    def is_open(self) -> bool:
        return self.ws.state is State.OPEN

    async def send(self, frame: bytes) -> None:
        """
        Send one binary audio frame.

        Raises:
            ChannelClosedError: If the channel is not open or closes while sending
        """
        if not self.is_open:
            raise ChannelClosedError()
        try:
            await self.ws.send(frame)
        except ConnectionClosed as e:
            raise ChannelClosedError(f"Ultravox channel closed while sending: {e}") from e

    def __aiter__(self) -> AsyncIterator[Union[bytes, str]]:
        return self._messages()

    async def _messages(self) -> AsyncIterator[Union[bytes, str]]:
        try:
            async for message in self.ws:
                yield message
        except ConnectionClosedError as e:
            raise TransportError(f"Ultravox connection closed unexpectedly: {e}") from e

    async def close(self) -> None:
        """Close the WebSocket. Repeated calls are no-ops."""
        if self._close_requested:
            return
        self._close_requested = True
        logger.debug("Closing Ultravox WebSocket")
        await self.ws.close()


class UltravoxSessionInitiator:
    """
    Opens Ultravox calls for relay sessions.

    The initiator holds no per-call state and is shared by all sessions.
    """

    def __init__(self, config: RelayConfig, timeout: float = HTTP_TIMEOUT,
                 connect_timeout: float = CONNECTION_TIMEOUT):
        self.config = config
        self.timeout = timeout
        self.connect_timeout = connect_timeout

    async def initiate(self, call_id: Optional[str]) -> UltravoxChannel:
        """
        Create an Ultravox call and connect to it.

        Args:
            call_id: Caller-supplied identifier for correlation

        Returns:
            UltravoxChannel: An open channel to the call

        Raises:
            SessionInitiationError: If the call cannot be created or joined
        """
        join_url = await self.create_call(call_id)
        return await self.open_channel(join_url)

    async def create_call(self, call_id: Optional[str]) -> str:
        """POST the call-creation body and return the WebSocket join URL."""
        api_url = self.config.api_url
        payload = build_call_request(self.config, call_id).model_dump(exclude_none=True)
        logger.info(
            f"Connecting to Ultravox API ({self.config.call_type} call) {api_url} "
            f"sample_rate={self.config.sample_rate} "
            f"buffer_ms={self.config.client_buffer_size_ms}"
        )
        logger.debug(f"Request body: {payload}")

        headers = {
            "Content-Type": "application/json",
            "X-API-Key": self.config.api_key or "",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(api_url, json=payload, headers=headers)
            response.raise_for_status()
            data = CallCreatedResponse.model_validate(response.json())
        except httpx.HTTPError as e:
            logger.error(f"Ultravox call creation failed: {e}")
            raise SessionInitiationError(f"Ultravox call creation failed: {e}") from e
        except ValueError as e:
            # Covers non-JSON bodies and pydantic validation errors
            logger.error(f"Invalid response from Ultravox: {e}")
            raise SessionInitiationError(f"Invalid response from Ultravox: {e}") from e

        logger.debug(f"Response: {data.model_dump()}")

        if not data.joinUrl:
            logger.error("Missing Ultravox joinUrl")
            raise SessionInitiationError("Missing Ultravox joinUrl")
        return data.joinUrl

    async def open_channel(self, join_url: str) -> UltravoxChannel:
        """Open the Ultravox WebSocket at ``join_url``."""
        try:
            connection_start = time.time()
            ws = await asyncio.wait_for(
                websockets.connect(
                    join_url,
                    max_size=WS_MAX_SIZE,
                    max_queue=WS_MAX_QUEUE,
                    ping_interval=WS_PING_INTERVAL,
                    compression=None,  # Disable compression for lower latency
                ),
                timeout=self.connect_timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Timeout while connecting to Ultravox (after {self.connect_timeout}s)")
            raise SessionInitiationError("Timeout while connecting to Ultravox") from e
        except (OSError, WebSocketException) as e:
            logger.error(f"Failed to connect to Ultravox WebSocket: {e}")
            raise SessionInitiationError(f"Failed to connect to Ultravox WebSocket: {e}") from e

        connection_time = time.time() - connection_start
        logger.info(f"WebSocket connected to Ultravox in {connection_time:.2f} seconds")
        return UltravoxChannel(ws, join_url)
