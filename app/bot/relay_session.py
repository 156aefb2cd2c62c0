"""
Relay session between one HTTP audio stream and one Ultravox call.

A session is created per inbound request. It asks the session initiator for an
Ultravox channel, then runs two pumps concurrently on the event loop:

- inbound: request body chunks are forwarded to Ultravox immediately, in order
  and unbatched, but only while the channel is open;
- remote: binary frames go through the OutboundPacer to the response, text
  frames go to the ControlMessageInterpreter.

Whichever pump finishes first (request ended, channel closed, or an error on
either side) closes the session, which cancels the other pump and closes the
channel exactly once.
"""

import asyncio
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable, List, Optional

from app.bot.control_interpreter import ControlMessageInterpreter
from app.bot.pacer import OutboundPacer
from app.config.logging_config import call_logger
from app.errors import ChannelClosedError, SessionInitiationError, TransportError

AudioWriter = Callable[[bytes], Awaitable[None]]


class SessionState(str, Enum):
    """Lifecycle of a relay session."""
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class RelaySession:
    """
    Coordinates one HTTP call with one Ultravox channel.

    The initiator only needs an async ``initiate(call_id)`` returning a channel
    with ``is_open``, ``send()``, ``close()`` and async iteration over incoming
    messages (``bytes`` for audio, ``str`` for control messages).
    """

    def __init__(self, call_id: Optional[str], initiator,
                 pacer: Optional[OutboundPacer] = None,
                 interpreter: Optional[ControlMessageInterpreter] = None):
        self.call_id = call_id
        self.log = call_logger(call_id)
        self.initiator = initiator
        self.pacer = pacer or OutboundPacer()
        self.interpreter = interpreter or ControlMessageInterpreter(call_id)
        self.channel = None
        self.state = SessionState.CONNECTING

        self.bytes_forwarded = 0
        self.dropped_inbound_bytes = 0
        self.bytes_written = 0
        self.discarded_outbound_bytes = 0

        self._tasks: List[asyncio.Task] = []

    async def connect(self) -> None:
        """
        Open the Ultravox channel for this session.

        Raises:
            SessionInitiationError: If the channel could not be established.
                The session is closed in that case.
        """
        self.log.info("Connecting relay session")
        try:
            self.channel = await self.initiator.initiate(self.call_id)
        except SessionInitiationError as e:
            self.state = SessionState.CLOSED
            self.log.error(f"Session initiation failed: {e}")
            raise
        except Exception as e:
            self.state = SessionState.CLOSED
            self.log.error(f"Session initiation failed: {e}", exc_info=True)
            raise SessionInitiationError(str(e)) from e

        self.state = SessionState.OPEN
        self.log.info("WebSocket connected to Ultravox")

    async def run(self, inbound: AsyncIterator[bytes], write: AudioWriter) -> None:
        """
        Relay audio until either side finishes, then close the session.

        Args:
            inbound: Audio chunks from the HTTP request body
            write: Coroutine function writing one chunk to the HTTP response
        """
        if self.state is not SessionState.OPEN:
            raise RuntimeError(f"Cannot run relay session in state {self.state.value}")

        self._tasks = [
            asyncio.create_task(self._forward_inbound(inbound)),
            asyncio.create_task(self._relay_remote(write)),
        ]
        try:
            await asyncio.wait(self._tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            await self.close()

    async def close(self) -> None:
        """
        Tear the session down. Safe to call any number of times.

        Pending pumps are cancelled before the channel is closed, so no further
        I/O happens once the session reports CLOSED.
        """
        if self.state in (SessionState.CLOSING, SessionState.CLOSED):
            return
        self.state = SessionState.CLOSING
        self.log.info("Closing relay session")

        current = asyncio.current_task()
        pending = [task for task in self._tasks if task is not current]
        for task in pending:
            task.cancel()
        results = await asyncio.gather(*pending, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                self.log.error(f"Relay task failed: {result}")

        try:
            if self.channel is not None:
                await self.channel.close()
        except Exception as e:
            self.log.warning(f"Error closing Ultravox channel: {e}")
        finally:
            self.discarded_outbound_bytes = self.pacer.discard()
            self.state = SessionState.CLOSED

        self.log.info(
            f"Relay session closed: "
            f"forwarded={self.bytes_forwarded} dropped={self.dropped_inbound_bytes} "
            f"written={self.bytes_written} discarded={self.discarded_outbound_bytes}"
        )

    async def _forward_inbound(self, inbound: AsyncIterator[bytes]) -> None:
        try:
            async for chunk in inbound:
                if not chunk:
                    continue
                if self.channel is None or not self.channel.is_open:
                    self.dropped_inbound_bytes += len(chunk)
                    self.log.debug(f"Dropping {len(chunk)} bytes, channel not open")
                    continue
                try:
                    await self.channel.send(chunk)
                except ChannelClosedError:
                    self.dropped_inbound_bytes += len(chunk)
                    self.log.debug(f"Dropping {len(chunk)} bytes, channel closed")
                    continue
                self.bytes_forwarded += len(chunk)
            self.log.info("Request stream ended")
        except Exception as e:
            self.log.error(f"Request error: {e}")

    async def _relay_remote(self, write: AudioWriter) -> None:
        try:
            async for message in self.channel:
                if isinstance(message, (bytes, bytearray, memoryview)):
                    chunk = self.pacer.on_frame(bytes(message))
                    if chunk is not None:
                        await write(chunk)
                        self.bytes_written += len(chunk)
                else:
                    self.interpreter.handle(message)
            self.log.info("WebSocket connection closed")
        except TransportError as e:
            self.log.error(f"WebSocket error: {e}")
        except Exception as e:
            self.log.error(f"Error relaying Ultravox audio: {e}", exc_info=True)
