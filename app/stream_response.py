"""
Streaming HTTP response driving a relay session.

Starlette's StreamingResponse only produces a body; relaying needs the request
body and the response body to stream at the same time. RelayStreamResponse
takes over the raw ASGI ``receive``/``send`` pair: ``http.request`` messages
become the session's inbound audio and flushed Ultravox audio is sent as
``http.response.body`` chunks.
"""

from typing import AsyncIterator, Callable, Mapping, Optional

from starlette.requests import ClientDisconnect
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

from app.bot.relay_session import RelaySession
from app.config.constants import AUDIO_MEDIA_TYPE
from app.config.logging_config import call_logger


class RelayStreamResponse(Response):
    """Chunked audio response whose lifetime is the relay session's."""

    media_type = AUDIO_MEDIA_TYPE

    def __init__(self, session: RelaySession, status_code: int = 200,
                 headers: Optional[Mapping[str, str]] = None,
                 on_finish: Optional[Callable[[], None]] = None):
        self.session = session
        self.status_code = status_code
        self.background = None
        self.on_finish = on_finish
        # No body attribute, so no content-length header is generated
        self.init_headers(headers)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await send({
            "type": "http.response.start",
            "status": self.status_code,
            "headers": self.raw_headers,
        })

        async def write(chunk: bytes) -> None:
            await send({"type": "http.response.body", "body": chunk, "more_body": True})

        try:
            await self.session.run(self._request_audio(receive), write)
        finally:
            if self.on_finish is not None:
                self.on_finish()

        await send({"type": "http.response.body", "body": b"", "more_body": False})
        call_logger(self.session.call_id).info("Response stream ended")

    @staticmethod
    async def _request_audio(receive: Receive) -> AsyncIterator[bytes]:
        while True:
            message = await receive()
            if message["type"] == "http.request":
                body = message.get("body", b"")
                if body:
                    yield body
                if not message.get("more_body", False):
                    return
            elif message["type"] == "http.disconnect":
                raise ClientDisconnect()
