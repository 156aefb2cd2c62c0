"""
FastAPI server for the Ultravox speech-to-speech relay.

This module builds the FastAPI application that accepts a streamed audio
request, relays it to an Ultravox call and streams the call's audio back in the
response body. Each request gets its own relay session; nothing is shared
between sessions apart from the immutable configuration and the stateless
session initiator.
"""

from pathlib import Path
from typing import Optional

import dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.bot.pacer import OutboundPacer
from app.bot.relay_session import RelaySession
from app.config.constants import CALL_ID_HEADER, STREAM_ENDPOINT
from app.config.logging_config import configure_logging
from app.config.settings import RelayConfig
from app.errors import SessionInitiationError
from app.services.ultravox_api import UltravoxSessionInitiator
from app.stream_response import RelayStreamResponse

# Load environment variables from .env file if it exists
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

# Configure logging
logger = configure_logging()

APP_NAME = "Ultravox Speech-to-Speech Relay"
APP_DESCRIPTION = "Streams HTTP audio to an Ultravox conversational AI call and back"
APP_VERSION = "1.0.0"


def create_app(config: Optional[RelayConfig] = None, initiator=None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        config: Relay configuration; read from the environment when omitted
        initiator: Session initiator; an UltravoxSessionInitiator when omitted

    Returns:
        FastAPI: The configured application

    Raises:
        ConfigurationError: If the environment configuration is invalid
    """
    if config is None:
        config = RelayConfig.from_env()
    if initiator is None:
        initiator = UltravoxSessionInitiator(config)

    app = FastAPI(title=APP_NAME, description=APP_DESCRIPTION, version=APP_VERSION)
    app.state.config = config
    app.state.initiator = initiator
    app.state.active_sessions = 0

    @app.post(STREAM_ENDPOINT)
    async def speech_to_speech_stream(request: Request):
        """Relay the streamed request body to Ultravox and stream its audio back.

        The ``x-uuid`` header identifies the call and is forwarded to Ultravox as
        call metadata. If the Ultravox call cannot be set up the request fails
        with a JSON error before any audio is streamed.
        """
        call_id = request.headers.get(CALL_ID_HEADER)
        logger.info(f"Received UUID: {call_id}")

        session = RelaySession(
            call_id,
            app.state.initiator,
            pacer=OutboundPacer(config.flush_interval_ms, config.min_flush_bytes),
        )
        try:
            await session.connect()
        except SessionInitiationError as e:
            return JSONResponse(status_code=e.status_code, content={"error": e.detail})

        app.state.active_sessions += 1

        def session_finished() -> None:
            app.state.active_sessions -= 1

        return RelayStreamResponse(session, on_finish=session_finished)

    @app.get("/health")
    async def health_check():
        """Health check endpoint for monitoring system status.

        Returns:
            dict: Status information indicating the server is operational.
        """
        return {
            "status": "healthy",
            "call_type": config.call_type,
            "api_key_configured": bool(config.api_key),
            "active_sessions": app.state.active_sessions,
        }

    @app.get("/")
    async def root():
        """Root endpoint to display basic information about the API."""
        return {
            "name": APP_NAME,
            "description": APP_DESCRIPTION,
            "version": APP_VERSION,
            "endpoints": {
                STREAM_ENDPOINT: "Streamed speech-to-speech relay (POST, x-uuid header)",
                "/health": "Health check endpoint",
            },
        }

    return app


if __name__ == "__main__":
    import uvicorn

    relay_config = RelayConfig.from_env()
    logger.info(f"Ultravox Speech-to-Speech server running on port {relay_config.port}")
    uvicorn.run(
        create_app(relay_config),
        host=relay_config.host,
        port=relay_config.port,
        # Use HTTP/1.1 for lower overhead than HTTP/2
        http="h11",
    )
