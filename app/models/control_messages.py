"""
Pydantic models for Ultravox control messages.

Ultravox sends JSON objects on WebSocket text frames alongside the binary audio
frames. Every object carries a ``type`` discriminant; the models below cover the
kinds the relay reacts to. Unknown kinds are still accepted as ControlMessage.
"""

from typing import Any, Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

from app.config.constants import (
    MESSAGE_TYPE_CALL_STARTED,
    MESSAGE_TYPE_ERROR,
    MESSAGE_TYPE_PLAYBACK_CLEAR_BUFFER,
    MESSAGE_TYPE_STATE,
    MESSAGE_TYPE_TRANSCRIPT,
)


class ControlMessage(BaseModel):
    """Base model for all control messages."""

    model_config = ConfigDict(extra="allow")

    type: str = Field(..., description="Message kind")


class CallStartedMessage(ControlMessage):
    callId: Optional[str] = Field(None, description="Ultravox call identifier")


class StateMessage(ControlMessage):
    state: Optional[str] = Field(None, description="Reported call state, e.g. listening or speaking")


class TranscriptMessage(ControlMessage):
    role: str = Field(..., description="Speaker role, user or agent")
    medium: Optional[str] = Field(None, description="voice or text")
    text: Optional[str] = None
    delta: Optional[str] = None
    final: bool = False
    ordinal: Optional[int] = None


class PlaybackClearBufferMessage(ControlMessage):
    pass


class ErrorMessage(ControlMessage):
    error: Optional[Any] = None


MESSAGE_MODELS: Dict[str, Type[ControlMessage]] = {
    MESSAGE_TYPE_CALL_STARTED: CallStartedMessage,
    MESSAGE_TYPE_STATE: StateMessage,
    MESSAGE_TYPE_TRANSCRIPT: TranscriptMessage,
    MESSAGE_TYPE_PLAYBACK_CLEAR_BUFFER: PlaybackClearBufferMessage,
    MESSAGE_TYPE_ERROR: ErrorMessage,
}


def parse_control_message(payload: Dict[str, Any]) -> ControlMessage:
    """
    Validate a decoded control message against the model for its kind.

    Args:
        payload: The decoded JSON object

    Returns:
        ControlMessage: The typed message, or a plain ControlMessage for unknown kinds

    Raises:
        pydantic.ValidationError: If the payload does not match its model
    """
    kind = payload.get("type")
    # Non-string kinds fall through to the base model, which rejects them
    model = MESSAGE_MODELS.get(kind, ControlMessage) if isinstance(kind, str) else ControlMessage
    return model(**payload)
