"""
Interpretation of Ultravox control messages.

Text frames on the Ultravox WebSocket carry JSON control messages describing
the call lifecycle. They are observed and logged here; none of them change the
audio flow or end the session.
"""

import json
from typing import Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from app.config.constants import (
    MESSAGE_TYPE_CALL_STARTED,
    MESSAGE_TYPE_ERROR,
    MESSAGE_TYPE_PLAYBACK_CLEAR_BUFFER,
    MESSAGE_TYPE_STATE,
    MESSAGE_TYPE_TRANSCRIPT,
)
from app.config.logging_config import call_logger
from app.models.control_messages import (
    CallStartedMessage,
    ControlMessage,
    ErrorMessage,
    PlaybackClearBufferMessage,
    StateMessage,
    TranscriptMessage,
    parse_control_message,
)


class ControlMessageInterpreter:
    """
    Classifies control messages for one relay session and records what they report.

    Each message kind is routed to a handler based on its ``type`` field.
    Payloads that cannot be parsed are logged and skipped.
    """

    def __init__(self, call_id: Optional[str] = None):
        self.call_id = call_id
        self.log = call_logger(call_id)
        self.remote_call_id: Optional[str] = None
        self.last_state: Optional[str] = None
        self.transcripts: List[TranscriptMessage] = []
        self.clear_buffer_requests = 0
        self.error_count = 0
        self.malformed_count = 0

        self.handlers: Dict[str, Callable[[ControlMessage], None]] = {
            MESSAGE_TYPE_CALL_STARTED: self._handle_call_started,
            MESSAGE_TYPE_STATE: self._handle_state,
            MESSAGE_TYPE_TRANSCRIPT: self._handle_transcript,
            MESSAGE_TYPE_PLAYBACK_CLEAR_BUFFER: self._handle_playback_clear_buffer,
            MESSAGE_TYPE_ERROR: self._handle_error,
        }

    def handle(self, raw: Union[str, bytes]) -> Optional[ControlMessage]:
        """
        Parse a control message and dispatch it to its handler.

        Args:
            raw: The text frame payload

        Returns:
            ControlMessage: The parsed message, or None if it was malformed
        """
        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError, RecursionError) as e:
            self.malformed_count += 1
            self.log.warning(f"Received invalid JSON control message: {e}")
            return None

        if not isinstance(payload, dict):
            self.malformed_count += 1
            self.log.warning(f"Control message is not a JSON object: {str(raw)[:100]}")
            return None

        try:
            message = parse_control_message(payload)
        except ValidationError as e:
            self.malformed_count += 1
            self.log.warning(f"Control message validation error: {e}")
            return None

        handler = self.handlers.get(message.type, self._handle_unknown)
        handler(message)
        return message

    def _handle_call_started(self, message: CallStartedMessage) -> None:
        self.remote_call_id = message.callId
        self.log.info(f"Call started {message.callId}")

    def _handle_state(self, message: StateMessage) -> None:
        self.last_state = message.state
        self.log.info(f"State {message.state}")

    def _handle_transcript(self, message: TranscriptMessage) -> None:
        if not message.final:
            return
        self.transcripts.append(message)
        self.log.info(f"{message.role.upper()} ({message.medium}): {message.text}")

    def _handle_playback_clear_buffer(self, message: PlaybackClearBufferMessage) -> None:
        # Pending outbound audio is left untouched
        self.clear_buffer_requests += 1
        self.log.info("Playback clear buffer")

    def _handle_error(self, message: ErrorMessage) -> None:
        self.error_count += 1
        self.log.error(f"Error {message.model_dump()}")

    def _handle_unknown(self, message: ControlMessage) -> None:
        self.log.info(f"Received message type: {message.type}")
