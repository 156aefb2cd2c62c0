"""
Models module for the data structures exchanged with Ultravox.

Key components:
- call_request: Pydantic models for the call-creation request body, including the
  serverWebSocket medium and the external voice provider blocks, plus the response
  carrying the WebSocket join URL.
- control_messages: Pydantic models for the JSON control messages Ultravox sends on
  WebSocket text frames (call_started, state, transcript, playback_clear_buffer, error).

Usage examples:
```python
from app.models.control_messages import parse_control_message

message = parse_control_message({"type": "state", "state": "listening"})
print(message.state)
```
"""

from app.models.call_request import (
    AgentCallRequest,
    CallCreatedResponse,
    CallMedium,
    CallMetadata,
    CartesiaVoice,
    ElevenLabsVoice,
    ExternalVoice,
    GenericCallRequest,
    GenericVoice,
    LmntVoice,
    ServerWebSocketMedium,
)
from app.models.control_messages import (
    CallStartedMessage,
    ControlMessage,
    ErrorMessage,
    PlaybackClearBufferMessage,
    StateMessage,
    TranscriptMessage,
    parse_control_message,
)
