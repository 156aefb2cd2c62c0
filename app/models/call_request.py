"""
Pydantic models for the Ultravox call-creation API.

These models describe the JSON body POSTed to Ultravox to create a call and the
response carrying the WebSocket join URL. Field names follow the Ultravox wire
format (camelCase) so a model dump can be sent as-is.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ServerWebSocketMedium(BaseModel):
    """Audio parameters for a server-side WebSocket call."""

    inputSampleRate: int = Field(..., description="Sample rate of audio sent to Ultravox")
    outputSampleRate: int = Field(..., description="Sample rate of audio received from Ultravox")
    clientBufferSizeMs: int = Field(..., description="Client-side buffer size in milliseconds")


class CallMedium(BaseModel):
    serverWebSocket: ServerWebSocketMedium


class CallMetadata(BaseModel):
    uuid: Optional[str] = Field(None, description="Caller-supplied call identifier")


# External voice providers
class ElevenLabsVoice(BaseModel):
    voiceId: Optional[str] = None
    model: str = "eleven_monolingual_v1"
    speed: float = 1.0
    useSpeakerBoost: bool = True


class CartesiaVoice(BaseModel):
    voiceId: Optional[str] = None
    model: str = "cartesia-1"
    speed: float = 1.0


class LmntVoice(BaseModel):
    voiceId: Optional[str] = None
    model: str = "lmnt-1"
    speed: float = 1.0
    conversational: bool = True


class GenericVoice(BaseModel):
    """A custom TTS endpoint Ultravox calls for speech synthesis."""

    url: Optional[str] = None
    headers: Dict[str, Any] = Field(default_factory=dict)
    body: Dict[str, Any] = Field(default_factory=dict)
    responseSampleRate: int = 24000
    responseWordsPerMinute: int = 150
    responseMimeType: str = "audio/wav"
    jsonAudioFieldPath: str = "audio"


class ExternalVoice(BaseModel):
    """Exactly one provider block is set."""

    elevenLabs: Optional[ElevenLabsVoice] = None
    cartesia: Optional[CartesiaVoice] = None
    lmnt: Optional[LmntVoice] = None
    generic: Optional[GenericVoice] = None


class AgentCallRequest(BaseModel):
    """Body for creating a call against a preconfigured Ultravox agent."""

    metadata: CallMetadata
    medium: CallMedium


class GenericCallRequest(AgentCallRequest):
    """Body for creating a call with an inline prompt, model and voice."""

    systemPrompt: str
    temperature: float
    model: str
    voice: str
    recordingEnabled: bool = False
    joinTimeout: str
    maxDuration: str
    externalVoice: Optional[ExternalVoice] = None
    selectedTools: Optional[Any] = None
    vadSettings: Optional[Any] = None


class CallCreatedResponse(BaseModel):
    """Response from the call-creation endpoint."""

    model_config = ConfigDict(extra="allow")

    joinUrl: Optional[str] = None
    callId: Optional[str] = None
