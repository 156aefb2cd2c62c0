"""
Immutable relay configuration built once from the environment.

The configuration is validated at process start. Components receive the
RelayConfig instance explicitly; nothing reads os.environ while a call is
being set up.
"""

import json
import logging
import os
from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from app.config.constants import (
    CALL_TYPE_AGENT,
    DEFAULT_CLIENT_BUFFER_SIZE_MS,
    DEFAULT_HOST,
    DEFAULT_JOIN_TIMEOUT,
    DEFAULT_MAX_DURATION,
    DEFAULT_MODEL,
    DEFAULT_PORT,
    DEFAULT_SYSTEM_PROMPT,
    DEFAULT_TEMPERATURE,
    DEFAULT_VOICE,
    FLUSH_INTERVAL_MS,
    LOGGER_NAME,
    MIN_FLUSH_BYTES,
    ULTRAVOX_AGENT_CALLS_URL,
    ULTRAVOX_CALLS_URL,
    ULTRAVOX_SAMPLE_RATE,
    VOICE_PROVIDER_CARTESIA,
    VOICE_PROVIDER_ELEVENLABS,
    VOICE_PROVIDER_GENERIC,
    VOICE_PROVIDER_LMNT,
)
from app.errors import ConfigurationError
from app.models.call_request import (
    CartesiaVoice,
    ElevenLabsVoice,
    ExternalVoice,
    GenericVoice,
    LmntVoice,
)

logger = logging.getLogger(LOGGER_NAME)


class RelayConfig(BaseModel):
    """Static call configuration shared by every relay session."""

    model_config = ConfigDict(frozen=True)

    call_type: Literal["agent", "generic"] = "agent"
    agent_id: Optional[str] = None
    api_key: Optional[str] = None

    sample_rate: int = ULTRAVOX_SAMPLE_RATE
    client_buffer_size_ms: int = DEFAULT_CLIENT_BUFFER_SIZE_MS

    # Generic calls only
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    temperature: float = DEFAULT_TEMPERATURE
    model: str = DEFAULT_MODEL
    voice: str = DEFAULT_VOICE
    recording_enabled: bool = False
    join_timeout: str = DEFAULT_JOIN_TIMEOUT
    max_duration: str = DEFAULT_MAX_DURATION
    external_voice: Optional[ExternalVoice] = None
    selected_tools: Optional[Any] = None
    vad_settings: Optional[Any] = None

    # Outbound pacing
    flush_interval_ms: int = FLUSH_INTERVAL_MS
    min_flush_bytes: int = MIN_FLUSH_BYTES

    # Server
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    @model_validator(mode="after")
    def validate_agent_id(self):
        """Agent calls cannot be created without an agent identifier."""
        if self.call_type == CALL_TYPE_AGENT and not self.agent_id:
            raise ValueError("ULTRAVOX_AGENT_ID is required when ULTRAVOX_CALL_TYPE is 'agent'")
        return self

    @property
    def api_url(self) -> str:
        """Call-creation endpoint for the configured call type."""
        if self.call_type == CALL_TYPE_AGENT:
            return ULTRAVOX_AGENT_CALLS_URL.format(agent_id=self.agent_id)
        return ULTRAVOX_CALLS_URL

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RelayConfig":
        """
        Build the configuration from environment variables.

        Args:
            environ: Mapping to read from, defaults to os.environ

        Returns:
            RelayConfig: The validated configuration

        Raises:
            ConfigurationError: If a required parameter is missing or invalid
        """
        env = os.environ if environ is None else environ
        try:
            return cls(
                call_type=env.get("ULTRAVOX_CALL_TYPE", CALL_TYPE_AGENT),
                agent_id=env.get("ULTRAVOX_AGENT_ID") or None,
                api_key=env.get("ULTRAVOX_API_KEY") or None,
                client_buffer_size_ms=_env_int(
                    env, "ULTRAVOX_CLIENT_BUFFER_SIZE_MS", DEFAULT_CLIENT_BUFFER_SIZE_MS
                ),
                system_prompt=env.get("ULTRAVOX_SYSTEM_PROMPT") or DEFAULT_SYSTEM_PROMPT,
                temperature=_env_float(env, "ULTRAVOX_TEMPERATURE", DEFAULT_TEMPERATURE),
                model=env.get("ULTRAVOX_MODEL") or DEFAULT_MODEL,
                voice=env.get("ULTRAVOX_VOICE") or DEFAULT_VOICE,
                recording_enabled=_env_bool(env, "ULTRAVOX_RECORDING_ENABLED", False),
                join_timeout=env.get("ULTRAVOX_JOIN_TIMEOUT") or DEFAULT_JOIN_TIMEOUT,
                max_duration=env.get("ULTRAVOX_MAX_DURATION") or DEFAULT_MAX_DURATION,
                external_voice=_external_voice_from_env(env),
                selected_tools=_env_json(env, "ULTRAVOX_SELECTED_TOOLS"),
                vad_settings=_env_json(env, "ULTRAVOX_VAD_SETTINGS"),
                flush_interval_ms=_env_int(env, "RELAY_FLUSH_INTERVAL_MS", FLUSH_INTERVAL_MS),
                min_flush_bytes=_env_int(env, "RELAY_MIN_FLUSH_BYTES", MIN_FLUSH_BYTES),
                host=env.get("HOST") or DEFAULT_HOST,
                port=_env_int(env, "PORT", DEFAULT_PORT),
            )
        except ValidationError as e:
            raise ConfigurationError(_first_error(e)) from e


def _first_error(error: ValidationError) -> str:
    details = error.errors()
    if not details:
        return str(error)
    message = details[0].get("msg", str(error))
    # pydantic prefixes errors raised from validators
    return message.replace("Value error, ", "", 1)


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    value = env.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid integer for {name}: {value!r}, using {default}")
        return default


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    value = env.get(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Invalid number for {name}: {value!r}, using {default}")
        return default


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    value = env.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() == "true"


def _env_json(env: Mapping[str, str], name: str) -> Optional[Any]:
    """Parse an optional JSON blob, skipping it with a warning when invalid."""
    value = env.get(name)
    if not value:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        logger.warning(f"Invalid {name} JSON format: {e}")
        return None


def _env_json_object(env: Mapping[str, str], name: str) -> dict:
    value = env.get(name)
    if not value:
        return {}
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid {name} JSON format: {e}") from e
    if not isinstance(parsed, dict):
        raise ConfigurationError(f"{name} must be a JSON object")
    return parsed


def _external_voice_from_env(env: Mapping[str, str]) -> Optional[ExternalVoice]:
    provider = (env.get("ULTRAVOX_EXTERNAL_VOICE_PROVIDER") or "").strip().lower()
    if not provider:
        return None

    if provider == VOICE_PROVIDER_ELEVENLABS:
        return ExternalVoice(elevenLabs=ElevenLabsVoice(
            voiceId=env.get("ULTRAVOX_ELEVENLABS_VOICE_ID"),
            model=env.get("ULTRAVOX_ELEVENLABS_MODEL") or "eleven_monolingual_v1",
            speed=_env_float(env, "ULTRAVOX_ELEVENLABS_SPEED", 1.0),
            useSpeakerBoost=_env_bool(env, "ULTRAVOX_ELEVENLABS_USE_SPEAKER_BOOST", True),
        ))
    if provider == VOICE_PROVIDER_CARTESIA:
        return ExternalVoice(cartesia=CartesiaVoice(
            voiceId=env.get("ULTRAVOX_CARTESIA_VOICE_ID"),
            model=env.get("ULTRAVOX_CARTESIA_MODEL") or "cartesia-1",
            speed=_env_float(env, "ULTRAVOX_CARTESIA_SPEED", 1.0),
        ))
    if provider == VOICE_PROVIDER_LMNT:
        return ExternalVoice(lmnt=LmntVoice(
            voiceId=env.get("ULTRAVOX_LMNT_VOICE_ID"),
            model=env.get("ULTRAVOX_LMNT_MODEL") or "lmnt-1",
            speed=_env_float(env, "ULTRAVOX_LMNT_SPEED", 1.0),
            conversational=_env_bool(env, "ULTRAVOX_LMNT_CONVERSATIONAL", True),
        ))
    if provider == VOICE_PROVIDER_GENERIC:
        return ExternalVoice(generic=GenericVoice(
            url=env.get("ULTRAVOX_GENERIC_VOICE_URL"),
            headers=_env_json_object(env, "ULTRAVOX_GENERIC_VOICE_HEADERS"),
            body=_env_json_object(env, "ULTRAVOX_GENERIC_VOICE_BODY"),
            responseSampleRate=_env_int(env, "ULTRAVOX_GENERIC_VOICE_SAMPLE_RATE", 24000),
            responseWordsPerMinute=_env_int(env, "ULTRAVOX_GENERIC_VOICE_WPM", 150),
            responseMimeType=env.get("ULTRAVOX_GENERIC_VOICE_MIME_TYPE") or "audio/wav",
            jsonAudioFieldPath=env.get("ULTRAVOX_GENERIC_VOICE_AUDIO_FIELD") or "audio",
        ))

    logger.warning(f"Unknown external voice provider: {provider}, ignoring")
    return None
