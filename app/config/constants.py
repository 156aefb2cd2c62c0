"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for configuration values and making it easier to
maintain consistent naming throughout the codebase.
"""

# Logger name used throughout the application
LOGGER_NAME = "ultravox_relay"

# Call types
CALL_TYPE_AGENT = "agent"
CALL_TYPE_GENERIC = "generic"

# Ultravox API endpoints
ULTRAVOX_API_BASE_URL = "https://api.ultravox.ai/api"
ULTRAVOX_AGENT_CALLS_URL = ULTRAVOX_API_BASE_URL + "/agents/{agent_id}/calls"
ULTRAVOX_CALLS_URL = ULTRAVOX_API_BASE_URL + "/calls"

# Audio settings negotiated at call creation
ULTRAVOX_SAMPLE_RATE = 8000
DEFAULT_CLIENT_BUFFER_SIZE_MS = 60

# Outbound pacing: one 20 ms frame of 16-bit 8 kHz PCM is 320 bytes
FLUSH_INTERVAL_MS = 100
MIN_FLUSH_BYTES = 320

# Generic call defaults
DEFAULT_SYSTEM_PROMPT = "You are a helpful AI assistant."
DEFAULT_TEMPERATURE = 0.0
DEFAULT_MODEL = "fixie-ai/ultravox"
DEFAULT_VOICE = "Shaun"
DEFAULT_JOIN_TIMEOUT = "30s"
DEFAULT_MAX_DURATION = "3600s"

# External voice providers
VOICE_PROVIDER_ELEVENLABS = "elevenlabs"
VOICE_PROVIDER_CARTESIA = "cartesia"
VOICE_PROVIDER_LMNT = "lmnt"
VOICE_PROVIDER_GENERIC = "generic"

# Server defaults
DEFAULT_PORT = 6031
DEFAULT_HOST = "0.0.0.0"

# HTTP surface
STREAM_ENDPOINT = "/speech-to-speech-stream"
CALL_ID_HEADER = "x-uuid"
AUDIO_MEDIA_TYPE = "application/octet-stream"

# Control message types sent by Ultravox on text frames
MESSAGE_TYPE_CALL_STARTED = "call_started"
MESSAGE_TYPE_STATE = "state"
MESSAGE_TYPE_TRANSCRIPT = "transcript"
MESSAGE_TYPE_PLAYBACK_CLEAR_BUFFER = "playback_clear_buffer"
MESSAGE_TYPE_ERROR = "error"
