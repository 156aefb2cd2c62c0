"""
Ultravox Speech-to-Speech Relay

This application relays real-time audio between an HTTP client and an Ultravox
conversational AI call. The client streams raw audio in a chunked POST request
and receives the agent's audio in the chunked response body; the relay holds
the Ultravox WebSocket session in between.

Architecture Overview:
- FastAPI server exposing POST /speech-to-speech-stream
- Ultravox call creation over REST, then a WebSocket per call
- Request audio forwarded to Ultravox unbuffered
- Ultravox audio paced into the response in chunks of at least 320 bytes
- Ultravox control messages logged for observability

Key Components:
- bot: The relay session, outbound pacer and control message interpreter
- config: Constants, logging setup and the immutable relay configuration
- models: Pydantic models for the Ultravox call request and control messages
- services: The Ultravox session initiator
- stream_response: ASGI response streaming request and response bodies together

Getting Started:
1. Set up environment variables:
   - ULTRAVOX_API_KEY: Your Ultravox API key
   - ULTRAVOX_CALL_TYPE: "agent" (default) or "generic"
   - ULTRAVOX_AGENT_ID: Required for agent calls
   - PORT: Port to run the server on (default 6031)
   - LOG_LEVEL: Logging level (default INFO)

2. Start the server:
   ```bash
   python run.py
   ```

3. Stream audio (16-bit PCM, 8 kHz) to
   http://your-server:6031/speech-to-speech-stream with an x-uuid header.
"""
