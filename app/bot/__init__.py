"""
Bot module implementing the audio relay between HTTP clients and Ultravox.

Key components:
- OutboundPacer: Accumulates binary audio frames from Ultravox and releases them
  once at least 100 ms have passed since the first frame and at least 320 bytes
  are pending.
- ControlMessageInterpreter: Parses the JSON control messages Ultravox sends on
  text frames and logs the call lifecycle they describe.
- RelaySession: Runs one call end to end. It opens the Ultravox channel through a
  session initiator, forwards request audio to Ultravox, paces Ultravox audio into
  the response, and closes both sides when either one finishes.

Usage examples:
```python
from app.bot import RelaySession
from app.config.settings import RelayConfig
from app.services.ultravox_api import UltravoxSessionInitiator

async def relay(call_id, request_chunks, write_chunk):
    session = RelaySession(call_id, UltravoxSessionInitiator(RelayConfig.from_env()))
    await session.connect()
    await session.run(request_chunks, write_chunk)
```
"""

from app.bot.control_interpreter import ControlMessageInterpreter
from app.bot.pacer import OutboundPacer
from app.bot.relay_session import RelaySession, SessionState

__all__ = ["ControlMessageInterpreter", "OutboundPacer", "RelaySession", "SessionState"]
