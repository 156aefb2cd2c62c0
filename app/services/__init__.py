"""
Services module for external API integrations in the Ultravox relay.

Key components:
- ultravox_api: The session initiator. It builds the Ultravox call-creation body
  from the relay configuration, POSTs it to the Ultravox REST API with httpx and
  opens a WebSocket to the returned join URL, wrapped as an UltravoxChannel.

Usage examples:
```python
from app.config.settings import RelayConfig
from app.services.ultravox_api import UltravoxSessionInitiator

async def open_call():
    initiator = UltravoxSessionInitiator(RelayConfig.from_env())
    channel = await initiator.initiate("abc-123")
    await channel.send(b"\\x00" * 320)
    async for message in channel:
        print(type(message), len(message))
    await channel.close()
```
"""
