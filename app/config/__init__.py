"""
Configuration module for the Ultravox speech-to-speech relay.

This module provides centralized configuration management for the entire application,
including constants, logging setup, and environment-based configuration.

Key components:
- constants: Application-wide constants such as the logger name, Ultravox API
  endpoints, pacing thresholds and control message types.
- logging_config: Console and rotating file logging for the application logger.
- settings: The immutable RelayConfig built once from the environment at startup
  and passed explicitly to the components that need it.

Usage examples:
```python
from app.config.settings import RelayConfig
from app.config.logging_config import configure_logging

logger = configure_logging()
config = RelayConfig.from_env()
logger.info(f"Relay configured for {config.call_type} calls")
```
"""
