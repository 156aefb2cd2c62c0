"""
Outbound pacing of Ultravox audio.

Ultravox delivers synthesized audio as many small binary frames. Writing each
one to the HTTP response individually produces jittery playback, so frames are
accumulated and released in chunks once both a minimum elapsed time and a
minimum size have been reached.
"""

import logging
import time
from typing import Callable, Optional

from app.config.constants import FLUSH_INTERVAL_MS, LOGGER_NAME, MIN_FLUSH_BYTES

logger = logging.getLogger(LOGGER_NAME)


class OutboundPacer:
    """
    Accumulates remote audio frames and decides when to release them.

    The window timer starts at the first frame of the session and is never
    reset, so after the first ``min_interval_ms`` only the size gate applies.

    All methods are synchronous. Running them on the event loop thread without
    an ``await`` between the flush decision and the buffer swap keeps the swap
    atomic with respect to ``on_frame``.
    """

    def __init__(self, min_interval_ms: int = FLUSH_INTERVAL_MS,
                 min_bytes: int = MIN_FLUSH_BYTES,
                 clock: Callable[[], float] = time.monotonic):
        self.min_interval_ms = min_interval_ms
        self.min_bytes = min_bytes
        self._clock = clock
        self._buffer = bytearray()
        self.window_started_at: Optional[float] = None

        self.bytes_received = 0
        self.bytes_flushed = 0
        self.flush_count = 0

    @property
    def pending(self) -> int:
        """Number of bytes waiting to be flushed."""
        return len(self._buffer)

    def on_frame(self, frame: bytes) -> Optional[bytes]:
        """
        Add a frame to the pending buffer.

        Args:
            frame: Raw audio bytes from the remote channel

        Returns:
            bytes: The flushed chunk if this frame satisfied the pacing conditions,
            otherwise None
        """
        if self.window_started_at is None:
            self.window_started_at = self._clock()
            logger.debug("First Ultravox audio chunk received, starting delay")

        self._buffer += frame
        self.bytes_received += len(frame)

        if self.should_flush():
            return self.flush()
        return None

    def should_flush(self) -> bool:
        """True once the window has been open long enough and enough bytes are pending."""
        if self.window_started_at is None:
            return False
        elapsed_ms = (self._clock() - self.window_started_at) * 1000
        return elapsed_ms >= self.min_interval_ms and len(self._buffer) >= self.min_bytes

    def flush(self) -> bytes:
        """Swap out the pending buffer and return its contents."""
        chunk, self._buffer = bytes(self._buffer), bytearray()
        self.bytes_flushed += len(chunk)
        self.flush_count += 1
        return chunk

    def discard(self) -> int:
        """
        Drop any bytes still pending. Residual audio is not flushed on close.

        Returns:
            int: Number of bytes dropped
        """
        dropped = len(self._buffer)
        self._buffer = bytearray()
        return dropped
