"""
Streaming test client for the Ultravox speech-to-speech relay.

Streams a WAV or raw PCM file to POST /speech-to-speech-stream in real time,
20 ms per chunk, while reading the relayed Ultravox audio from the same
connection, then saves what came back as a WAV file.

The request and response bodies must flow at the same time, and the relay ends
the call when the request body ends. Common HTTP clients upload the whole body
before reading the response, so this client drives h11 directly over an asyncio
connection.

Usage:
    python client.py input.wav [--output reply.wav] [--uuid ID] [--url URL]
"""

import argparse
import asyncio
import logging
import uuid
import wave
from pathlib import Path
from typing import AsyncIterator, Optional, Tuple
from urllib.parse import urlsplit

import h11

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("ultravox_relay_client")

DEFAULT_URL = "http://localhost:6031/speech-to-speech-stream"

# 16-bit mono PCM at 8 kHz, as negotiated with Ultravox
SAMPLE_RATE = 8000
SAMPLE_WIDTH = 2
CHANNELS = 1
CHUNK_MS = 20
READ_SIZE = 65536


def load_audio(path: str) -> bytes:
    """
    Read the audio to send.

    WAV files are unwrapped to their PCM frames; anything else is sent as is.
    """
    if Path(path).suffix.lower() != ".wav":
        return Path(path).read_bytes()

    with wave.open(path, "rb") as wav_file:
        params = (wav_file.getframerate(), wav_file.getsampwidth(), wav_file.getnchannels())
        if params != (SAMPLE_RATE, SAMPLE_WIDTH, CHANNELS):
            logger.warning(
                f"{path} is {params[0]} Hz, {params[1] * 8}-bit, {params[2]} channel(s); "
                f"the relay expects {SAMPLE_RATE} Hz 16-bit mono and will not convert it"
            )
        return wav_file.readframes(wav_file.getnframes())


def save_wav_file(path: str, audio: bytes) -> None:
    """Write relayed 8 kHz 16-bit mono audio to ``path``."""
    with wave.open(path, "wb") as wav_file:
        wav_file.setnchannels(CHANNELS)
        wav_file.setsampwidth(SAMPLE_WIDTH)
        wav_file.setframerate(SAMPLE_RATE)
        wav_file.writeframes(audio)

    duration = len(audio) / (SAMPLE_RATE * SAMPLE_WIDTH * CHANNELS)
    logger.info(f"Saved {len(audio)} bytes ({duration:.2f} s) to {path}")


async def paced_chunks(audio: bytes, chunk_ms: int = CHUNK_MS) -> AsyncIterator[bytes]:
    """Yield ``audio`` in chunks of ``chunk_ms`` milliseconds, in real time."""
    chunk_size = SAMPLE_RATE * SAMPLE_WIDTH * CHANNELS * chunk_ms // 1000
    for offset in range(0, len(audio), chunk_size):
        yield audio[offset:offset + chunk_size]
        await asyncio.sleep(chunk_ms / 1000)


async def stream_audio(url: str, chunks: AsyncIterator[bytes],
                       call_id: Optional[str] = None) -> Tuple[int, bytes]:
    """
    Stream ``chunks`` to the relay and collect the response body.

    Args:
        url: The relay's speech-to-speech endpoint
        chunks: Request audio
        call_id: Sent as the x-uuid header when given

    Returns:
        Tuple of the HTTP status code and the response body
    """
    parts = urlsplit(url)
    host = parts.hostname or "localhost"
    port = parts.port or 80
    target = parts.path or "/"
    if parts.query:
        target += "?" + parts.query

    headers = [
        ("Host", f"{host}:{port}"),
        ("Content-Type", "application/octet-stream"),
        ("Transfer-Encoding", "chunked"),
    ]
    if call_id:
        headers.append(("x-uuid", call_id))

    reader, writer = await asyncio.open_connection(host, port)
    conn = h11.Connection(our_role=h11.CLIENT)

    async def send_request() -> None:
        writer.write(conn.send(h11.Request(method="POST", target=target, headers=headers)))
        sent = 0
        async for chunk in chunks:
            if not chunk:
                continue
            writer.write(conn.send(h11.Data(data=chunk)))
            await writer.drain()
            sent += len(chunk)
        writer.write(conn.send(h11.EndOfMessage()))
        await writer.drain()
        logger.info(f"Request body complete, {sent} bytes sent")

    sender = asyncio.create_task(send_request())
    status = 0
    body = bytearray()
    try:
        while True:
            event = conn.next_event()
            if event is h11.NEED_DATA:
                conn.receive_data(await reader.read(READ_SIZE))
            elif isinstance(event, h11.Response):
                status = event.status_code
                logger.info(f"Response status {status}")
            elif isinstance(event, h11.Data):
                body += event.data
                logger.debug(f"Received {len(event.data)} bytes")
            elif isinstance(event, (h11.EndOfMessage, h11.ConnectionClosed)):
                break
    finally:
        if not sender.done():
            # The relay ended the call before we finished talking
            sender.cancel()
        (send_result,) = await asyncio.gather(sender, return_exceptions=True)
        if isinstance(send_result, Exception):
            logger.warning(f"Request stream failed: {send_result}")
        writer.close()
        try:
            await writer.wait_closed()
        except ConnectionError as e:
            logger.debug(f"Connection closed uncleanly: {e}")

    return status, bytes(body)


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Stream audio through the Ultravox relay")
    parser.add_argument("input", help="WAV (8 kHz 16-bit mono) or raw PCM file to send")
    parser.add_argument("--output", default="relay_output.wav", help="Where to save the reply")
    parser.add_argument("--url", default=DEFAULT_URL, help=f"Relay endpoint (default: {DEFAULT_URL})")
    parser.add_argument("--uuid", default=None, help="Call id sent as x-uuid (default: random)")
    parser.add_argument("--chunk-ms", type=int, default=CHUNK_MS, help="Milliseconds of audio per chunk (> 0)")
    args = parser.parse_args()
    if args.chunk_ms <= 0:
        parser.error("--chunk-ms must be positive")
    return args


async def run_client(args) -> int:
    call_id = args.uuid or str(uuid.uuid4())
    audio = load_audio(args.input)
    logger.info(f"Streaming {len(audio)} bytes to {args.url} with call id {call_id}")

    status, body = await stream_audio(args.url, paced_chunks(audio, args.chunk_ms), call_id)
    if status != 200:
        logger.error(f"Relay answered {status}: {body.decode(errors='replace')}")
        return 1

    save_wav_file(args.output, body)
    return 0


def main():
    args = parse_args()
    raise SystemExit(asyncio.run(run_client(args)))


if __name__ == "__main__":
    main()
