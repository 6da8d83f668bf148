import base64
import logging
from collections.abc import Callable

import numpy as np

from live_translate.domain.audio import BYTES_PER_SAMPLE, TARGET_SAMPLE_RATE, resample_to_pcm16
from live_translate.domain.errors import ConnectionNotOpenError
from live_translate.ports.audio import AudioBlock
from live_translate.ports.transcriber import AudioChunk, TranscriptionConnectionPort

logger = logging.getLogger(__name__)

CHUNK_DURATION_MS = 200
PREVIOUS_TEXT_LINES = 12


def frame_bytes_for(sample_rate: int = TARGET_SAMPLE_RATE, chunk_ms: int = CHUNK_DURATION_MS) -> int:
    return int(round(sample_rate * (chunk_ms / 1000) * BYTES_PER_SAMPLE))


def encode_frame(frame: bytes) -> str:
    return base64.b64encode(frame).decode("ascii")


class PcmChunker:
    def __init__(self, frame_bytes: int) -> None:
        if frame_bytes <= 0:
            raise ValueError("frame_bytes must be positive")
        self._frame_bytes = frame_bytes
        self._buffer = bytearray()

    @property
    def frame_bytes(self) -> int:
        return self._frame_bytes

    @property
    def pending(self) -> int:
        return len(self._buffer)

    def push(self, pcm: bytes) -> list[bytes]:
        self._buffer.extend(pcm)
        frames = []
        while len(self._buffer) >= self._frame_bytes:
            frames.append(bytes(self._buffer[: self._frame_bytes]))
            del self._buffer[: self._frame_bytes]
        return frames

    def flush(self) -> bytes:
        remainder = bytes(self._buffer)
        self._buffer.clear()
        return remainder


class AudioStreamer:
    def __init__(
        self,
        connection: TranscriptionConnectionPort,
        previous_text: Callable[[], list[str]] | None = None,
        sample_rate: int = TARGET_SAMPLE_RATE,
        chunk_ms: int = CHUNK_DURATION_MS,
    ) -> None:
        self._connection = connection
        self._previous_text = previous_text
        self._sample_rate = sample_rate
        self._chunker = PcmChunker(frame_bytes_for(sample_rate, chunk_ms))
        self._first_frame = True
        self._frames_sent = 0
        self._frames_dropped = 0

    @property
    def frames_sent(self) -> int:
        return self._frames_sent

    @property
    def frames_dropped(self) -> int:
        return self._frames_dropped

    @property
    def pending_bytes(self) -> int:
        return self._chunker.pending

    async def feed(self, block: AudioBlock) -> bytes:
        pcm = resample_to_pcm16(block.samples, block.sample_rate, self._sample_rate)
        pcm_bytes = pcm.astype("<i2").tobytes()
        for frame in self._chunker.push(pcm_bytes):
            await self._send_frame(frame)
        return pcm_bytes

    async def feed_pcm(self, pcm_bytes: bytes) -> None:
        for frame in self._chunker.push(pcm_bytes):
            await self._send_frame(frame)

    async def flush(self) -> None:
        remainder = self._chunker.flush()
        if remainder:
            await self._send_frame(remainder)

    async def _send_frame(self, frame: bytes) -> None:
        if not self._connection.is_open:
            self._frames_dropped += 1
            logger.debug("Dropped audio frame (%d bytes), connection not open", len(frame))
            return

        chunk = AudioChunk(
            audio_base64=encode_frame(frame),
            sample_rate=self._sample_rate,
            previous_text=self._context_for_first_frame(),
        )
        try:
            await self._connection.send(chunk)
        except ConnectionNotOpenError:
            self._frames_dropped += 1
            logger.debug("Dropped audio frame (%d bytes), connection closed mid-send", len(frame))
            return
        self._first_frame = False
        self._frames_sent += 1

    def _context_for_first_frame(self) -> str | None:
        if not self._first_frame or self._previous_text is None:
            return None
        lines = self._previous_text()[-PREVIOUS_TEXT_LINES:]
        if not lines:
            return None
        return "\n".join(lines)
