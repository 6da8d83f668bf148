import asyncio
import logging
from collections.abc import AsyncIterator

import numpy as np

from live_translate.domain.errors import AudioCaptureError
from live_translate.ports.audio import AudioBlock

logger = logging.getLogger(__name__)

QUEUE_SIZE = 200


class BrowserCapture:
    """Capture fed by the page's AudioWorklet as little-endian float32 frames over /ws."""

    def __init__(self, sample_rate: int = 48000) -> None:
        self._sample_rate = sample_rate
        self._queue: asyncio.Queue[AudioBlock | None] | None = None
        self._error: str | None = None
        self._dropped = 0

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def running(self) -> bool:
        return self._queue is not None

    @property
    def dropped(self) -> int:
        return self._dropped

    def set_sample_rate(self, sample_rate: int) -> None:
        if sample_rate <= 0:
            raise ValueError(f"Invalid sample rate: {sample_rate}")
        self._sample_rate = sample_rate

    async def start(self) -> None:
        self._queue = asyncio.Queue(maxsize=QUEUE_SIZE)
        self._error = None
        logger.info("Browser capture armed (rate=%d)", self._sample_rate)

    def feed(self, data: bytes) -> None:
        if self._queue is None or not data:
            return
        usable = len(data) - len(data) % 4
        samples = np.frombuffer(data[:usable], dtype="<f4").astype(np.float32)
        if samples.size == 0:
            return
        try:
            self._queue.put_nowait(AudioBlock(samples=samples, sample_rate=self._sample_rate))
        except asyncio.QueueFull:
            self._dropped += 1

    def fail(self, message: str) -> None:
        logger.warning("Browser capture failed: %s", message)
        self._error = message
        self.end()

    async def stop(self) -> None:
        self.end()
        self._queue = None

    async def blocks(self) -> AsyncIterator[AudioBlock]:
        queue = self._queue
        if queue is None:
            return
        while True:
            block = await queue.get()
            if block is None:
                break
            yield block
        if self._error:
            raise AudioCaptureError(self._error)

    def end(self) -> None:
        if self._queue is None:
            return
        while True:
            try:
                self._queue.put_nowait(None)
                return
            except asyncio.QueueFull:
                self._queue.get_nowait()
