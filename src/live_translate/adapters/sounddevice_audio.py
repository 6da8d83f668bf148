import asyncio
import logging
import os
from collections.abc import AsyncIterator

import janus
import numpy as np
import sounddevice as sd

from live_translate.domain.errors import AudioCaptureError
from live_translate.ports.audio import AudioBlock

logger = logging.getLogger(__name__)

BLOCK_DURATION_MS = 40
QUEUE_SIZE = 200


class SounddeviceCapture:
    """Microphone capture at the device's native rate; resampling happens downstream."""

    def __init__(
        self,
        device: str | int | None = None,
        sample_rate: int | None = None,
        block_duration_ms: int = BLOCK_DURATION_MS,
    ) -> None:
        self._device = device
        self._requested_rate = sample_rate
        self._sample_rate = sample_rate or 0
        self._block_duration_ms = block_duration_ms
        self._stream: sd.InputStream | None = None
        self._queue: janus.Queue[AudioBlock] | None = None

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    async def start(self) -> None:
        self._queue = janus.Queue(maxsize=QUEUE_SIZE)
        queue = self._queue
        device = self._resolve_device()

        try:
            rate = self._requested_rate or int(sd.query_devices(device, "input")["default_samplerate"])
            self._sample_rate = rate

            def audio_callback(indata: np.ndarray, frames: int, time_info, status) -> None:
                if status:
                    logger.warning("Audio capture status: %s", status)
                block = AudioBlock(samples=indata[:, 0].copy(), sample_rate=rate)
                try:
                    queue.sync_q.put_nowait(block)
                except janus.SyncQueueFull:
                    pass

            self._stream = sd.InputStream(
                device=device,
                samplerate=rate,
                channels=1,
                dtype="float32",
                blocksize=int(rate * self._block_duration_ms / 1000),
                callback=audio_callback,
            )
            self._stream.start()
        except (sd.PortAudioError, ValueError) as exc:
            self._queue.close()
            self._queue = None
            raise AudioCaptureError(f"Microphone unavailable: {exc}") from exc

        logger.info("Audio capture started (device=%s, rate=%d)", device, rate)

    async def stop(self) -> None:
        if self._stream:
            self._stream.stop()
            self._stream.close()
            self._stream = None
        if self._queue:
            self._queue.close()
            await self._queue.wait_closed()
            self._queue = None

    async def blocks(self) -> AsyncIterator[AudioBlock]:
        if not self._queue:
            return
        queue = self._queue
        while True:
            try:
                block = await asyncio.wait_for(queue.async_q.get(), timeout=1.0)
                yield block
            except asyncio.TimeoutError:
                if self._queue is not queue:
                    break
                continue
            except janus.AsyncQueueShutDown:
                break

    def _resolve_device(self) -> str | int | None:
        if self._device is None or self._device == "":
            return None
        if isinstance(self._device, int):
            return self._device
        try:
            return int(self._device)
        except ValueError:
            pass
        for i, dev in enumerate(sd.query_devices()):
            if self._device.lower() in dev["name"].lower() and dev["max_input_channels"] > 0:
                logger.info("Resolved device '%s' -> %d (%s)", self._device, i, dev["name"])
                return i
        os.environ["PIPEWIRE_NODE"] = self._device
        logger.info("Device '%s' not in PortAudio, set PIPEWIRE_NODE for PipeWire routing", self._device)
        return None
