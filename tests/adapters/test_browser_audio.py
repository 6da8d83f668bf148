import asyncio

import numpy as np
import pytest

from live_translate.adapters.browser_audio import QUEUE_SIZE, BrowserCapture
from live_translate.domain.errors import AudioCaptureError


async def collect(capture: BrowserCapture) -> list:
    return [block async for block in capture.blocks()]


class TestBrowserCapture:
    @pytest.mark.asyncio
    async def test_fed_frames_become_blocks(self):
        capture = BrowserCapture()
        capture.set_sample_rate(44100)
        await capture.start()

        samples = np.array([0.0, 0.5, -0.5], dtype="<f4")
        capture.feed(samples.tobytes() + b"\x01")
        capture.end()

        blocks = await asyncio.wait_for(collect(capture), timeout=1.0)
        assert len(blocks) == 1
        assert blocks[0].sample_rate == 44100
        np.testing.assert_array_equal(blocks[0].samples, samples)

    @pytest.mark.asyncio
    async def test_feed_before_start_is_ignored(self):
        capture = BrowserCapture()
        capture.feed(np.zeros(4, dtype="<f4").tobytes())
        assert not capture.running
        assert await collect(capture) == []

    @pytest.mark.asyncio
    async def test_fail_raises_after_pending_blocks(self):
        capture = BrowserCapture()
        await capture.start()
        capture.feed(np.ones(8, dtype="<f4").tobytes())
        capture.fail("Permission denied")

        received = []
        with pytest.raises(AudioCaptureError, match="Permission denied"):
            async for block in capture.blocks():
                received.append(block)
        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_overflow_counts_drops_and_end_still_terminates(self):
        capture = BrowserCapture()
        await capture.start()
        frame = np.zeros(4, dtype="<f4").tobytes()
        for _ in range(QUEUE_SIZE + 5):
            capture.feed(frame)
        assert capture.dropped == 5

        capture.end()
        blocks = await asyncio.wait_for(collect(capture), timeout=1.0)
        assert len(blocks) == QUEUE_SIZE - 1

    @pytest.mark.asyncio
    async def test_stop_ends_iteration(self):
        capture = BrowserCapture()
        await capture.start()
        consumer = asyncio.create_task(collect(capture))
        await asyncio.sleep(0)
        await capture.stop()
        assert await asyncio.wait_for(consumer, timeout=1.0) == []
        assert not capture.running

    def test_invalid_sample_rate(self):
        with pytest.raises(ValueError):
            BrowserCapture().set_sample_rate(0)
