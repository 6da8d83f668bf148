import asyncio
import logging

from live_translate.domain.chunker import AudioStreamer, frame_bytes_for
from live_translate.domain.errors import ConnectionNotOpenError, LiveTranslateError
from live_translate.domain.events import (
    CommittedTranscript,
    PartialTranscript,
    SessionClosed,
    SessionOpened,
    SessionStarted,
    TranscriptionError,
)
from live_translate.ports.transcriber import (
    RealtimeTranscriberPort,
    ScribeOptions,
    TokenMinterPort,
    TranscriptionConnectionPort,
)

logger = logging.getLogger(__name__)

OPEN_TIMEOUT_SECONDS = 10.0
PACING_SECONDS = 0.06
SETTLE_SECONDS = 1.5


async def verify_scribe(
    pcm: bytes,
    token_minter: TokenMinterPort,
    transcriber: RealtimeTranscriberPort,
    pacing_seconds: float = PACING_SECONDS,
    settle_seconds: float = SETTLE_SECONDS,
    open_timeout: float = OPEN_TIMEOUT_SECONDS,
) -> int:
    """Stream a raw s16le/16 kHz/mono recording through a manual-commit session.

    Returns a process exit code.
    """
    try:
        token = await token_minter.mint()
    except LiveTranslateError as exc:
        details = getattr(exc, "details", None)
        logger.error("Failed to mint token: %s%s", exc, f" ({details})" if details else "")
        return 1

    connection = transcriber.connect(
        ScribeOptions(token=token, commit_strategy="manual", vad_silence_threshold_secs=None)
    )
    opened = asyncio.Event()
    printer = asyncio.create_task(_log_events(connection, opened))

    try:
        await asyncio.wait_for(opened.wait(), timeout=open_timeout)
    except asyncio.TimeoutError:
        logger.error("Realtime connection did not open within %.0fs", open_timeout)
    if not connection.is_open:
        await connection.close()
        await printer
        return 1

    streamer = AudioStreamer(connection)
    frame_bytes = frame_bytes_for()
    for offset in range(0, len(pcm), frame_bytes):
        await streamer.feed_pcm(pcm[offset : offset + frame_bytes])
        await asyncio.sleep(pacing_seconds)
    await streamer.flush()
    logger.info("Sent %d frames (%d dropped)", streamer.frames_sent, streamer.frames_dropped)

    try:
        await connection.commit()
    except ConnectionNotOpenError:
        logger.warning("Connection closed before commit")

    await asyncio.sleep(settle_seconds)
    await connection.close()
    await printer
    return 0


async def _log_events(connection: TranscriptionConnectionPort, opened: asyncio.Event) -> None:
    async for event in connection.events():
        if isinstance(event, SessionOpened):
            logger.info("[OPEN]")
            opened.set()
        elif isinstance(event, SessionStarted):
            logger.info("[SESSION_STARTED] %s", event.session_id)
        elif isinstance(event, PartialTranscript):
            logger.info("[PARTIAL] %s", event.text)
        elif isinstance(event, CommittedTranscript):
            logger.info("[COMMITTED] %s", event.text)
        elif isinstance(event, TranscriptionError):
            logger.error("[ERROR] %s", event.error)
        elif isinstance(event, SessionClosed):
            logger.info("[CLOSE] code=%s", event.code)
            opened.set()
