import asyncio
import json
import logging
from collections.abc import AsyncIterator
from urllib.parse import urlencode

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidStatus, WebSocketException

from live_translate.domain.errors import ConnectionNotOpenError
from live_translate.domain.events import (
    CommittedTranscript,
    CommittedTranscriptWithTimestamps,
    PartialTranscript,
    SessionClosed,
    SessionOpened,
    SessionStarted,
    TranscriptionError,
    TranscriptionEvent,
)
from live_translate.domain.state import ConnectionState, validate_connection_transition
from live_translate.ports.transcriber import AudioChunk, ScribeOptions

logger = logging.getLogger(__name__)

DEFAULT_REALTIME_URL = "wss://api.elevenlabs.io/v1/speech-to-text/realtime"
CLOSE_TIMEOUT_SECONDS = 3.0

ERROR_MESSAGE_TYPES = {
    "error",
    "auth_error",
    "quota_exceeded",
    "rate_limited",
    "commit_throttled",
    "queue_overflow",
    "resource_exhausted",
    "session_time_limit_exceeded",
    "chunk_size_exceeded",
    "insufficient_audio_activity",
    "unaccepted_terms",
}


def build_realtime_url(base_url: str, options: ScribeOptions) -> str:
    params: dict[str, str] = {
        "model_id": options.model_id,
        "token": options.token,
        "commit_strategy": options.commit_strategy,
        "audio_format": options.audio_format,
        "include_timestamps": "true" if options.include_timestamps else "false",
    }
    optional = {
        "language_code": options.language_code,
        "vad_silence_threshold_secs": options.vad_silence_threshold_secs,
        "vad_threshold": options.vad_threshold,
        "min_speech_duration_ms": options.min_speech_duration_ms,
        "min_silence_duration_ms": options.min_silence_duration_ms,
    }
    for key, value in optional.items():
        if value is not None:
            params[key] = str(value)
    return f"{base_url}?{urlencode(params)}"


def encode_audio_chunk(chunk: AudioChunk) -> str:
    payload: dict = {
        "message_type": "input_audio_chunk",
        "audio_base_64": chunk.audio_base64,
        "commit": chunk.commit,
        "sample_rate": chunk.sample_rate,
    }
    if chunk.previous_text:
        payload["previous_text"] = chunk.previous_text
    return json.dumps(payload)


def parse_server_message(raw: str | bytes) -> TranscriptionEvent | None:
    try:
        message = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Ignoring non-JSON realtime message")
        return None
    if not isinstance(message, dict):
        return None

    message_type = str(message.get("message_type", ""))
    if message_type == "session_started":
        return SessionStarted(session_id=str(message.get("session_id") or ""))
    if message_type == "partial_transcript":
        return PartialTranscript(text=message.get("text") or "")
    if message_type == "committed_transcript":
        return CommittedTranscript(text=message.get("text") or "")
    if message_type == "committed_transcript_with_timestamps":
        words = message.get("words") or []
        return CommittedTranscriptWithTimestamps(
            text=message.get("text") or "",
            words=tuple(w for w in words if isinstance(w, dict)),
        )
    if message_type in ERROR_MESSAGE_TYPES or message_type.endswith("_error"):
        error = message.get("error") or message.get("message") or message_type
        return TranscriptionError(error=str(error))

    logger.debug("Unhandled realtime message type: %s", message_type or "<none>")
    return None


class ElevenLabsRealtimeConnection:
    def __init__(self, url: str, sample_rate: int = 16000, open_timeout: float = 10.0) -> None:
        self._url = url
        self._sample_rate = sample_rate
        self._open_timeout = open_timeout
        self._state = ConnectionState.DISCONNECTED
        self._socket: ClientConnection | None = None
        self._event_queue: asyncio.Queue[TranscriptionEvent] = asyncio.Queue()
        self._listener_task: asyncio.Task | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state in (ConnectionState.STREAMING, ConnectionState.COMMITTING)

    def start(self) -> None:
        self._transition_to(ConnectionState.CONNECTING)
        self._listener_task = asyncio.create_task(self._listen())

    async def send(self, chunk: AudioChunk) -> None:
        if not self.is_open or self._socket is None:
            raise ConnectionNotOpenError("Realtime connection is not open.")
        try:
            await self._socket.send(encode_audio_chunk(chunk))
        except ConnectionClosed as exc:
            raise ConnectionNotOpenError("Realtime connection closed.") from exc

    async def commit(self) -> None:
        if not self.is_open:
            raise ConnectionNotOpenError("Realtime connection is not open.")
        if self._state == ConnectionState.STREAMING:
            self._transition_to(ConnectionState.COMMITTING)
        await self.send(AudioChunk(audio_base64="", sample_rate=self._sample_rate, commit=True))

    async def close(self) -> None:
        if self._state == ConnectionState.CLOSED:
            return
        task = self._listener_task
        if self._socket is not None:
            await self._socket.close()
        elif task is not None and not task.done():
            task.cancel()

        if task is not None and task is not asyncio.current_task():
            try:
                await asyncio.wait_for(task, timeout=CLOSE_TIMEOUT_SECONDS)
            except (asyncio.CancelledError, asyncio.TimeoutError):
                pass
        self._mark_closed()

    async def events(self) -> AsyncIterator[TranscriptionEvent]:
        while True:
            event = await self._event_queue.get()
            yield event
            if isinstance(event, SessionClosed):
                return

    async def _listen(self) -> None:
        code: int | None = None
        reason = ""
        try:
            async with connect(self._url, open_timeout=self._open_timeout, max_size=None) as socket:
                self._socket = socket
                self._transition_to(ConnectionState.STREAMING)
                logger.info("Realtime connection open")
                self._emit(SessionOpened())
                try:
                    async for raw in socket:
                        event = parse_server_message(raw)
                        if event is None:
                            continue
                        if isinstance(event, CommittedTranscript) and self._state == ConnectionState.COMMITTING:
                            self._transition_to(ConnectionState.STREAMING)
                        self._emit(event)
                except ConnectionClosed as exc:
                    logger.warning("Realtime connection dropped: %s", exc)
                code = socket.close_code
                reason = socket.close_reason or ""
        except asyncio.CancelledError:
            reason = "cancelled"
        except InvalidStatus as exc:
            status = exc.response.status_code
            logger.error("Realtime handshake rejected: HTTP %s", status)
            self._emit(TranscriptionError(error=f"Realtime connection rejected (HTTP {status})."))
        except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
            logger.error("Realtime connection failed: %s", exc)
            self._emit(TranscriptionError(error=f"Realtime connection failed: {exc}"))
        finally:
            self._socket = None
            self._mark_closed()
            self._emit(SessionClosed(code=code, reason=reason))

    def _emit(self, event: TranscriptionEvent) -> None:
        self._event_queue.put_nowait(event)

    def _mark_closed(self) -> None:
        if self._state != ConnectionState.CLOSED:
            self._transition_to(ConnectionState.CLOSED)

    def _transition_to(self, target: ConnectionState) -> None:
        validate_connection_transition(self._state, target)
        logger.debug("Connection: %s -> %s", self._state.name, target.name)
        self._state = target


class ElevenLabsRealtimeTranscriber:
    def __init__(self, url: str = DEFAULT_REALTIME_URL, open_timeout: float = 10.0) -> None:
        self._url = url
        self._open_timeout = open_timeout

    def connect(self, options: ScribeOptions) -> ElevenLabsRealtimeConnection:
        connection = ElevenLabsRealtimeConnection(
            build_realtime_url(self._url, options),
            sample_rate=options.sample_rate,
            open_timeout=self._open_timeout,
        )
        connection.start()
        logger.info(
            "Realtime connection requested (model=%s, commit=%s, language=%s)",
            options.model_id,
            options.commit_strategy,
            options.language_code or "auto",
        )
        return connection
