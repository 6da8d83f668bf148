import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from live_translate.domain.chunker import AudioStreamer, PREVIOUS_TEXT_LINES
from live_translate.domain.errors import SessionBusyError
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
from live_translate.domain.policy import TranslationPolicy
from live_translate.domain.state import SessionState, validate_transition
from live_translate.domain.transcript import TranscriptHistory, TranslationHistory
from live_translate.ports.audio import AudioCapturePort, AudioRecorderPort
from live_translate.ports.transcriber import (
    RealtimeTranscriberPort,
    ScribeOptions,
    TokenMinterPort,
    TranscriptionConnectionPort,
)
from live_translate.ports.translator import (
    SourceLanguage,
    TranslationRequest,
    TranslationResult,
    TranslatorPort,
)

logger = logging.getLogger(__name__)

VISIBLE_LINES = 200
SUBSCRIBER_QUEUE_SIZE = 32

STATUS_LABELS = {
    SessionState.IDLE: "Idle",
    SessionState.CONNECTING: "Connecting…",
    SessionState.CONNECTED: "Live",
    SessionState.ERROR: "Idle",
    SessionState.CLOSED: "Idle",
}


@dataclass(frozen=True)
class ScribeTuning:
    model_id: str = "scribe_v2_realtime"
    commit_strategy: str = "vad"
    sample_rate: int = 16000
    vad_silence_threshold_secs: float | None = 1.0
    vad_threshold: float | None = None
    min_speech_duration_ms: int | None = 250
    min_silence_duration_ms: int | None = 700
    include_timestamps: bool = False

    def options(self, token: str, input_language: SourceLanguage) -> ScribeOptions:
        return ScribeOptions(
            token=token,
            model_id=self.model_id,
            commit_strategy=self.commit_strategy,
            audio_format=f"pcm_{self.sample_rate}",
            sample_rate=self.sample_rate,
            vad_silence_threshold_secs=self.vad_silence_threshold_secs,
            vad_threshold=self.vad_threshold,
            min_speech_duration_ms=self.min_speech_duration_ms,
            min_silence_duration_ms=self.min_silence_duration_ms,
            language_code=None if input_language == "auto" else input_language,
            include_timestamps=self.include_timestamps,
        )


class LiveSession:
    def __init__(
        self,
        token_minter: Callable[[], TokenMinterPort],
        transcriber: RealtimeTranscriberPort,
        translator: Callable[[], TranslatorPort],
        capture_factory: Callable[[], AudioCapturePort],
        recorder_factory: Callable[[], AudioRecorderPort | None] | None = None,
        tuning: ScribeTuning | None = None,
        capture_mode: str = "sounddevice",
        debounce_seconds: float | None = None,
    ) -> None:
        self._token_minter = token_minter
        self._transcriber = transcriber
        self._translator_factory = translator
        self._capture_factory = capture_factory
        self._recorder_factory = recorder_factory
        self._tuning = tuning or ScribeTuning()
        self._capture_mode = capture_mode

        self._state = SessionState.IDLE
        self._last_error: str | None = None
        self._transcripts = TranscriptHistory()
        self._translations = TranslationHistory()
        policy_kwargs = {}
        if debounce_seconds is not None:
            policy_kwargs["debounce_seconds"] = debounce_seconds
        self._policy = TranslationPolicy(
            translator=_LazyTranslator(translator),
            transcripts=self._transcripts,
            translations=self._translations,
            on_change=self._publish,
            on_error=self.report_error,
            **policy_kwargs,
        )

        self._connection: TranscriptionConnectionPort | None = None
        self._capture: AudioCapturePort | None = None
        self._recorder: AudioRecorderPort | None = None
        self._streamer: AudioStreamer | None = None
        self._event_task: asyncio.Task | None = None
        self._audio_task: asyncio.Task | None = None
        self._subscribers: list[asyncio.Queue[dict]] = []

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def transcripts(self) -> TranscriptHistory:
        return self._transcripts

    @property
    def translations(self) -> TranslationHistory:
        return self._translations

    @property
    def policy(self) -> TranslationPolicy:
        return self._policy

    @property
    def capture(self) -> AudioCapturePort | None:
        return self._capture

    @property
    def is_connected(self) -> bool:
        return self._state == SessionState.CONNECTED

    @property
    def is_busy(self) -> bool:
        return self._state in (SessionState.CONNECTING, SessionState.CONNECTED)

    def configure(self, input_language: SourceLanguage | None = None, output_language: str | None = None) -> None:
        if input_language is not None and input_language != self._policy.input_language:
            if self.is_busy:
                raise SessionBusyError("Input language cannot change while a session is active.")
        self._policy.set_languages(
            input_language if input_language is not None else self._policy.input_language,
            output_language if output_language is not None else self._policy.output_language,
        )
        self._publish()

    async def connect(self) -> None:
        if self._state != SessionState.IDLE:
            logger.debug("Connect ignored, session is %s", self._state.name)
            return

        self._last_error = None
        self._transcripts.set_partial("")
        self._transition_to(SessionState.CONNECTING)
        self._publish()

        try:
            token = await self._token_minter().mint()
            if not self.is_busy:
                logger.info("Disconnected while minting token, abandoning connect")
                return
            options = self._tuning.options(token, self._policy.input_language)
            connection = self._transcriber.connect(options)
            self._connection = connection
            self._event_task = asyncio.create_task(self._event_loop(connection))

            capture = self._capture_factory()
            self._capture = capture
            await capture.start()
            if not self.is_busy:
                logger.info("Session ended while starting capture, releasing resources")
                await self.disconnect()
                return

            self._recorder = self._start_recorder()
            self._streamer = AudioStreamer(
                connection,
                previous_text=lambda: self._transcripts.recent_texts(PREVIOUS_TEXT_LINES),
                sample_rate=self._tuning.sample_rate,
            )
            self._audio_task = asyncio.create_task(self._audio_loop(capture, self._streamer))
        except Exception as exc:
            logger.error("Connect failed: %s", exc)
            self._fail(str(exc) or "Failed to start realtime transcription.")
            await self.disconnect()

    async def disconnect(self) -> None:
        if self._state in (SessionState.CONNECTING, SessionState.CONNECTED):
            self._transition_to(SessionState.CLOSED)

        await _release("transcription connection", self._close_connection)
        await _release("audio capture", self._stop_audio)
        await _release("recorder", self._close_recorder)
        await _release("event consumer", self._stop_event_loop)

        self._policy.cancel()
        if self._state in (SessionState.CLOSED, SessionState.ERROR):
            self._transition_to(SessionState.IDLE)
        self._publish()

    def reset(self) -> None:
        self._transcripts.clear()
        self._last_error = None
        self._policy.reset()

    def clear_summary(self) -> None:
        self._policy.clear_summary()

    def subscribe(self) -> asyncio.Queue[dict]:
        queue: asyncio.Queue[dict] = asyncio.Queue(maxsize=SUBSCRIBER_QUEUE_SIZE)
        self._subscribers.append(queue)
        queue.put_nowait(self.snapshot())
        return queue

    def unsubscribe(self, queue: asyncio.Queue[dict]) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def snapshot(self) -> dict:
        return {
            "status": STATUS_LABELS[self._state],
            "state": self._state.name.lower(),
            "captureMode": self._capture_mode,
            "lastError": self._last_error,
            "inputLanguage": self._policy.input_language,
            "outputLanguage": self._policy.output_language,
            "partialTranscript": self._transcripts.partial,
            "committed": [
                {"id": line.id, "text": line.text, "createdAt": line.created_at}
                for line in self._transcripts.committed[-VISIBLE_LINES:]
            ],
            "partialTranslation": self._policy.partial_translation,
            "translated": [
                {
                    "id": line.id,
                    "sourceId": line.source_id,
                    "text": line.text,
                    "createdAt": line.created_at,
                }
                for line in self._translations.lines[-VISIBLE_LINES:]
            ],
            "summary": self._policy.summary,
        }

    async def handle_event(self, event: TranscriptionEvent) -> None:
        if isinstance(event, SessionOpened):
            if self._state == SessionState.CONNECTING:
                self._transition_to(SessionState.CONNECTED)
            self._publish()
        elif isinstance(event, SessionStarted):
            logger.info("Session started: %s", event.session_id or "-")
        elif isinstance(event, PartialTranscript):
            self._transcripts.set_partial(event.text or "")
            self._policy.on_partial(event.text, connected=self.is_connected)
            self._publish()
        elif isinstance(event, CommittedTranscript):
            line = self._transcripts.commit(event.text)
            if line is None:
                return
            logger.info("Committed: %s", line.text)
            self._policy.on_partial("", connected=self.is_connected)
            self._policy.on_committed()
            self._publish()
        elif isinstance(event, CommittedTranscriptWithTimestamps):
            logger.debug("Committed with %d word timestamps", len(event.words))
        elif isinstance(event, TranscriptionError):
            logger.error("Realtime error: %s", event.error)
            self._fail(event.error or "Unknown realtime error.")
            await self.disconnect()
        elif isinstance(event, SessionClosed):
            logger.info("Realtime connection closed (code=%s)", event.code)
            await self.disconnect()

    async def _event_loop(self, connection: TranscriptionConnectionPort) -> None:
        try:
            async for event in connection.events():
                if connection is not self._connection:
                    break
                await self.handle_event(event)
        except asyncio.CancelledError:
            pass

    async def _audio_loop(self, capture: AudioCapturePort, streamer: AudioStreamer) -> None:
        try:
            async for block in capture.blocks():
                pcm = await streamer.feed(block)
                if self._recorder is not None:
                    try:
                        self._recorder.write(pcm)
                    except OSError:
                        logger.warning("Recorder write failed, disabling recorder")
                        self._recorder = None
        except asyncio.CancelledError:
            return
        except Exception as exc:
            logger.error("Audio capture failed: %s", exc)
            self._fail(str(exc) or "Audio capture failed.")
            self._audio_task = None
            await self.disconnect()
            return

        if self._audio_task is asyncio.current_task() and self.is_busy:
            logger.info("Audio capture ended")
            self._audio_task = None
            await self.disconnect()

    def _start_recorder(self) -> AudioRecorderPort | None:
        if self._recorder_factory is None:
            return None
        try:
            return self._recorder_factory()
        except OSError as exc:
            logger.warning("Local recorder unavailable: %s", exc)
            return None

    async def _close_connection(self) -> None:
        connection = self._connection
        self._connection = None
        self._streamer = None
        if connection is not None:
            await connection.close()

    async def _stop_audio(self) -> None:
        task = self._audio_task
        self._audio_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        capture = self._capture
        self._capture = None
        if capture is not None:
            await capture.stop()

    async def _close_recorder(self) -> None:
        recorder = self._recorder
        self._recorder = None
        if recorder is not None:
            recorder.close()

    async def _stop_event_loop(self) -> None:
        task = self._event_task
        self._event_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    def _fail(self, message: str) -> None:
        self._last_error = message
        if self._state in (SessionState.CONNECTING, SessionState.CONNECTED):
            self._transition_to(SessionState.ERROR)
        self._publish()

    def report_error(self, message: str) -> None:
        self._last_error = message
        self._publish()

    def _transition_to(self, target: SessionState) -> None:
        validate_transition(self._state, target)
        logger.info("Session: %s -> %s", self._state.name, target.name)
        self._state = target

    def _publish(self) -> None:
        if not self._subscribers:
            return
        snapshot = self.snapshot()
        for queue in self._subscribers:
            if queue.full():
                try:
                    queue.get_nowait()
                except asyncio.QueueEmpty:
                    pass
            queue.put_nowait(snapshot)


class _LazyTranslator:
    def __init__(self, factory: Callable[[], TranslatorPort]) -> None:
        self._factory = factory

    async def translate(self, request: TranslationRequest) -> TranslationResult:
        return await self._factory().translate(request)


async def _release(name: str, step: Callable[[], Awaitable[None]]) -> None:
    try:
        await step()
    except Exception:
        logger.warning("Teardown step '%s' failed", name, exc_info=True)
