import asyncio
from collections.abc import AsyncIterator, Callable

import numpy as np
import pytest

from live_translate.domain.errors import ConnectionNotOpenError
from live_translate.domain.events import SessionClosed, SessionOpened, TranscriptionEvent
from live_translate.domain.state import ConnectionState
from live_translate.domain.transcript import TranscriptHistory, TranslationHistory
from live_translate.ports.audio import AudioBlock
from live_translate.ports.transcriber import AudioChunk, ScribeOptions
from live_translate.ports.translator import TranslationRequest, TranslationResult


SAMPLE_RATE = 16000


def generate_sine(
    frequency: float = 440.0,
    duration_ms: int = 200,
    amplitude: float = 0.5,
    sample_rate: int = SAMPLE_RATE,
) -> np.ndarray:
    num_samples = int(sample_rate * duration_ms / 1000)
    t = np.arange(num_samples) / sample_rate
    return (np.sin(2 * np.pi * frequency * t) * amplitude).astype(np.float32)


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


class FakeConnection:
    def __init__(self, options: ScribeOptions | None = None) -> None:
        self.options = options
        self.sent: list[AudioChunk] = []
        self.commits = 0
        self.close_calls = 0
        self._state = ConnectionState.CONNECTING
        self._queue: asyncio.Queue[TranscriptionEvent] = asyncio.Queue()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state in (ConnectionState.STREAMING, ConnectionState.COMMITTING)

    def open(self) -> None:
        self._state = ConnectionState.STREAMING
        self._queue.put_nowait(SessionOpened())

    def emit(self, event: TranscriptionEvent) -> None:
        self._queue.put_nowait(event)

    async def send(self, chunk: AudioChunk) -> None:
        if not self.is_open:
            raise ConnectionNotOpenError("not open")
        self.sent.append(chunk)

    async def commit(self) -> None:
        if not self.is_open:
            raise ConnectionNotOpenError("not open")
        self.commits += 1

    async def close(self) -> None:
        self.close_calls += 1
        if self._state == ConnectionState.CLOSED:
            return
        self._state = ConnectionState.CLOSED
        self._queue.put_nowait(SessionClosed(code=1000, reason="client"))

    async def events(self) -> AsyncIterator[TranscriptionEvent]:
        while True:
            event = await self._queue.get()
            yield event
            if isinstance(event, SessionClosed):
                return


class FakeTranscriber:
    def __init__(self, auto_open: bool = True) -> None:
        self._auto_open = auto_open
        self.connections: list[FakeConnection] = []

    @property
    def last(self) -> FakeConnection:
        return self.connections[-1]

    def connect(self, options: ScribeOptions) -> FakeConnection:
        connection = FakeConnection(options)
        self.connections.append(connection)
        if self._auto_open:
            connection.open()
        return connection


class FakeMinter:
    def __init__(self, token: str = "tok-123", error: Exception | None = None) -> None:
        self._token = token
        self._error = error
        self.calls = 0

    async def mint(self) -> str:
        self.calls += 1
        if self._error:
            raise self._error
        return self._token


class FakeTranslator:
    def __init__(
        self,
        respond: Callable[[TranslationRequest], TranslationResult] | None = None,
        error: Exception | None = None,
    ) -> None:
        self._respond = respond or self._echo
        self._error = error
        self.requests: list[TranslationRequest] = []
        self.gate: asyncio.Event | None = None

    @staticmethod
    def _echo(request: TranslationRequest) -> TranslationResult:
        return TranslationResult(
            detected_language="ja",
            should_ignore=False,
            translation=f"<{request.text}>",
            updated_summary=f"summary:{request.text}" if request.update_summary else request.summary,
        )

    async def translate(self, request: TranslationRequest) -> TranslationResult:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        await asyncio.sleep(0)
        if self._error:
            raise self._error
        return self._respond(request)

    def of_mode(self, mode: str) -> list[TranslationRequest]:
        return [r for r in self.requests if r.mode == mode]


class FakeChat:
    def __init__(self, content: str | None = None) -> None:
        self.content = content
        self.calls: list[dict] = []

    async def complete_json(self, model: str, temperature: float, messages: list[dict[str, str]]) -> str:
        self.calls.append({"model": model, "temperature": temperature, "messages": messages})
        return self.content


class FakeCapture:
    def __init__(self, blocks: list[AudioBlock] | None = None, start_error: Exception | None = None) -> None:
        self._blocks = blocks or []
        self._start_error = start_error
        self._stopped = asyncio.Event()
        self.started = False
        self.stop_calls = 0

    async def start(self) -> None:
        if self._start_error:
            raise self._start_error
        self.started = True

    async def blocks(self) -> AsyncIterator[AudioBlock]:
        for block in self._blocks:
            yield block
        await self._stopped.wait()

    async def stop(self) -> None:
        self.stop_calls += 1
        self.started = False
        self._stopped.set()


class FakeRecorder:
    def __init__(self) -> None:
        self.written: list[bytes] = []
        self.closed = False

    def write(self, pcm: bytes) -> None:
        self.written.append(pcm)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def transcripts():
    return TranscriptHistory()


@pytest.fixture
def translations():
    return TranslationHistory()


@pytest.fixture
def fake_translator():
    return FakeTranslator()


@pytest.fixture
def fake_transcriber():
    return FakeTranscriber()


@pytest.fixture
def fake_minter():
    return FakeMinter()
