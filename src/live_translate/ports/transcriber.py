from dataclasses import dataclass
from typing import Literal, Protocol, AsyncIterator

from live_translate.domain.events import TranscriptionEvent
from live_translate.domain.state import ConnectionState

CommitStrategy = Literal["manual", "vad"]


@dataclass(frozen=True)
class ScribeOptions:
    token: str
    model_id: str = "scribe_v2_realtime"
    commit_strategy: CommitStrategy = "vad"
    audio_format: str = "pcm_16000"
    sample_rate: int = 16000
    vad_silence_threshold_secs: float | None = 0.6
    vad_threshold: float | None = None
    min_speech_duration_ms: int | None = None
    min_silence_duration_ms: int | None = None
    language_code: str | None = None
    include_timestamps: bool = False


@dataclass(frozen=True)
class AudioChunk:
    audio_base64: str
    sample_rate: int
    previous_text: str | None = None
    commit: bool = False


class TranscriptionConnectionPort(Protocol):
    @property
    def state(self) -> ConnectionState: ...
    @property
    def is_open(self) -> bool: ...
    async def send(self, chunk: AudioChunk) -> None: ...
    async def commit(self) -> None: ...
    async def close(self) -> None: ...
    def events(self) -> AsyncIterator[TranscriptionEvent]: ...


class RealtimeTranscriberPort(Protocol):
    def connect(self, options: ScribeOptions) -> TranscriptionConnectionPort: ...


class TokenMinterPort(Protocol):
    async def mint(self) -> str: ...
