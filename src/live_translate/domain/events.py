from dataclasses import dataclass, field
from time import time


@dataclass(frozen=True)
class TranscriptionEvent:
    timestamp: float = field(default_factory=time)


@dataclass(frozen=True)
class SessionOpened(TranscriptionEvent):
    pass


@dataclass(frozen=True)
class SessionStarted(TranscriptionEvent):
    session_id: str = ""


@dataclass(frozen=True)
class PartialTranscript(TranscriptionEvent):
    text: str = ""


@dataclass(frozen=True)
class CommittedTranscript(TranscriptionEvent):
    text: str = ""


@dataclass(frozen=True)
class CommittedTranscriptWithTimestamps(TranscriptionEvent):
    text: str = ""
    words: tuple[dict, ...] = ()


@dataclass(frozen=True)
class TranscriptionError(TranscriptionEvent):
    error: str = ""


@dataclass(frozen=True)
class SessionClosed(TranscriptionEvent):
    code: int | None = None
    reason: str = ""
