import uuid
from dataclasses import dataclass, field
from time import time
from typing import Literal

LineKind = Literal["partial", "committed"]


def new_line_id() -> str:
    return f"{int(time() * 1000)}-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class TranscriptLine:
    id: str
    text: str
    kind: LineKind = "committed"
    created_at: float = field(default_factory=time)


@dataclass(frozen=True)
class TranslatedLine:
    id: str
    source_id: str
    text: str
    created_at: float = field(default_factory=time)


class TranscriptHistory:
    def __init__(self) -> None:
        self._committed: list[TranscriptLine] = []
        self._partial: TranscriptLine | None = None

    @property
    def committed(self) -> list[TranscriptLine]:
        return list(self._committed)

    @property
    def partial(self) -> str:
        return self._partial.text if self._partial else ""

    def __len__(self) -> int:
        return len(self._committed)

    def set_partial(self, text: str) -> None:
        if not text:
            self._partial = None
            return
        line_id = self._partial.id if self._partial else new_line_id()
        self._partial = TranscriptLine(id=line_id, text=text, kind="partial")

    def commit(self, text: str) -> TranscriptLine | None:
        text = (text or "").strip()
        if not text:
            return None
        line = TranscriptLine(id=new_line_id(), text=text, kind="committed")
        self._committed.append(line)
        self._partial = None
        return line

    def recent_texts(self, count: int) -> list[str]:
        if count <= 0:
            return []
        return [line.text for line in self._committed[-count:]]

    def clear(self) -> None:
        self._committed.clear()
        self._partial = None


class TranslationHistory:
    def __init__(self) -> None:
        self._lines: list[TranslatedLine] = []

    @property
    def lines(self) -> list[TranslatedLine]:
        return list(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def append(self, source: TranscriptLine, text: str) -> TranslatedLine:
        line = TranslatedLine(id=f"{source.id}-t", source_id=source.id, text=text)
        self._lines.append(line)
        return line

    def clear(self) -> None:
        self._lines.clear()
