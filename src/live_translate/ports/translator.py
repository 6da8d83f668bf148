from dataclasses import dataclass, field
from typing import Literal, Protocol

SourceLanguage = Literal["auto", "en", "ja", "ko"]
TargetLanguage = Literal["en", "ja", "ko"]
DetectedLanguage = Literal["en", "ja", "ko", "other"]
TranslationMode = Literal["partial", "committed"]


@dataclass(frozen=True)
class TranslationRequest:
    text: str
    source_lang: SourceLanguage = "auto"
    target_lang: TargetLanguage = "en"
    mode: TranslationMode = "committed"
    update_summary: bool = False
    recent: tuple[str, ...] = field(default_factory=tuple)
    summary: str = ""


@dataclass(frozen=True)
class TranslationResult:
    detected_language: DetectedLanguage
    should_ignore: bool
    translation: str
    updated_summary: str


class TranslatorPort(Protocol):
    async def translate(self, request: TranslationRequest) -> TranslationResult: ...


class ChatCompletionPort(Protocol):
    async def complete_json(
        self,
        model: str,
        temperature: float,
        messages: list[dict[str, str]],
    ) -> str: ...
