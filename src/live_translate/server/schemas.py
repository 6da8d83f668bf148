from pydantic import BaseModel, ConfigDict, Field

from live_translate.ports.translator import (
    DetectedLanguage,
    SourceLanguage,
    TargetLanguage,
    TranslationMode,
    TranslationRequest,
    TranslationResult,
)


class TranslateBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    text: str = ""
    source_lang: SourceLanguage = Field(default="auto", alias="sourceLang")
    target_lang: TargetLanguage = Field(default="en", alias="targetLang")
    mode: TranslationMode = "committed"
    update_summary: bool = Field(default=False, alias="updateSummary")
    recent: list[str] = Field(default_factory=list)
    summary: str = ""

    def to_request(self) -> TranslationRequest:
        return TranslationRequest(
            text=self.text,
            source_lang=self.source_lang,
            target_lang=self.target_lang,
            mode=self.mode,
            update_summary=self.update_summary,
            recent=tuple(self.recent),
            summary=self.summary,
        )


class TranslateResponse(BaseModel):
    detectedLanguage: DetectedLanguage
    shouldIgnore: bool
    translation: str
    updatedSummary: str

    @classmethod
    def from_result(cls, result: TranslationResult) -> "TranslateResponse":
        return cls(
            detectedLanguage=result.detected_language,
            shouldIgnore=result.should_ignore,
            translation=result.translation,
            updatedSummary=result.updated_summary,
        )


class TokenResponse(BaseModel):
    token: str


class PreferencesBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    input_language: SourceLanguage | None = Field(default=None, alias="lt.inputLang")
    output_language: TargetLanguage | None = Field(default=None, alias="lt.targetLang")
    elevenlabs_api_key: str | None = Field(default=None, alias="lt.elevenlabsKey")
    openai_api_key: str | None = Field(default=None, alias="lt.openaiKey")

    def changes(self) -> dict[str, str]:
        return {key: value for key, value in self.model_dump().items() if value is not None}
