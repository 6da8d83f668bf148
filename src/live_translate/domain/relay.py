import json
import logging

from live_translate.domain.errors import UpstreamContractError
from live_translate.ports.translator import (
    ChatCompletionPort,
    TranslationRequest,
    TranslationResult,
)

logger = logging.getLogger(__name__)

SUMMARY_MAX_CHARS = 800
SUPPORTED_LANGUAGES = ("en", "ja", "ko")

COMMITTED_TEMPERATURE = 0.2
PARTIAL_TEMPERATURE = 0.1

SYSTEM_INSTRUCTION = """
You are a real-time interpreter used inside business meetings and customer support chat.

Goals:
- Translate faithfully, quickly, and clearly.
- Preserve proper nouns, product names, URLs, numbers, units, and formatting.
- Prefer concise, business-appropriate phrasing.
- If the target language is English, use professional tone; if Japanese, use polite business Japanese; if Korean, use natural business Korean.

Input language gating:
- If sourceLang is NOT "auto", only accept that language.
- If the text is primarily in a different language, set shouldIgnore=true and translation="".

Context:
- You receive a compact running summary plus a few recent committed segments.
- Use them to resolve ambiguous references and maintain consistency.
- Keep updatedSummary short (<= 800 characters), capturing key entities, decisions, and terminology.

Output MUST be a JSON object with fields:
detectedLanguage: "en" | "ja" | "ko" | "other"
shouldIgnore: boolean
translation: string
updatedSummary: string
""".strip()

PARTIAL_PREAMBLE = (
    "Translate quickly for the following JSON payload. Do NOT expand summary. "
    "If updateSummary=false, keep updatedSummary identical to the input summary.\n\n"
)
COMMITTED_PREAMBLE = (
    "Translate and update summary for the following JSON payload. "
    "If updateSummary=false, keep updatedSummary identical to the input summary.\n\n"
)


class TranslationRelay:
    def __init__(
        self,
        chat: ChatCompletionPort,
        model: str = "gpt-4.1-mini",
        partial_model: str = "gpt-4.1-nano",
    ) -> None:
        self._chat = chat
        self._model = model
        self._partial_model = partial_model

    def model_for(self, mode: str) -> str:
        return self._partial_model if mode == "partial" else self._model

    async def translate(self, request: TranslationRequest) -> TranslationResult:
        text = (request.text or "").strip()
        if not text:
            return TranslationResult(
                detected_language="other",
                should_ignore=False,
                translation="",
                updated_summary=request.summary or "",
            )

        mode = "partial" if request.mode == "partial" else "committed"
        model = self.model_for(mode)
        temperature = PARTIAL_TEMPERATURE if mode == "partial" else COMMITTED_TEMPERATURE

        logger.debug("Translate (%s, model=%s): %s", mode, model, text[:60])
        content = await self._chat.complete_json(
            model=model,
            temperature=temperature,
            messages=build_messages(request, text, mode),
        )
        return parse_model_output(content, request.summary or "")


def build_messages(request: TranslationRequest, text: str, mode: str) -> list[dict[str, str]]:
    payload = json.dumps(
        {
            "sourceLang": request.source_lang,
            "targetLang": request.target_lang,
            "text": text,
            "mode": mode,
            "updateSummary": bool(request.update_summary),
            "summary": request.summary or "",
            "recent": list(request.recent),
        },
        ensure_ascii=False,
        indent=2,
    )
    preamble = PARTIAL_PREAMBLE if mode == "partial" else COMMITTED_PREAMBLE
    return [
        {"role": "system", "content": SYSTEM_INSTRUCTION},
        {"role": "user", "content": preamble + payload},
    ]


def parse_model_output(content: str | None, input_summary: str) -> TranslationResult:
    if not content or not isinstance(content, str):
        raise UpstreamContractError("Model response missing content.")

    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as exc:
        raise UpstreamContractError("Model response was not valid JSON.", raw=content) from exc

    if not isinstance(parsed, dict):
        raise UpstreamContractError("Model response was not a JSON object.", raw=content)

    translation = parsed.get("translation")
    if not isinstance(translation, str):
        raise UpstreamContractError("Model response missing translation.", raw=content)

    detected = parsed.get("detectedLanguage")
    if detected not in SUPPORTED_LANGUAGES:
        detected = "other"

    updated_summary = parsed.get("updatedSummary")
    if not isinstance(updated_summary, str):
        updated_summary = input_summary

    return TranslationResult(
        detected_language=detected,
        should_ignore=bool(parsed.get("shouldIgnore")),
        translation=translation,
        updated_summary=updated_summary[:SUMMARY_MAX_CHARS],
    )
