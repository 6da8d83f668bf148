import asyncio
import logging
from collections.abc import Callable

from live_translate.domain.relay import SUMMARY_MAX_CHARS
from live_translate.domain.transcript import TranscriptHistory, TranscriptLine, TranslationHistory
from live_translate.ports.translator import (
    SourceLanguage,
    TargetLanguage,
    TranslationRequest,
    TranslatorPort,
)

logger = logging.getLogger(__name__)

PARTIAL_DEBOUNCE_SECONDS = 0.9
MIN_PARTIAL_GROWTH_CHARS = 6
SUMMARY_UPDATE_EVERY = 4
COMMITTED_CONTEXT_LINES = 8
PARTIAL_CONTEXT_LINES = 3


class TranslationPolicy:
    def __init__(
        self,
        translator: TranslatorPort,
        transcripts: TranscriptHistory,
        translations: TranslationHistory,
        on_change: Callable[[], None] | None = None,
        on_error: Callable[[str], None] | None = None,
        debounce_seconds: float = PARTIAL_DEBOUNCE_SECONDS,
    ) -> None:
        self._translator = translator
        self._transcripts = transcripts
        self._translations = translations
        self._on_change = on_change
        self._on_error = on_error
        self._debounce_seconds = debounce_seconds

        self._input_language: SourceLanguage = "auto"
        self._output_language: TargetLanguage = "en"
        self._summary = ""
        self._partial_translation = ""
        self._translated_ids: set[str] = set()
        self._committed_tasks: set[asyncio.Task] = set()
        self._partial_task: asyncio.Task | None = None
        self._partial_seq = 0
        self._last_partial_sent = ""
        self._epoch = 0

    @property
    def input_language(self) -> SourceLanguage:
        return self._input_language

    @property
    def output_language(self) -> TargetLanguage:
        return self._output_language

    @property
    def summary(self) -> str:
        return self._summary

    @property
    def partial_translation(self) -> str:
        return self._partial_translation

    @property
    def partial_in_flight(self) -> bool:
        return self._partial_task is not None and not self._partial_task.done()

    @property
    def pending_committed(self) -> int:
        return len(self._committed_tasks)

    def set_languages(self, input_language: SourceLanguage, output_language: str) -> None:
        self._input_language = input_language
        self._output_language = "en" if output_language == "auto" else output_language

    def should_mirror(self) -> bool:
        return self._input_language != "auto" and self._input_language == self._output_language

    def clear_summary(self) -> None:
        self._summary = ""
        self._notify()

    def on_committed(self) -> None:
        lines = self._transcripts.committed
        if not lines:
            return
        last = lines[-1]
        if last.id in self._translated_ids:
            return
        self._translated_ids.add(last.id)

        if self.should_mirror():
            self._translations.append(last, last.text)
            self._notify()
            return

        update_summary = not self._summary or len(lines) % SUMMARY_UPDATE_EVERY == 0
        request = TranslationRequest(
            text=last.text,
            source_lang=self._input_language,
            target_lang=self._output_language,
            mode="committed",
            update_summary=update_summary,
            recent=tuple(self._transcripts.recent_texts(COMMITTED_CONTEXT_LINES)),
            summary=self._summary,
        )
        task = asyncio.create_task(self._translate_committed(last, request, self._epoch))
        self._committed_tasks.add(task)
        task.add_done_callback(self._committed_tasks.discard)

    def on_partial(self, text: str, connected: bool) -> None:
        text = (text or "").strip()
        self._cancel_partial()
        if not connected or not text:
            self._set_partial_translation("")
            return
        self._partial_task = asyncio.create_task(self._debounced_partial(text))

    def cancel(self) -> None:
        self._cancel_partial()
        self._set_partial_translation("")

    def reset(self) -> None:
        self._epoch += 1
        self._cancel_partial()
        self._translated_ids.clear()
        self._translations.clear()
        self._last_partial_sent = ""
        self._partial_translation = ""
        self._notify()

    async def wait_idle(self) -> None:
        tasks = list(self._committed_tasks)
        if self._partial_task is not None:
            tasks.append(self._partial_task)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _translate_committed(
        self, line: TranscriptLine, request: TranslationRequest, epoch: int
    ) -> None:
        try:
            result = await self._translator.translate(request)
        except Exception as exc:
            logger.warning("Committed translation failed: %s", exc)
            if epoch != self._epoch:
                return
            if self._on_error:
                self._on_error(str(exc) or "Translation request failed.")
            return

        if epoch != self._epoch:
            logger.debug("Discarding translation for %s after reset", line.id)
            return

        if request.update_summary and result.updated_summary:
            self._summary = result.updated_summary[:SUMMARY_MAX_CHARS]

        translated_text = (result.translation or "").strip()
        if result.should_ignore or not translated_text:
            self._notify()
            return

        self._translations.append(line, translated_text)
        logger.info("Translation: %s", translated_text)
        self._notify()

    async def _debounced_partial(self, text: str) -> None:
        try:
            await asyncio.sleep(self._debounce_seconds)

            previous = self._last_partial_sent
            if (
                previous
                and text.startswith(previous)
                and len(text) - len(previous) < MIN_PARTIAL_GROWTH_CHARS
            ):
                return
            self._last_partial_sent = text

            self._partial_seq += 1
            seq = self._partial_seq

            if self.should_mirror():
                self._set_partial_translation(text)
                return

            request = TranslationRequest(
                text=text,
                source_lang=self._input_language,
                target_lang=self._output_language,
                mode="partial",
                update_summary=False,
                recent=tuple(self._transcripts.recent_texts(PARTIAL_CONTEXT_LINES)),
                summary="",
            )
            try:
                result = await self._translator.translate(request)
            except Exception:
                logger.debug("Partial translation failed", exc_info=True)
                return

            if seq != self._partial_seq:
                logger.debug("Discarding superseded partial translation (seq=%d)", seq)
                return

            if result.should_ignore:
                self._set_partial_translation("")
            else:
                partial = (result.translation or "").strip()
                logger.debug("Partial: %s", partial)
                self._set_partial_translation(partial)
        except asyncio.CancelledError:
            pass

    def _cancel_partial(self) -> None:
        self._partial_seq += 1
        if self._partial_task and not self._partial_task.done():
            if self._partial_task is not asyncio.current_task():
                self._partial_task.cancel()
        self._partial_task = None

    def _set_partial_translation(self, text: str) -> None:
        if text == self._partial_translation:
            return
        self._partial_translation = text
        self._notify()

    def _notify(self) -> None:
        if self._on_change:
            self._on_change()
