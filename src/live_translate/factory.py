import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from live_translate.adapters.browser_audio import BrowserCapture
from live_translate.adapters.elevenlabs_realtime import ElevenLabsRealtimeTranscriber
from live_translate.adapters.elevenlabs_token import ElevenLabsTokenClient
from live_translate.adapters.openai_chat import OpenAIChatCompletion
from live_translate.adapters.preferences import PreferencesStore
from live_translate.adapters.wav_recorder import WavRecorder
from live_translate.config import LiveTranslateConfig
from live_translate.domain.errors import ConfigurationError
from live_translate.domain.relay import TranslationRelay
from live_translate.domain.session import LiveSession, ScribeTuning
from live_translate.ports.audio import AudioCapturePort, AudioRecorderPort
from live_translate.ports.transcriber import TokenMinterPort
from live_translate.ports.translator import TranslatorPort

logger = logging.getLogger(__name__)


def create_token_minter(config: LiveTranslateConfig, api_key: str) -> TokenMinterPort:
    return ElevenLabsTokenClient(api_key=api_key, base_url=config.elevenlabs_api_url)


def create_translator(config: LiveTranslateConfig, api_key: str) -> TranslatorPort:
    chat = OpenAIChatCompletion(
        api_key=api_key,
        base_url=config.openai_base_url,
        timeout=config.translate_timeout_seconds,
    )
    return TranslationRelay(
        chat=chat,
        model=config.openai_model,
        partial_model=config.openai_model_partial,
    )


def create_preferences(config: LiveTranslateConfig) -> PreferencesStore:
    return PreferencesStore(path=config.preferences_path)


def create_tuning(config: LiveTranslateConfig) -> ScribeTuning:
    return ScribeTuning(
        model_id=config.scribe_model_id,
        commit_strategy=config.commit_strategy,
        vad_silence_threshold_secs=config.vad_silence_threshold_secs,
        vad_threshold=config.vad_threshold,
        min_speech_duration_ms=config.min_speech_duration_ms,
        min_silence_duration_ms=config.min_silence_duration_ms,
        include_timestamps=config.include_timestamps,
    )


def create_capture_factory(
    config: LiveTranslateConfig, browser_capture: BrowserCapture
) -> Callable[[], AudioCapturePort]:
    if config.capture_source == "browser":
        return lambda: browser_capture

    def sounddevice_capture() -> AudioCapturePort:
        from live_translate.adapters.sounddevice_audio import SounddeviceCapture

        return SounddeviceCapture(device=config.capture_device or None)

    return sounddevice_capture


def create_recorder_factory(
    config: LiveTranslateConfig,
) -> Callable[[], AudioRecorderPort | None] | None:
    if not config.record_dir:
        return None
    record_dir = Path(config.record_dir).expanduser()

    def recorder() -> AudioRecorderPort:
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        return WavRecorder(record_dir / f"session-{stamp}.wav")

    return recorder


class KeyedCache:
    """Rebuilds an upstream client only when the effective API key changes."""

    def __init__(self, build: Callable[[str], object], missing_message: str) -> None:
        self._build = build
        self._missing_message = missing_message
        self._key: str | None = None
        self._client: object | None = None

    def get(self, api_key: str):
        if not api_key:
            raise ConfigurationError(self._missing_message)
        if api_key != self._key:
            self._client = self._build(api_key)
            self._key = api_key
        return self._client


def create_session(
    config: LiveTranslateConfig,
    preferences: PreferencesStore,
    browser_capture: BrowserCapture,
) -> LiveSession:
    minters = KeyedCache(lambda key: create_token_minter(config, key), "Missing ELEVENLABS_API_KEY.")
    translators = KeyedCache(lambda key: create_translator(config, key), "Missing OPENAI_API_KEY.")

    def token_minter() -> TokenMinterPort:
        return minters.get(config.elevenlabs_key() or preferences.load().elevenlabs_api_key)

    def translator() -> TranslatorPort:
        return translators.get(config.openai_key() or preferences.load().openai_api_key)

    prefs = preferences.load()
    session = LiveSession(
        token_minter=token_minter,
        transcriber=ElevenLabsRealtimeTranscriber(url=config.elevenlabs_realtime_url),
        translator=translator,
        capture_factory=create_capture_factory(config, browser_capture),
        recorder_factory=create_recorder_factory(config),
        tuning=create_tuning(config),
        capture_mode=config.capture_source,
        debounce_seconds=config.partial_debounce_seconds,
    )
    session.configure(prefs.input_language, prefs.output_language)
    logger.info(
        "Session ready (capture=%s, input=%s, output=%s)",
        config.capture_source,
        prefs.input_language,
        prefs.output_language,
    )
    return session
