from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LiveTranslateConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LIVE_TRANSLATE_", populate_by_name=True)

    host: str = "127.0.0.1"
    port: int = 8787

    elevenlabs_api_key: str = Field(default="", validation_alias="ELEVENLABS_API_KEY")
    elevenlabs_api_key_file: str = ""
    elevenlabs_api_url: str = "https://api.elevenlabs.io"
    elevenlabs_realtime_url: str = "wss://api.elevenlabs.io/v1/speech-to-text/realtime"

    openai_api_key: str = Field(default="", validation_alias="OPENAI_API_KEY")
    openai_api_key_file: str = ""
    openai_base_url: str | None = None
    openai_model: str = Field(default="gpt-4.1-mini", validation_alias="OPENAI_MODEL")
    openai_model_partial: str = Field(default="gpt-4.1-nano", validation_alias="OPENAI_MODEL_PARTIAL")
    translate_timeout_seconds: float = 30.0

    scribe_model_id: str = "scribe_v2_realtime"
    commit_strategy: Literal["manual", "vad"] = "vad"
    vad_silence_threshold_secs: float = 1.0
    vad_threshold: float | None = None
    min_speech_duration_ms: int = 250
    min_silence_duration_ms: int = 700
    include_timestamps: bool = False

    partial_debounce_seconds: float = 0.9

    capture_source: Literal["browser", "sounddevice"] = "browser"
    capture_device: str = ""

    record_dir: str = ""
    preferences_path: str = "~/.config/live-translate/preferences.json"

    def read_secret(self, path: str) -> str:
        if not path:
            return ""
        try:
            with open(path) as f:
                return f.read().strip()
        except FileNotFoundError:
            return ""

    def elevenlabs_key(self) -> str:
        return self.elevenlabs_api_key or self.read_secret(self.elevenlabs_api_key_file)

    def openai_key(self) -> str:
        return self.openai_api_key or self.read_secret(self.openai_api_key_file)
