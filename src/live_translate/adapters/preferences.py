import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import get_args

from live_translate.ports.translator import SourceLanguage, TargetLanguage

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES_PATH = Path.home() / ".config" / "live-translate" / "preferences.json"

INPUT_LANG_KEY = "lt.inputLang"
TARGET_LANG_KEY = "lt.targetLang"
ELEVENLABS_KEY_KEY = "lt.elevenlabsKey"
OPENAI_KEY_KEY = "lt.openaiKey"


@dataclass(frozen=True)
class Preferences:
    input_language: SourceLanguage = "auto"
    output_language: TargetLanguage = "en"
    elevenlabs_api_key: str = ""
    openai_api_key: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            INPUT_LANG_KEY: self.input_language,
            TARGET_LANG_KEY: self.output_language,
            ELEVENLABS_KEY_KEY: self.elevenlabs_api_key,
            OPENAI_KEY_KEY: self.openai_api_key,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Preferences":
        defaults = cls()
        input_language = data.get(INPUT_LANG_KEY)
        if input_language not in get_args(SourceLanguage):
            input_language = defaults.input_language
        output_language = data.get(TARGET_LANG_KEY)
        if output_language not in get_args(TargetLanguage):
            output_language = defaults.output_language
        return cls(
            input_language=input_language,
            output_language=output_language,
            elevenlabs_api_key=_string(data.get(ELEVENLABS_KEY_KEY)),
            openai_api_key=_string(data.get(OPENAI_KEY_KEY)),
        )


def _string(value: object) -> str:
    return value.strip() if isinstance(value, str) else ""


class PreferencesStore:
    """Best-effort JSON persistence: unreadable files load as defaults, failed writes are logged."""

    def __init__(self, path: str | Path = DEFAULT_PREFERENCES_PATH) -> None:
        self._path = Path(path).expanduser()
        self._current: Preferences | None = None

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Preferences:
        if self._current is not None:
            return self._current
        try:
            data = json.loads(self._path.read_text())
        except FileNotFoundError:
            data = {}
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable preferences at %s: %s", self._path, exc)
            data = {}
        self._current = Preferences.from_dict(data if isinstance(data, dict) else {})
        return self._current

    def update(self, **changes: str) -> Preferences:
        merged = Preferences.from_dict(replace(self.load(), **changes).to_dict())
        self._current = merged
        self._save(merged)
        return merged

    def _save(self, preferences: Preferences) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(preferences.to_dict(), indent=2))
        except OSError as exc:
            logger.warning("Could not save preferences to %s: %s", self._path, exc)
