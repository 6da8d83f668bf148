import logging
import wave
from pathlib import Path

logger = logging.getLogger(__name__)


class WavRecorder:
    """Writes the exact PCM16 mono stream that was sent upstream."""

    def __init__(self, path: str | Path, sample_rate: int = 16000) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._wav = wave.open(str(self._path), "wb")
        self._wav.setnchannels(1)
        self._wav.setsampwidth(2)
        self._wav.setframerate(sample_rate)
        self._bytes_written = 0
        logger.info("Recording session audio to %s", self._path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def bytes_written(self) -> int:
        return self._bytes_written

    def write(self, pcm: bytes) -> None:
        if self._wav is None or not pcm:
            return
        self._wav.writeframes(pcm)
        self._bytes_written += len(pcm)

    def close(self) -> None:
        if self._wav is None:
            return
        self._wav.close()
        self._wav = None
        logger.info("Recording closed (%d bytes)", self._bytes_written)
