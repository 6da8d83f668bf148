from dataclasses import dataclass
from typing import Protocol, AsyncIterator

import numpy as np


@dataclass(frozen=True)
class AudioBlock:
    samples: np.ndarray
    sample_rate: int


class AudioCapturePort(Protocol):
    async def start(self) -> None: ...
    def blocks(self) -> AsyncIterator[AudioBlock]: ...
    async def stop(self) -> None: ...


class AudioRecorderPort(Protocol):
    def write(self, pcm: bytes) -> None: ...
    def close(self) -> None: ...
