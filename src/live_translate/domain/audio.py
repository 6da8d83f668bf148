import numpy as np

TARGET_SAMPLE_RATE = 16000
BYTES_PER_SAMPLE = 2

NEGATIVE_SCALE = 0x8000
POSITIVE_SCALE = 0x7FFF


def float_to_pcm16(samples: np.ndarray) -> np.ndarray:
    clamped = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(clamped < 0, clamped * NEGATIVE_SCALE, clamped * POSITIVE_SCALE)
    return np.trunc(scaled).astype(np.int16)


def resample_to_pcm16(
    samples: np.ndarray,
    input_sample_rate: int,
    output_sample_rate: int = TARGET_SAMPLE_RATE,
) -> np.ndarray:
    samples = np.asarray(samples, dtype=np.float64).reshape(-1)
    if samples.size == 0:
        return np.zeros(0, dtype=np.int16)

    if input_sample_rate == output_sample_rate:
        return float_to_pcm16(samples)

    ratio = input_sample_rate / output_sample_rate
    output_length = int(np.floor(samples.size / ratio + 0.5))

    positions = np.arange(output_length) * ratio
    indices = np.floor(positions).astype(np.int64)
    fractions = positions - indices

    last_index = samples.size - 1
    s0 = samples[np.minimum(indices, last_index)]
    s1 = samples[np.minimum(indices + 1, last_index)]
    return float_to_pcm16(s0 + (s1 - s0) * fractions)
