"""PCM16 audio helpers."""

from __future__ import annotations

import io
import wave
from pathlib import Path
from typing import Iterator, Tuple

import numpy as np

BYTES_PER_SAMPLE = 2
SPEECH_RMS_THRESHOLD = 0.015


def pcm16_to_float(chunk: bytes) -> np.ndarray:
    """Decode little-endian PCM16 bytes into float samples in ``[-1, 1)``.

    A trailing odd byte is ignored.
    """

    usable = len(chunk) - (len(chunk) % BYTES_PER_SAMPLE)
    samples = np.frombuffer(chunk[:usable], dtype="<i2").astype(np.float64)
    return samples / 32768.0


def float_to_pcm16(data: np.ndarray) -> bytes:
    clipped = np.clip(np.asarray(data, dtype=np.float64), -1.0, 1.0)
    return (clipped * 32767.0).astype("<i2").tobytes()


def chunk_duration_ms(byte_count: int, sample_rate: int) -> int:
    """Duration of a PCM16 mono buffer, at least 1ms when it holds a sample."""

    sample_count = byte_count // BYTES_PER_SAMPLE
    if sample_count <= 0:
        return 0
    sample_rate = max(sample_rate, 1)
    return max(1, int(sample_count / sample_rate * 1000))


def rms(chunk: bytes) -> float:
    samples = pcm16_to_float(chunk)
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(samples))))


def is_speech(chunk: bytes, threshold: float = SPEECH_RMS_THRESHOLD) -> bool:
    if not chunk:
        return False
    return rms(chunk) >= threshold


def pcm16_to_wav_bytes(pcm: bytes, sample_rate: int) -> bytes:
    """Wrap raw mono PCM16 in a WAV container for upload."""

    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(BYTES_PER_SAMPLE)
        wf.setframerate(max(sample_rate, 1))
        wf.writeframes(pcm)
    return buffer.getvalue()


def read_wave_pcm16(path: Path) -> Tuple[bytes, int]:
    """Load a PCM16 WAV file as mono PCM16 bytes, downmixing if needed."""

    with wave.open(str(path), "rb") as wf:
        channels = wf.getnchannels()
        sample_width = wf.getsampwidth()
        sample_rate = wf.getframerate()
        frames = wf.readframes(wf.getnframes())
    if sample_width != BYTES_PER_SAMPLE:
        raise ValueError(f"Expected 16-bit PCM audio, got {sample_width * 8}-bit")
    if channels <= 1:
        return frames, sample_rate
    data = np.frombuffer(frames, dtype="<i2").reshape(-1, channels)
    mono = data.mean(axis=1).round().astype("<i2")
    return mono.tobytes(), sample_rate


def iter_pcm_chunks(pcm: bytes, sample_rate: int, chunk_ms: int) -> Iterator[bytes]:
    """Yield consecutive chunks of ``chunk_ms`` milliseconds; the last may be shorter."""

    samples_per_chunk = max(1, int(max(sample_rate, 1) * max(chunk_ms, 1) / 1000))
    step = samples_per_chunk * BYTES_PER_SAMPLE
    for offset in range(0, len(pcm), step):
        yield pcm[offset : offset + step]


__all__ = [
    "BYTES_PER_SAMPLE",
    "SPEECH_RMS_THRESHOLD",
    "chunk_duration_ms",
    "float_to_pcm16",
    "is_speech",
    "iter_pcm_chunks",
    "pcm16_to_float",
    "pcm16_to_wav_bytes",
    "read_wave_pcm16",
    "rms",
]
