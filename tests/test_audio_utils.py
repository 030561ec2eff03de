from pathlib import Path
import wave

import numpy as np
import pytest

from livescribe.utils.audio import (
    chunk_duration_ms,
    float_to_pcm16,
    is_speech,
    iter_pcm_chunks,
    pcm16_to_float,
    read_wave_pcm16,
    rms,
)


def _write_pcm_wave(path: Path, frames: bytes, sample_rate: int, channels: int = 1) -> None:
    with wave.open(str(path), "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(frames)


def test_chunk_duration() -> None:
    assert chunk_duration_ms(3200, 16_000) == 100
    assert chunk_duration_ms(2, 16_000) == 1
    assert chunk_duration_ms(0, 16_000) == 0
    assert chunk_duration_ms(1, 16_000) == 0
    assert chunk_duration_ms(3200, 0) == 1_600_000


def test_rms_and_speech_threshold() -> None:
    loud = float_to_pcm16(np.full(1600, 0.5))
    quiet = float_to_pcm16(np.full(1600, 0.01))

    assert rms(loud) == pytest.approx(0.5, abs=1e-3)
    assert is_speech(loud)
    assert not is_speech(quiet)
    assert not is_speech(bytes(3200))
    assert not is_speech(b"")
    assert is_speech(quiet, threshold=0.005)


def test_pcm16_decoding_ignores_trailing_byte() -> None:
    samples = pcm16_to_float(b"\x00\x80\xff\x7f\x01")

    assert samples.tolist() == pytest.approx([-1.0, 32767 / 32768])


def test_read_wave_downmixes_stereo(tmp_path: Path) -> None:
    left = np.full(100, 1000, dtype="<i2")
    right = np.full(100, 3000, dtype="<i2")
    frames = np.stack([left, right], axis=1).tobytes()
    path = tmp_path / "stereo.wav"
    _write_pcm_wave(path, frames, 22_050, channels=2)

    pcm, sample_rate = read_wave_pcm16(path)

    assert sample_rate == 22_050
    assert np.frombuffer(pcm, dtype="<i2").tolist() == [2000] * 100


def test_read_wave_rejects_non_16_bit(tmp_path: Path) -> None:
    path = tmp_path / "8bit.wav"
    with wave.open(str(path), "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(1)
        wf.setframerate(8_000)
        wf.writeframes(b"\x80" * 10)

    with pytest.raises(ValueError):
        read_wave_pcm16(path)


def test_iter_pcm_chunks_splits_on_sample_boundaries() -> None:
    pcm = bytes(range(256)) * 25  # 6400 bytes = 200ms at 16kHz

    chunks = list(iter_pcm_chunks(pcm, 16_000, 30))

    assert b"".join(chunks) == pcm
    assert all(len(chunk) % 2 == 0 for chunk in chunks)
    assert len(chunks[0]) == 960
