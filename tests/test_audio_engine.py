import os
import re
import time

import numpy as np
import pytest
import soundfile as sf

from parametric_eq.audio_engine import EqualizerConfig, EqualizerEngine
from parametric_eq.bands import BAND_ORDER, GainRequest
from parametric_eq.dsp_utils import peak, rms
from parametric_eq.errors import DecodeError, EncodeError, InvalidGainError, MissingInputError
from parametric_eq.pcm_codec import decode
from parametric_eq.system_utils import TestSuite

QUANT = 1.0 / 32768.0


def _decoded(path):
    return decode(path.read_bytes())


def test_apply_writes_new_container(engine, write_wav, out_dir):
    path = write_wav(TestSuite.generate_example(seconds=0.2), name="song.wav")
    result = engine.apply_eq(path, {"bass": 3.0, "treble": -2.0})

    assert result.applied
    assert result.error is None
    assert result.bands == ["bass", "treble"]
    assert result.output_path.parent == out_dir
    assert re.fullmatch(r"song_processed_\d+_00000001\.wav", result.output_path.name)
    assert sf.info(str(result.output_path)).samplerate == 44100
    assert _decoded(result.output_path).size == _decoded(path).size


def test_zero_gain_is_a_no_op(engine, write_wav):
    path = write_wav(TestSuite.generate_example(seconds=0.2, freq=440.0))
    result = engine.apply_eq(path, {name: 0.0 for name in BAND_ORDER})
    assert result.applied
    assert result.bands == []
    assert np.max(np.abs(_decoded(result.output_path) - _decoded(path))) <= 2 * QUANT


def test_silence_in_silence_out(engine, write_wav):
    path = write_wav(np.zeros(4410))
    result = engine.apply_eq(path, {"bass": 12.0, "mid": 18.0, "treble": -6.0})
    assert not _decoded(result.output_path).any()


def test_out_of_range_gain_writes_nothing(engine, write_wav, out_dir):
    path = write_wav(TestSuite.generate_example(seconds=0.1))
    with pytest.raises(InvalidGainError) as info:
        engine.apply_eq(path, {"bass": 25.0})
    assert info.value.band == "bass"
    assert info.value.value == 25.0
    assert not out_dir.exists()


def test_invalid_gain_is_raised_even_in_fallback_mode(engine, write_wav, out_dir):
    path = write_wav(TestSuite.generate_example(seconds=0.1))
    with pytest.raises(InvalidGainError):
        engine.apply_eq(path, {"mid": {"level": 3}}, fallback=True)
    assert not out_dir.exists()


def test_missing_input(engine, tmp_path):
    with pytest.raises(MissingInputError):
        engine.apply_eq(tmp_path / "nope.wav", {"bass": 1.0})


def test_clip_safety():
    engine = EqualizerEngine(EqualizerConfig())
    audio = TestSuite.generate_example(seconds=0.5, amplitude=0.95)
    engine.process(audio, GainRequest({"bass": 18.0, "low_mid": 18.0}))
    assert peak(audio) <= 0.99
    assert TestSuite.assert_clip_safe(audio).ok


def test_clipped_output_file_stays_under_ceiling(engine, write_wav):
    path = write_wav(TestSuite.generate_example(seconds=0.2, amplitude=0.95))
    result = engine.apply_eq(path, {"bass": 18.0})
    assert peak(_decoded(result.output_path)) <= 0.99


def test_outputs_are_unique_for_the_same_input(tmp_path, write_wav):
    engine = EqualizerEngine(EqualizerConfig(output_dir=str(tmp_path / "out")), clock=lambda: 1700000000.0)
    path = write_wav(TestSuite.generate_example(seconds=0.05))
    first = engine.apply_eq(path, {"mid": 2.0})
    second = engine.apply_eq(path, {"mid": 2.0})
    assert first.output_path != second.output_path
    assert first.output_path.exists() and second.output_path.exists()


def test_bass_gain_moves_rms_of_low_sine():
    engine = EqualizerEngine(EqualizerConfig())
    levels = {}
    for gain in (-6.0, 0.0, 6.0):
        audio = TestSuite.generate_example(sr=44100, seconds=1.0, freq=100.0)
        engine.process(audio, GainRequest({"bass": gain, "low_mid": 0.0, "mid": 0.0, "high_mid": 0.0, "treble": 0.0}))
        levels[gain] = rms(audio)
    assert levels[6.0] > levels[0.0] > levels[-6.0]


def test_decode_failure_raises_by_default(engine, tmp_path, out_dir):
    path = tmp_path / "short.wav"
    path.write_bytes(b"RIFF1234")
    with pytest.raises(DecodeError):
        engine.apply_eq(path, {"bass": 3.0})
    assert not out_dir.exists()


def test_fallback_returns_input_unchanged(engine, tmp_path, out_dir):
    path = tmp_path / "short.wav"
    path.write_bytes(b"RIFF1234")
    result = engine.apply_eq(path, {"bass": 3.0}, fallback=True)
    assert not result.applied
    assert result.output_path == path
    assert isinstance(result.error, DecodeError)
    assert path.read_bytes() == b"RIFF1234"


def test_fallback_from_config(tmp_path):
    engine = EqualizerEngine(EqualizerConfig(output_dir=str(tmp_path / "out"), fallback_to_input=True))
    path = tmp_path / "empty.wav"
    path.write_bytes(b"")
    assert engine.apply_eq(path, {"mid": 1.0}).applied is False


def test_partial_output_is_removed(engine, write_wav, out_dir, monkeypatch):
    path = write_wav(TestSuite.generate_example(seconds=0.05))

    def half_write(target, data):
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data[: len(data) // 2])
        raise EncodeError("disk full")

    monkeypatch.setattr(engine.outputs, "write", half_write)
    with pytest.raises(EncodeError):
        engine.apply_eq(path, {"treble": 4.0})
    assert list(out_dir.glob("*.wav")) == []


def test_unexpected_errors_are_wrapped(engine, write_wav, monkeypatch):
    path = write_wav(TestSuite.generate_example(seconds=0.05))

    def boom(samples, request):
        raise RuntimeError("filter exploded")

    monkeypatch.setattr(engine.cascade, "apply", boom)
    with pytest.raises(EncodeError) as info:
        engine.apply_eq(path, {"mid": 1.0})
    assert isinstance(info.value.__cause__, RuntimeError)
    assert info.value.__suppress_context__

    result = engine.apply_eq(path, {"mid": 1.0}, fallback=True)
    assert isinstance(result.error, EncodeError)
    assert isinstance(result.error.__cause__, RuntimeError)


def test_sweep_after_apply_expires_old_outputs(tmp_path, write_wav):
    out = tmp_path / "out"
    out.mkdir()
    stale = out / "old_processed_1_deadbeef.wav"
    stale.write_bytes(b"x")
    old = time.time() - 48 * 3600
    os.utime(stale, (old, old))

    config = EqualizerConfig(output_dir=str(out), sweep_after_apply=True)
    result = EqualizerEngine(config).apply_eq(write_wav(np.zeros(100)), {"bass": 1.0})
    assert not stale.exists()
    assert result.output_path.exists()
    assert EqualizerEngine(config).processing_stats()["temp_files_count"] == 1


def test_split_channel_engine(tmp_path, write_wav):
    config = EqualizerConfig(output_dir=str(tmp_path / "out"), split_channels=True)
    path = write_wav(TestSuite.generate_example(seconds=0.1))
    result = EqualizerEngine(config).apply_eq(path, {"bass": 4.0})
    out = _decoded(result.output_path)
    assert np.array_equal(out[0::2], out[1::2])


def test_gain_request_with_string_value(engine, write_wav):
    path = write_wav(TestSuite.generate_example(seconds=0.05))
    result = engine.apply_eq(path, GainRequest({"bass": "3"}))
    assert result.applied
    assert result.bands == ["bass"]

    with pytest.raises(InvalidGainError):
        engine.apply_eq(path, GainRequest({"bass": "loud"}))
