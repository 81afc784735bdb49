import numpy as np
import pytest

from parametric_eq.audio_engine import EqualizerConfig, EqualizerEngine
from parametric_eq.output_manager import SequentialIds
from parametric_eq.pcm_codec import encode


@pytest.fixture
def write_wav(tmp_path):
    def _write(samples, name="input.wav"):
        path = tmp_path / name
        path.write_bytes(encode(np.asarray(samples, dtype=np.float64)))
        return path

    return _write


@pytest.fixture
def out_dir(tmp_path):
    return tmp_path / "out"


@pytest.fixture
def engine(out_dir):
    config = EqualizerConfig(output_dir=str(out_dir))
    return EqualizerEngine(config, id_generator=SequentialIds())
