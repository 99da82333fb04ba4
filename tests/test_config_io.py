import numpy as np
import pytest

from source_mc.config import SourceConfig, load_config, save_config
from source_mc.core.errors import ConfigError
from source_mc.generator.engine import SourceGenerator
from source_mc.io import load_states, save_states


CONFIG_YAML = """
geometry:
  air_size_m: [100.0, 100.0, 50.0]
  ground_thickness_m: 0.5
  detector_size_m: [4.0, 4.0, 2.0]
spectrum:
  - [0.662, 85.1]
  - [1.173, 99.85]
  - [1.332, 99.98]
sampling:
  alpha: 0.25
  seed: 17
"""


class TestConfig:
    """YAML configuration"""

    def test_defaults(self):
        config = SourceConfig()
        extents = config.build_extents()
        assert extents.air_size.tolist() == [2000.0, 2000.0, 1000.0]
        assert len(config.build_spectrum()) == 15

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "source.yaml"
        path.write_text(CONFIG_YAML)
        config = load_config(path)

        assert config.air_size_m == (100.0, 100.0, 50.0)
        assert config.clearance_m == 0.05
        assert config.alpha == 0.25
        assert config.seed == 17
        assert config.build_spectrum().energies.tolist() == [0.662, 1.173, 1.332]

    def test_generator_from_yaml(self, tmp_path):
        path = tmp_path / "source.yaml"
        path.write_text(CONFIG_YAML)
        a = SourceGenerator.from_yaml(path).sample_forward(20)
        b = SourceGenerator.from_yaml(path).sample_forward(20)
        assert np.array_equal(a.states, b.states)
        assert set(np.unique(a.energies)) <= {0.662, 1.173, 1.332}

    def test_save_and_reload(self, tmp_path):
        config = SourceConfig(detector_size_m=(10.0, 10.0, 5.0), alpha=0.7,
                              spectrum=[(1.0, 1.0)])
        path = tmp_path / "out" / "source.yaml"
        save_config(config, path)
        assert load_config(path) == config

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == SourceConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    @pytest.mark.parametrize("text", [
        "detector: {}",
        "geometry: {size: 3}",
        "geometry: {air_size_m: [1.0, 2.0]}",
        "spectrum: [[1.0]]",
        "geometry: [1, 2]",
        "- just\n- a list",
        "geometry: {air_size_m: [1, 2",
        "geometry: {ground_thickness_m: thick}",
        "sampling: {seed: 1.5}",
    ])
    def test_malformed(self, tmp_path, text):
        path = tmp_path / "bad.yaml"
        path.write_text(text)
        with pytest.raises(ConfigError):
            load_config(path)


class TestHDF5:
    """Batch export"""

    def test_backward_batch(self, tmp_path, small_extents, two_lines):
        generator = SourceGenerator(small_extents, two_lines, seed=4)
        batch, source_energies = generator.sample_backward(0.5, 64)
        path = tmp_path / "states.h5"
        save_states(path, batch, generator, source_energies, alpha=0.5)

        states, energies, attrs = load_states(path)
        assert np.array_equal(states.states, batch.states)
        assert np.array_equal(energies, source_energies)
        assert attrs["mode"] == "backward"
        assert attrs["alpha"] == 0.5
        assert attrs["source_volume_cm3"] == pytest.approx(504.0e6)

    def test_forward_batch(self, tmp_path, small_extents, two_lines):
        generator = SourceGenerator(small_extents, two_lines, seed=4)
        batch = generator.sample_forward(16)
        path = tmp_path / "forward.h5"
        save_states(path, batch, generator)

        states, energies, attrs = load_states(path)
        assert energies is None
        assert attrs["mode"] == "forward"
        assert attrs["n_states"] == 16

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_states(tmp_path / "none.h5")
