"""
Unit tests for data generation module.

Run with: python -m pytest data_generation/tests/test_generation.py -v
"""

import math

import pytest
import torch
import numpy as np

from data_generation.config import DiffusionConfig
from data_generation.generate_dataset import (
    generate_dataset,
    load_dataset_h5,
    load_dataset_npz,
    main,
    random_initial_condition,
    save_dataset_h5,
    save_dataset_npz,
    solve_heat,
)


@pytest.fixture
def config():
    """Default test configuration."""
    return DiffusionConfig(grid_size=32, num_modes=6, seed=42)


class TestConfig:
    """Tests for configuration module."""

    def test_default_config(self):
        config = DiffusionConfig()
        assert config.grid_size == 64
        assert config.diffusivity == 0.01

    def test_config_validation(self):
        config = DiffusionConfig(grid_size=32, num_modes=16)
        assert config.num_modes == 16

        # Invalid: non-positive diffusivity
        with pytest.raises(AssertionError):
            DiffusionConfig(diffusivity=0.0)

        # Invalid: more modes than the grid resolves
        with pytest.raises(AssertionError):
            DiffusionConfig(grid_size=16, num_modes=9)

    def test_yaml_roundtrip(self, tmp_path):
        config = DiffusionConfig(grid_size=48, diffusivity=0.05, seed=123)
        yaml_path = tmp_path / "config.yaml"

        config.to_yaml(str(yaml_path))
        loaded = DiffusionConfig.from_yaml(str(yaml_path))

        assert loaded == config

    def test_coordinates(self, config):
        x = config.get_coordinates()
        assert x.shape == (32,)
        assert x[0] == 0.0
        assert x[-1] < 1.0


class TestInitialCondition:

    def test_shape_and_dtype(self, config):
        u0 = random_initial_condition(config)
        assert u0.shape == (config.grid_size,)
        assert u0.dtype == torch.float32

    def test_band_limited(self, config):
        u0 = random_initial_condition(config, seed=1)
        u_hat = torch.fft.rfft(u0)
        assert u_hat[config.num_modes + 1:].abs().max() < 1e-4
        assert u_hat[1:config.num_modes + 1].abs().max() > 1e-2

    def test_reproducibility(self, config):
        assert torch.allclose(random_initial_condition(config, seed=5),
                              random_initial_condition(config, seed=5))
        assert not torch.allclose(random_initial_condition(config, seed=5),
                                  random_initial_condition(config, seed=6))


class TestHeatSolver:

    def test_zero_time_is_identity(self):
        config = DiffusionConfig(grid_size=32, final_time=0.0, dtype="float64")
        u0 = random_initial_condition(config)
        assert torch.allclose(solve_heat(u0, config), u0, atol=1e-12)

    def test_single_mode_decay(self):
        config = DiffusionConfig(grid_size=64, diffusivity=0.01, final_time=0.5, dtype="float64")
        x = config.get_coordinates()
        u0 = torch.sin(2 * math.pi * 3 * x)
        expected = math.exp(-0.01 * (2 * math.pi * 3) ** 2 * 0.5) * u0
        assert torch.allclose(solve_heat(u0, config), expected, atol=1e-12)

    def test_mean_conserved(self, config):
        u0 = random_initial_condition(config)
        assert torch.isclose(solve_heat(u0, config).mean(), u0.mean(), atol=1e-5)

    def test_batched(self, config):
        u0 = torch.stack([random_initial_condition(config, seed=s) for s in range(3)])
        uT = solve_heat(u0, config)
        assert uT.shape == u0.shape
        assert torch.allclose(uT[1], solve_heat(u0[1], config), atol=1e-6)


class TestDataset:

    def test_shapes(self, config):
        x, y = generate_dataset(5, config)
        assert x.shape == (5, 2, config.grid_size)
        assert y.shape == (5, 1, config.grid_size)
        assert x.dtype == np.float32
        np.testing.assert_allclose(x[:, 0], np.broadcast_to(config.get_coordinates().numpy(), (5, 32)))

    def test_empty(self, config):
        x, y = generate_dataset(0, config)
        assert x.shape == (0, 2, 32)
        assert y.shape == (0, 1, 32)

    def test_samples_differ_and_reproduce(self, config):
        x1, _ = generate_dataset(3, config, base_seed=0)
        x2, _ = generate_dataset(3, config, base_seed=0)
        assert np.allclose(x1, x2)
        assert not np.allclose(x1[0, 1], x1[1, 1])

    def test_npz_roundtrip(self, tmp_path, config):
        x, y = generate_dataset(4, config)
        path = tmp_path / "test.npz"
        save_dataset_npz(str(path), x, y)
        loaded = load_dataset_npz(str(path))
        assert np.allclose(loaded['x'], x)
        assert np.allclose(loaded['y'], y)

    def test_h5_roundtrip(self, tmp_path, config):
        x, y = generate_dataset(4, config)
        path = tmp_path / "test.h5"
        save_dataset_h5(str(path), torch.from_numpy(x), y)
        loaded = load_dataset_h5(str(path))
        assert np.allclose(loaded['x'], x)
        assert np.allclose(loaded['y'], y)

    def test_cli(self, tmp_path):
        out = tmp_path / "data" / "diffusion.npz"
        main(["--num_samples", "3", "--grid_size", "16", "--output", str(out)])
        loaded = load_dataset_npz(str(out))
        assert loaded['x'].shape == (3, 2, 16)
        assert DiffusionConfig.from_yaml(str(out.with_suffix(".yaml"))).grid_size == 16


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
