"""
Tests for configuration, the FNO model, utilities and the training script.
"""

import json

import numpy as np
import pytest
import torch

from operator_learning.config import FourierLayerConfig, FNOConfig
from operator_learning.errors import ConfigurationError
from operator_learning.fno import FNO
from operator_learning.layers import FourierLayer
from operator_learning.train import main as train_main
from operator_learning.utils import (
    GaussianNormalizer,
    LpLoss,
    load_checkpoint,
    load_data,
    save_checkpoint,
)


@pytest.fixture
def config():
    return FNOConfig(grid_shape=32, modes=8, width=8, depth=2, projection_width=16)


class TestConfig:

    def test_default_config(self):
        config = FourierLayerConfig()
        assert config.grid_shape == (64,)
        assert config.modes == (16,)

    def test_config_validation(self):
        with pytest.raises(ConfigurationError):
            FourierLayerConfig(grid_shape=64, modes=40)
        with pytest.raises(ConfigurationError):
            FourierLayerConfig(grid_shape=(16, 16), modes=(4, 4, 4))
        with pytest.raises(ConfigurationError):
            FourierLayerConfig(in_channels=0)
        with pytest.raises(ConfigurationError):
            FNOConfig(dropout=1.5)

    def test_fno_modes_broadcast(self):
        config = FNOConfig(grid_shape=(16, 16), modes=4)
        assert config.modes == (4, 4)

    def test_build(self):
        layer = FourierLayerConfig(in_channels=3, out_channels=5, grid_shape=(16, 8),
                                   modes=(3, 2), activation="tanh", seed=1).build()
        assert isinstance(layer, FourierLayer)
        assert layer.spectral_weight.shape == (3, 5, 9, 5)
        assert layer(torch.randn(2, 3, 16, 8)).shape == (2, 5, 16, 8)

    def test_build_seed(self):
        config = FourierLayerConfig(seed=3)
        assert torch.equal(config.build().linear_weight, config.build().linear_weight)

    def test_yaml_roundtrip(self, tmp_path):
        config = FourierLayerConfig(grid_shape=(32, 16), modes=(5, 4), activation="gelu",
                                    bias_linear=False, seed=123)
        yaml_path = tmp_path / "layer.yaml"

        config.to_yaml(str(yaml_path))
        loaded = FourierLayerConfig.from_yaml(str(yaml_path))

        assert loaded == config
        assert loaded.grid_shape == (32, 16)

    def test_fno_yaml_roundtrip(self, tmp_path, config):
        path = tmp_path / "nested" / "fno.yaml"
        config.to_yaml(str(path))
        assert FNOConfig.from_yaml(str(path)) == config


class TestFNO:

    def test_forward_shape(self, config):
        model = FNO(config)
        assert model(torch.randn(4, 2, 32)).shape == (4, 1, 32)

    def test_forward_2d(self):
        model = FNO(FNOConfig(in_channels=3, out_channels=2, grid_shape=(16, 16),
                              modes=4, width=8, depth=2, projection_width=8))
        assert model(torch.randn(2, 3, 16, 16)).shape == (2, 2, 16, 16)

    def test_last_layer_linear(self, config):
        model = FNO(config)
        assert "no activation" in repr(model.fourier_layers[-1])
        assert "activation=gelu" in repr(model.fourier_layers[0])

    def test_trainable_parameters(self, config):
        model = FNO(config)
        assert {id(p) for p in model.trainable_parameters()} == {id(p) for p in model.parameters()}

    def test_training_step_reduces_loss(self, config):
        torch.manual_seed(0)
        model = FNO(config)
        optimizer = torch.optim.Adam(model.trainable_parameters(), lr=1e-2)
        x, y = torch.randn(8, 2, 32), torch.randn(8, 1, 32)
        loss_fn = LpLoss()

        first = None
        for _ in range(20):
            optimizer.zero_grad()
            loss = loss_fn(model(x), y)
            loss.backward()
            optimizer.step()
            first = first if first is not None else loss.item()
        assert loss.item() < first


class TestUtils:

    def test_lp_loss(self):
        y = torch.ones(3, 1, 8)
        assert LpLoss()(y, y).item() == 0.0
        assert torch.isclose(LpLoss()(2 * y, y), torch.tensor(1.0))
        assert LpLoss(reduction=False)(2 * y, y).shape == (3,)

    def test_normalizer_roundtrip(self):
        x = torch.randn(10, 1, 32) * 3 + 2
        normalizer = GaussianNormalizer(x)
        assert torch.allclose(normalizer.decode(normalizer.encode(x)), x, atol=1e-5)

    def test_load_data(self, tmp_path):
        path = tmp_path / "data.npz"
        np.savez(path, x=np.random.randn(6, 2, 16).astype(np.float32),
                 y=np.random.randn(6, 1, 16).astype(np.float32))
        loader, (x_shape, y_shape) = load_data(str(path), batch_size=4)
        assert x_shape == (6, 2, 16)
        assert y_shape == (6, 1, 16)
        x, y = next(iter(loader))
        assert x.shape == (4, 2, 16)

    def test_load_data_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_data(str(tmp_path / "missing.npz"))

    def test_checkpoint_roundtrip(self, tmp_path, config):
        model = FNO(config)
        optimizer = torch.optim.AdamW(model.trainable_parameters())
        path = tmp_path / "model.pth"
        save_checkpoint(model, optimizer, 7, str(path))

        restored = FNO(config)
        assert load_checkpoint(restored, None, str(path)) == 7
        x = torch.randn(2, 2, 32)
        assert torch.allclose(restored(x), model(x))


class TestTrainScript:

    def test_dry_run(self, tmp_path):
        out = tmp_path / "run"
        history = train_main([
            "--dry-run", "--epochs", "2", "--eval_every", "1",
            "--grid", "32", "--modes", "8", "--width", "8", "--depth", "2",
            "--output_dir", str(out),
        ])
        assert len(history['train_loss']) == 2
        assert (out / "model.pth").exists()
        with open(out / "history.json") as f:
            assert json.load(f)['epochs'] == [0, 1]
        assert FNOConfig.from_yaml(str(out / "model_config.yaml")).width == 8


class TestScripts:

    def test_benchmark(self):
        from operator_learning.benchmark import main as benchmark_main

        results = benchmark_main(["--grid", "32", "--modes", "8", "--channels", "4",
                                  "--batch_size", "2", "--runs", "3"])
        assert set(results) == {"FourierLayer", "FourierLayer1d"}
        assert results["FourierLayer"]["latency_ms"] > 0

    def test_benchmark_2d(self):
        from operator_learning.benchmark import main as benchmark_main

        results = benchmark_main(["--grid", "16", "16", "--modes", "4", "--channels", "2",
                                  "--batch_size", "2", "--runs", "2"])
        assert set(results) == {"FourierLayer"}

    def test_plot_history(self, tmp_path):
        from operator_learning.plot_history import plot_history

        history = tmp_path / "history.json"
        history.write_text(json.dumps({"epochs": [0, 1, 2], "train_loss": [1.0, 0.5, 0.25],
                                       "test_loss": [1.0, 0.6, 0.3]}))
        output = tmp_path / "plot.png"
        plot_history(str(history), str(output))
        assert output.exists()


class TestTrainNormalization:

    def test_targets_normalized_from_data(self, tmp_path):
        path = tmp_path / "data.npz"
        rng = np.random.default_rng(0)
        np.savez(path, x=rng.standard_normal((8, 2, 32)).astype(np.float32),
                 y=(5.0 + 0.5 * rng.standard_normal((8, 1, 32))).astype(np.float32))
        out = tmp_path / "run"
        history = train_main([
            "--data_path", str(path), "--epochs", "1", "--batch_size", "4",
            "--grid", "32", "--modes", "8", "--width", "8", "--depth", "2",
            "--output_dir", str(out),
        ])
        with open(out / "training_metadata.json") as f:
            meta = json.load(f)
        assert meta["target_mean"] == pytest.approx(5.0, abs=0.2)
        assert meta["target_std"] == pytest.approx(0.5, abs=0.1)
        # decoded predictions sit near the target mean from the first epoch
        assert history["test_loss"][0] < 1.0
