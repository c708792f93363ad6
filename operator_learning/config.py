"""
Configuration for the Fourier layer and the FNO model built from it.

Both dataclasses validate themselves on construction and round-trip
through YAML.
"""

from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional, Tuple, Union

import yaml

from .errors import ConfigurationError
from .layers import FourierLayer, as_tuple, broadcast_modes, check_modes


class _YamlMixin:

    @classmethod
    def from_yaml(cls, path: str):
        """
        Load configuration from a YAML file.

        Args:
            path: Path to YAML configuration file
        """
        with open(path, 'r') as f:
            config_dict = yaml.safe_load(f)
        return cls(**config_dict)

    def to_yaml(self, path: str) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    def to_dict(self) -> dict:
        """Convert to a plain dict (tuples become lists for YAML)."""
        return {
            key: list(value) if isinstance(value, tuple) else value
            for key, value in asdict(self).items()
        }


@dataclass
class FourierLayerConfig(_YamlMixin):
    """
    Configuration for a single FourierLayer.

    Attributes:
        in_channels: Input channel count
        out_channels: Output channel count
        grid_shape: Grid size per axis (int for 1-D)
        modes: Retained Fourier modes per axis, each <= floor(n/2) + 1
        activation: Activation name ("identity", "gelu", "sigmoid", ...)
        bias_spectral: Enable the spectral-path bias
        bias_linear: Enable the linear-path bias
        seed: Optional seed for weight initialization
    """
    in_channels: int = 2
    out_channels: int = 2
    grid_shape: Union[int, Tuple[int, ...]] = 64
    modes: Union[int, Tuple[int, ...]] = 16
    activation: str = "identity"
    bias_spectral: bool = True
    bias_linear: bool = True
    seed: Optional[int] = None

    def __post_init__(self):
        self.grid_shape = as_tuple(self.grid_shape)
        self.modes = broadcast_modes(self.grid_shape, self.modes)
        if self.in_channels <= 0 or self.out_channels <= 0:
            raise ConfigurationError("in_channels and out_channels must be positive")
        check_modes(self.grid_shape, self.modes)

    def build(self) -> FourierLayer:
        return FourierLayer(
            self.in_channels,
            self.out_channels,
            self.grid_shape,
            self.modes,
            activation=self.activation,
            bias_spectral=self.bias_spectral,
            bias_linear=self.bias_linear,
            seed=self.seed,
        )


@dataclass
class FNOConfig(_YamlMixin):
    """
    Configuration for the Fourier Neural Operator.
    """
    # Physics/Data dimensions
    in_channels: int = 2   # grid coordinate, u(x, 0)
    out_channels: int = 1  # u(x, T)
    grid_shape: Union[int, Tuple[int, ...]] = 64

    # Model architecture
    modes: Union[int, Tuple[int, ...]] = 16
    width: int = 32          # Hidden channel dimension
    depth: int = 4           # Number of Fourier layers
    projection_width: int = 128
    activation: str = "gelu"

    # Training
    dropout: float = 0.0

    def __post_init__(self):
        """Validation"""
        self.grid_shape = as_tuple(self.grid_shape)
        self.modes = broadcast_modes(self.grid_shape, self.modes)
        check_modes(self.grid_shape, self.modes)
        if self.width <= 0 or self.depth <= 0 or self.projection_width <= 0:
            raise ConfigurationError("width, depth and projection_width must be positive")
        if not 0.0 <= self.dropout < 1.0:
            raise ConfigurationError(f"dropout must be in [0, 1), got {self.dropout}")
