"""
Configuration module for diffusion data generation.

This module provides a central dataclass for all generation parameters,
supporting both programmatic configuration and YAML file loading.
"""

from dataclasses import dataclass, asdict
from typing import Literal
import yaml
from pathlib import Path


@dataclass
class DiffusionConfig:
    """
    Central configuration for 1-D periodic heat-equation data generation.

    Solves u_t = nu * u_xx on [0, 1) with periodic boundary conditions.

    Attributes:
        grid_size: Number of grid points
        diffusivity: Diffusion coefficient nu
        final_time: Time T at which the solution u(x, T) is taken
        num_modes: Highest wavenumber present in the random initial conditions
        amplitude: Scale of the random Fourier coefficients
        decay: Coefficients of wavenumber k are scaled by (1 + k)^-decay
        seed: Base random seed for reproducibility
        dtype: Data type for tensors ("float32" or "float64")
    """

    grid_size: int = 64
    diffusivity: float = 0.01
    final_time: float = 1.0
    num_modes: int = 8
    amplitude: float = 1.0
    decay: float = 1.0
    seed: int = 42
    dtype: Literal["float32", "float64"] = "float32"

    def __post_init__(self):
        """Validate configuration parameters."""
        assert self.grid_size >= 4, "grid_size must be at least 4"
        assert self.diffusivity > 0, "diffusivity must be positive"
        assert self.final_time >= 0, "final_time must be non-negative"
        assert 1 <= self.num_modes <= self.grid_size // 2, "num_modes must be in [1, grid_size // 2]"
        assert self.amplitude > 0, "amplitude must be positive"
        assert self.decay >= 0, "decay must be non-negative"
        assert self.dtype in ("float32", "float64"), "Invalid dtype"

    @classmethod
    def from_yaml(cls, path: str) -> "DiffusionConfig":
        """
        Load configuration from a YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            DiffusionConfig instance with loaded parameters
        """
        with open(path, 'r') as f:
            config_dict = yaml.safe_load(f)
        return cls(**config_dict)

    def to_yaml(self, path: str) -> None:
        """
        Save configuration to a YAML file.

        Args:
            path: Output path for YAML file
        """
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.dump(asdict(self), f, default_flow_style=False, sort_keys=False)

    def to_dict(self) -> dict:
        """Convert configuration to dictionary."""
        return asdict(self)

    def get_coordinates(self):
        """
        Grid coordinates x_j = j / grid_size on the periodic domain [0, 1).

        Returns:
            1D tensor of shape (grid_size,)
        """
        import torch
        return torch.arange(self.grid_size, dtype=getattr(torch, self.dtype)) / self.grid_size
