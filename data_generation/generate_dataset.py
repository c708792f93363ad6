#!/usr/bin/env python3
"""
Diffusion dataset generation script.

Generates (x, y) pairs for training the 1-D FNO:
- x: (N, 2, grid) with channels [grid coordinate, u(x, 0)]
- y: (N, 1, grid) with u(x, T)

The heat equation u_t = nu * u_xx with periodic boundary conditions is
solved exactly in Fourier space, so targets carry no discretization error.

Usage:
    python -m data_generation.generate_dataset --num_samples 1000 --output data/diffusion.npz
"""

import argparse
import math
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import h5py
import numpy as np
import torch
import torch.fft
from tqdm import tqdm

from data_generation.config import DiffusionConfig


def random_initial_condition(
    config: DiffusionConfig,
    seed: Optional[int] = None
) -> torch.Tensor:
    """
    Band-limited random periodic field.

    u0(x) = Re sum_{k=0}^{K} c_k exp(2 pi i k x), c_k ~ CN(0, (A (1 + k)^-decay)^2)

    Args:
        config: Generation configuration
        seed: Optional random seed

    Returns:
        torch.Tensor: Initial condition of shape (grid_size,)
    """
    generator = torch.Generator()
    generator.manual_seed(config.seed if seed is None else seed)

    dtype = getattr(torch, config.dtype)
    k = torch.arange(config.num_modes + 1, dtype=dtype)
    scale = config.amplitude * (1 + k) ** (-config.decay)

    re = torch.randn(config.num_modes + 1, generator=generator, dtype=dtype)
    im = torch.randn(config.num_modes + 1, generator=generator, dtype=dtype)
    im[0] = 0.0  # mean must be real
    c = scale * torch.complex(re, im)

    coeffs = torch.zeros(config.grid_size // 2 + 1, dtype=c.dtype)
    coeffs[:config.num_modes + 1] = c

    # norm="forward": the coefficients are the Fourier series amplitudes
    return torch.fft.irfft(coeffs, n=config.grid_size, norm="forward")


def solve_heat(u0: torch.Tensor, config: DiffusionConfig) -> torch.Tensor:
    """
    Exact periodic heat-equation solution at t = final_time.

    Each Fourier coefficient decays as exp(-nu (2 pi k)^2 T).

    Args:
        u0: Initial condition(s), grid along the last axis
        config: Generation configuration

    Returns:
        torch.Tensor: u(x, T), same shape as u0
    """
    n = u0.shape[-1]
    u_hat = torch.fft.rfft(u0)
    k = torch.arange(n // 2 + 1, dtype=u0.dtype, device=u0.device)
    decay = torch.exp(-config.diffusivity * (2 * math.pi * k) ** 2 * config.final_time)
    return torch.fft.irfft(u_hat * decay, n=n)


def generate_dataset(
    num_samples: int,
    config: DiffusionConfig,
    base_seed: Optional[int] = None,
    desc: str = "Generating"
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Generate a dataset split.

    Args:
        num_samples: Number of samples to generate
        config: Generation configuration
        base_seed: Base random seed (sample seed = base_seed + idx)
        desc: Progress bar description

    Returns:
        Tuple of arrays (x, y) with shapes (N, 2, grid) and (N, 1, grid)
    """
    if base_seed is None:
        base_seed = config.seed
    grid = config.grid_size

    if num_samples == 0:
        return (
            np.empty((0, 2, grid), dtype=config.dtype),
            np.empty((0, 1, grid), dtype=config.dtype),
        )

    coords = config.get_coordinates()
    u0 = torch.stack([
        random_initial_condition(config, seed=base_seed + idx)
        for idx in tqdm(range(num_samples), desc=desc)
    ])
    uT = solve_heat(u0, config)

    x = torch.stack([coords.expand(num_samples, grid), u0], dim=1)
    y = uT.unsqueeze(1)

    return x.numpy(), y.numpy()


def _to_numpy(x: Union[torch.Tensor, np.ndarray]) -> np.ndarray:
    if isinstance(x, torch.Tensor):
        return x.detach().cpu().numpy()
    return x


def save_dataset_npz(path: str, x, y) -> None:
    """Save (x, y) to a compressed NPZ file."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(path, x=_to_numpy(x), y=_to_numpy(y))


def load_dataset_npz(path: str) -> Dict[str, np.ndarray]:
    data = np.load(path)
    return {key: data[key] for key in data.files}


def save_dataset_h5(path: str, x, y, compression: str = "gzip") -> None:
    """
    Save dataset to HDF5 format (better for large datasets).

    Args:
        path: Output file path
        x, y: Arrays as in save_dataset_npz
        compression: HDF5 compression algorithm
    """
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with h5py.File(path, 'w') as hf:
        hf.create_dataset('x', data=_to_numpy(x), compression=compression)
        hf.create_dataset('y', data=_to_numpy(y), compression=compression)


def load_dataset_h5(path: str) -> Dict[str, np.ndarray]:
    data = {}
    with h5py.File(path, 'r') as hf:
        for key in hf.keys():
            data[key] = hf[key][:]
    return data


def main(argv=None):
    parser = argparse.ArgumentParser(description="Generate 1-D diffusion data for FNO training")
    parser.add_argument("--num_samples", type=int, default=1000)
    parser.add_argument("--output", type=str, default="data/diffusion.npz")
    parser.add_argument("--config", type=str, default=None, help="DiffusionConfig YAML file")
    parser.add_argument("--grid_size", type=int, default=64)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--format", choices=["npz", "h5"], default="npz")
    args = parser.parse_args(argv)

    if args.config:
        config = DiffusionConfig.from_yaml(args.config)
    else:
        config = DiffusionConfig(grid_size=args.grid_size, seed=args.seed)

    print(f"Generating {args.num_samples} samples on a {config.grid_size}-point grid "
          f"(nu={config.diffusivity}, T={config.final_time})")
    x, y = generate_dataset(args.num_samples, config)

    if args.format == "h5":
        save_dataset_h5(args.output, x, y)
    else:
        save_dataset_npz(args.output, x, y)
    config.to_yaml(str(Path(args.output).with_suffix(".yaml")))
    print(f"Saved x{tuple(x.shape)}, y{tuple(y.shape)} to {args.output}")


if __name__ == "__main__":
    main()
