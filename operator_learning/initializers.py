"""
Weight initializers for the Fourier layer.

All initializers take an explicit ``torch.Generator`` so that a layer built
with a seed is reproducible without touching the global RNG state.
"""

import math
from typing import Optional, Sequence, Tuple, Union

import torch
import torch.nn.functional as F


def _fans(shape: Sequence[int]) -> Tuple[int, int]:
    """
    Fan-in / fan-out for a weight of the given shape.

    Axes beyond the first two count as receptive field (one entry per mode
    for spectral weights), matching torch.nn.init.
    """
    if len(shape) < 2:
        raise ValueError(f"Glorot init needs at least 2 dimensions, got shape {tuple(shape)}")
    receptive = math.prod(shape[2:]) if len(shape) > 2 else 1
    fan_in = shape[1] * receptive
    fan_out = shape[0] * receptive
    return fan_in, fan_out


def glorot_uniform(
    shape: Sequence[int],
    generator: Optional[torch.Generator] = None,
    dtype: torch.dtype = torch.float32
) -> torch.Tensor:
    """
    Real Glorot/Xavier uniform: U(-limit, limit), limit = sqrt(6 / (fan_in + fan_out)).

    Args:
        shape: Weight shape, e.g. (out_channels, in_channels)
        generator: Optional torch.Generator for reproducibility
        dtype: Real floating dtype

    Returns:
        torch.Tensor of the given shape
    """
    fan_in, fan_out = _fans(shape)
    limit = math.sqrt(6.0 / (fan_in + fan_out))
    w = torch.rand(tuple(shape), generator=generator, dtype=dtype)
    return (2 * w - 1) * limit


def cglorot_uniform(
    shape: Sequence[int],
    generator: Optional[torch.Generator] = None,
    dtype: torch.dtype = torch.cfloat
) -> torch.Tensor:
    """
    Complex Glorot uniform. Real and imaginary parts are independent
    glorot_uniform draws.

    Args:
        shape: Weight shape, e.g. (in_channels, out_channels, *modes)
        generator: Optional torch.Generator for reproducibility
        dtype: Complex dtype (torch.cfloat or torch.cdouble)

    Returns:
        Complex torch.Tensor of the given shape
    """
    real_dtype = torch.float64 if dtype == torch.cdouble else torch.float32
    re = glorot_uniform(shape, generator=generator, dtype=real_dtype)
    im = glorot_uniform(shape, generator=generator, dtype=real_dtype)
    return torch.complex(re, im)


def pad_zeros(
    tensor: torch.Tensor,
    pad_widths: Union[int, Sequence[int]],
    dims: Union[int, Sequence[int]]
) -> torch.Tensor:
    """
    Zero-pad ``tensor`` at the end of each axis in ``dims``.

    Example:
        >>> pad_zeros(torch.ones(2, 3, 4), 5, dims=2).shape
        torch.Size([2, 3, 9])
    """
    if isinstance(pad_widths, int):
        pad_widths = (pad_widths,)
    if isinstance(dims, int):
        dims = (dims,)
    if len(pad_widths) != len(dims):
        raise ValueError("pad_widths and dims must have the same length")

    # F.pad takes (left, right) pairs starting from the last axis
    pad = [0, 0] * tensor.ndim
    for width, dim in zip(pad_widths, dims):
        if width < 0:
            raise ValueError(f"Negative pad width {width} for dim {dim}")
        dim = dim % tensor.ndim
        pad[2 * (tensor.ndim - 1 - dim) + 1] = width
    return F.pad(tensor, pad)
