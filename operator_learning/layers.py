import numbers
import string
from typing import Callable, Optional, Sequence, Tuple, Union

import torch
import torch.nn as nn
import torch.nn.functional as F
import torch.fft

from .errors import ConfigurationError, ShapeMismatchError
from .initializers import cglorot_uniform, glorot_uniform, pad_zeros

IntOrTuple = Union[int, Sequence[int]]
BiasSpec = Union[bool, torch.Tensor]

# Einsum letters for the frequency axes ("b", "i", "o" are taken)
_FREQ_AXES = "".join(c for c in string.ascii_lowercase if c not in "bio")


def identity(x):
    return x


_ACTIVATIONS = {
    "identity": identity,
    "relu": F.relu,
    "gelu": F.gelu,
    "tanh": torch.tanh,
    "sigmoid": torch.sigmoid,
    "silu": F.silu,
    "softplus": F.softplus,
}


def resolve_activation(activation: Union[None, str, Callable]) -> Callable:
    """Map an activation name (or None) to a callable; callables pass through."""
    if activation is None:
        return identity
    if isinstance(activation, str):
        try:
            return _ACTIVATIONS[activation.lower()]
        except KeyError:
            raise ConfigurationError(
                f"Unknown activation '{activation}'. Choose from {sorted(_ACTIVATIONS)}"
            ) from None
    if not callable(activation):
        raise ConfigurationError(f"Activation must be a name or a callable, got {activation!r}")
    return activation


def activation_name(activation: Callable) -> str:
    if isinstance(activation, nn.Module):
        return type(activation).__name__.lower()
    return getattr(activation, "__name__", repr(activation))


def create_bias(
    bias: BiasSpec,
    shape: Sequence[int],
    dtype: torch.dtype,
    device: Optional[torch.device] = None
) -> Optional[nn.Parameter]:
    """
    Build a bias parameter.

    Args:
        bias: True for a zero-initialized bias, False for no bias, or an
            explicit tensor of the given shape
        shape: Bias shape (broadcast over the batch axis)
        dtype: Bias dtype (complex for the spectral path)
        device: Target device

    Returns:
        nn.Parameter, or None when the bias is disabled
    """
    if isinstance(bias, torch.Tensor):
        if tuple(bias.shape) != tuple(shape):
            raise ConfigurationError(
                f"Bias has shape {tuple(bias.shape)}, expected {tuple(shape)}"
            )
        if bias.dtype != dtype:
            raise ConfigurationError(f"Bias has dtype {bias.dtype}, expected {dtype}")
        return bias if isinstance(bias, nn.Parameter) else nn.Parameter(bias.detach().clone())
    if not bias:
        return None
    return nn.Parameter(torch.zeros(tuple(shape), dtype=dtype, device=device))


def as_tuple(value: IntOrTuple) -> Tuple[int, ...]:
    if isinstance(value, numbers.Integral):
        return (int(value),)
    return tuple(int(v) for v in value)


def broadcast_modes(grid_shape: Sequence[int], modes: IntOrTuple) -> Tuple[int, ...]:
    """A single mode count applies to every grid axis."""
    modes = as_tuple(modes)
    if len(modes) == 1:
        modes = modes * len(grid_shape)
    return modes


def nyquist_modes(grid_shape: Sequence[int]) -> Tuple[int, ...]:
    """Number of independent rFFT coefficients per grid axis: floor(n/2) + 1."""
    return tuple(n // 2 + 1 for n in grid_shape)


def check_modes(grid_shape: Sequence[int], modes: Sequence[int]) -> None:
    """Raise ConfigurationError unless 0 < modes[i] <= floor(grid_shape[i]/2) + 1 on every axis."""
    if len(modes) != len(grid_shape):
        raise ConfigurationError(
            f"Got {len(modes)} mode counts for a {len(grid_shape)}-D grid"
        )
    for axis, (n, m) in enumerate(zip(grid_shape, modes)):
        if n <= 0 or m <= 0:
            raise ConfigurationError(
                f"Grid size and modes must be positive on axis {axis}, got grid={n}, modes={m}"
            )
        if m > n // 2 + 1:
            raise ConfigurationError(
                f"modes={m} on axis {axis} exceeds the maximum of {n // 2 + 1} "
                f"(floor(n/2) + 1) for grid size {n}"
            )


class FourierLayer(nn.Module):
    """
    N-D Fourier layer (Li et al., arXiv:2010.08895).

    The layer sums two paths and applies an activation:
    1. Linear path: pointwise channel mixing W_l x + b_l at every grid point
    2. Spectral path: rFFT over the grid axes, per-mode complex channel mixing
       of the lowest ``modes`` frequencies (+ spectral bias), inverse rFFT

    Frequencies beyond ``modes`` are zeroed in the output spectrum. The
    learnable spectral weight only covers the retained block
    (in_channels, out_channels, *modes); the full weight, zero-padded to
    floor(n/2) + 1 coefficients per grid axis, is exposed as ``spectral_weight``.
    Because the padding is never a parameter it stays exactly zero under any
    optimizer.

    Shapes:
        input:  (batch, in_channels, *grid_shape)
        output: (batch, out_channels, *grid_shape)
    """

    # Fixed grid rank for specialised subclasses, None for any rank
    ndim: Optional[int] = None

    def __init__(
        self,
        in_channels: int,
        out_channels: int,
        grid_shape: IntOrTuple,
        modes: IntOrTuple,
        activation: Union[None, str, Callable] = None,
        bias_spectral: BiasSpec = True,
        bias_linear: BiasSpec = True,
        init_spectral: Callable = cglorot_uniform,
        init_linear: Callable = glorot_uniform,
        seed: Optional[int] = None,
    ):
        super().__init__()
        grid_shape, modes = self._check_config(in_channels, out_channels, grid_shape, modes)

        generator = None
        if seed is not None:
            generator = torch.Generator().manual_seed(seed)

        spectral = init_spectral((in_channels, out_channels, *modes), generator=generator)
        linear = init_linear((out_channels, in_channels), generator=generator)

        self._setup(
            nn.Parameter(spectral), nn.Parameter(linear), grid_shape, modes,
            activation, bias_spectral, bias_linear
        )

    @classmethod
    def from_weights(
        cls,
        spectral_weight: torch.Tensor,
        linear_weight: torch.Tensor,
        grid_shape: IntOrTuple,
        modes: Optional[IntOrTuple] = None,
        activation: Union[None, str, Callable] = None,
        bias_spectral: BiasSpec = True,
        bias_linear: BiasSpec = True,
    ) -> "FourierLayer":
        """
        Build a layer from existing weight tensors.

        ``spectral_weight`` is either the retained block (in, out, *modes) or
        the full zero-padded tensor (in, out, *(n // 2 + 1)). An nn.Parameter
        block is used as-is, so layers built from the same parameters share them.

        Args:
            spectral_weight: Complex spectral weight
            linear_weight: Real (out_channels, in_channels) weight
            grid_shape: Grid size(s)
            modes: Retained modes per axis (defaults to the block shape)
            activation: Activation name or callable
            bias_spectral: Flag or explicit (out, *modes) complex tensor
            bias_linear: Flag or explicit (out, *grid_shape) real tensor
        """
        grid_shape = as_tuple(grid_shape)
        if not torch.is_complex(spectral_weight):
            raise ConfigurationError("spectral_weight must be complex-valued")
        if spectral_weight.ndim != 2 + len(grid_shape):
            raise ConfigurationError(
                f"spectral_weight has {spectral_weight.ndim} dims, expected "
                f"{2 + len(grid_shape)} for a {len(grid_shape)}-D grid"
            )

        in_channels, out_channels = spectral_weight.shape[:2]
        stored = tuple(spectral_weight.shape[2:])
        if modes is None:
            modes = stored
        grid_shape, modes = cls._check_config(in_channels, out_channels, grid_shape, modes)

        if stored == modes:
            block = spectral_weight
        elif stored == nyquist_modes(grid_shape):
            index = (slice(None), slice(None)) + tuple(slice(0, m) for m in modes)
            padding = spectral_weight.detach().clone()
            padding[index] = 0
            if torch.any(padding != 0):
                raise ConfigurationError(
                    f"spectral_weight is non-zero outside the first {modes} modes"
                )
            block = spectral_weight[index]
        else:
            raise ConfigurationError(
                f"spectral_weight grid axes {stored} match neither modes {modes} "
                f"nor the padded size {nyquist_modes(grid_shape)}"
            )

        if tuple(linear_weight.shape) != (out_channels, in_channels):
            raise ConfigurationError(
                f"linear_weight has shape {tuple(linear_weight.shape)}, "
                f"expected {(out_channels, in_channels)}"
            )

        layer = cls.__new__(cls)
        nn.Module.__init__(layer)
        layer._setup(
            _as_parameter(block), _as_parameter(linear_weight), grid_shape, modes,
            activation, bias_spectral, bias_linear
        )
        return layer

    @classmethod
    def _check_config(cls, in_channels, out_channels, grid_shape, modes):
        grid_shape = as_tuple(grid_shape)
        modes = broadcast_modes(grid_shape, modes)

        if in_channels <= 0 or out_channels <= 0:
            raise ConfigurationError(
                f"Channel counts must be positive, got in={in_channels}, out={out_channels}"
            )
        if cls.ndim is not None and len(grid_shape) != cls.ndim:
            raise ConfigurationError(
                f"{cls.__name__} expects a {cls.ndim}-D grid, got {grid_shape}"
            )
        check_modes(grid_shape, modes)
        return grid_shape, modes

    def _setup(self, spectral, linear, grid_shape, modes, activation, bias_spectral, bias_linear):
        if not torch.is_complex(spectral):
            raise ConfigurationError(f"spectral weight must be complex, got {spectral.dtype}")
        if torch.is_complex(linear):
            raise ConfigurationError(f"linear weight must be real, got {linear.dtype}")
        if linear.dtype != spectral.real.dtype:
            raise ConfigurationError(
                f"linear weight {linear.dtype} does not match the precision of "
                f"spectral weight {spectral.dtype}"
            )

        self.in_channels = spectral.shape[0]
        self.out_channels = spectral.shape[1]
        self.grid_shape = grid_shape
        self.modes = modes

        self.spectral_weight_modes = spectral
        self.linear_weight = linear

        self.spectral_bias_modes = create_bias(
            bias_spectral, (self.out_channels, *modes), spectral.dtype, spectral.device
        )
        self.linear_bias = create_bias(
            bias_linear, (self.out_channels, *grid_shape), linear.dtype, linear.device
        )

        self.activation = resolve_activation(activation)

    @property
    def grid_ndim(self) -> int:
        return len(self.grid_shape)

    @property
    def spectral_weight(self) -> torch.Tensor:
        """Full spectral weight, zero-padded to floor(n/2) + 1 coefficients per grid axis."""
        return self._pad_modes(self.spectral_weight_modes)

    @property
    def spectral_bias(self) -> Optional[torch.Tensor]:
        if self.spectral_bias_modes is None:
            return None
        return self._pad_modes(self.spectral_bias_modes)

    def _pad_modes(self, tensor):
        lead = tensor.ndim - self.grid_ndim
        widths = [n - m for n, m in zip(nyquist_modes(self.grid_shape), self.modes)]
        return pad_zeros(tensor, widths, dims=range(lead, tensor.ndim))

    def trainable_parameters(self):
        """
        Parameters an optimizer may update: the retained spectral block, the
        linear weight and whichever biases are enabled. The zero padding of
        the spectral weight is never included.
        """
        params = [self.spectral_weight_modes, self.linear_weight]
        if self.spectral_bias_modes is not None:
            params.append(self.spectral_bias_modes)
        if self.linear_bias is not None:
            params.append(self.linear_bias)
        return params

    def _check_input(self, x):
        expected = (self.in_channels, *self.grid_shape)
        if x.ndim != 2 + self.grid_ndim or tuple(x.shape[1:]) != expected:
            raise ShapeMismatchError(
                f"Expected input of shape (batch, {', '.join(map(str, expected))}), "
                f"got {tuple(x.shape)}"
            )

    def _mix(self, x_ft):
        """
        Per-mode complex channel mixing.
        (b, i, *modes) x (i, o, *modes) -> (b, o, *modes)
        """
        axes = _FREQ_AXES[:self.grid_ndim]
        return torch.einsum(f"bi{axes},io{axes}->bo{axes}", x_ft, self.spectral_weight_modes)

    def spectral_path(self, x):
        dims = tuple(range(2, 2 + self.grid_ndim))

        # 1. Real-to-Complex FFT over every grid axis
        # (batch, in, *grid) -> (batch, in, n_0, ..., n_{k-1} // 2 + 1)
        x_ft = torch.fft.rfftn(x, dim=dims)

        # 2. Mix the retained low modes; everything else stays zero
        retained = (slice(None), slice(None)) + tuple(slice(0, m) for m in self.modes)
        out_ft = torch.zeros(
            x.shape[0], self.out_channels, *x_ft.shape[2:],
            dtype=x_ft.dtype, device=x.device
        )
        mixed = self._mix(x_ft[retained])
        if self.spectral_bias_modes is not None:
            mixed = mixed + self.spectral_bias_modes
        out_ft[retained] = mixed

        # 3. Complex-to-Real inverse FFT back onto the grid
        return torch.fft.irfftn(out_ft, s=self.grid_shape, dim=dims)

    def linear_path(self, x):
        out = torch.einsum("oi,bi...->bo...", self.linear_weight, x)
        if self.linear_bias is not None:
            out = out + self.linear_bias
        return out

    def forward(self, x):
        self._check_input(x)
        return self.activation(self.linear_path(x) + self.spectral_path(x))

    def extra_repr(self):
        spectral = (self.in_channels, self.out_channels, *nyquist_modes(self.grid_shape))
        name = activation_name(self.activation)
        act = "no activation" if self.activation is identity else f"activation={name}"
        return (
            f"spectral={spectral}, linear={(self.out_channels, self.in_channels)}, "
            f"modes={self.modes}, {act}"
        )


class FourierLayer1d(FourierLayer):
    """
    1-D Fourier layer. Same weights and conventions as FourierLayer on a
    single grid axis; the per-mode mixing is a batched matmul with the
    frequency index as batch dimension.

    Shapes:
        input:  (batch, in_channels, grid)
        output: (batch, out_channels, grid)
    """

    ndim = 1

    def __init__(
        self,
        in_channels: int,
        out_channels: int,
        grid: int,
        modes: int = 12,
        activation: Union[None, str, Callable] = None,
        bias_spectral: BiasSpec = True,
        bias_linear: BiasSpec = True,
        init_spectral: Callable = cglorot_uniform,
        init_linear: Callable = glorot_uniform,
        seed: Optional[int] = None,
    ):
        super().__init__(
            in_channels, out_channels, grid, modes, activation=activation,
            bias_spectral=bias_spectral, bias_linear=bias_linear,
            init_spectral=init_spectral, init_linear=init_linear, seed=seed
        )

    def _mix(self, x_ft):
        # (b, i, k) -> (k, b, i) @ (k, i, o) -> (k, b, o) -> (b, o, k)
        weights = self.spectral_weight_modes.permute(2, 0, 1)
        return torch.bmm(x_ft.permute(2, 0, 1), weights).permute(1, 2, 0)


def _as_parameter(tensor):
    if isinstance(tensor, nn.Parameter):
        return tensor
    return nn.Parameter(tensor.detach().clone())
