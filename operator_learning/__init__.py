from .errors import ConfigurationError, ShapeMismatchError
from .initializers import cglorot_uniform, glorot_uniform, pad_zeros
from .layers import FourierLayer, FourierLayer1d, create_bias, resolve_activation
from .config import FourierLayerConfig, FNOConfig
from .fno import FNO

__all__ = [
    "ConfigurationError",
    "ShapeMismatchError",
    "cglorot_uniform",
    "glorot_uniform",
    "pad_zeros",
    "FourierLayer",
    "FourierLayer1d",
    "create_bias",
    "resolve_activation",
    "FourierLayerConfig",
    "FNOConfig",
    "FNO",
]
