"""Exceptions raised by the Fourier layer and its configuration."""


class ConfigurationError(ValueError):
    """Invalid layer configuration (modes above the Nyquist bound, mismatched ranks, ...)."""


class ShapeMismatchError(ValueError):
    """Input tensor does not match the channel count or grid the layer was built for."""
