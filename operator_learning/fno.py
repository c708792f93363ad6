import torch
import torch.nn as nn
import torch.nn.functional as F

from .config import FNOConfig
from .layers import FourierLayer


class FNO(nn.Module):
    """
    Fourier Neural Operator built from FourierLayers.

    Architecture:
    1. Lift: input channels -> hidden width (pointwise)
    2. Fourier Layers: spectral path + linear path + activation
    3. Project: hidden width -> output channels (pointwise MLP)

    The last Fourier layer has no activation, as in Li et al.

    Input:  (batch, in_channels, *grid_shape)
    Output: (batch, out_channels, *grid_shape)
    """
    def __init__(self, config: FNOConfig):
        super().__init__()
        self.config = config

        # 1. Lifting Layer (P)
        self.p = nn.Linear(config.in_channels, config.width)

        # 2. Fourier Layers
        self.fourier_layers = nn.ModuleList()
        for i in range(config.depth):
            last = i == config.depth - 1
            self.fourier_layers.append(
                FourierLayer(
                    config.width,
                    config.width,
                    config.grid_shape,
                    config.modes,
                    activation=None if last else config.activation,
                )
            )

        # 3. Projection Layer (Q)
        self.q = nn.Sequential(
            nn.Linear(config.width, config.projection_width),
            nn.GELU(),
            nn.Linear(config.projection_width, config.out_channels)
        )

    def forward(self, x):
        # nn.Linear acts on the last axis, so lift/project channels-last
        x = self.p(x.movedim(1, -1)).movedim(-1, 1)

        for layer in self.fourier_layers:
            x = layer(x)
            if self.config.dropout > 0:
                x = F.dropout(x, p=self.config.dropout, training=self.training)

        return self.q(x.movedim(1, -1)).movedim(-1, 1)

    def trainable_parameters(self):
        params = list(self.p.parameters()) + list(self.q.parameters())
        for layer in self.fourier_layers:
            params.extend(layer.trainable_parameters())
        return params
