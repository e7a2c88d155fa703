"""On/off switch for optional layers (e.g. normalization ablations)."""

import torch
import torch.nn as nn


class Configurable(nn.Module):
    """Apply `layer` when enabled, otherwise pass the input through unchanged."""

    def __init__(self, layer: nn.Module, enabled: bool = True):
        super().__init__()
        self.layer = layer
        self.enabled = enabled

    def forward(self, x: torch.Tensor, *args) -> torch.Tensor:
        if self.enabled:
            return self.layer(x, *args)
        return x
