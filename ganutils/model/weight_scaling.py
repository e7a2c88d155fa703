"""Equalized learning rate layers (https://arxiv.org/abs/1710.10196).

The stored weight is divided by the standard deviation of its initial value
and multiplied back at call time, so every weight receives updates on the
same scale regardless of fan-in.
"""

import torch
import torch.nn as nn
import torch.nn.functional as F


class WeightScaling:
    """Mixin for an nn.Module with a `weight` parameter."""

    weight: nn.Parameter

    def _init_weight_scaling(self, enabled: bool = True) -> None:
        scale = self.weight.detach().std(unbiased=False) if enabled else torch.tensor(1.0)
        self.register_buffer("scale", scale.clone())
        with torch.no_grad():
            self.weight.div_(self.scale)

    def scaled_weight(self) -> torch.Tensor:
        return self.weight * self.scale


class WSLinear(nn.Linear, WeightScaling):
    def __init__(self, in_features: int, out_features: int, bias: bool = True, enabled: bool = True):
        super().__init__(in_features, out_features, bias=bias)
        self._init_weight_scaling(enabled)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return F.linear(x, self.scaled_weight(), self.bias)


class WSConv2d(nn.Conv2d, WeightScaling):
    def __init__(self, in_channels: int, out_channels: int, kernel_size, enabled: bool = True, **kwargs):
        super().__init__(in_channels, out_channels, kernel_size, **kwargs)
        self._init_weight_scaling(enabled)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self._conv_forward(x, self.scaled_weight(), self.bias)


class WSConvTranspose2d(nn.ConvTranspose2d, WeightScaling):
    def __init__(self, in_channels: int, out_channels: int, kernel_size, enabled: bool = True, **kwargs):
        super().__init__(in_channels, out_channels, kernel_size, **kwargs)
        self._init_weight_scaling(enabled)

    def forward(self, x: torch.Tensor, output_size: list[int] | None = None) -> torch.Tensor:
        output_padding = self._output_padding(
            x, output_size, self.stride, self.padding, self.kernel_size, 2, self.dilation
        )
        return F.conv_transpose2d(
            x, self.scaled_weight(), self.bias, self.stride, self.padding,
            output_padding, self.groups, self.dilation,
        )
