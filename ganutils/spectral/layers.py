"""Spectrally normalized dense, convolution and transposed convolution layers.

Each layer keeps the parameters and behaviour of its torch counterpart and
swaps the raw weight for weight / sigma at call time. The weight is viewed as
a (rows, cols) matrix with cols = weight.shape[0]:

    nn.Linear           (out, in)              -> (in, out)
    nn.Conv2d           (out, in, kh, kw)      -> (in*kh*kw, out)
    nn.ConvTranspose2d  (in, out, kh, kw)      -> (out*kh*kw, in)
"""

import logging

import torch
import torch.nn as nn
import torch.nn.functional as F

from ganutils.spectral.power_iteration import PowerIterationEstimator

logger = logging.getLogger(__name__)


class SpectralNorm:
    """Mixin for an nn.Module with a `weight` parameter."""

    weight: nn.Parameter

    def _init_spectral_norm(
        self,
        expected_rank: int,
        enabled: bool = True,
        n_power_iterations: int = 1,
        eps: float = 1e-8,
    ) -> None:
        if self.weight.dim() != expected_rank:
            raise ValueError(
                f"{type(self).__name__} expects a rank-{expected_rank} weight, "
                f"got shape {tuple(self.weight.shape)}"
            )
        self.enabled = enabled
        self.estimator = PowerIterationEstimator(
            self.weight.shape[0], n_power_iterations=n_power_iterations, eps=eps
        )
        if not enabled:
            logger.debug(f"{type(self).__name__} built with spectral normalization disabled")

    @property
    def n_power_iterations(self) -> int:
        return self.estimator.n_power_iterations

    @n_power_iterations.setter
    def n_power_iterations(self, value: int) -> None:
        if value < 1:
            raise ValueError(f"n_power_iterations must be >= 1, got {value}")
        self.estimator.n_power_iterations = value

    def weight_matrix(self) -> torch.Tensor:
        return self.weight.reshape(self.weight.shape[0], -1).t()

    def normalized_weight(self) -> torch.Tensor:
        """Weight divided by its estimated spectral norm.

        In training mode this also advances the stored singular vector.
        sigma is floored at eps so a zero weight stays zero instead of NaN.
        """
        if not self.enabled:
            return self.weight
        sigma = self.estimator(self.weight_matrix())
        return self.weight / sigma.clamp_min(self.estimator.eps)

    @torch.no_grad()
    def sigma(self) -> torch.Tensor:
        """Current spectral norm estimate, without touching the stored vector."""
        sigma, _ = self.estimator.estimate(self.weight_matrix())
        return sigma


class SNLinear(nn.Linear, SpectralNorm):
    def __init__(
        self,
        in_features: int,
        out_features: int,
        bias: bool = True,
        *,
        enabled: bool = True,
        n_power_iterations: int = 1,
        eps: float = 1e-8,
    ):
        super().__init__(in_features, out_features, bias=bias)
        self._init_spectral_norm(2, enabled, n_power_iterations, eps)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return F.linear(x, self.normalized_weight(), self.bias)


class SNConv2d(nn.Conv2d, SpectralNorm):
    def __init__(
        self,
        in_channels: int,
        out_channels: int,
        kernel_size,
        stride=1,
        padding=0,
        dilation=1,
        groups: int = 1,
        bias: bool = True,
        *,
        enabled: bool = True,
        n_power_iterations: int = 1,
        eps: float = 1e-8,
    ):
        super().__init__(
            in_channels, out_channels, kernel_size,
            stride=stride, padding=padding, dilation=dilation, groups=groups, bias=bias,
        )
        self._init_spectral_norm(4, enabled, n_power_iterations, eps)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self._conv_forward(x, self.normalized_weight(), self.bias)


class SNConvTranspose2d(nn.ConvTranspose2d, SpectralNorm):
    def __init__(
        self,
        in_channels: int,
        out_channels: int,
        kernel_size,
        stride=1,
        padding=0,
        output_padding=0,
        groups: int = 1,
        bias: bool = True,
        dilation=1,
        *,
        enabled: bool = True,
        n_power_iterations: int = 1,
        eps: float = 1e-8,
    ):
        super().__init__(
            in_channels, out_channels, kernel_size,
            stride=stride, padding=padding, output_padding=output_padding,
            groups=groups, bias=bias, dilation=dilation,
        )
        self._init_spectral_norm(4, enabled, n_power_iterations, eps)

    def forward(self, x: torch.Tensor, output_size: list[int] | None = None) -> torch.Tensor:
        output_padding = self._output_padding(
            x, output_size, self.stride, self.padding, self.kernel_size, 2, self.dilation
        )
        return F.conv_transpose2d(
            x, self.normalized_weight(), self.bias, self.stride, self.padding,
            output_padding, self.groups, self.dilation,
        )
