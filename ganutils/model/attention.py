"""Attention blocks for convolutional GANs: SAGAN self-attention and CBAM."""

from typing import Callable

import torch
import torch.nn as nn
import torch.nn.functional as F

from ganutils.spectral.layers import SNConv2d


class SelfAttention(nn.Module):
    """Non-local self-attention with a max-pooled key/value branch.

    Queries stay at full resolution; keys and values are pooled 2x2 so the
    attention map is (B, H*W, H*W/4). The result is added back through a
    scalar gate `sigma` that starts at 0, making the block an identity at init.
    """

    def __init__(
        self,
        channels: int,
        spectral_norm: bool = True,
        init: Callable[[torch.Tensor], torch.Tensor] = nn.init.xavier_uniform_,
    ):
        super().__init__()
        if channels % 8 != 0:
            raise ValueError(f"channels must be a multiple of 8, got {channels}")
        self.channels = channels

        def conv(c_in: int, c_out: int) -> SNConv2d:
            layer = SNConv2d(c_in, c_out, kernel_size=1, bias=False, enabled=spectral_norm)
            init(layer.weight)
            return layer

        self.theta = conv(channels, channels // 8)
        self.phi = conv(channels, channels // 8)
        self.g = conv(channels, channels // 2)
        self.out = conv(channels // 2, channels)
        self.sigma = nn.Parameter(torch.tensor(0.0))

    def _check_input(self, x: torch.Tensor) -> None:
        if x.dim() != 4:
            raise ValueError(f"Expected (B, C, H, W) input, got shape {tuple(x.shape)}")
        if x.shape[1] != self.channels:
            raise ValueError(f"Expected {self.channels} channels, got {x.shape[1]}")
        if x.shape[2] < 2 or x.shape[3] < 2:
            raise ValueError(f"Spatial size must be at least 2x2, got {tuple(x.shape[2:])}")

    def compute_attention(self, x: torch.Tensor) -> torch.Tensor:
        """
        Args:
            x: (B, C, H, W)

        Returns:
            (B, H*W, H*W/4) attention map, each row summing to 1
        """
        self._check_input(x)

        theta = self.theta(x).flatten(2).transpose(1, 2)  # (B, HW, C/8)
        phi = F.max_pool2d(self.phi(x), kernel_size=2, stride=2).flatten(2)  # (B, C/8, HW/4)

        return F.softmax(torch.bmm(theta, phi), dim=-1)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        attention = self.compute_attention(x)
        B, _, H, W = x.shape

        g = F.max_pool2d(self.g(x), kernel_size=2, stride=2).flatten(2).transpose(1, 2)  # (B, HW/4, C/2)

        o = torch.bmm(attention, g)  # (B, HW, C/2)
        o = o.transpose(1, 2).reshape(B, self.channels // 2, H, W)
        o = self.out(o)

        return x + self.sigma * o


class ConvolutionalBlockAttention(nn.Module):
    """CBAM: channel attention followed by spatial attention."""

    def __init__(self, channels: int, hidden_channels: int | None = None):
        super().__init__()
        hidden_channels = hidden_channels or max(channels // 16, 1)
        self.fc1 = nn.Linear(channels, hidden_channels)
        self.fc2 = nn.Linear(hidden_channels, channels)
        self.conv = nn.Conv2d(2, 1, kernel_size=7, padding=3)
        for m in (self.fc1, self.fc2, self.conv):
            nn.init.xavier_uniform_(m.weight)
            nn.init.zeros_(m.bias)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        if x.dim() != 4:
            raise ValueError(f"Expected (B, C, H, W) input, got shape {tuple(x.shape)}")

        # Channel attention: shared MLP over spatial max and mean
        mx = self.fc2(F.relu(self.fc1(x.amax(dim=(2, 3)))))
        avg = self.fc2(F.relu(self.fc1(x.mean(dim=(2, 3)))))
        x = x * torch.sigmoid(mx + avg)[:, :, None, None]

        # Spatial attention over channel max and mean
        pooled = torch.cat([x.amax(dim=1, keepdim=True), x.mean(dim=1, keepdim=True)], dim=1)
        return x * torch.sigmoid(self.conv(pooled))
