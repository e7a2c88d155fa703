"""Normalization layers used in GAN generators and discriminators.

All layers take (B, C, H, W) feature maps.
"""

import torch
import torch.nn as nn


def pixel_norm(x: torch.Tensor, eps: float = 1e-8) -> torch.Tensor:
    """Progressive GAN pixelwise feature normalization over the channel axis.

    Each position's channel vector ends up with L2 norm sqrt(C).
    """
    return x * torch.rsqrt(x.pow(2).mean(dim=1, keepdim=True) + eps)


class PixelNorm(nn.Module):
    def __init__(self, eps: float = 1e-8):
        super().__init__()
        self.eps = eps

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return pixel_norm(x, self.eps)


class InstanceNorm(nn.Module):
    """Normalizes each sample over C, H and W jointly, then applies a per-channel affine."""

    def __init__(self, num_features: int, eps: float = 1e-8):
        super().__init__()
        self.eps = eps
        self.scale = nn.Parameter(torch.ones(num_features))
        self.offset = nn.Parameter(torch.zeros(num_features))

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        dims = tuple(range(1, x.dim()))
        mean = x.mean(dim=dims, keepdim=True)
        var = (x - mean).pow(2).mean(dim=dims, keepdim=True)
        x = (x - mean) * torch.rsqrt(var + self.eps)
        shape = (1, -1) + (1,) * (x.dim() - 2)
        return x * self.scale.view(shape) + self.offset.view(shape)


class ConditionalBatchNorm(nn.Module):
    """Batch norm whose affine gamma/beta are looked up per class label."""

    def __init__(self, num_features: int, num_classes: int = 10):
        super().__init__()
        self.num_features = num_features
        self.bn = nn.BatchNorm2d(num_features, affine=False)
        self.gamma = nn.Embedding(num_classes, num_features)
        self.beta = nn.Embedding(num_classes, num_features)
        nn.init.ones_(self.gamma.weight)
        nn.init.zeros_(self.beta.weight)

    def forward(self, x: torch.Tensor, labels: torch.Tensor) -> torch.Tensor:
        """
        Args:
            x: (B, C, H, W)
            labels: (B,) integer class labels
        """
        x = self.bn(x)
        gamma = self.gamma(labels)[:, :, None, None]
        beta = self.beta(labels)[:, :, None, None]
        return x * gamma + beta


class MinibatchStdConcat(nn.Module):
    """Append the average per-group standard deviation as an extra channel.

    The batch is split into group_size strided groups: sample i belongs to
    group i % (B / group_size).
    """

    def __init__(self, group_size: int = 4):
        super().__init__()
        self.group_size = group_size

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        B, C, H, W = x.shape
        G = min(self.group_size, B)
        if B % G != 0:
            raise ValueError(f"Batch size {B} is not divisible by group size {G}")

        y = x.reshape(G, -1, C, H, W)  # (G, M, C, H, W)
        y = y - y.mean(dim=0, keepdim=True)
        y = torch.sqrt(y.pow(2).mean(dim=0) + 1e-8)  # (M, C, H, W)
        y = y.mean(dim=(1, 2, 3))  # (M,)
        y = y.repeat(G).view(B, 1, 1, 1).expand(B, 1, H, W)
        return torch.cat([x, y], dim=1)
