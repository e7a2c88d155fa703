"""Image resampling and depth/space rearrangement for (B, C, H, W) tensors."""

import torch
import torch.nn as nn
import torch.nn.functional as F

RESIZE_METHODS = ("nearest", "bilinear", "bicubic")


class Resize(nn.Module):
    """Resize to a fixed (H, W) size or by an integer scale factor."""

    def __init__(
        self,
        method: str = "nearest",
        size: tuple[int, int] | None = None,
        scale_factor: int | tuple[int, int] | None = None,
        align_corners: bool | None = None,
    ):
        super().__init__()
        if method not in RESIZE_METHODS:
            raise ValueError(f"Unknown resize method {method!r}, expected one of {RESIZE_METHODS}")
        if (size is None) == (scale_factor is None):
            raise ValueError("Exactly one of size or scale_factor must be given")
        if method == "nearest" and align_corners:
            raise ValueError("align_corners is not supported for nearest resizing")
        self.method = method
        self.size = size
        self.scale_factor = scale_factor
        self.align_corners = align_corners

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        if x.dim() != 4:
            raise ValueError(f"Expected (B, C, H, W) input, got shape {tuple(x.shape)}")
        return F.interpolate(
            x,
            size=self.size,
            scale_factor=self.scale_factor,
            mode=self.method,
            align_corners=None if self.method == "nearest" else self.align_corners,
        )


def depth_to_space(x: torch.Tensor, block_size: int) -> torch.Tensor:
    """(B, C*r*r, H, W) -> (B, C, H*r, W*r)"""
    return F.pixel_shuffle(x, block_size)


def space_to_depth(x: torch.Tensor, block_size: int) -> torch.Tensor:
    """(B, C, H*r, W*r) -> (B, C*r*r, H, W)"""
    return F.pixel_unshuffle(x, block_size)
