"""Latent interpolation helpers."""

import torch


def lerp(a: torch.Tensor, b: torch.Tensor, rate: float) -> torch.Tensor:
    """a + rate * (b - a), with rate clamped to [0, 1]."""
    rate = min(max(rate, 0.0), 1.0)
    return a + rate * (b - a)


def make_grid(corners: torch.Tensor, grid_size: int, flatten: bool = False) -> torch.Tensor:
    """Bilinearly interpolate a grid between four corner tensors.

    Args:
        corners: (4, ...) with corners[0] top-left, [1] top-right,
                 [2] bottom-left, [3] bottom-right
        grid_size: number of rows and columns
        flatten: merge the two grid axes

    Returns:
        (grid_size, grid_size, ...) or (grid_size * grid_size, ...)
    """
    if corners.shape[0] != 4:
        raise ValueError(f"corners must have 4 entries along dim 0, got {corners.shape[0]}")
    z0, z1, z2, z3 = corners

    rows = []
    for y in range(grid_size):
        left = lerp(z0, z2, y / grid_size)
        right = lerp(z1, z3, y / grid_size)
        rows.extend(lerp(left, right, x / grid_size) for x in range(grid_size))

    grid = torch.stack(rows)
    if not flatten:
        grid = grid.view(grid_size, grid_size, *corners.shape[1:])
    return grid
