"""Power iteration estimate of the largest singular value of a weight matrix.

The iteration runs outside autograd: u and v are constants for differentiation,
so only sigma = u @ W @ v^T carries gradient back into W.
"""

import torch
import torch.nn as nn


def l2normalize(x: torch.Tensor, eps: float = 1e-8) -> torch.Tensor:
    """Scale x to unit L2 norm; eps keeps zero vectors finite."""
    return x * torch.rsqrt(x.pow(2).sum() + eps)


@torch.no_grad()
def power_iteration(
    mat: torch.Tensor,
    v: torch.Tensor,
    n_iterations: int = 1,
    eps: float = 1e-8,
) -> tuple[torch.Tensor, torch.Tensor]:
    """Refine the singular vector estimate of mat.

    Args:
        mat: (rows, cols) weight matrix
        v: (1, cols) current right singular vector estimate
        n_iterations: number of refinement steps, >= 1

    Returns:
        (u, v) with shapes (1, rows) and (1, cols), both unit norm and detached
    """
    if n_iterations < 1:
        raise ValueError(f"n_iterations must be >= 1, got {n_iterations}")
    mat = mat.detach()
    v = v.detach()
    for _ in range(n_iterations):
        u = l2normalize(v @ mat.t(), eps)  # (1, rows)
        v = l2normalize(u @ mat, eps)  # (1, cols)
    return u, v


def spectral_sigma(mat: torch.Tensor, u: torch.Tensor, v: torch.Tensor) -> torch.Tensor:
    """sigma = u @ mat @ v^T as a 0-d tensor, differentiable w.r.t. mat only."""
    return (u.detach() @ mat @ v.detach().t()).squeeze()


class PowerIterationEstimator(nn.Module):
    """Persistent right singular vector of a (rows, cols) weight matrix.

    v is a buffer: it lives in state_dict, follows .to(device), and is never
    touched by the optimizer. estimate() is pure; commit() is the only mutation
    and forward() calls it in training mode only.
    """

    def __init__(self, n_cols: int, n_power_iterations: int = 1, eps: float = 1e-8):
        super().__init__()
        if n_power_iterations < 1:
            raise ValueError(f"n_power_iterations must be >= 1, got {n_power_iterations}")
        self.n_cols = n_cols
        self.n_power_iterations = n_power_iterations
        self.eps = eps
        self.register_buffer("v", torch.randn(1, n_cols))

    def estimate(self, mat: torch.Tensor) -> tuple[torch.Tensor, torch.Tensor]:
        """Run the power iteration from the stored v without updating it.

        Returns:
            (sigma, v_next): 0-d sigma carrying gradient into mat, and the
            refined (1, cols) vector to hand to commit()
        """
        if mat.dim() != 2 or mat.shape[1] != self.n_cols:
            raise ValueError(
                f"Expected a 2-D matrix with {self.n_cols} columns, got shape {tuple(mat.shape)}"
            )
        u, v = power_iteration(mat, self.v, self.n_power_iterations, self.eps)
        return spectral_sigma(mat, u, v), v

    @torch.no_grad()
    def commit(self, v: torch.Tensor) -> None:
        self.v.copy_(v)

    def forward(self, mat: torch.Tensor) -> torch.Tensor:
        sigma, v = self.estimate(mat)
        if self.training:
            self.commit(v)
        return sigma

    def extra_repr(self) -> str:
        return f"n_cols={self.n_cols}, n_power_iterations={self.n_power_iterations}, eps={self.eps}"
