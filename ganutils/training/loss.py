"""Adversarial and reconstruction losses."""

import torch
import torch.nn.functional as F

GAN_LOSS_TYPES = ("non_saturating", "lsgan", "hinge")


class GANLoss:
    """Generator / discriminator losses on raw discriminator logits.

    non_saturating: G = softplus(-fake), D = softplus(-real) + softplus(fake)
    lsgan:          G = (fake - 1)^2,    D = (real - 1)^2 + fake^2
    hinge:          G = -fake,           D = relu(1 - real) + relu(1 + fake)
    """

    def __init__(self, loss_type: str = "non_saturating"):
        if loss_type not in GAN_LOSS_TYPES:
            raise ValueError(f"Unknown GAN loss type {loss_type!r}, expected one of {GAN_LOSS_TYPES}")
        self.loss_type = loss_type

    def loss_g(self, fake: torch.Tensor) -> torch.Tensor:
        if self.loss_type == "non_saturating":
            return F.softplus(-fake).mean()
        if self.loss_type == "lsgan":
            return (fake - 1).pow(2).mean()
        return -fake.mean()

    def loss_d(self, real: torch.Tensor, fake: torch.Tensor) -> torch.Tensor:
        if self.loss_type == "non_saturating":
            return F.softplus(-real).mean() + F.softplus(fake).mean()
        if self.loss_type == "lsgan":
            return (real - 1).pow(2).mean() + fake.pow(2).mean()
        return F.relu(1 - real).mean() + F.relu(1 + fake).mean()


class ReconstructionLoss:
    def __init__(self, loss_type: str = "mse"):
        if loss_type != "mse":
            raise ValueError(f"Unknown reconstruction loss type {loss_type!r}")
        self.loss_type = loss_type

    def __call__(self, real: torch.Tensor, fake: torch.Tensor) -> torch.Tensor:
        return F.mse_loss(fake, real.detach())
