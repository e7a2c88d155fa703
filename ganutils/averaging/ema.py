"""Exponential moving average of model weights (https://arxiv.org/abs/1806.04498)."""

import copy
import logging

import torch
import torch.nn as nn

from ganutils.averaging.leaves import paired_leaves

logger = logging.getLogger(__name__)


class ModelAveraging:
    """Shadow copy of a model whose leaves track the live model:

        shadow <- beta * shadow + (1 - beta) * live

    beta = 1 freezes the shadow at its initial value, beta = 0 makes it copy
    the live model on every update. Buffers (running stats, spectral norm
    vectors) are averaged too unless include_buffers=False; integer buffers
    such as num_batches_tracked are copied as-is.

    update() is not atomic: do not read `average` while it runs.
    """

    def __init__(self, model: nn.Module, beta: float = 0.95, include_buffers: bool = True):
        if not 0.0 <= beta <= 1.0:
            raise ValueError(f"beta must be in [0, 1], got {beta}")
        self.beta = beta
        self.include_buffers = include_buffers

        self.average = copy.deepcopy(model)
        self.average.eval()
        self.average.requires_grad_(False)

        n_leaves = len(paired_leaves(model, self.average, include_buffers))
        logger.info(f"Model averaging: beta={beta}, tracking {n_leaves} leaves")

    @torch.no_grad()
    def update(self, model: nn.Module) -> None:
        for _, live, shadow in paired_leaves(model, self.average, self.include_buffers):
            if shadow.is_floating_point():
                shadow.mul_(self.beta).add_(live.detach(), alpha=1 - self.beta)
            else:
                shadow.copy_(live)

    def state_dict(self) -> dict:
        return {"beta": self.beta, "average": self.average.state_dict()}

    def load_state_dict(self, state: dict) -> None:
        self.beta = state["beta"]
        self.average.load_state_dict(state["average"])
