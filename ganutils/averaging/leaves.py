"""Leaf enumeration over nn.Module trees.

Every module registers its tensors with torch (parameters and buffers), so
walking named_parameters / named_buffers reaches each leaf of any model,
including nested containers and running statistics, without knowing its type.
"""

import torch
import torch.nn as nn


def named_leaves(module: nn.Module, include_buffers: bool = True) -> list[tuple[str, torch.Tensor]]:
    """All (name, tensor) leaves of module in registration order.

    Tied tensors are reported once, under the first name they were found at.
    """
    leaves = list(module.named_parameters())
    if include_buffers:
        seen = {id(t) for _, t in leaves}
        for name, buf in module.named_buffers():
            if id(buf) not in seen:
                seen.add(id(buf))
                leaves.append((name, buf))
    return leaves


def paired_leaves(
    live: nn.Module,
    shadow: nn.Module,
    include_buffers: bool = True,
) -> list[tuple[str, torch.Tensor, torch.Tensor]]:
    """Zip the leaves of two structurally identical modules.

    Returns:
        list of (name, live_tensor, shadow_tensor)

    Raises:
        ValueError: if the trees differ in leaf names, order or shapes
    """
    live_leaves = named_leaves(live, include_buffers)
    shadow_leaves = named_leaves(shadow, include_buffers)

    live_names = [name for name, _ in live_leaves]
    shadow_names = [name for name, _ in shadow_leaves]
    if live_names != shadow_names:
        missing = sorted(set(live_names) - set(shadow_names))
        extra = sorted(set(shadow_names) - set(live_names))
        raise ValueError(
            f"Model trees differ: missing in shadow {missing}, unexpected in shadow {extra}"
            if missing or extra
            else "Model trees list the same leaves in a different order"
        )

    pairs = []
    for (name, l), (_, s) in zip(live_leaves, shadow_leaves):
        if l.shape != s.shape:
            raise ValueError(f"Leaf {name}: live shape {tuple(l.shape)} != shadow shape {tuple(s.shape)}")
        pairs.append((name, l, s))
    return pairs
