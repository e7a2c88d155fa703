"""YAML config loading and translation into layer keyword arguments."""

import yaml


def load_config(path: str = "configs/default.yaml") -> dict:
    with open(path) as f:
        cfg = yaml.safe_load(f)
    if not isinstance(cfg, dict):
        raise ValueError(f"Config {path} must contain a mapping, got {type(cfg).__name__}")
    return cfg


def _section(cfg: dict, name: str) -> dict:
    if name not in cfg:
        raise ValueError(f"Config is missing the {name!r} section")
    return cfg[name]


def sn_kwargs(cfg: dict) -> dict:
    """Keyword arguments for SNLinear / SNConv2d / SNConvTranspose2d."""
    sc = _section(cfg, "spectral")
    return {
        "enabled": sc.get("enabled", True),
        "n_power_iterations": sc.get("n_power_iterations", 1),
        "eps": float(sc.get("eps", 1e-8)),
    }


def averaging_kwargs(cfg: dict) -> dict:
    """Keyword arguments for ModelAveraging."""
    ac = _section(cfg, "averaging")
    return {
        "beta": float(ac.get("beta", 0.95)),
        "include_buffers": ac.get("include_buffers", True),
    }


def loss_kwargs(cfg: dict) -> dict:
    """Keyword arguments for GANLoss."""
    lc = _section(cfg, "loss")
    return {"loss_type": lc.get("type", "non_saturating")}
