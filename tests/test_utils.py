"""Tests for interpolation helpers and config loading."""

from pathlib import Path

import torch
import pytest

from ganutils.utils.interpolation import lerp, make_grid
from ganutils.config import load_config, sn_kwargs, averaging_kwargs, loss_kwargs
from ganutils.training.loss import GANLoss


def test_lerp_endpoints():
    a, b = torch.zeros(3), torch.ones(3)
    assert torch.equal(lerp(a, b, 0.0), a)
    assert torch.equal(lerp(a, b, 1.0), b)
    assert torch.allclose(lerp(a, b, 0.25), torch.full((3,), 0.25))


def test_lerp_clamps_rate():
    a, b = torch.zeros(2), torch.ones(2)
    assert torch.equal(lerp(a, b, 2.0), b)
    assert torch.equal(lerp(a, b, -1.0), a)


def test_make_grid_shape_and_corner():
    corners = torch.randn(4, 5)
    grid = make_grid(corners, grid_size=3)
    assert grid.shape == (3, 3, 5)
    assert torch.equal(grid[0, 0], corners[0])
    assert make_grid(corners, grid_size=3, flatten=True).shape == (9, 5)


def test_make_grid_interpolates():
    corners = torch.tensor([[0.0], [1.0], [2.0], [3.0]])
    grid = make_grid(corners, grid_size=2)
    # row 1 sits halfway between top and bottom corners
    assert torch.allclose(grid[1, 0], torch.tensor([1.0]))
    assert torch.allclose(grid[0, 1], torch.tensor([0.5]))


def test_make_grid_requires_four_corners():
    with pytest.raises(ValueError):
        make_grid(torch.randn(3, 2), grid_size=2)


def test_default_config_loads():
    cfg = load_config(str(Path(__file__).parent.parent / "configs" / "default.yaml"))
    kwargs = sn_kwargs(cfg)
    assert kwargs["n_power_iterations"] >= 1
    assert kwargs["eps"] == pytest.approx(1e-8)
    assert averaging_kwargs(cfg)["beta"] == pytest.approx(0.95)
    assert cfg["attention"]["channels"] % 8 == 0


def test_config_defaults_and_missing_sections(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text("spectral: {}\n")
    cfg = load_config(str(path))
    assert sn_kwargs(cfg) == {"enabled": True, "n_power_iterations": 1, "eps": 1e-8}
    with pytest.raises(ValueError):
        averaging_kwargs(cfg)


def test_config_must_be_mapping(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ValueError):
        load_config(str(path))


def test_loss_section_selects_gan_loss(tmp_path):
    cfg = load_config(str(Path(__file__).parent.parent / "configs" / "default.yaml"))
    assert GANLoss(**loss_kwargs(cfg)).loss_type == "non_saturating"

    path = tmp_path / "cfg.yaml"
    path.write_text("loss:\n  type: hinge\n")
    assert GANLoss(**loss_kwargs(load_config(str(path)))).loss_type == "hinge"

    path.write_text("loss:\n  type: wasserstein\n")
    with pytest.raises(ValueError):
        GANLoss(**loss_kwargs(load_config(str(path))))
    with pytest.raises(ValueError):
        loss_kwargs({"spectral": {}})
