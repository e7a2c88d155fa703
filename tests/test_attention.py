"""Tests for attention blocks: shapes, identity at init, row-stochastic maps."""

import torch
import pytest

from ganutils.model.attention import SelfAttention, ConvolutionalBlockAttention


@pytest.fixture
def seed():
    torch.manual_seed(42)


@pytest.fixture
def spiky_input():
    x = torch.ones(1, 16, 4, 4)
    x[0, :, 0, 0] *= 10
    x[0, :, 1, 1] *= 10
    return x


def test_channels_must_be_multiple_of_8():
    with pytest.raises(ValueError):
        SelfAttention(12)


def test_output_shape(seed, spiky_input):
    layer = SelfAttention(16)
    assert layer(spiky_input).shape == spiky_input.shape


def test_identity_at_init(seed):
    """sigma starts at 0, so the residual passes the input through exactly."""
    layer = SelfAttention(32)
    x = torch.randn(2, 32, 8, 8)
    assert layer.sigma.item() == 0.0
    assert torch.equal(layer(x), x)


def test_attention_map_shape(seed):
    layer = SelfAttention(16)
    attn = layer.compute_attention(torch.randn(3, 16, 8, 6))
    assert attn.shape == (3, 48, 12)


def test_attention_map_row_stochastic(seed):
    layer = SelfAttention(16, spectral_norm=False)
    x = torch.randn(2, 16, 8, 8) * 5
    attn = layer.compute_attention(x)
    assert (attn >= 0).all()
    assert torch.allclose(attn.sum(dim=-1), torch.ones(2, 64), atol=1e-5)


def test_nonzero_gate_changes_output(seed):
    layer = SelfAttention(16)
    with torch.no_grad():
        layer.sigma.fill_(1.0)
    x = torch.randn(2, 16, 4, 4)
    out = layer(x)
    assert out.shape == x.shape
    assert not torch.allclose(out, x)


def test_gradient_reaches_gate(seed):
    layer = SelfAttention(16)
    layer(torch.randn(2, 16, 4, 4)).pow(2).sum().backward()
    assert layer.sigma.grad is not None
    assert layer.sigma.grad.abs() > 0


def test_projections_are_spectrally_normalized():
    layer = SelfAttention(16)
    assert all(conv.enabled for conv in (layer.theta, layer.phi, layer.g, layer.out))
    layer = SelfAttention(16, spectral_norm=False)
    assert not any(conv.enabled for conv in (layer.theta, layer.phi, layer.g, layer.out))


def test_custom_initializer():
    layer = SelfAttention(16, init=torch.nn.init.zeros_)
    assert (layer.theta.weight == 0).all()
    assert (layer.out.weight == 0).all()


def test_zero_initialized_block_is_identity(seed):
    """Zero projection weights must not turn the residual into NaN."""
    layer = SelfAttention(16, init=torch.nn.init.zeros_)
    x = torch.randn(1, 16, 4, 4)
    out = layer(x)
    assert torch.isfinite(out).all()
    assert torch.equal(out, x)


def test_state_dict_has_gate_and_vectors():
    keys = set(SelfAttention(16).state_dict())
    assert "sigma" in keys
    assert "theta.estimator.v" in keys
    assert "out.estimator.v" in keys


def test_rejects_bad_input(seed):
    layer = SelfAttention(16)
    with pytest.raises(ValueError):
        layer(torch.randn(16, 4, 4))
    with pytest.raises(ValueError):
        layer(torch.randn(1, 8, 4, 4))
    with pytest.raises(ValueError):
        layer(torch.randn(1, 16, 1, 4))


def test_cbam_forward(seed):
    layer = ConvolutionalBlockAttention(32)
    x = torch.ones(1, 32, 4, 4)
    x[0, :, 0, 0] *= 10
    x[0, :, 1, 1] *= 10
    assert layer(x).shape == x.shape
