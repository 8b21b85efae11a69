from types import SimpleNamespace

import numpy as np
import pytest
import torch

from nnica import _batching
from nnica._batching import BatchLoader, choose_batch_size
from nnica.utils import set_log_level


def test_batch_loader():
    """Test accessing whitened data in batches of samples using BatchLoader."""
    # 1000 columns of 1s, 1000 of 2s, 1000 of 3s
    Z = torch.concatenate(
        [torch.ones((2, 1000)), 2 * torch.ones((2, 1000)), 3 * torch.ones((2, 1000))],
        dim=1,
        )
    batch_loader = BatchLoader(Z, axis=1, batch_size=1000)

    assert len(batch_loader) == 3
    # Test __getitem__
    assert torch.all(batch_loader[0] == 1)
    assert torch.all(batch_loader[2] == 3)
    with pytest.raises(IndexError):
        batch_loader[3]
    # Test __iter__
    for i, (batch, batch_slice) in enumerate(batch_loader):
        assert batch.shape == (2, 1000)
        assert torch.all(batch == i + 1)
        assert batch_slice == slice(i * 1000, (i + 1) * 1000)
    # Test __repr__
    repr_str = repr(batch_loader)
    assert "shape=(2, 3000)" in repr_str
    assert "axis=1" in repr_str
    assert "batch_size=1000" in repr_str
    assert "n_batches=3" in repr_str

    # A last, shorter batch
    uneven = BatchLoader(Z, axis=-1, batch_size=1024)
    assert len(uneven) == 3
    assert [sl for _, sl in uneven][-1] == slice(2048, 3000)
    assert uneven[2].shape == (2, 952)

    # Test batch size None
    whole = BatchLoader(Z, axis=1, batch_size=None)
    assert len(whole) == 1
    assert whole[0].shape == Z.shape

    # Test failures
    with pytest.raises(ValueError, match="batch_size must be positive"):
        BatchLoader(Z, axis=1, batch_size=-10)
    with pytest.raises(ValueError, match="batch_size 4000 exceeds the length 3000"):
        BatchLoader(Z, axis=1, batch_size=4000)
    with pytest.raises(ValueError, match="out of bounds"):
        BatchLoader(Z, axis=2)
    with pytest.raises(TypeError):
        BatchLoader(Z.numpy(), axis=1)


def _available(monkeypatch, n_bytes):
    monkeypatch.setattr(
        _batching.psutil, "virtual_memory", lambda: SimpleNamespace(available=n_bytes)
        )


def test_choose_batch_size(monkeypatch, capsys):
    # Plenty of memory: all samples at once
    _available(monkeypatch, 1e12)
    assert choose_batch_size(N=1000, n_comps=2) == 1000

    # 2 components in float64 cost int(2 * 2 * 8 * 1.2) = 38 bytes per sample,
    # and a quarter of 1e6 bytes may be used.
    set_log_level("WARNING")
    _available(monkeypatch, 1e6)
    assert choose_batch_size(N=100_000, n_comps=2) == 6578
    assert "fewer than the recommended 8192" in capsys.readouterr().out
    assert choose_batch_size(N=100_000, n_comps=2, dtype=np.float32) == 250_000 // 19

    _available(monkeypatch, 10)
    with pytest.raises(MemoryError, match="cannot hold a single sample"):
        choose_batch_size(N=1000, n_comps=2)
