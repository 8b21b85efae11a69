"""Numeric kernels for one NNICA iteration.

All functions take and return float64 torch Tensors. Shapes follow the
(n_components, n_samples) convention of the whitened data.
"""
from typing import Optional

import torch

from nnica._types import DataTensor2D, ScalarTensor, UnmixingTensor


def compute_sources(
        *,
        Z: DataTensor2D,  # (n_components, n_samples)
        unmixing_matrix: UnmixingTensor,  # (n_components, n_components)
) -> DataTensor2D:
    """Compute candidate sources Y = W @ Z.

    Parameters
    ----------
    Z : Tensor, shape (n_components, n_samples)
        Whitened data. Can be the entire data or a batch of samples. Not modified.
    unmixing_matrix : Tensor, shape (n_components, n_components)
        Current unmixing matrix W.

    Returns
    -------
    Y : Tensor, shape (n_components, n_samples)
        The candidate sources.
    """
    W = unmixing_matrix
    assert W.ndim == 2, f"W must be 2D, got {W.ndim}D"
    assert Z.ndim == 2, f"Z must be 2D, got {Z.ndim}D"
    assert Z.shape[0] == W.shape[1], (
        f"Z n_components {Z.shape[0]} != W n_components {W.shape[1]}"
    )
    return torch.matmul(W, Z)


def compute_nonnegativity_surrogate(Y: DataTensor2D) -> DataTensor2D:
    """Elementwise ``f(y) = min(y, 0)``.

    Negative entries are kept, non-negative entries become zero. For perfectly
    separated non-negative sources f(Y) is all zeros.
    """
    return torch.clamp(Y, max=0.0)


def accumulate_surrogate_products(
        *,
        f: DataTensor2D,
        Y: DataTensor2D,
        out_products: Optional[UnmixingTensor] = None,
) -> UnmixingTensor:
    """Accumulate ``f @ Y.T`` for one batch of samples.

    Parameters
    ----------
    f : Tensor, shape (n_components, batch_size)
        Surrogate ``min(Y, 0)`` for the batch.
    Y : Tensor, shape (n_components, batch_size)
        Candidate sources for the batch.
    out_products : Tensor, shape (n_components, n_components), optional
        Running sum over batches. Updated in place if given.

    Returns
    -------
    products : Tensor, shape (n_components, n_components)
        ``out_products + f @ Y.T``, or just ``f @ Y.T`` if out_products is None.
    """
    assert f.shape == Y.shape, f"f shape {f.shape} != Y shape {Y.shape}"
    if out_products is None:
        return f @ Y.T
    return out_products.addmm_(f, Y.T)


def compute_skew_gradient(
        *,
        products: UnmixingTensor,
        n_samples: int,
) -> UnmixingTensor:
    """Gradient direction ``E = (F - F^T) / n_samples`` with ``F = f(Y) @ Y^T``.

    E is skew-symmetric, so the update ``W - lrate * E @ W`` is tangent to the
    orthonormal matrices at W to first order.
    """
    return (products - products.T) / n_samples


def gradient_step(
        *,
        unmixing_matrix: UnmixingTensor,
        gradient: UnmixingTensor,
        lrate: float,
) -> UnmixingTensor:
    """Take one gradient step ``W <- W - lrate * (E @ W)``. W is not modified."""
    W = unmixing_matrix
    return W - lrate * (gradient @ W)


def compute_change(
        *,
        unmixing_matrix: UnmixingTensor,
        previous: UnmixingTensor,
) -> ScalarTensor:
    """Frobenius norm of the update, ``||W - W_previous||_F``."""
    return torch.linalg.matrix_norm(unmixing_matrix - previous, ord="fro")
