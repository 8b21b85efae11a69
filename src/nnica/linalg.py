"""Whitening, symmetric orthonormalization and pseudoinverse helpers."""

from typing import Optional, Tuple

import numpy as np
import torch

from nnica import constants
from nnica._types import (
    DataArray2D,
    FeaturesVector,
    MixingTensor,
    UnmixingTensor,
    WhitenedArray2D,
    WhiteningArray,
    WhiteningTensor,
)
from nnica.exceptions import NumericalFailureError
from nnica.utils._logging import logger


def pre_whiten(
        *,
        X: DataArray2D,
        n_components: Optional[int] = None,
        do_mean: bool = False,
        mineig: float = constants.mineig,
) -> Tuple[WhitenedArray2D, WhiteningArray, FeaturesVector | None]:
    """
    Pre-whiten the input data matrix X prior to ICA.

    The whitening matrix is built from the covariance of the mean-centered data,
    so that the whitened data are decorrelated with unit variance. Whether the
    mean is also removed from the *returned* data is controlled by ``do_mean``.
    Non-negative ICA relies on the data's offset, so it whitens with
    ``do_mean=False``.

    Parameters
    ----------
    X : array, shape (n_features, n_samples)
        Input data matrix to be whitened. Not modified.
    n_components : int or None
        Number of components to keep, i.e. the number of rows of the whitening
        matrix. If None, all components are kept.
    do_mean : bool
        If True, the mean of each feature is subtracted from the data before
        the whitening matrix is applied.
    mineig : float
        Relative eigenvalue floor. Eigenvalues below ``mineig`` times the largest
        eigenvalue are treated as zero (rank deficient directions).

    Returns
    -------
    Z : array, shape (n_components, n_samples)
        The whitened data.
    whitening_matrix : array, shape (n_components, n_features)
        The whitening matrix V, so that ``Z = V @ X`` (or ``V @ (X - mean)``).
    mean : array, shape (n_features,) or None
        The mean of each feature. Only returned if do_mean is True, otherwise None.

    Raises
    ------
    NumericalFailureError
        If the rank of the data is lower than ``n_components``, since the
        whitening matrix must then have full row rank.
    """
    X = np.asarray(X, dtype=np.float64)
    assert X.ndim == 2, f"X must be 2D, got {X.ndim}D"
    nx, n_samples = X.shape
    if n_components is None:
        n_components = nx
    assert n_components <= nx, f"n_components {n_components} > n_features {nx}"

    # ---- Mean-centering ----
    logger.debug("getting the mean ...")
    mean = X.mean(axis=1)
    Xc = X - mean[:, None]

    # ---- Covariance ----
    logger.debug("getting the covariance matrix ...")
    Cov = Xc @ Xc.T / n_samples

    # ---- Eigen-decomposition
    logger.debug(f"doing eig nx = {nx}")
    eigvals, eigvecs = np.linalg.eigh(Cov) # ascending order
    order = np.argsort(eigvals)[::-1]
    eigvals = eigvals[order]
    eigvecs = eigvecs[:, order]
    logger.debug(f"maximum eigenvalues: {eigvals[:3]}")
    logger.debug(f"minimum eigenvalues: {eigvals[::-1][:min(nx // 2, 3)]}")

    if not np.all(np.isfinite(eigvals)) or eigvals[0] <= 0:
        raise NumericalFailureError(
            "The covariance of the data is zero or not finite; it cannot be whitened."
        )
    numeigs = int(np.sum(eigvals > mineig * eigvals[0]))
    logger.debug(f"num eigvals above floor: {numeigs}")
    if numeigs < n_components:
        raise NumericalFailureError(
            f"Data rank ({numeigs}) is lower than the number of requested components "
            f"({n_components}).\n\n"
            "Things to try:\n"
            "- Remove collinear or constant channels\n"
            "- Reduce the number of components\n"
        )

    # ---- PCA whitening: scaled leading eigenvectors ----
    V = eigvecs[:, :n_components].T / np.sqrt(eigvals[:n_components, None])
    Z = V @ (Xc if do_mean else X)

    assert Z.shape == (n_components, n_samples), (
        f"Z shape {Z.shape} != (n_components, n_samples) = "
        f"({n_components}, {n_samples})"
    )
    return Z, V, (mean if do_mean else None)


def inverse_sqrtm(
        M: torch.Tensor,
        *,
        mineig: float = constants.mineig,
) -> torch.Tensor:
    """Inverse principal square root of a symmetric positive-definite matrix.

    Computed from the eigendecomposition ``M = U diag(d) U^T`` as
    ``U diag(d ** -0.5) U^T``.

    Raises
    ------
    NumericalFailureError
        If M is singular, indefinite or ill-conditioned, i.e. its smallest
        eigenvalue is below ``mineig`` times its largest.
    """
    try:
        eigvals, eigvecs = torch.linalg.eigh(M)
    except RuntimeError as e:
        # torch.linalg.LinAlgError subclasses RuntimeError
        raise NumericalFailureError(
            f"Eigendecomposition of a {tuple(M.shape)} matrix failed: {e}"
        ) from e
    # eigh returns ascending eigenvalues
    if not torch.all(torch.isfinite(eigvals)) or eigvals[0] <= mineig * eigvals[-1]:
        raise NumericalFailureError(
            "Matrix is singular or ill-conditioned; its inverse square root is "
            f"undefined (eigenvalues in [{eigvals[0].item():.3g}, "
            f"{eigvals[-1].item():.3g}])."
        )
    return (eigvecs * eigvals.rsqrt()) @ eigvecs.T


def symmetric_orthonormalize(W: UnmixingTensor) -> UnmixingTensor:
    """Project W onto the orthonormal matrices: ``W <- (W W^T)^{-1/2} W``.

    The result satisfies ``W @ W.T == I`` up to floating point error.
    """
    assert W.ndim == 2 and W.shape[0] == W.shape[1], f"W must be square, got {W.shape}"
    return inverse_sqrtm(W @ W.T) @ W


def right_pseudoinverse(
        M: WhiteningTensor,
        *,
        maxcond: float = constants.maxcond,
) -> MixingTensor:
    """Right Moore-Penrose inverse ``M^T (M M^T)^{-1}`` of a full row rank matrix.

    Parameters
    ----------
    M : Tensor, shape (n_components, n_features)
        Matrix with ``n_components <= n_features``, e.g. the full unmixing
        transform ``W @ V``.
    maxcond : float
        Largest accepted condition number of ``M @ M.T``.

    Returns
    -------
    M_pinv : Tensor, shape (n_features, n_components)
        A right inverse, ``M @ M_pinv == I``. It is not unique if
        ``n_components < n_features``.

    Raises
    ------
    NumericalFailureError
        If ``M @ M.T`` is singular or its condition number exceeds ``maxcond``.
    """
    gram = M @ M.T
    cond = torch.linalg.cond(gram)
    if not torch.isfinite(cond) or cond > maxcond:
        raise NumericalFailureError(
            f"Cannot compute the right pseudoinverse: M @ M.T is singular or "
            f"ill-conditioned (condition number {cond.item():.3g})."
        )
    try:
        # gram is symmetric, so (M^T gram^-1)^T = gram^-1 M
        return torch.linalg.solve(gram, M).T
    except RuntimeError as e:
        raise NumericalFailureError(
            f"Cannot compute the right pseudoinverse: {e}"
        ) from e
