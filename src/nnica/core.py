"""Non-negative ICA by gradient search over orthonormal unmixing matrices.

Implements the method of Oja & Plumbley, "Blind Separation of Positive Sources
by Globally Convergent Gradient Search", Neural Computation 16 (2004). The data
are whitened without removing their mean, and an orthonormal unmixing matrix W
is then sought such that ``W @ Z`` has no negative entries.
"""
import time
from dataclasses import replace
from typing import Any, Callable, Optional, Tuple

import numpy as np
import torch

from nnica import constants
from nnica._batching import BatchLoader, choose_batch_size
from nnica._types import (
    DataArray2D,
    DataTensor2D,
    MixingArray,
    MixingTensor,
    SourceArray2D,
    UnmixingArray,
    UnmixingTensor,
    WhiteningTensor,
)
from nnica.exceptions import InvalidArgumentError
from nnica.kernels import (
    accumulate_surrogate_products,
    compute_change,
    compute_nonnegativity_surrogate,
    compute_skew_gradient,
    compute_sources,
    gradient_step,
)
from nnica.linalg import pre_whiten, right_pseudoinverse, symmetric_orthonormalize
from nnica.state import (
    IterationMetrics,
    NNICAConfig,
    NNICAHistory,
    NNICAState,
    get_initial_state,
)
from nnica.utils._logging import log, logger, use_log_level

ProgressCallback = Callable[[int, float], Any]
"""Called once per iteration with the 1-based iteration index and the change."""


def nnica(
        X: DataArray2D,
        n_components: Optional[int] = None,
        lrate: float = constants.lrate,
        max_iter: int = constants.max_iter,
        tol: float = constants.tol,
) -> Tuple[SourceArray2D, MixingArray]:
    """Estimate non-negative independent sources and their mixing matrix.

    Parameters
    ----------
    X : array-like, shape (n_features, n_samples)
        Observed mixtures, one channel per row.
    n_components : int, optional
        Number of sources to estimate. If None, ``n_components == n_features``.
    lrate : float, default=0.03
        Learning rate of the gradient search.
    max_iter : int, default=5000
        Maximum number of iterations.
    tol : float, default=1e-8
        The search stops once the Frobenius norm of the change of the unmixing
        matrix over one iteration falls below ``tol``.

    Returns
    -------
    sources : array, shape (n_components, n_samples)
        The estimated sources, in an arbitrary order.
    mixing_matrix : array, shape (n_features, n_components)
        The estimated mixing matrix, with columns in the order of ``sources``.

    See Also
    --------
    fit_nnica : Same computation, returning all intermediate results.
    """
    results = fit_nnica(
        X, n_components=n_components, lrate=lrate, max_iter=max_iter, tol=tol
        )
    return results["sources"], results["mixing"]


def fit_nnica(
        X: DataArray2D,
        n_components: Optional[int] = None,
        *,
        mean_center: bool = False,
        lrate: float = constants.lrate,
        max_iter: int = constants.max_iter,
        tol: float = constants.tol,
        batch_size: Optional[int] = None,
        w_init: Optional[UnmixingArray] = None,
        callback: Optional[ProgressCallback] = None,
        verbose=None,
) -> dict[str, Any]:
    """Fit non-negative ICA and return all results.

    Parameters
    ----------
    X : array-like, shape (n_features, n_samples)
        Observed mixtures, one channel per row. Not modified.
    n_components : int, optional
        Number of sources to estimate. If None, ``n_components == n_features``.
        Must not exceed ``n_features``.
    mean_center : bool, default=False
        If True, the channel means are removed before whitening. Non-negative ICA
        needs the data's offset, so leave this False unless the sources are known
        to be non-negative around the channel means.
    lrate : float, default=0.03
        Learning rate of the gradient search.
    max_iter : int, default=5000
        Maximum number of iterations.
    tol : float, default=1e-8
        Convergence tolerance on the Frobenius norm of the per-iteration change
        of the unmixing matrix.
    batch_size : int, optional
        Number of samples processed at once when accumulating the gradient. If
        None, it is chosen from the available memory, which for typical data
        means all samples at once.
    w_init : array-like, shape (n_components, n_components), optional
        Initial unmixing matrix. It is orthonormalized before use. If None, the
        identity matrix is used.
    callback : callable, optional
        Progress observer, called as ``callback(iteration, change)`` after every
        iteration. Exceptions raised by it are logged and ignored.
    verbose : bool or str or int or None, default=None
        Log level for the duration of this call. If None, the current level is
        kept. See :func:`nnica.utils.set_log_level`.

    Returns
    -------
    results : dict
        - ``"sources"``: array, shape (n_components, n_samples)
        - ``"mixing"``: array, shape (n_features, n_components)
        - ``"W"``: unmixing matrix, shape (n_components, n_components)
        - ``"V"``: whitening matrix, shape (n_components, n_features)
        - ``"mean"``: channel means, shape (n_features,), or None if
          ``mean_center`` is False
        - ``"n_iter"``: number of iterations run
        - ``"converged"``: whether the tolerance was met within ``max_iter``
        - ``"change"``: array of per-iteration change magnitudes, shape (n_iter,)

    Raises
    ------
    InvalidArgumentError
        If a parameter is out of range, e.g. ``n_components > n_features``.
        Raised before any computation.
    NumericalFailureError
        If the data are rank deficient, or a matrix that must be inverted during
        the search or the reconstruction is singular.
    """
    with use_log_level(verbose):
        X = np.asarray(X, dtype=np.float64)
        if X.ndim != 2:
            raise InvalidArgumentError(
                f"X must be 2D (n_features, n_samples), got {X.ndim}D"
                )
        n_features, n_samples = X.shape
        config = NNICAConfig(
            n_features=n_features,
            n_components=n_components if n_components is not None else n_features,
            max_iter=max_iter,
            batch_size=batch_size,
            tol=tol,
            lrate=lrate,
        )
        if config.batch_size is not None and config.batch_size > n_samples:
            raise InvalidArgumentError(
                f"batch_size {config.batch_size} exceeds the number of samples "
                f"{n_samples}"
            )
        if not np.all(np.isfinite(X)):
            raise InvalidArgumentError("X contains NaN or infinity")

        logger.info(
            "whitening the data "
            f"({'removing' if mean_center else 'without removing'} mean) ..."
            )
        Z, V, mean = pre_whiten(
            X=X,
            n_components=config.n_components,
            do_mean=mean_center,
        )
        logger.info("... data whitened")

        if config.batch_size is None:
            config = replace(
                config,
                batch_size=choose_batch_size(N=n_samples, n_comps=config.n_components),
                )
        state = get_initial_state(config, w_init=w_init)

        Z = torch.as_tensor(Z, dtype=config.dtype)
        logger.info("running ICA iterations ...")
        with torch.no_grad():
            state, history = optimize(
                Z=Z,
                config=config,
                state=state,
                callback=callback,
            )
            sources, mixing = reconstruct(
                unmixing_matrix=state.W,
                whitening_matrix=torch.as_tensor(V, dtype=config.dtype),
                Z=Z,
            )
        logger.info("... iterations finished")

    return {
        "sources": sources.numpy(),
        "mixing": mixing.numpy(),
        "W": state.to_numpy()["W"],
        "V": V,
        "mean": mean,
        "n_iter": len(history),
        "converged": history.last().change < config.tol,
        "change": history.change_array(),
    }


def optimize(
        *,
        Z: DataTensor2D,
        config: NNICAConfig,
        state: NNICAState,
        callback: Optional[ProgressCallback] = None,
) -> Tuple[NNICAState, NNICAHistory]:
    """Main optimization loop for NNICA.

    Parameters
    ----------
    Z : Tensor, shape (n_components, n_samples)
        Whitened data.
    config : NNICAConfig
        Run configuration.
    state : NNICAState
        Initial state. ``state.W`` must be orthonormal.
    callback : callable, optional
        Progress observer, see :func:`fit_nnica`.

    Returns
    -------
    state : NNICAState
        The state holding the final unmixing matrix.
    history : NNICAHistory
        One IterationMetrics per iteration run.
    """
    num_comps, n_samples = Z.shape
    assert num_comps == config.n_components, (
        f"Z has {num_comps} rows, expected n_components={config.n_components}"
    )
    assert state.W.shape == (num_comps, num_comps), (
        f"W shape {tuple(state.W.shape)} != ({num_comps}, {num_comps})"
    )
    batch_loader = BatchLoader(Z, axis=1, batch_size=config.batch_size)
    logger.debug(f"{batch_loader!r}")

    history = NNICAHistory()
    products = torch.zeros((num_comps, num_comps), dtype=config.dtype)
    converged = False
    for iteration in range(1, config.max_iter + 1):
        c1 = time.perf_counter()
        W0 = state.W

        # 1. --- f(Y) @ Y.T, accumulated over batches of samples ---
        products.zero_()
        for Z_batch, _ in batch_loader:
            Y = compute_sources(Z=Z_batch, unmixing_matrix=W0)
            f = compute_nonnegativity_surrogate(Y)
            accumulate_surrogate_products(f=f, Y=Y, out_products=products)

        # 2. --- Skew-symmetric gradient and step ---
        E = compute_skew_gradient(products=products, n_samples=n_samples)
        W = gradient_step(unmixing_matrix=W0, gradient=E, lrate=config.lrate)

        # 3. --- Back onto the orthonormal matrices ---
        state.W = symmetric_orthonormalize(W)

        change = compute_change(unmixing_matrix=state.W, previous=W0).item()
        history.append(
            IterationMetrics(
                iter=iteration,
                change=change,
                step_time_s=time.perf_counter() - c1,
            )
        )
        logger.debug(f"it {iteration}, W-change: {change:.8f}")
        if iteration % constants.outstep == 0:
            logger.info(f"it {iteration}, W-change: {change:.8f}")
        if callback is not None:
            _notify(callback, iteration, change)

        if change < config.tol:
            converged = True
            break

    if converged:
        log(f"Converged after {iteration} iterations", color="green")
    else:
        logger.warning(
            f"Did not converge within max_iter={config.max_iter} iterations: "
            f"last W-change {change:.3g} >= tol {config.tol:.3g}."
        )
    return state, history


def _notify(callback: ProgressCallback, iteration: int, change: float) -> None:
    try:
        callback(iteration, change)
    except Exception as err:
        logger.warning(
            f"Progress callback raised {err!r} at iteration {iteration}; ignoring it."
        )


def reconstruct(
        *,
        unmixing_matrix: UnmixingTensor,
        whitening_matrix: WhiteningTensor,
        Z: DataTensor2D,
) -> Tuple[DataTensor2D, MixingTensor]:
    """Compute the sources and the mixing matrix from the converged W.

    The sources are ``Y = W @ Z``. They equal the true sources up to an unknown
    permutation Q, ``Y = Q @ S = W @ V @ A @ S``, so ``X = A @ S = A' @ Y`` with
    ``A' = A @ Q.T``. A' is computed as the right Moore-Penrose inverse of
    ``W @ V``. When ``n_components < n_features`` any right inverse would do, so
    A' is not unique.

    Parameters
    ----------
    unmixing_matrix : Tensor, shape (n_components, n_components)
        Converged unmixing matrix W.
    whitening_matrix : Tensor, shape (n_components, n_features)
        Whitening matrix V.
    Z : Tensor, shape (n_components, n_samples)
        Whitened data.

    Returns
    -------
    sources : Tensor, shape (n_components, n_samples)
    mixing : Tensor, shape (n_features, n_components)

    Raises
    ------
    NumericalFailureError
        If ``(W V)(W V)^T`` is singular or ill-conditioned.
    """
    W = unmixing_matrix
    V = whitening_matrix
    assert W.shape[1] == V.shape[0], f"W shape {W.shape} incompatible with V {V.shape}"
    sources = compute_sources(Z=Z, unmixing_matrix=W)
    mixing = right_pseudoinverse(W @ V)
    return sources, mixing
