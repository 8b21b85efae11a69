"""Compare estimated sources with known ones."""
import numpy as np
from scipy.optimize import linear_sum_assignment


def match_sources(estimated, true):
    """Pair estimated sources with true sources by absolute correlation.

    ICA recovers sources only up to permutation, sign and scale, so estimated
    and true sources are paired to maximize the summed absolute Pearson
    correlation (Hungarian algorithm).

    Parameters
    ----------
    estimated : array-like, shape (n_estimated, n_samples)
        Estimated sources, one per row.
    true : array-like, shape (n_true, n_samples)
        Reference sources, one per row.

    Returns
    -------
    true_index : ndarray of int, shape (n_pairs,)
        Row index into ``true`` for each pair.
    estimated_index : ndarray of int, shape (n_pairs,)
        Row index into ``estimated`` for each pair.
    correlations : ndarray, shape (n_pairs,)
        Signed correlation of each pair. A constant row has correlation 0.
    """
    estimated = np.atleast_2d(np.asarray(estimated, dtype=np.float64))
    true = np.atleast_2d(np.asarray(true, dtype=np.float64))
    if estimated.shape[1] != true.shape[1]:
        raise ValueError(
            f"estimated has {estimated.shape[1]} samples but true has "
            f"{true.shape[1]}"
        )
    n_true = true.shape[0]
    with np.errstate(divide="ignore", invalid="ignore"):
        corr = np.corrcoef(true, estimated)[:n_true, n_true:]
    corr = np.nan_to_num(corr, nan=0.0)
    true_index, estimated_index = linear_sum_assignment(-np.abs(corr))
    return true_index, estimated_index, corr[true_index, estimated_index]
