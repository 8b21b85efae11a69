"""Scikit-learn class wrapper for NNICA."""
import numpy as np
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.utils.validation import check_array, check_is_fitted, validate_data

from nnica import constants
from .core import fit_nnica

CHECK_ARRAY_KWARGS = {
    "dtype": [np.float64, np.float32],
    "ensure_min_samples": 2,  # one sample per row
    "ensure_min_features": 2,
}

class NNICA(TransformerMixin, BaseEstimator):
    """NNICA: Non-Negative Independent Component Analysis.

    Estimates non-negative, statistically independent sources from their linear
    mixtures by the gradient search of Oja & Plumbley (2004). The data are
    whitened *without* removing their mean, then an orthonormal rotation is
    searched for which makes the rotated data non-negative.

    Parameters
    ----------
    n_components : int, default=None
        Number of sources to estimate. Must not exceed ``n_features``. If
        ``None``, as many sources as features are estimated.
    mean_center : bool, default=False
        If ``True``, the data is mean-centered before whitening and the mean is
        added back by :meth:`~NNICA.inverse_transform`. Non-negative ICA relies on
        the offset of the data, so this is ``False`` by default.
    max_iter : int, default=5000
        Upper bound on the number of gradient steps.
    tol : float, default=1e-8
        Tolerance for stopping criteria. The search stops once the Frobenius norm
        of the change of the unmixing matrix over one iteration is below ``tol``.
    lrate : float, default=0.03
        Learning rate of the gradient search. It is not adapted during fitting.
    batch_size : int, optional
        Number of samples processed at once when accumulating the gradient. If
        ``None``, it is chosen from the available memory.
    w_init : ndarray of shape (``n_components``, ``n_components``), default=``None``
        Initial un-mixing array. It is orthonormalized before use. If ``None``,
        the identity matrix is used, which makes the fit deterministic.

    Attributes
    ----------
    components_ : ndarray of shape (``n_components``, ``n_features``)
        Maps (mean-removed) data to the estimated sources. Equal to ``np.matmul(unmixing_, whitening_)``.
    mixing_ : ndarray of shape (``n_features``, ``n_components``)
        The right pseudo-inverse of ``components_``. It is the linear operator
        that maps independent sources to the data.
    mean_ : ndarray of shape(``n_features``,)
        The mean over features. Only set if ``mean_center`` is ``True``.
    whitening_ : ndarray of shape (``n_components``, ``n_features``)
        The pre-whitening matrix that projects data onto the first
        ``n_components`` principal components, scaled to unit variance.
    unmixing_ : ndarray of shape (``n_components``, ``n_components``)
        The orthonormal unmixing matrix found in the whitened space.
    n_features_in_ : int
        Number of features seen during :meth:`~NNICA.fit`.
    n_iter_ : int
        Number of iterations run during fit.
    converged_ : bool
        Whether the tolerance was met within ``max_iter`` iterations.

    Notes
    -----
    The order of the recovered sources is arbitrary and is not resolved.

    Examples
    --------
    >>> from nnica import NNICA
    >>> from nnica.utils import generate_toy_data
    >>> X, _, _ = generate_toy_data(n_samples=1000, seed=0)
    >>> transformer = NNICA(n_components=2)
    >>> S_estimated = transformer.fit_transform(X.T)
    >>> S_estimated.shape
    (1000, 2)
    """

    def __init__(
            self,
            n_components=None,
            *,
            mean_center=False,
            max_iter=constants.max_iter,
            tol=constants.tol,
            lrate=constants.lrate,
            batch_size=None,
            w_init=None,
            ):
        super().__init__()
        self.n_components = n_components
        self.mean_center = mean_center
        self.max_iter = max_iter
        self.tol = tol
        self.lrate = lrate
        self.batch_size = batch_size
        self.w_init = w_init

    def fit(self, X, y=None, verbose=None):
        """Fit the NNICA model to the data X.

        Parameters
        ----------
        X : array-like of shape (n_samples, ``n_features``)
            Non-negative mixtures, one observation per row.
        y : None
            Ignored.
        verbose : bool or str or int or None, default=None
            Control verbosity of the logging output during this fit. See
            :func:`nnica.utils.set_log_level`. If ``None``, the current level
            is kept.

        Returns
        -------
        self : NNICA
            The fitted transformer.
        """
        X = validate_data(
            self, X=X,
            reset=True,
            **CHECK_ARRAY_KWARGS
            )
        fit_dict = fit_nnica(
            X.T,
            n_components=self.n_components,
            mean_center=self.mean_center,
            max_iter=self.max_iter,
            tol=self.tol,
            lrate=self.lrate,
            batch_size=self.batch_size,
            w_init=self.w_init,
            verbose=verbose,
        )

        if self.mean_center:
            self.mean_ = fit_dict["mean"]
        elif hasattr(self, "mean_"):
            del self.mean_  # left over from an earlier fit
        self.n_iter_ = fit_dict["n_iter"]
        self.converged_ = fit_dict["converged"]
        self.whitening_ = fit_dict["V"]
        self.unmixing_ = fit_dict["W"]
        self.components_ = self.unmixing_ @ self.whitening_
        self.mixing_ = fit_dict["mixing"]
        return self

    def transform(self, X, copy=True):
        """Project X onto the estimated sources, ``X @ components_.T``.

        Parameters
        ----------
        X : array-like of shape (n_samples, ``n_features``)
            Mixtures to unmix.
        copy : bool, default=True
            Whether X may be converted in place. X is never overwritten by the
            projection itself.

        Returns
        -------
        S : ndarray of shape (n_samples, ``n_components``)
            The sources, in the order found during fit.
        """
        check_is_fitted(self)
        X = validate_data(
            self, X=X, reset=False, copy=copy, dtype=[np.float64, np.float32]
            )
        Xc = X - self.mean_ if hasattr(self, "mean_") else X
        return Xc @ self.components_.T

    def fit_transform(self, X, y=None, verbose=None):
        """Fit to X, then return its sources.

        Equivalent to ``fit(X).transform(X)``; see :meth:`fit` for the parameters.

        Returns
        -------
        S : ndarray of shape (n_samples, ``n_components``)
        """
        return self.fit(X, verbose=verbose).transform(X)

    def inverse_transform(self, X):
        """Mix sources back into the feature space, ``S @ mixing_.T``.

        Parameters
        ----------
        X : array-like of shape (n_samples, ``n_components``)
            Sources, e.g. the output of :meth:`transform`.

        Returns
        -------
        X_reconstructed : ndarray of shape (n_samples, ``n_features``)
            Reconstructed data. Exact when ``n_components == n_features``,
            otherwise the projection onto the retained components.
        """
        check_is_fitted(self)
        X = check_array(X, dtype=[np.float64, np.float32])
        X_rec = X @ self.mixing_.T
        if hasattr(self, "mean_"):
            X_rec += self.mean_
        return X_rec
