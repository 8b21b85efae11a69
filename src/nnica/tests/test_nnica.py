"""
Tests for the NNICA solver and reconstruction.

The recovery tests run the full solver on synthetic non-negative sources and
compare the estimates to the truth up to permutation and scale.
"""
import numpy as np
import pytest
import torch
from numpy.testing import assert_allclose, assert_array_equal

from nnica import (
    NNICA,
    InvalidArgumentError,
    NumericalFailureError,
    core,
    fit_nnica,
    nnica,
)
from nnica.core import optimize
from nnica.linalg import pre_whiten
from nnica.state import NNICAConfig, get_initial_state
from nnica.utils import generate_toy_data, match_sources

pytestmark = pytest.mark.timeout(120)


@pytest.mark.slow
@pytest.mark.parametrize("entrypoint", ["function", "class"])
def test_toy_data_recovery(toy_data, entrypoint):
    """Both sources are recovered with |correlation| > 0.95, in any order."""
    X, S, _ = toy_data
    if entrypoint == "function":
        sources, mixing = nnica(X, 2, 0.03, 5000, 1e-8)
    else:
        transformer = NNICA(n_components=2, lrate=0.03, max_iter=5000, tol=1e-8)
        sources = transformer.fit_transform(X.T).T
        mixing = transformer.mixing_
    assert sources.shape == (2, 1000)
    assert mixing.shape == (2, 2)

    true_index, est_index, corrs = match_sources(sources, S)
    assert sorted(true_index) == [0, 1]
    assert sorted(est_index) == [0, 1]
    assert np.all(np.abs(corrs) > 0.95), corrs

    # The recovered sources are (almost) non-negative, so positively correlated
    assert np.all(corrs > 0)
    # Matching columns of the mixing matrix point along the true ones
    A_true = np.array([[0.7, 0.3], [0.4, 0.6]])
    for i, j in zip(true_index, est_index):
        cos = A_true[:, i] @ mixing[:, j]
        cos /= np.linalg.norm(A_true[:, i]) * np.linalg.norm(mixing[:, j])
        assert cos > 0.95


def test_over_request_fails_before_whitening(toy_data, monkeypatch):
    """Requesting more sources than channels fails before any computation."""
    X, _, _ = toy_data

    def _no_whitening(**kwargs):
        raise AssertionError("whitening must not run")

    monkeypatch.setattr(core, "pre_whiten", _no_whitening)
    with pytest.raises(InvalidArgumentError, match="exceeds the number of channels"):
        core.nnica(X, n_components=3)
    with pytest.raises(InvalidArgumentError, match="exceeds the number of channels"):
        NNICA(n_components=3).fit(X.T)


@pytest.mark.parametrize(
        "kwargs",
        [
            dict(n_components=0),
            dict(lrate=0.0),
            dict(lrate=-0.03),
            dict(max_iter=0),
            dict(tol=-1e-8),
            dict(batch_size=0),
            dict(batch_size=1001),
            dict(n_components=1.5),
            dict(max_iter=10.5),
            dict(verbose="LOUD"),
        ]
)
def test_invalid_parameters(toy_data, kwargs):
    X, _, _ = toy_data
    with pytest.raises(InvalidArgumentError):
        fit_nnica(X, **kwargs)


def test_invalid_data():
    with pytest.raises(InvalidArgumentError, match="must be 2D"):
        fit_nnica(np.ones(10))
    X = np.random.default_rng(0).random((2, 100))
    X[0, 3] = np.nan
    with pytest.raises(InvalidArgumentError, match="NaN"):
        fit_nnica(X)


def test_already_separated_short_circuit():
    """Non-negative whitened data are already separated: one iteration, no change."""
    rng = np.random.default_rng(0)
    Z = torch.as_tensor(rng.random((3, 500)))
    config = NNICAConfig(n_features=3, n_components=3, batch_size=500)
    state = get_initial_state(config)
    state, history = optimize(Z=Z, config=config, state=state)
    assert len(history) == 1
    assert history.last().change < 1e-12
    assert_allclose(state.W.numpy(), np.eye(3), atol=1e-12)


def test_orthonormal_after_every_iteration(toy_data):
    """W @ W.T stays the identity whatever the number of iterations run."""
    X, _, _ = toy_data
    Z, _, _ = pre_whiten(X=X)
    Z = torch.as_tensor(Z)
    for n_iter in [1, 2, 5, 20, 100]:
        config = NNICAConfig(
            n_features=2, n_components=2, max_iter=n_iter, tol=0.0, batch_size=1000
            )
        state, history = optimize(Z=Z, config=config, state=get_initial_state(config))
        assert len(history) == n_iter
        W = state.W.numpy()
        assert_allclose(W @ W.T, np.eye(2), atol=1e-10)


def test_change_nonnegative_and_terminates(toy_data):
    X, _, _ = toy_data
    results = fit_nnica(X, max_iter=50, tol=0.0)
    assert results["n_iter"] == 50
    assert not results["converged"]
    assert results["change"].shape == (50,)
    assert np.all(results["change"] >= 0)
    # a non-converged run still returns a complete result
    assert results["sources"].shape == (2, 1000)
    assert results["mixing"].shape == (2, 2)


def test_reconstruction_consistency(toy_data):
    """(W V) A' is the identity, and A' Y gives back X when nothing is dropped."""
    X, _, _ = toy_data
    results = fit_nnica(X, max_iter=500)
    W, V, A = results["W"], results["V"], results["mixing"]
    assert_allclose(W @ V @ A, np.eye(2), atol=1e-8)
    assert_allclose(W @ W.T, np.eye(2), atol=1e-10)
    assert_allclose(results["sources"], W @ V @ X, atol=1e-8)
    assert_allclose(A @ results["sources"], X, atol=1e-8)


def test_dimension_reduction():
    """Two sources mixed into three channels, two components requested."""
    _, S, _ = generate_toy_data(n_samples=2000, seed=0)
    A = np.array([[0.7, 0.3], [0.4, 0.6], [0.2, 0.9]])
    X = A @ S

    results = fit_nnica(X, n_components=2, max_iter=2000)
    assert results["sources"].shape == (2, 2000)
    assert results["mixing"].shape == (3, 2)
    assert results["V"].shape == (2, 3)
    assert_allclose(results["W"] @ results["V"] @ results["mixing"], np.eye(2), atol=1e-8)
    _, _, corrs = match_sources(results["sources"], S)
    assert np.all(np.abs(corrs) > 0.9)

    # The data only have rank 2
    with pytest.raises(NumericalFailureError, match="Data rank"):
        fit_nnica(X, n_components=3)


def test_determinism(toy_data):
    X, _, _ = toy_data
    first = fit_nnica(X, max_iter=300)
    second = fit_nnica(X, max_iter=300)
    assert first["n_iter"] == second["n_iter"]
    assert_array_equal(first["W"], second["W"])
    assert_array_equal(first["sources"], second["sources"])
    assert_array_equal(first["mixing"], second["mixing"])


def test_callback(toy_data):
    X, _, _ = toy_data
    calls = []
    results = fit_nnica(X, max_iter=25, callback=lambda i, c: calls.append((i, c)))
    assert [i for i, _ in calls] == list(range(1, results["n_iter"] + 1))
    assert_array_equal([c for _, c in calls], results["change"])


def test_raising_callback_does_not_abort(toy_data):
    """A failing progress observer neither aborts the fit nor changes its result."""
    X, _, _ = toy_data

    def _broken(iteration, change):
        raise RuntimeError("observer failure")

    want = fit_nnica(X, max_iter=25)
    got = fit_nnica(X, max_iter=25, callback=_broken)
    assert got["n_iter"] == want["n_iter"]
    assert_array_equal(got["W"], want["W"])


def test_batched_matches_unbatched(toy_data):
    X, _, _ = toy_data
    whole = fit_nnica(X, max_iter=200, tol=0.0, batch_size=1000)
    batched = fit_nnica(X, max_iter=200, tol=0.0, batch_size=128)
    assert_allclose(batched["W"], whole["W"], atol=1e-10)
    assert_allclose(batched["change"], whole["change"], rtol=1e-6, atol=1e-12)


def test_w_init(toy_data):
    X, _, _ = toy_data
    w_init = np.array([[2.0, 0.5], [0.1, 1.0]])
    results = fit_nnica(X, w_init=w_init, max_iter=1, tol=0.0)
    W = results["W"]
    assert_allclose(W @ W.T, np.eye(2), atol=1e-10)

    # Starting from the identity explicitly is the default
    assert_allclose(
        fit_nnica(X, w_init=np.eye(2), max_iter=10)["W"],
        fit_nnica(X, max_iter=10)["W"],
        atol=1e-12,
    )
    with pytest.raises(InvalidArgumentError, match="w_init must have shape"):
        fit_nnica(X, w_init=np.eye(3))


def test_mean_center(toy_data):
    X, _, _ = toy_data
    results = fit_nnica(X, mean_center=True, max_iter=10)
    assert_allclose(results["mean"], X.mean(axis=1))
    assert_allclose(results["sources"].mean(axis=1), 0, atol=1e-10)
    assert fit_nnica(X, max_iter=10)["mean"] is None


def test_singular_data():
    """Collinear channels cannot be whitened to full rank."""
    rng = np.random.default_rng(0)
    s = rng.random(500)
    X = np.vstack([s, 2 * s])
    with pytest.raises(NumericalFailureError):
        fit_nnica(X)
    # NumericalFailureError is a LinAlgError, hence a ValueError
    with pytest.raises(np.linalg.LinAlgError):
        fit_nnica(X)


@pytest.mark.parametrize("mean_center", [False, True])
def test_class_reconstruction(toy_data, mean_center):
    """Check that the data can be reconstructed from the sources and mixing matrix."""
    X, _, _ = toy_data
    X = X.T  # (n_samples, n_features)
    transformer = NNICA(mean_center=mean_center, max_iter=500)
    X_new = transformer.fit_transform(X)
    assert X_new.shape == (1000, 2)
    assert_allclose(transformer.components_, transformer.unmixing_ @ transformer.whitening_)
    assert transformer.n_features_in_ == 2
    assert 1 <= transformer.n_iter_ <= 500
    assert hasattr(transformer, "mean_") == mean_center
    X_rec = transformer.inverse_transform(X_new)
    assert_allclose(X, X_rec, atol=1e-8)
