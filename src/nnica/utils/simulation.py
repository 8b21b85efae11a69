"""Utility functions for simulating data."""
import numpy as np


def generate_toy_data(n_samples=1000, mix_signals=True, noise_factor=None, seed=None):
    """
    Generate toy data consisting of a sparse spike train and a rectified sine wave.

    Both sources are non-negative and take the value zero for a good share of the
    samples, as non-negative ICA requires.

    Parameters
    ----------
    n_samples : int, optional
        The number of samples to generate. Default is 1000.
    mix_signals : bool, optional
        If True, the two signals will be linearly mixed. Default is True.
    noise_factor : float, optional
        If not None, Gaussian noise with this standard deviation will be added to
        the signals (e.g. noise_factor could be set to 0.05), which are then
        clipped at zero to stay non-negative.
    seed : int, optional
        Seed for the random number generator.

    Returns
    -------
    X : ndarray, shape (2, n_samples)
        The observed signals, mixed if ``mix_signals`` is True.
    sources : ndarray, shape (2, n_samples)
        The true, non-negative sources.
    mixing : ndarray, shape (2, 2)
        The mixing matrix, ``X = mixing @ sources``. The identity if
        ``mix_signals`` is False.
    """
    rng = np.random.default_rng(seed)
    t = np.arange(1, n_samples + 1)
    # Sparse: exponential amplitudes at ~10% of the samples
    a = rng.exponential(scale=1.0, size=n_samples) * (rng.random(n_samples) < 0.1)
    # Slowly varying: positive half-waves of a sine
    b = np.maximum(np.sin(t * 2*np.pi*0.004), 0.0)
    if noise_factor is not None:
        a = np.maximum(a + noise_factor * rng.standard_normal(n_samples), 0.0)
        b = np.maximum(b + noise_factor * rng.standard_normal(n_samples), 0.0)
    sources = np.vstack([a, b])

    # optionally mix the signals
    mixing = np.array([[0.7, 0.3], [0.4, 0.6]]) if mix_signals else np.eye(2)
    return mixing @ sources, sources, mixing
