"""
========================================
Blind Separation of Non-Negative Sources
========================================

An example of estimating non-negative sources from their mixtures.

Many signals can only take non-negative values: light intensities, spectra,
firing rates. If such sources are independent and each one is zero (or close
to it) for some of the samples, the mixing can be undone by searching for the
rotation of the whitened data that leaves no negative values behind. Unlike
FastICA, NNICA does not remove the mean of the data, so the sources come out
with their sign and offset intact.

.. Note::
    This example is adapted from the
    `Scikit-Learn documentation <https://scikit-learn.org/stable/auto_examples/decomposition/plot_ica_blind_source_separation.html>`_.
"""

# %%
# Generate sample data
# --------------------
import numpy as np
from scipy import signal

rng = np.random.default_rng(0)
n_samples = 2000
time = np.linspace(0, 8, n_samples)

s1 = np.maximum(np.sin(2 * time), 0)                 # Rectified sine
s2 = (np.sin(3 * time) > 0).astype(float)            # Square wave
s3 = np.maximum(signal.sawtooth(2 * np.pi * time), 0)  # Clipped sawtooth

S = np.c_[s1, s2, s3]
S += 0.02 * rng.standard_normal(S.shape)             # Add noise
S = np.maximum(S, 0)                                 # Keep non-negative
S /= S.std(axis=0)                                   # Standardize

A = np.array([[1, 1, 1],
              [0.5, 2, 1.0],
              [1.5, 1.0, 2.0]])                      # Mixing matrix

X = S @ A.T                                          # Observed mixtures

# %%
# Run NNICA and FastICA
# ---------------------

# %%
from nnica import NNICA
from nnica.utils import match_sources
from sklearn.decomposition import FastICA

models = {}
labels = {}

# NNICA
ica = NNICA(n_components=3)
Y = ica.fit_transform(X, verbose=False)
_, est_index, corrs = match_sources(Y.T, S.T)
models["NNICA"] = Y[:, est_index]
labels["NNICA"] = "NNICA recovered signals"
print(f"NNICA correlation with the true sources: {np.round(corrs, 3)}")

# FastICA
fastica = FastICA(n_components=3, whiten="arbitrary-variance", random_state=0)
models["FastICA"] = fastica.fit_transform(X)
labels["FastICA"] = "FastICA recovered signals"

# %%
# The recovered sources have no negative values beyond the added noise
print(f"Smallest NNICA source value: {Y.min():.3f}")

# %%
# Plot results
# ------------

# %%
import matplotlib.pyplot as plt

# Merge dictionaries into one mapping title -> data
to_plot = {
    "Observed mixtures": X,
    "True sources": S,
}
to_plot.update({ labels[k]: v for k, v in models.items() })

colors = ["red", "steelblue", "orange"]

fig, axes = plt.subplots(len(to_plot), 1, figsize=(8, 6), sharex=True)
for ax, (title, model) in zip(axes, to_plot.items()):
    ax.set_title(title)
    for sig, color in zip(model.T, colors):
        ax.plot(sig, color=color, lw=1)

plt.tight_layout()
plt.show()
