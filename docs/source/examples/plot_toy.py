"""
Run NNICA On Toy Data
=====================

Two non-negative sources, a sparse spike train and a rectified sine wave, are
mixed into two channels and separated with :class:`~nnica.NNICA`. FastICA is
run on the same data for comparison.
"""

# %%
import matplotlib.pyplot as plt
import numpy as np

from sklearn.decomposition import FastICA

from nnica import NNICA
from nnica.utils import generate_toy_data, match_sources

# %%
# Generate Data
# ^^^^^^^^^^^^^
# The function returns the data with one channel per row, while the estimators
# expect one sample per row.

# %%
X, S, A = generate_toy_data(n_samples=5_000, noise_factor=.02, seed=42)
x = X.T

# %%
# Run NNICA and FastICA for comparison
# ^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^

# %%
transformer = NNICA(n_components=2)
y = transformer.fit_transform(x, verbose="WARNING")

fi = FastICA(n_components=2, random_state=0)
z = fi.fit_transform(x)

# %%
# The order of the recovered sources is arbitrary, so each estimate is paired
# with the true source it correlates with most.

# %%
_, est_index, corrs = match_sources(y.T, S)
print(f"NNICA converged: {transformer.converged_} after {transformer.n_iter_} iterations")
print(f"Correlation with the true sources: {np.round(corrs, 3)}")
y = y[:, est_index]

# %%
# Plot Results
# ^^^^^^^^^^^^

# %%
fig, ax = plt.subplots(4, 1, sharex=True)
for i, l, v in zip([1, 2, 3, 4], ['Sources', 'Mixtures', 'NNICA', 'FastICA'], [S.T, x, y, z]):
    ax = plt.subplot(4, 1, i)
    ax.plot(v[:1000])
    ax.set_xticks([])
    ax.set_yticks([])
    ax.set_ylabel(l)
