"""
State management for the NNICA solver.

This module holds structured containers that separate the immutable run
configuration from the state the solver owns while it iterates, and from the
per-iteration diagnostics it records.
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass, field

import numpy as np
import torch
from numpy.typing import NDArray

from nnica import constants
from nnica.exceptions import InvalidArgumentError
from nnica.linalg import symmetric_orthonormalize


@dataclass(slots=True, frozen=True)
class NNICAConfig:
    """Immutable, validated configuration for one NNICA run.

    ``n_components`` is at once the bound checked against the number of
    channels, the target dimension of the whitening, and the size of the square
    unmixing matrix. It is validated here, once, before any computation.
    """

    n_features: int  # nchan - number of input channels/features
    n_components: int  # number of sources to estimate

    # Execution
    max_iter: int = constants.max_iter
    batch_size: int | None = None

    # Tolerances and learning rates
    tol: float = constants.tol
    lrate: float = constants.lrate

    # Numeric
    dtype: torch.dtype = torch.float64

    def __post_init__(self):
        for name in ("n_features", "n_components", "max_iter", "batch_size"):
            value = getattr(self, name)
            if value is None and name == "batch_size":
                continue
            if not isinstance(value, numbers.Integral) or isinstance(value, bool):
                raise InvalidArgumentError(f"{name} must be an integer, got {value!r}")
        if self.n_features < 1:
            raise InvalidArgumentError(
                f"n_features must be a positive integer, got {self.n_features}"
            )
        if self.n_components < 1:
            raise InvalidArgumentError(
                f"n_components must be a positive integer, got {self.n_components}"
            )
        if self.n_components > self.n_features:
            raise InvalidArgumentError(
                f"Number of requested components ({self.n_components}) exceeds the "
                f"number of channels ({self.n_features})"
            )
        if self.max_iter < 1:
            raise InvalidArgumentError(
                f"max_iter must be a positive integer, got {self.max_iter}"
            )
        if not self.lrate > 0:
            raise InvalidArgumentError(f"lrate must be positive, got {self.lrate}")
        if not self.tol >= 0:
            raise InvalidArgumentError(f"tol must be non-negative, got {self.tol}")
        if self.batch_size is not None and self.batch_size < 1:
            raise InvalidArgumentError(
                f"batch_size must be a positive integer, got {self.batch_size}"
            )


@dataclass(slots=True, repr=False)
class NNICAState:
    """State owned by the solver for the duration of one run.

    - W: (n_components, n_components)  orthonormal unmixing matrix
    """

    W: torch.Tensor

    def to_numpy(self) -> dict[str, NDArray]:
        """Return the state fields as numpy arrays."""
        return {"W": self.W.cpu().numpy()}


@dataclass(slots=True)
class IterationMetrics:
    """Minimal per-iteration diagnostics."""

    iter: int                           # 1-based iteration index
    change: float | None = None         # Frobenius norm of W - W_previous
    step_time_s: float | None = None


@dataclass(slots=True)
class NNICAHistory:
    """Append-only container of IterationMetrics across the run."""

    metrics: list[IterationMetrics] = field(default_factory=list)

    def append(self, m: IterationMetrics) -> None:
        self.metrics.append(m)

    def __len__(self) -> int:
        return len(self.metrics)

    def change_array(self) -> np.ndarray:
        return np.array([m.change for m in self.metrics], dtype=np.float64)

    def last(self) -> IterationMetrics | None:
        return self.metrics[-1] if self.metrics else None


def get_initial_state(
    cfg: NNICAConfig,
    w_init: NDArray | None = None,
) -> NNICAState:
    """Create an initial NNICAState.

    W starts as the identity. If ``w_init`` is given it is used instead, after
    projecting it onto the orthonormal matrices.
    """
    num_comps = cfg.n_components
    if w_init is None:
        W = torch.eye(num_comps, dtype=cfg.dtype)
    else:
        W = torch.as_tensor(np.asarray(w_init), dtype=cfg.dtype).clone()
        if W.shape != (num_comps, num_comps):
            raise InvalidArgumentError(
                f"w_init must have shape {(num_comps, num_comps)}, got "
                f"{tuple(W.shape)}"
            )
        W = symmetric_orthonormalize(W)
    return NNICAState(W=W)


__all__ = [
    "NNICAConfig",
    "NNICAState",
    "IterationMetrics",
    "NNICAHistory",
    "get_initial_state",
]
