from __future__ import annotations

from collections.abc import Iterator

import numpy as np
import psutil
import torch

from nnica.utils._logging import logger


class BatchLoader:
    """Walk over a tensor in contiguous chunks along one axis.

    Chunks are views of the tensor, yielded together with the slice that
    selects them. For NNICA the tensor is the whitened data and the chunks run
    along the sample axis::

        loader = BatchLoader(Z, axis=1, batch_size=4096)
        for Z_chunk, sl in loader:
            ...  # Z_chunk is Z[:, sl]

    Parameters
    ----------
    X : Tensor
        The data to split. It is not copied.
    axis : int
        Axis to split along. Negative values count from the last axis.
    batch_size : int or None
        Length of every chunk but the last. If None, one chunk holds everything.
    """

    def __init__(self, X: torch.Tensor, axis: int, batch_size: int | None = None):
        if not isinstance(X, torch.Tensor):
            raise TypeError(f"expected a torch.Tensor, got {type(X).__name__}")
        if not -X.ndim <= axis < X.ndim:
            raise ValueError(f"axis {axis} is out of bounds for a {X.ndim}D tensor")
        self.X = X
        self.axis = axis % X.ndim

        length = X.shape[self.axis]
        batch_size = length if batch_size is None else int(batch_size)
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if batch_size > length:
            raise ValueError(
                f"batch_size {batch_size} exceeds the length {length} of axis "
                f"{self.axis}"
            )
        self.batch_size = batch_size

    def _slices(self) -> Iterator[slice]:
        length = self.X.shape[self.axis]
        for start in range(0, length, self.batch_size):
            yield slice(start, min(start + self.batch_size, length))

    def _take(self, sl: slice) -> torch.Tensor:
        return self.X.narrow(self.axis, sl.start, sl.stop - sl.start)

    def __getitem__(self, idx: int) -> torch.Tensor:
        n_batches = len(self)
        if not 0 <= idx < n_batches:
            raise IndexError(f"batch {idx} requested, but there are only {n_batches}")
        start = idx * self.batch_size
        stop = min(start + self.batch_size, self.X.shape[self.axis])
        return self._take(slice(start, stop))

    def __iter__(self) -> Iterator[tuple[torch.Tensor, slice]]:
        for sl in self._slices():
            yield self._take(sl), sl

    def __len__(self) -> int:
        return -(-self.X.shape[self.axis] // self.batch_size)

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} | shape={tuple(self.X.shape)}, "
            f"axis={self.axis}, batch_size={self.batch_size}, n_batches={len(self)}>"
        )


def choose_batch_size(
        *,
        N: int,
        n_comps: int,
        dtype: np.dtype = np.float64,
        memory_fraction: float = 0.25,
        fallback_budget: float = 1.5 * 1024**3,
        ) -> int:
    """
    Pick how many samples to process at once when accumulating the gradient.

    Every sample in a batch costs two columns of ``n_comps`` values, one for the
    candidate sources Y and one for their non-positive part f(Y), plus 20%
    headroom for temporaries.

    Parameters
    ----------
    N : int
        Number of samples in the data.
    n_comps : int
        Number of components, i.e. rows of the whitened data.
    dtype : np.dtype
        Data type of the whitened data.
    memory_fraction : float
        Share of the currently available memory the batch may use, capped at
        4 GiB.
    fallback_budget : float
        Budget in bytes when the available memory cannot be queried.

    Returns
    -------
    batch_size : int
        At most ``N``.

    Raises
    ------
    MemoryError
        If the budget cannot hold a single sample.
    """
    per_sample = int(2 * n_comps * np.dtype(dtype).itemsize * 1.2)
    try:
        budget = min(psutil.virtual_memory().available * memory_fraction, 4 * 1024**3)
    except (OSError, RuntimeError):  # pragma: no cover
        budget = fallback_budget

    n_fit = int(budget // per_sample)
    if n_fit < 1:
        raise MemoryError(
            f"A memory budget of {budget:.0f} bytes cannot hold a single sample "
            f"({per_sample} bytes each)."
        )
    batch_size = min(N, n_fit)

    # Below this the per-batch Python overhead dominates
    floor = min(max(8192, 32 * n_comps), N)
    if batch_size < floor:
        logger.warning(
            f"Low memory: processing {batch_size} samples at a time, fewer than "
            f"the recommended {floor}."
        )
    return batch_size
