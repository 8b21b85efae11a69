"""Type hints for NNICA arrays."""
from typing import Annotated, TypeAlias

import numpy as np
import numpy.typing as npt
import torch

FeaturesVector: TypeAlias = Annotated[npt.NDArray[np.float64], "(n_features,)"]
"""Alias for a 1D array with shape (n_features,)."""

DataArray2D: TypeAlias = Annotated[npt.NDArray[np.float64], "(n_features, n_samples)"]
"""Alias for a 2D array with shape (n_features, n_samples)."""

WhitenedArray2D: TypeAlias = (
    Annotated[npt.NDArray[np.float64], "(n_components, n_samples)"]
)
"""Alias for a 2D array with shape (n_components, n_samples)."""

WhiteningArray: TypeAlias = (
    Annotated[npt.NDArray[np.float64], "(n_components, n_features)"]
)
"""Alias for a 2D array with shape (n_components, n_features)."""

UnmixingArray: TypeAlias = (
    Annotated[npt.NDArray[np.float64], "(n_components, n_components)"]
)
"""Alias for a 2D array with shape (n_components, n_components)."""

MixingArray: TypeAlias = Annotated[npt.NDArray[np.float64], "(n_features, n_components)"]
"""Alias for a 2D array with shape (n_features, n_components)."""

SourceArray2D: TypeAlias = Annotated[npt.NDArray[np.float64], "(n_components, n_samples)"]
"""Alias for a 2D array with shape (n_components, n_samples)."""

DataTensor2D: TypeAlias = Annotated[torch.Tensor, "(n_components, n_samples)", 2]
"""Alias for a 2D Tensor with shape (n_components, n_samples)."""

UnmixingTensor: TypeAlias = Annotated[torch.Tensor, "(n_components, n_components)", 2]
"""Alias for a 2D Tensor with shape (n_components, n_components)."""

WhiteningTensor: TypeAlias = Annotated[torch.Tensor, "(n_components, n_features)", 2]
"""Alias for a 2D Tensor with shape (n_components, n_features)."""

MixingTensor: TypeAlias = Annotated[torch.Tensor, "(n_features, n_components)", 2]
"""Alias for a 2D Tensor with shape (n_features, n_components)."""

ScalarTensor: TypeAlias = Annotated[torch.Tensor, "()", 0]
"""Alias for a 0D Tensor (scalar), i.e. with 1 element."""
