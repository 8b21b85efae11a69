"""Exceptions raised by NNICA."""
import numpy as np


class InvalidArgumentError(ValueError):
    """Raised when a parameter is out of range, e.g. more sources than channels."""


class NumericalFailureError(np.linalg.LinAlgError):
    """Raised when a required matrix inverse or inverse square root is undefined.

    This happens when a matrix that must be positive definite (the Gram matrix of
    the unmixing matrix, the covariance of the data, or the Gram matrix of the
    full unmixing transform) is singular or too ill-conditioned to invert. The
    solver does not regularize or retry. Remove collinear channels, or request
    fewer components, and run again.
    """
