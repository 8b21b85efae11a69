from . import utils
from ._sklearn_interface import NNICA
from .core import fit_nnica, nnica
from .exceptions import InvalidArgumentError, NumericalFailureError

__all__ = [
    'fit_nnica',
    'nnica',
    'NNICA',
    'InvalidArgumentError',
    'NumericalFailureError',
    'utils',
]
