"""Public model classes exported by :mod:`edhub.models`."""

from . import bit_classification

from .bit_classification import *

# All modules have an __all__ defined
__all__ = bit_classification.__all__.copy()
