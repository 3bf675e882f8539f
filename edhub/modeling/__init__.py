from . import (
    orbitals,
    fock_operations,
    terms,
    eigen_block,
    field_operator_part,
)

from .orbitals import *
from .fock_operations import *
from .terms import *
from .eigen_block import *
from .field_operator_part import *

# All modules have an __all__ defined
__all__ = orbitals.__all__.copy()
__all__ += fock_operations.__all__.copy()
__all__ += terms.__all__.copy()
__all__ += eigen_block.__all__.copy()
__all__ += field_operator_part.__all__.copy()
