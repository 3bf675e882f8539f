from . import (
    checks,
    manage_data,
    numba_functions,
)

from .checks import *
from .manage_data import *
from .numba_functions import *

# All modules have an __all__ defined
__all__ = checks.__all__.copy()
__all__ += manage_data.__all__.copy()
__all__ += numba_functions.__all__.copy()
