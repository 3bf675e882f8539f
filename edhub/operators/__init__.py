from . import p_orbital_interactions

from .p_orbital_interactions import *

# All modules have an __all__ defined
__all__ = p_orbital_interactions.__all__.copy()
