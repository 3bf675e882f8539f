import numpy as np
from dataclasses import dataclass
from edhub.tools import validate_parameters, is_strictly_sorted

__all__ = ["EigenBlock"]


@dataclass(frozen=True)
class EigenBlock:
    """A diagonalized symmetry block of the Hamiltonian.

    Parameters
    ----------
    block_id : int
        Number of the block.
    basis_states : ndarray
        Strictly increasing occupation bitmasks spanning the block.
    eigenvectors : ndarray
        ``(len(basis_states), n_eig)`` matrix; column ``n`` is the ``n``-th
        eigenvector over ``basis_states``.
    eigenvalues : ndarray, optional
        Eigenvalues matching the columns of ``eigenvectors``.

    Notes
    -----
    Arrays are stored read-only. The consistency between ``basis_states`` and
    ``eigenvectors`` is checked when an operator part is computed.
    """

    block_id: int
    basis_states: np.ndarray
    eigenvectors: np.ndarray
    eigenvalues: np.ndarray = None

    def __post_init__(self):
        validate_parameters(index=self.block_id)
        states = np.array(self.basis_states, dtype=np.int64)
        validate_parameters(states=states)
        if not is_strictly_sorted(states):
            raise ValueError(f"basis_states of block {self.block_id} must be sorted")
        vectors = np.array(self.eigenvectors)
        for name, arr in (("basis_states", states), ("eigenvectors", vectors)):
            arr.flags.writeable = False
            object.__setattr__(self, name, arr)
        if self.eigenvalues is not None:
            values = np.array(self.eigenvalues)
            values.flags.writeable = False
            object.__setattr__(self, "eigenvalues", values)

    @property
    def size(self):
        """Number of occupation states in the block."""
        return self.basis_states.shape[0]

    @property
    def n_eigenstates(self):
        return self.eigenvectors.shape[-1] if self.eigenvectors.ndim == 2 else 0
