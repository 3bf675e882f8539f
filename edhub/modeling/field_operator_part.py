"""Matrix elements of single fermionic field operators between eigenbases.

A :class:`FieldOperatorPart` holds the matrix of ``c_p`` (or ``c^+_p``) restricted
to a pair of diagonalized symmetry blocks ``From -> To``

.. math::

    \\langle n | O | m \\rangle = \\sum_{l,k} \\overline{U^{To}_{l n}}
    O_{l k} U^{From}_{k m}

stored both row-major (CSR) and column-major (CSC). Creation and annihilation
parts over reversed block pairs are Hermitian adjoints of each other: once one
is computed, the other is obtained by :meth:`FieldOperatorPart.transpose`.
"""

import numpy as np
import threading
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from scipy.sparse import csr_matrix, csc_matrix
from .eigen_block import EigenBlock
from .fock_operations import field_operator_support
from edhub.errors import AlreadyComputed, BlockMismatch, NotComputed, OperatorUndefined
from edhub.tools import get_time, validate_parameters, save_sparse_matrix_to_dat
import logging

logger = logging.getLogger(__name__)

__all__ = [
    "MATRIX_ELEMENT_TOLERANCE",
    "FieldOperatorKind",
    "Status",
    "FieldOperatorPart",
    "CreationOperatorPart",
    "AnnihilationOperatorPart",
    "FieldOperatorRegistry",
]

# Matrix elements with smaller magnitude are not stored
MATRIX_ELEMENT_TOLERANCE = 1e-8


class FieldOperatorKind(Enum):
    CREATION = "creation"
    ANNIHILATION = "annihilation"

    @property
    def dagger(self):
        return self is FieldOperatorKind.CREATION

    @property
    def dual(self):
        if self is FieldOperatorKind.CREATION:
            return FieldOperatorKind.ANNIHILATION
        return FieldOperatorKind.CREATION


class Status(Enum):
    CONSTRUCTED = 0
    COMPUTED = 1


class FieldOperatorPart:
    kind = None

    def __init__(self, bit_info_list, h_from, h_to, p_index):
        """Field operator restricted to the blocks ``h_from -> h_to``.

        Parameters
        ----------
        bit_info_list : sequence of OrbitalDescriptor
            Single particle states, as returned by
            :meth:`~edhub.models.bit_classification.BasisClassifier.get_bit_info_list`.
        h_from : EigenBlock
            Block the operator acts on.
        h_to : EigenBlock
            Block the result is projected on.
        p_index : int
            Bit index of the operator.

        Raises
        ------
        TypeError
            If the class carries no operator kind or the arguments have wrong types.
        """
        if not isinstance(self.kind, FieldOperatorKind):
            raise TypeError(
                f"{type(self).__name__} has no operator kind: "
                "use CreationOperatorPart or AnnihilationOperatorPart"
            )
        validate_parameters(index=p_index)
        for block in (h_from, h_to):
            if not isinstance(block, EigenBlock):
                raise TypeError(f"blocks should be EigenBlock, not {type(block)}")
        self.bit_info_list = tuple(bit_info_list)
        self.h_from = h_from
        self.h_to = h_to
        self.p_index = int(p_index)
        self._status = Status.CONSTRUCTED
        self._row_major = None
        self._col_major = None
        self._dual = None
        self._lock = threading.Lock()

    def __repr__(self):
        return (
            f"{type(self).__name__}(p_index={self.p_index}, "
            f"blocks={self.h_from.block_id}->{self.h_to.block_id})"
        )

    @property
    def blocks(self):
        return (self.h_from.block_id, self.h_to.block_id)

    @property
    def status(self):
        return self._status

    def is_computed(self):
        return self._status is Status.COMPUTED

    def _error(self, exc_class, msg):
        return exc_class(f"{self.kind.value} operator: {msg}", self.p_index, self.blocks)

    def _check_blocks(self):
        for name, block in (("From", self.h_from), ("To", self.h_to)):
            vectors = block.eigenvectors
            if vectors.ndim != 2:
                raise self._error(
                    BlockMismatch,
                    f"{name} eigenvectors must be 2D, not {vectors.ndim}D",
                )
            if vectors.shape[0] != block.size:
                raise self._error(
                    BlockMismatch,
                    f"{name} eigenvectors have {vectors.shape[0]} rows "
                    f"for {block.size} basis states",
                )

    def _check_index(self):
        n_bits = len(self.bit_info_list)
        if not 0 <= self.p_index < n_bits:
            raise self._error(
                OperatorUndefined, f"no bit {self.p_index} among {n_bits} bits"
            )

    def _check_computed(self):
        if not self.is_computed():
            raise self._error(NotComputed, "compute() has not been called")

    # ==============================================================================
    @get_time
    def compute(self):
        """Evaluate the rotation formula and store the result in CSR and CSC form.

        Raises
        ------
        AlreadyComputed
            If the part has already been computed.
        OperatorUndefined
            If ``p_index`` is not the index of a known bit.
        BlockMismatch
            If the eigenvectors of a block do not match its basis states.
        """
        with self._lock:
            if self.is_computed():
                raise self._error(AlreadyComputed, "compute() called twice")
            self._check_index()
            self._check_blocks()
            U_from = self.h_from.eigenvectors
            U_to = self.h_to.eigenvectors
            # Support of the bare operator in the occupation basis
            rows, cols, signs = field_operator_support(
                self.h_from.basis_states,
                self.h_to.basis_states,
                self.p_index,
                self.kind.dagger,
            )
            dtype = np.result_type(U_from.dtype, U_to.dtype, np.float64)
            if rows.shape[0] == 0:
                matrix = np.zeros((U_to.shape[1], U_from.shape[1]), dtype=dtype)
            else:
                left = np.conj(U_to[rows, :])
                right = signs[:, None] * U_from[cols, :]
                matrix = (left.T @ right).astype(dtype, copy=False)
            matrix[np.abs(matrix) < MATRIX_ELEMENT_TOLERANCE] = 0
            row_major = csr_matrix(matrix)
            row_major.eliminate_zeros()
            self._row_major = row_major
            self._col_major = row_major.tocsc()
            self._status = Status.COMPUTED
        logger.debug(f"{self!r}: {self._row_major.nnz} elements")

    # ==============================================================================
    def get_row_major_value(self):
        """Matrix ``<n|O|m>`` as CSR, rows ``n`` in ``To`` and columns ``m`` in ``From``."""
        self._check_computed()
        return self._row_major

    def get_col_major_value(self):
        """Same matrix as :meth:`get_row_major_value` in CSC form."""
        self._check_computed()
        return self._col_major

    def get_left_index(self):
        self._check_computed()
        return self.h_to.block_id

    def get_right_index(self):
        self._check_computed()
        return self.h_from.block_id

    def transpose(self):
        """Dual part over the reversed block pair.

        The dual is built once from the conjugate transpose of the stored
        matrix, and both parts refer to each other afterwards.

        Returns:
            FieldOperatorPart: part of kind ``self.kind.dual``

        Raises:
            NotComputed: if called before :meth:`compute`.
        """
        self._check_computed()
        with self._lock:
            if self._dual is None:
                dual = PART_CLASSES[self.kind.dual](
                    self.bit_info_list, self.h_to, self.h_from, self.p_index
                )
                adjoint = self._row_major.conj().transpose()
                dual._row_major = csr_matrix(adjoint)
                dual._col_major = csc_matrix(adjoint)
                dual._dual = self
                dual._status = Status.COMPUTED
                self._dual = dual
        return self._dual

    def _link(self, dual):
        """Pair two independently computed parts as adjoints of each other."""
        with self._lock:
            self._dual = dual
        with dual._lock:
            dual._dual = self

    # ==============================================================================
    def savetxt(self, filename):
        """Write the matrix to ``filename`` in the sparse ``.dat`` format."""
        self._check_computed()
        save_sparse_matrix_to_dat(self._row_major, filename)

    def print_to_screen(self):
        self._check_computed()
        logger.info("----------------------------------------------------")
        logger.info(f"{self!r}")
        coo = self._row_major.tocoo()
        for n, m, value in zip(coo.row, coo.col, coo.data):
            logger.info(f"{n} {m} : {value}")


class CreationOperatorPart(FieldOperatorPart):
    kind = FieldOperatorKind.CREATION


class AnnihilationOperatorPart(FieldOperatorPart):
    kind = FieldOperatorKind.ANNIHILATION


PART_CLASSES = {
    FieldOperatorKind.CREATION: CreationOperatorPart,
    FieldOperatorKind.ANNIHILATION: AnnihilationOperatorPart,
}


class FieldOperatorRegistry:
    """Operator parts keyed by ``(kind, p_index, from_block_id, to_block_id)``.

    The registry pairs every part with its adjoint: :meth:`get_or_build_dual`
    returns the registered dual when it is already computed, and otherwise
    derives it from the part by conjugate transposition.
    """

    def __init__(self):
        self._parts = {}
        self._lock = threading.Lock()

    @staticmethod
    def key(part):
        return (part.kind, part.p_index, *part.blocks)

    def add(self, part):
        if not isinstance(part, FieldOperatorPart):
            raise TypeError(f"part should be a FieldOperatorPart, not {type(part)}")
        with self._lock:
            key = self.key(part)
            if key in self._parts and self._parts[key] is not part:
                raise KeyError(f"a part {key} is already registered")
            self._parts[key] = part
        return part

    def get(self, kind, p_index, from_id, to_id):
        return self._parts[(kind, p_index, from_id, to_id)]

    def __contains__(self, key):
        return key in self._parts

    def __len__(self):
        return len(self._parts)

    def __iter__(self):
        return iter(list(self._parts.values()))

    def get_or_build_dual(self, part):
        """Adjoint of ``part`` over the reversed block pair.

        A registered dual computed on its own is linked to ``part``, so that
        ``part.transpose()`` returns it from then on.

        Raises:
            NotComputed: if neither ``part`` nor its registered dual is computed.
        """
        dual_key = (part.kind.dual, part.p_index, part.blocks[1], part.blocks[0])
        with self._lock:
            registered = self._parts.get(dual_key)
            if part._dual is not None and part._dual is registered:
                return registered
            if (
                part._dual is None
                and registered is not None
                and registered.is_computed()
                and registered._dual in (None, part)
            ):
                part._link(registered)
                return registered
            dual = part.transpose()
            self._parts[dual_key] = dual
            if self.key(part) not in self._parts:
                self._parts[self.key(part)] = part
        logger.debug(f"dual of {part!r} derived by transposition")
        return dual

    def compute_all(self, max_workers=None):
        """Compute every registered part that is not computed yet.

        Args:
            max_workers (int, optional): size of the thread pool. Defaults to
                the ``concurrent.futures`` default.

        Returns:
            int: number of parts computed
        """
        validate_parameters(max_workers=max_workers)
        pending = [part for part in self if not part.is_computed()]
        if not pending:
            return 0
        logger.info(f"computing {len(pending)} operator parts")
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(part.compute) for part in pending]
            for future in futures:
                future.result()
        return len(pending)
