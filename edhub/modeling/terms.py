"""Products of fermionic ladder operators and their grouping by order.

A :class:`Term` is ``value * O_1 O_2 ... O_n`` where every ``O`` is a creation
or annihilation operator acting on one bit. The string is read left to right and
the rightmost operator acts first on a state. A :class:`TermSet` groups terms
by their order (number of ladder operators): 2, 4, 6, 8 or 10.
"""

import numpy as np
from dataclasses import dataclass
from scipy.sparse import csr_matrix
from .fock_operations import operator_string_support
from edhub.tools import validate_parameters
import logging

logger = logging.getLogger(__name__)

__all__ = ["TERM_ORDERS", "Term", "TermSet"]

TERM_ORDERS = (2, 4, 6, 8, 10)


@dataclass(frozen=True)
class Term:
    sequence: tuple
    bits: tuple
    value: float

    def __post_init__(self):
        object.__setattr__(self, "sequence", tuple(bool(s) for s in self.sequence))
        object.__setattr__(self, "bits", tuple(int(b) for b in self.bits))
        object.__setattr__(self, "value", float(self.value))
        if len(self.sequence) != len(self.bits):
            raise ValueError(
                f"sequence has {len(self.sequence)} operators, bits {len(self.bits)}"
            )
        if self.order not in TERM_ORDERS:
            raise ValueError(f"order must be one of {TERM_ORDERS}, not {self.order}")
        if any(b < 0 for b in self.bits):
            raise ValueError(f"bit indices must be non-negative, not {self.bits}")

    @property
    def order(self):
        return len(self.bits)

    def is_normal_ordered(self):
        """True if all the creation operators stand left of the annihilation ones."""
        n_dag = sum(self.sequence)
        return all(self.sequence[:n_dag]) and not any(self.sequence[n_dag:])

    def particle_change(self):
        """Change of the particle number produced by the term."""
        n_dag = sum(self.sequence)
        return n_dag - (self.order - n_dag)

    def get_matrix(self, from_states, to_states=None):
        """Matrix of the operator string between two lists of occupation states.

        Parameters
        ----------
        from_states : ndarray
            Strictly increasing occupation bitmasks (columns).
        to_states : ndarray, optional
            Strictly increasing occupation bitmasks (rows). Defaults to
            ``from_states``.

        Returns
        -------
        scipy.sparse.csr_matrix
            Matrix of shape ``(len(to_states), len(from_states))``.
        """
        if to_states is None:
            to_states = from_states
        validate_parameters(states=from_states)
        validate_parameters(states=to_states)
        rows, cols, signs = operator_string_support(
            from_states.astype(np.int64),
            to_states.astype(np.int64),
            np.array(self.bits, dtype=np.int64),
            np.array(self.sequence, dtype=np.bool_),
        )
        return csr_matrix(
            (self.value * signs, (rows, cols)),
            shape=(len(to_states), len(from_states)),
        )

    def __str__(self):
        ops = [f"c{'^+' if dag else ''}_{b}" for dag, b in zip(self.sequence, self.bits)]
        return f"{self.value} " + " ".join(ops)


class TermSet:
    def __init__(self):
        """Five ordered buckets of terms, one per order in TERM_ORDERS."""
        self._buckets = {order: [] for order in TERM_ORDERS}
        self._frozen = False

    def add(self, term):
        if self._frozen:
            raise RuntimeError("TermSet is frozen and cannot be modified")
        if not isinstance(term, Term):
            raise TypeError(f"term should be a Term, not {type(term)}")
        self._buckets[term.order].append(term)

    def extend(self, terms):
        for term in terms:
            self.add(term)

    def freeze(self):
        self._buckets = {order: tuple(terms) for order, terms in self._buckets.items()}
        self._frozen = True
        return self

    @property
    def frozen(self):
        return self._frozen

    def __getitem__(self, order):
        if order not in TERM_ORDERS:
            raise KeyError(f"order must be one of {TERM_ORDERS}, not {order}")
        return tuple(self._buckets[order])

    def __iter__(self):
        for order in TERM_ORDERS:
            yield from self._buckets[order]

    def __len__(self):
        return sum(len(terms) for terms in self._buckets.values())

    def max_bit(self):
        """Largest bit index referenced by any term, -1 if the set is empty."""
        return max((max(term.bits) for term in self), default=-1)

    def get_matrix(self, states):
        """Sum of all the terms as a sparse matrix on a list of occupation states."""
        validate_parameters(states=states)
        dim = len(states)
        matrix = csr_matrix((dim, dim), dtype=float)
        for term in self:
            matrix = matrix + term.get_matrix(states)
        return csr_matrix(matrix)

    def get_interaction_tensor(self, n_bits):
        """Antisymmetrized tensor of the normal-ordered order-4 terms.

        The returned ``A`` satisfies
        ``sum(A[i,j,k,l] c^+_i c^+_j c_k c_l) == sum(order-4 terms)`` and
        ``A[i,j,k,l] = -A[j,i,k,l] = -A[i,j,l,k]``, so two term sets describe the
        same two-body interaction iff their tensors coincide.

        Raises:
            ValueError: if an order-4 term is not normal ordered.
        """
        validate_parameters(n_bits=n_bits)
        tensor = np.zeros((n_bits,) * 4, dtype=float)
        for term in self._buckets[4]:
            if not term.is_normal_ordered() or sum(term.sequence) != 2:
                raise ValueError(f"term {term} is not normal ordered")
            i, j, k, l = term.bits
            quarter = term.value / 4
            tensor[i, j, k, l] += quarter
            tensor[j, i, k, l] -= quarter
            tensor[i, j, l, k] -= quarter
            tensor[j, i, l, k] += quarter
        return tensor

    def __str__(self):
        lines = []
        for order in TERM_ORDERS:
            lines.append(f"order {order}: {len(self._buckets[order])} terms")
            lines += [f"    {term}" for term in self._buckets[order]]
        return "\n".join(lines)
