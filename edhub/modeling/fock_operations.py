"""Action of fermionic ladder operators on occupation-number states.

An occupation state is an integer bitmask: bit ``i`` is set iff the single
particle state with bit index ``i`` is occupied. Ladder operators follow the
ordering convention

.. math::

    c_i |n\\rangle = (-1)^{\\sum_{j<i} n_j} |n - e_i\\rangle

so the sign counts the occupied bits with lower index.
"""

import numpy as np
from numba import njit
from edhub.tools import state_to_index_binarysearch, count_occupied_below

__all__ = [
    "apply_field_operator",
    "apply_operator_string",
    "field_operator_support",
    "operator_string_support",
]


@njit(cache=True)
def apply_field_operator(state, bit, dagger):
    """Apply ``c_bit`` (or ``c^+_bit`` if ``dagger``) to an occupation state.

    Returns:
        tuple: ``(new_state, sign)``; ``sign`` is 0 (and ``new_state`` is -1)
        when the operator annihilates the state.
    """
    occupied = (state >> bit) & 1
    if dagger == (occupied == 1):
        return np.int64(-1), 0
    sign = 1 - 2 * (count_occupied_below(state, bit) % 2)
    return np.int64(state ^ (np.int64(1) << bit)), sign


@njit(cache=True)
def apply_operator_string(state, bits, daggers):
    """Apply an operator string, rightmost operator first.

    Args:
        state (int): occupation bitmask

        bits (np.ndarray): bit indices of the operators, left to right

        daggers (np.ndarray of bool): True for creation operators

    Returns:
        tuple: ``(new_state, sign)`` with ``sign`` in {-1, 0, 1}
    """
    sign = 1
    for ii in range(bits.shape[0] - 1, -1, -1):
        state, op_sign = apply_field_operator(state, bits[ii], daggers[ii])
        if op_sign == 0:
            return np.int64(-1), 0
        sign *= op_sign
    return state, sign


@njit(cache=True)
def field_operator_support(from_states, to_states, bit, dagger):
    """Non-zero elements of a single ladder operator between two state lists.

    Parameters
    ----------
    from_states : ndarray
        Strictly increasing occupation states the operator acts on.
    to_states : ndarray
        Strictly increasing occupation states the result is projected on.
    bit : int
        Bit index of the operator.
    dagger : bool
        True for the creation operator.

    Returns
    -------
    tuple of ndarray
        ``(rows, cols, signs)``: ``rows`` index ``to_states``, ``cols`` index
        ``from_states`` and ``signs`` hold the fermionic signs.
    """
    n_from = from_states.shape[0]
    rows = np.zeros(n_from, dtype=np.int64)
    cols = np.zeros(n_from, dtype=np.int64)
    signs = np.zeros(n_from, dtype=np.int64)
    nnz = 0
    for col in range(n_from):
        new_state, sign = apply_field_operator(from_states[col], bit, dagger)
        if sign == 0:
            continue
        row = state_to_index_binarysearch(new_state, to_states)
        if row < 0:
            continue
        rows[nnz] = row
        cols[nnz] = col
        signs[nnz] = sign
        nnz += 1
    return rows[:nnz], cols[:nnz], signs[:nnz]


@njit(cache=True)
def operator_string_support(from_states, to_states, bits, daggers):
    """Same as :func:`field_operator_support` for a string of ladder operators."""
    n_from = from_states.shape[0]
    rows = np.zeros(n_from, dtype=np.int64)
    cols = np.zeros(n_from, dtype=np.int64)
    signs = np.zeros(n_from, dtype=np.int64)
    nnz = 0
    for col in range(n_from):
        new_state, sign = apply_operator_string(from_states[col], bits, daggers)
        if sign == 0:
            continue
        row = state_to_index_binarysearch(new_state, to_states)
        if row < 0:
            continue
        rows[nnz] = row
        cols[nnz] = col
        signs[nnz] = sign
        nnz += 1
    return rows[:nnz], cols[:nnz], signs[:nnz]
