"""Coulomb and Hund interaction terms of a p shell in two orbital bases.

In the native (cubic) basis ``p_x, p_y, p_z`` the interaction is written in the
Kanamori form with ``U' = U - 2J``. In the spherical basis ``m = -1, 0, 1`` it is
written through Slater integrals and angular coefficients

.. math::

    c^k(l m, l m') = (-1)^m (2l+1)
    \\begin{pmatrix} l & k & l \\\\ 0 & 0 & 0 \\end{pmatrix}
    \\begin{pmatrix} l & k & l \\\\ -m & m-m' & m' \\end{pmatrix}

For ``l = 1`` the two forms describe the same Hamiltonian once
``F^0 = U - 4J/3`` and ``F^2 = 25J/3``.
"""

import numpy as np
from functools import lru_cache
from itertools import product
from sympy import S
from sympy.physics.wigner import wigner_3j
from edhub.modeling import Term
import logging

logger = logging.getLogger(__name__)

__all__ = [
    "P_SHELL_L",
    "slater_integrals",
    "angular_coefficient",
    "spherical_coulomb_tensor",
    "native_p_terms",
    "spherical_p_terms",
    "p_orbital_rotation",
]

P_SHELL_L = 1
_COEFF_TOL = 1e-12


def slater_integrals(U, J):
    """Slater integrals (F0, F2) of a p shell from the Kanamori couplings."""
    return U - 4 * J / 3, 25 * J / 3


@lru_cache(maxsize=None)
def angular_coefficient(k, l, m1, m2):
    """Angular coefficient :math:`c^k(l m_1, l m_2)` (Condon-Shortley phases)."""
    if abs(m1 - m2) > k:
        return 0.0
    coeff = (
        (-1) ** m1
        * (2 * l + 1)
        * wigner_3j(S(l), S(k), S(l), 0, 0, 0)
        * wigner_3j(S(l), S(k), S(l), -m1, m1 - m2, m2)
    )
    return float(coeff)


def spherical_coulomb_tensor(U, J):
    """Two-body matrix elements :math:`\\langle m_1 m_2 | V | m_3 m_4 \\rangle`.

    Returns:
        np.ndarray: real tensor of shape (3, 3, 3, 3) indexed by ``m + 1``
    """
    l = P_SHELL_L
    F = dict(zip((0, 2), slater_integrals(U, J)))
    m_values = range(-l, l + 1)
    V = np.zeros((2 * l + 1,) * 4, dtype=float)
    for m1, m2, m3, m4 in product(m_values, repeat=4):
        if m1 + m2 != m3 + m4:
            continue
        V[m1 + l, m2 + l, m3 + l, m4 + l] = sum(
            Fk * angular_coefficient(k, l, m1, m3) * angular_coefficient(k, l, m4, m2)
            for k, Fk in F.items()
        )
    return V


def native_p_terms(bits, U, J):
    """Kanamori interaction of a p shell in the native basis.

    Args:
        bits (dict): ``bits[spin][a]`` is the bit index of component ``a``
            (0, 1, 2 for x, y, z) with spin 0 (up) or 1 (down)

        U (float): intra-orbital Coulomb repulsion

        J (float): Hund coupling

    Returns:
        list: normal-ordered order-4 :class:`~edhub.modeling.terms.Term` objects
    """
    up, dn = bits[0], bits[1]
    U1 = U - 2 * J
    dd = (True, True, False, False)
    terms = []
    for a in range(3):
        # Intra-orbital density-density
        terms.append(Term(dd, (up[a], dn[a], dn[a], up[a]), U))
    for a, b in product(range(3), repeat=2):
        if a == b:
            continue
        # Inter-orbital, opposite spins
        terms.append(Term(dd, (up[a], dn[b], dn[b], up[a]), U1))
        # Spin flip: -J c^+_{a up} c_{a dn} c^+_{b dn} c_{b up}
        terms.append(Term(dd, (up[a], dn[b], dn[a], up[b]), J))
        # Pair hopping
        terms.append(Term(dd, (up[a], dn[a], dn[b], up[b]), J))
    for a, b in product(range(3), repeat=2):
        if a >= b:
            continue
        # Inter-orbital, equal spins
        for s in (up, dn):
            terms.append(Term(dd, (s[a], s[b], s[b], s[a]), U1 - J))
    return terms


def spherical_p_terms(bits, U, J):
    """Slater interaction of a p shell in the spherical basis.

    .. math::

        H = \\frac{1}{2} \\sum_{\\sigma \\sigma'} \\sum_{m_1 m_2 m_3 m_4}
        V_{m_1 m_2 m_3 m_4} c^+_{m_1 \\sigma} c^+_{m_2 \\sigma'}
        c_{m_4 \\sigma'} c_{m_3 \\sigma}

    Args:
        bits (dict): ``bits[spin][m + 1]`` is the bit index of component ``m``

        U (float): intra-orbital Coulomb repulsion

        J (float): Hund coupling

    Returns:
        list: normal-ordered order-4 :class:`~edhub.modeling.terms.Term` objects
    """
    V = spherical_coulomb_tensor(U, J)
    dd = (True, True, False, False)
    terms = []
    for m1, m2, m3, m4 in product(range(3), repeat=4):
        value = V[m1, m2, m3, m4]
        if abs(value) < _COEFF_TOL:
            continue
        for s1, s2 in product((0, 1), repeat=2):
            ops = (bits[s1][m1], bits[s2][m2], bits[s2][m4], bits[s1][m3])
            # Pauli principle
            if ops[0] == ops[1] or ops[2] == ops[3]:
                continue
            terms.append(Term(dd, ops, value / 2))
    return terms


def p_orbital_rotation():
    """Rotation from the spherical to the native p components.

    Returns:
        np.ndarray: ``R`` with ``p_a = sum_m R[a, m + 1] Y_{1m}``, rows x, y, z
    """
    sq = 1 / np.sqrt(2)
    return np.array(
        [
            [sq, 0, -sq],
            [1j * sq, 0, 1j * sq],
            [0, 1, 0],
        ],
        dtype=complex,
    )
