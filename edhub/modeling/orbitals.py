"""Elementary single-particle degrees of freedom ("bits").

Each bit is described by an immutable :class:`OrbitalDescriptor`. The set of
descriptor variants is closed: :class:`SOrbital` and :class:`POrbital`.
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar
from edhub.errors import UnknownOrbitalType, MalformedEntry

__all__ = [
    "OrbitalType",
    "BasisKind",
    "SPIN_LABELS",
    "P_NATIVE_LABELS",
    "P_SPHERICAL_LABELS",
    "parse_orbital_type",
    "parse_basis_kind",
    "OrbitalDescriptor",
    "SOrbital",
    "POrbital",
]

SPIN_LABELS = ("up", "down")
# Orbital subindices of the p shell in the two bases
P_NATIVE_LABELS = {0: "x", 1: "y", 2: "z"}
P_SPHERICAL_LABELS = {-1: "m=-1", 0: "m=0", 1: "m=+1"}


class OrbitalType(Enum):
    S = "s"
    P = "p"
    D = "d"
    F = "f"


class BasisKind(Enum):
    NATIVE = "native"
    SPHERICAL = "spherical"


def parse_orbital_type(label, entry=None):
    """Convert an orbital label into an :class:`OrbitalType`.

    Raises:
        UnknownOrbitalType: if ``label`` is not one of ``s, p, d, f``.
    """
    try:
        return OrbitalType(label)
    except ValueError:
        raise UnknownOrbitalType(f"unknown orbital type {label!r}", entry) from None


def parse_basis_kind(label, entry=None):
    """Convert a basis label into a :class:`BasisKind`.

    Raises:
        MalformedEntry: if ``label`` is neither ``native`` nor ``spherical``.
    """
    try:
        return BasisKind(label)
    except ValueError:
        raise MalformedEntry(f"unknown basis kind {label!r}", entry) from None


@dataclass(frozen=True)
class OrbitalDescriptor:
    site: int
    spin: int
    bit_index: int
    orbital_type: ClassVar[OrbitalType]

    def format(self):
        return (
            f"bit {self.bit_index}: site {self.site}, "
            f"spin {SPIN_LABELS[self.spin]}, {self.orbital_type.value}"
        )

    def __str__(self):
        return self.format()


@dataclass(frozen=True)
class SOrbital(OrbitalDescriptor):
    U: float
    orbital_type: ClassVar[OrbitalType] = OrbitalType.S

    def format(self):
        return f"{super().format()}, U={self.U}"


@dataclass(frozen=True)
class POrbital(OrbitalDescriptor):
    U: float
    J: float
    basis: BasisKind
    index: int
    orbital_type: ClassVar[OrbitalType] = OrbitalType.P

    @property
    def component(self):
        if self.basis is BasisKind.NATIVE:
            return P_NATIVE_LABELS[self.index]
        return P_SPHERICAL_LABELS[self.index]

    def format(self):
        return (
            f"{super().format()}_{self.component} ({self.basis.value}), "
            f"U={self.U}, J={self.J}"
        )
