"""Classification of the single-particle states and generation of the Hamiltonian terms.

The configuration tree handed to :meth:`BasisClassifier.readin` is a plain
dictionary::

    {
        "sites": [
            {"site": 0, "type": "s", "U": 4.0},
            {"site": 1, "type": "p", "U": 3.0, "J": 0.5, "basis": "spherical"},
        ],
        "hopping": [
            {"bits": [0, 1], "t": 1.0},
            {"sites": [0, 1], "t": -0.5},
        ],
        "terms": [
            {"sequence": [1, 1, 1, 0, 0, 0], "bits": [0, 1, 2, 2, 1, 0], "value": 0.1},
        ],
    }

Bits are discovered with one pass over the site entries per spin projection
(spin up first), so spin-up bits come before spin-down bits.
"""

import numpy as np
from copy import deepcopy
from numbers import Real
from edhub.errors import (
    DuplicateBit,
    MalformedEntry,
    NotInitialized,
    UnsupportedOrbitalType,
)
from edhub.modeling import (
    BasisKind,
    OrbitalType,
    POrbital,
    SOrbital,
    parse_basis_kind,
    parse_orbital_type,
    TERM_ORDERS,
    Term,
    TermSet,
)
from edhub.operators import native_p_terms, spherical_p_terms
from edhub.tools import validate_parameters, get_time
import logging

logger = logging.getLogger(__name__)

__all__ = ["BasisClassifier"]

N_SPINS = 2


def _get_real(entry, key, where):
    if key not in entry:
        raise MalformedEntry(f"missing field {key!r}", where)
    value = entry[key]
    if isinstance(value, bool) or not isinstance(value, Real):
        raise MalformedEntry(f"field {key!r} must be a real number, not {value!r}", where)
    return float(value)


def _get_index(entry, key, where):
    if key not in entry:
        raise MalformedEntry(f"missing field {key!r}", where)
    value = entry[key]
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 0:
        raise MalformedEntry(
            f"field {key!r} must be a non-negative integer, not {value!r}", where
        )
    return int(value)


def _get_list(entry, key, where, length=None):
    value = entry.get(key)
    if not isinstance(value, (list, tuple)):
        raise MalformedEntry(f"field {key!r} must be a list, not {value!r}", where)
    if length is not None and len(value) != length:
        raise MalformedEntry(f"field {key!r} must have {length} entries", where)
    return list(value)


class BasisClassifier:
    def __init__(self):
        """Empty classifier; call :meth:`readin` to populate it."""
        self._initialized = False
        self._config = None
        self._entries = ()
        self._bit_info_list = ()
        self._hopping = None
        self._terms = None

    # ==============================================================================
    # INITIALIZATION
    @get_time
    def readin(self, config):
        """Build the bits, the hopping matrix and the terms out of a configuration.

        The whole tree is validated before anything is published: on failure the
        classifier keeps its previous state. The tree is copied, so later edits
        by the caller do not reach :meth:`define_hopping` or :meth:`define_terms`.

        Args:
            config (dict): configuration tree (see the module docstring)

        Raises:
            TypeError: if ``config`` is not a dictionary.

            ConfigError: ``UnknownOrbitalType``, ``UnsupportedOrbitalType``,
                ``MalformedEntry`` or ``DuplicateBit`` for an invalid entry.
        """
        validate_parameters(config=config)
        config = deepcopy(config)
        entries = self._parse_sites(config)
        bit_info_list = self._define_bits(entries)
        hopping = self._build_hopping(config, bit_info_list)
        terms = self._build_terms(config, entries, bit_info_list)
        # Publish
        self._config = config
        self._entries = tuple(entries)
        self._bit_info_list = bit_info_list
        self._hopping = hopping
        self._terms = terms
        self._initialized = True
        logger.info(
            f"BITS {len(bit_info_list)}, TERMS "
            + ", ".join(f"{order}:{len(terms[order])}" for order in TERM_ORDERS)
        )

    def define_hopping(self):
        """Rebuild the hopping matrix from the configuration read by :meth:`readin`."""
        self._check_initialized()
        self._hopping = self._build_hopping(self._config, self._bit_info_list)

    def define_terms(self):
        """Rebuild the term set from the configuration read by :meth:`readin`."""
        self._check_initialized()
        self._terms = self._build_terms(
            self._config, self._entries, self._bit_info_list
        )

    def _check_initialized(self):
        if not self._initialized:
            raise NotInitialized("BasisClassifier.readin() has not been called")

    # ==============================================================================
    # BITS
    def _parse_sites(self, config):
        sites = config.get("sites")
        if not isinstance(sites, (list, tuple)) or len(sites) == 0:
            raise MalformedEntry("'sites' must be a non-empty list", "sites")
        entries = []
        seen = {}
        for ii, entry in enumerate(sites):
            where = f"sites[{ii}]"
            if not isinstance(entry, dict):
                raise MalformedEntry(f"entry must be a dict, not {type(entry)}", where)
            if "type" not in entry:
                raise MalformedEntry("missing field 'type'", where)
            orbital = parse_orbital_type(entry["type"], where)
            site = _get_index(entry, "site", where)
            parsed = {"site": site, "type": orbital, "where": where}
            if orbital is OrbitalType.S:
                parsed["U"] = _get_real(entry, "U", where)
            elif orbital is OrbitalType.P:
                parsed["U"] = _get_real(entry, "U", where)
                parsed["J"] = _get_real(entry, "J", where)
                if "basis" not in entry:
                    raise MalformedEntry("missing field 'basis'", where)
                parsed["basis"] = parse_basis_kind(entry["basis"], where)
            else:
                raise UnsupportedOrbitalType(
                    f"no interaction model for {orbital.value} orbitals", where
                )
            parsed["mu"] = _get_real(entry, "mu", where) if "mu" in entry else None
            key = (site, orbital)
            if key in seen:
                raise DuplicateBit(
                    f"site {site} {orbital.value} orbital already declared in {seen[key]}",
                    where,
                )
            seen[key] = where
            entries.append(parsed)
        return entries

    def _define_bits(self, entries):
        bit_info_list = []
        for spin in range(N_SPINS):
            for entry in entries:
                if entry["type"] is OrbitalType.S:
                    bit_info_list.append(
                        SOrbital(entry["site"], spin, len(bit_info_list), entry["U"])
                    )
                else:
                    if entry["basis"] is BasisKind.NATIVE:
                        indices = (0, 1, 2)
                    else:
                        indices = (-1, 0, 1)
                    for index in indices:
                        bit_info_list.append(
                            POrbital(
                                entry["site"],
                                spin,
                                len(bit_info_list),
                                entry["U"],
                                entry["J"],
                                entry["basis"],
                                index,
                            )
                        )
        return tuple(bit_info_list)

    @staticmethod
    def _entry_bits(entry, bit_info_list):
        """Bit indices of one site entry as ``bits[spin][component]``."""
        bits = {spin: [] for spin in range(N_SPINS)}
        for info in bit_info_list:
            if info.site == entry["site"] and info.orbital_type is entry["type"]:
                bits[info.spin].append(info.bit_index)
        return bits

    # ==============================================================================
    # HOPPING
    def _build_hopping(self, config, bit_info_list):
        n_bits = len(bit_info_list)
        hopping = np.zeros((n_bits, n_bits), dtype=float)
        declarations = config.get("hopping", [])
        if not isinstance(declarations, (list, tuple)):
            raise MalformedEntry("'hopping' must be a list", "hopping")
        for ii, entry in enumerate(declarations):
            where = f"hopping[{ii}]"
            if not isinstance(entry, dict):
                raise MalformedEntry(f"entry must be a dict, not {type(entry)}", where)
            t = _get_real(entry, "t", where)
            if "bits" in entry:
                pairs = [self._bit_pair(entry, n_bits, where)]
            elif "sites" in entry:
                pairs = self._site_pairs(entry, bit_info_list, where)
            else:
                raise MalformedEntry("hopping needs either 'bits' or 'sites'", where)
            for i, j in pairs:
                hopping[i, j] = t
                hopping[j, i] = t
        hopping.flags.writeable = False
        return hopping

    @staticmethod
    def _bit_pair(entry, n_bits, where):
        pair = _get_list(entry, "bits", where, length=2)
        for bit in pair:
            if isinstance(bit, bool) or not isinstance(bit, (int, np.integer)):
                raise MalformedEntry(f"bit index {bit!r} is not an integer", where)
            if not 0 <= bit < n_bits:
                raise MalformedEntry(f"bit index {bit} out of range [0, {n_bits})", where)
        if pair[0] == pair[1]:
            raise MalformedEntry(
                f"hopping needs two distinct bits, not {pair[0]} twice", where
            )
        return int(pair[0]), int(pair[1])

    @staticmethod
    def _site_pairs(entry, bit_info_list, where):
        site_a, site_b = _get_list(entry, "sites", where, length=2)
        if site_a == site_b:
            raise MalformedEntry(
                f"hopping needs two distinct sites, not {site_a} twice", where
            )

        def component(info):
            return (
                info.spin,
                info.orbital_type,
                getattr(info, "basis", None),
                getattr(info, "index", 0),
            )

        bits_a = {component(b): b.bit_index for b in bit_info_list if b.site == site_a}
        bits_b = {component(b): b.bit_index for b in bit_info_list if b.site == site_b}
        common = [key for key in bits_a if key in bits_b]
        if not common:
            raise MalformedEntry(
                f"sites {site_a} and {site_b} share no orbital component", where
            )
        return [(bits_a[key], bits_b[key]) for key in common]

    # ==============================================================================
    # TERMS
    def _build_terms(self, config, entries, bit_info_list):
        terms = TermSet()
        for entry in entries:
            bits = self._entry_bits(entry, bit_info_list)
            if entry["type"] is OrbitalType.S:
                up, dn = bits[0][0], bits[1][0]
                # Hubbard density-density U n_up n_dn
                terms.add(Term((True, True, False, False), (up, dn, dn, up), entry["U"]))
            elif entry["basis"] is BasisKind.NATIVE:
                terms.extend(native_p_terms(bits, entry["U"], entry["J"]))
            else:
                terms.extend(spherical_p_terms(bits, entry["U"], entry["J"]))
            if entry["mu"] is not None:
                for spin in range(N_SPINS):
                    for bit in bits[spin]:
                        terms.add(Term((True, False), (bit, bit), -entry["mu"]))
        terms.extend(self._declared_terms(config, len(bit_info_list)))
        return terms.freeze()

    @staticmethod
    def _declared_terms(config, n_bits):
        declarations = config.get("terms", [])
        if not isinstance(declarations, (list, tuple)):
            raise MalformedEntry("'terms' must be a list", "terms")
        terms = []
        for ii, entry in enumerate(declarations):
            where = f"terms[{ii}]"
            if not isinstance(entry, dict):
                raise MalformedEntry(f"entry must be a dict, not {type(entry)}", where)
            sequence = _get_list(entry, "sequence", where)
            bits = _get_list(entry, "bits", where)
            value = _get_real(entry, "value", where)
            for op in sequence:
                if not isinstance(op, (bool, int, np.integer)) or op not in (0, 1):
                    raise MalformedEntry(
                        f"sequence entries must be 0 or 1 (or booleans), not {op!r}", where
                    )
            for bit in bits:
                if isinstance(bit, bool) or not isinstance(bit, (int, np.integer)):
                    raise MalformedEntry(f"bit index {bit!r} is not an integer", where)
                if not 0 <= bit < n_bits:
                    raise MalformedEntry(
                        f"bit index {bit} out of range [0, {n_bits})", where
                    )
            try:
                terms.append(Term(sequence, bits, value))
            except ValueError as err:
                raise MalformedEntry(str(err), where) from err
        return terms

    # ==============================================================================
    # ACCESSORS
    def get_bit_size(self):
        self._check_initialized()
        return len(self._bit_info_list)

    def get_bit_info_list(self):
        self._check_initialized()
        return self._bit_info_list

    def get_hopping_matrix(self):
        self._check_initialized()
        return self._hopping

    def get_terms(self):
        self._check_initialized()
        return self._terms

    def find_bits(self, site):
        """Bit indices of all the orbitals living on ``site``."""
        validate_parameters(site=site)
        self._check_initialized()
        return [info.bit_index for info in self._bit_info_list if info.site == site]

    def find_bit(self, site, spin, index=None):
        """Bit index of a given site, spin and (for p orbitals) component.

        Raises:
            KeyError: if no bit matches.
        """
        validate_parameters(site=site)
        self._check_initialized()
        for info in self._bit_info_list:
            if info.site != site or info.spin != spin:
                continue
            if index is None or getattr(info, "index", None) == index:
                return info.bit_index
        raise KeyError(f"no bit on site {site} with spin {spin} and index {index}")

    # ==============================================================================
    # DIAGNOSTICS
    def print_bit_info_list(self):
        self._check_initialized()
        logger.info("----------------------------------------------------")
        for info in self._bit_info_list:
            logger.info(info.format())

    def print_hopping_matrix(self):
        self._check_initialized()
        logger.info("----------------------------------------------------")
        with np.printoptions(precision=4, suppress=True, linewidth=200):
            for row in str(self._hopping).split("\n"):
                logger.info(row)

    def print_terms(self):
        self._check_initialized()
        logger.info("----------------------------------------------------")
        for row in str(self._terms).split("\n"):
            logger.info(row)
