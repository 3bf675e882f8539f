"""Exceptions raised by the basis classification and the field operator parts.

Every exception also derives from the builtin that a caller would expect
(``ValueError`` for bad input, ``RuntimeError`` for calls made in the wrong
state), so code catching builtins keeps working.
"""

__all__ = [
    "EDHubError",
    "ConfigError",
    "UnknownOrbitalType",
    "UnsupportedOrbitalType",
    "MalformedEntry",
    "DuplicateBit",
    "NotInitialized",
    "OperatorPartError",
    "BlockMismatch",
    "OperatorUndefined",
    "AlreadyComputed",
    "NotComputed",
]


class EDHubError(Exception):
    """Base class of all the edhub exceptions."""


# ---------------------------------------------------------------------------------
class ConfigError(EDHubError, ValueError):
    """Invalid configuration tree.

    Parameters
    ----------
    msg : str
        Description of the problem.
    entry : str, optional
        Position of the offending entry, e.g. ``"sites[2]"`` or ``"hopping[0]"``.
    """

    def __init__(self, msg, entry=None):
        self.entry = entry
        if entry is not None:
            msg = f"{entry}: {msg}"
        super().__init__(msg)


class UnknownOrbitalType(ConfigError):
    pass


class UnsupportedOrbitalType(ConfigError):
    pass


class MalformedEntry(ConfigError):
    pass


class DuplicateBit(ConfigError):
    pass


class NotInitialized(EDHubError, RuntimeError):
    pass


# ---------------------------------------------------------------------------------
class OperatorPartError(EDHubError):
    """Failure of a field operator part.

    Parameters
    ----------
    msg : str
        Description of the problem.
    p_index : int, optional
        Index of the field operator.
    blocks : tuple, optional
        ``(from_block_id, to_block_id)`` pair of the part.
    """

    def __init__(self, msg, p_index=None, blocks=None):
        self.p_index = p_index
        self.blocks = blocks
        details = []
        if p_index is not None:
            details.append(f"index {p_index}")
        if blocks is not None:
            details.append(f"blocks {blocks[0]}->{blocks[1]}")
        if details:
            msg = f"{msg} ({', '.join(details)})"
        super().__init__(msg)


class BlockMismatch(OperatorPartError, ValueError):
    pass


class OperatorUndefined(OperatorPartError, ValueError):
    pass


class AlreadyComputed(OperatorPartError, RuntimeError):
    pass


class NotComputed(OperatorPartError, RuntimeError):
    pass
