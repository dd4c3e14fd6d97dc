"""Base contract enforcement utilities.

The require() function is the single enforcement mechanism for definition
invariants: descriptor flags, compute/transform shape, composite wiring.
"""

from hsmusic.contracts.failure import DefinitionError


def require(condition: bool, message: str) -> None:
    """Enforce a definition contract.

    Called wherever a descriptor or composite is checked against the rules
    of the property system. It is fail-fast: no recovery, no fallback.

    Parameters
    ----------
    condition : bool
        The invariant that must be true. If False, DefinitionError is raised.

    message : str
        Error message naming the offending class, property, or composite.

    Raises
    ------
    DefinitionError
        If condition is False. This indicates a bug in a schema definition.

    Examples
    --------
    >>> require(flags.update or flags.expose, "Album.name: no flags set")
    >>> require(name in descriptors, "Album.tracks: unknown dependency 'foo'")
    """
    if not condition:
        raise DefinitionError(message)
