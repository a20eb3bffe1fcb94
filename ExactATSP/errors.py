from __future__ import annotations


class ATSPError(Exception):
    """Base class for solver failures reported to the caller."""


class InvalidInput(ATSPError, ValueError):
    """Malformed instance or permutation."""


class TooLarge(ATSPError):
    """Instance does not fit the solver's subset representation."""


class Infeasible(ATSPError):
    """No Hamiltonian cycle exists under the given forbidden edges."""


__all__ = ["ATSPError", "Infeasible", "InvalidInput", "TooLarge"]
