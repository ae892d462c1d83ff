"""Peptide sequence notation.

Search engines report modified sequences in bracket notation. Supported forms:

- ``PEPM(Oxidation)TIDE`` or ``PEPM[Oxidation]TIDE`` (named, Unimod names)
- ``PEPM[+15.995]TIDE`` (mass delta in Da)
- ``.(Acetyl)PEPTIDE`` / ``(Acetyl)PEPTIDE`` (N-terminal)
- ``PEPTIDE.(Amidated)`` (C-terminal)

Terminal modifications are folded into the first / last residue, which is
sufficient for fragment ladders and sequence comparison.

Examples
--------
>>> unmodified_sequence("PEPM(Oxidation)TIDE")
'PEPMTIDE'
>>> residues, shifts = parse_sequence("PEPM[+15.995]TIDE")
>>> float(shifts[3])
15.995
"""

from __future__ import annotations

from functools import lru_cache
from typing import Tuple

import numpy as np

from alphaconsensus.constants import MODIFICATION_MASSES
from alphaconsensus.exceptions import IncompatibleInputError

_CLOSING = {"(": ")", "[": "]"}


def _modification_mass(name: str, sequence: str) -> float:
    """Resolve a modification token to its mass delta."""
    token = name.strip()
    if token in MODIFICATION_MASSES:
        return MODIFICATION_MASSES[token]
    try:
        return float(token)
    except ValueError:
        raise IncompatibleInputError(
            f"Unknown modification '{token}' in sequence '{sequence}'"
        ) from None


@lru_cache(maxsize=65536)
def _parse(sequence: str) -> Tuple[str, Tuple[float, ...]]:
    residues = []
    shifts = []
    pending_nterm = 0.0
    i = 0
    n = len(sequence)

    while i < n:
        char = sequence[i]
        if char == ".":
            i += 1
            continue
        if char in _CLOSING:
            end = sequence.find(_CLOSING[char], i + 1)
            if end < 0:
                raise IncompatibleInputError(f"Unbalanced modification bracket in '{sequence}'")
            # Nested brackets are not part of any supported notation
            delta = _modification_mass(sequence[i + 1:end], sequence)
            if residues:
                shifts[-1] += delta
            else:
                pending_nterm += delta
            i = end + 1
            continue
        if not char.isalpha():
            raise IncompatibleInputError(f"Invalid character '{char}' in sequence '{sequence}'")

        residues.append(char.upper())
        shifts.append(0.0)
        i += 1

    if not residues:
        raise IncompatibleInputError(f"Sequence '{sequence}' contains no residues")

    shifts[0] += pending_nterm
    return "".join(residues), tuple(shifts)


def parse_sequence(sequence: str) -> Tuple[str, np.ndarray]:
    """Split a (possibly modified) sequence into residues and per-residue mass shifts.

    Args:
        sequence: Peptide sequence in bracket notation

    Returns:
        (residues, shifts) where shifts is a float64 array of the same length

    Raises:
        IncompatibleInputError: If the notation cannot be parsed
    """
    residues, shifts = _parse(sequence)
    return residues, np.array(shifts, dtype=np.float64)


def unmodified_sequence(sequence: str) -> str:
    """Return the residues of a sequence with all modifications removed."""
    return _parse(sequence)[0]


def encode_peptide_to_ord(residues: str) -> np.ndarray:
    """Encode an unmodified residue string to an ord() array for Numba processing."""
    return np.array([ord(c) for c in residues], dtype=np.uint8)
