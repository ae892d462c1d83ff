"""Sequence similarity from shared theoretical fragment ions.

Used by the PEPIons consensus. Two sequences are similar when their singly
charged b- and y-ion ladders share many masses: e.g. sequences differing only
by a swap of two adjacent residues still share most of their fragments.

Key optimizations (as for all ladder code here):
1. ord() encoding, no string operations inside Numba
2. Cumulative residue masses, one pass per ion series
3. Sorted ladders matched with a single two-pointer sweep

Examples
--------
>>> residues, shifts = parse_sequence("PEPTIDE")
>>> ladder = generate_ion_ladder(encode_peptide_to_ord(residues), shifts)
>>> len(ladder)  # 6 b-ions + 6 y-ions
12
>>> ion_similarity("PEPTIDE", "PEPTIDE")
1.0
"""

from __future__ import annotations

from functools import lru_cache

import numpy as np
from numba import njit

from alphaconsensus.constants import AA_MASSES, H2O_MASS, PROTON_MASS
from alphaconsensus.sequences import encode_peptide_to_ord, parse_sequence


@njit(cache=True)
def generate_ion_ladder(peptide_ord: np.ndarray, mod_shifts: np.ndarray) -> np.ndarray:
    """Generate the sorted singly charged b/y ion m/z ladder.

    Parameters
    ----------
    peptide_ord : np.ndarray (uint8)
        Residues as ord() values
    mod_shifts : np.ndarray (float64)
        Modification mass shift per residue (0.0 if unmodified)

    Returns
    -------
    np.ndarray (float64)
        Sorted m/z values of b1..b(n-1) and y1..y(n-1), length 2 * (n - 1)
    """
    n = len(peptide_ord)
    if n < 2:
        return np.zeros(0, dtype=np.float64)

    ladder = np.empty(2 * (n - 1), dtype=np.float64)

    # b-ions: N-terminal prefixes
    prefix = 0.0
    for position in range(1, n):
        prefix += AA_MASSES[peptide_ord[position - 1]] + mod_shifts[position - 1]
        ladder[position - 1] = prefix + PROTON_MASS

    # y-ions: C-terminal suffixes + H2O
    suffix = 0.0
    for position in range(1, n):
        idx = n - position
        suffix += AA_MASSES[peptide_ord[idx]] + mod_shifts[idx]
        ladder[n - 1 + position - 1] = suffix + H2O_MASS + PROTON_MASS

    return np.sort(ladder)


@njit(cache=True)
def count_shared_ions(ladder1: np.ndarray, ladder2: np.ndarray, mass_tolerance: float) -> int:
    """Count one-to-one matches between two sorted ladders within a tolerance (Da).

    Each ion is matched at most once; the sweep advances the smaller value
    when two ions do not match.
    """
    i = 0
    j = 0
    matches = 0
    while i < len(ladder1) and j < len(ladder2):
        diff = ladder1[i] - ladder2[j]
        if abs(diff) <= mass_tolerance:
            matches += 1
            i += 1
            j += 1
        elif diff < 0:
            i += 1
        else:
            j += 1
    return matches


@lru_cache(maxsize=100000)
def _ladder(sequence: str) -> np.ndarray:
    residues, shifts = parse_sequence(sequence)
    return generate_ion_ladder(encode_peptide_to_ord(residues), shifts)


@lru_cache(maxsize=200000)
def _ion_similarity(seq1: str, seq2: str, mass_tolerance: float, min_shared: int) -> float:
    if seq1 == seq2:
        return 1.0

    ladder1 = _ladder(seq1)
    ladder2 = _ladder(seq2)
    smaller = min(len(ladder1), len(ladder2))
    if smaller == 0:
        return 0.0

    matches = count_shared_ions(ladder1, ladder2, mass_tolerance)
    if matches < min_shared:
        return 0.0
    return matches / smaller


def ion_similarity(
    seq1: str,
    seq2: str,
    mass_tolerance: float = 0.5,
    min_shared: int = 2,
) -> float:
    """Fraction of shared b/y ions between two sequences, in [0, 1].

    Args:
        seq1: First sequence (bracket notation, modifications shift the ions)
        seq2: Second sequence
        mass_tolerance: Fragment mass tolerance in Da
        min_shared: Fewer shared ions than this gives similarity 0

    Returns:
        Shared ions divided by the size of the smaller ladder; 1.0 for
        identical sequences
    """
    if seq2 < seq1:
        seq1, seq2 = seq2, seq1
    return _ion_similarity(seq1, seq2, float(mass_tolerance), int(min_shared))
