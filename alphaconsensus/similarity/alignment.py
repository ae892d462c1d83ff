"""Sequence similarity from global alignment with a substitution matrix.

Used by the PEPMatrix consensus: two candidate sequences reported by
different runs support each other in proportion to how similar they are.

Similarity definition
---------------------
- Identical unmodified sequences: 1.0
- Otherwise: Needleman-Wunsch score (linear gap penalty) divided by the
  smaller of the two self-alignment scores, clamped to [0, 1]

Matrices are ord()-indexed 256x256 int arrays for Numba; residues missing
from a matrix are scored as 'X'.

Examples
--------
>>> sequence_similarity("PEPTIDE", "PEPTIDE")
1.0
>>> 0.0 < sequence_similarity("PEPTIDE", "PEPTLDE") < 1.0
True
"""

from __future__ import annotations

from functools import lru_cache

import numpy as np
from numba import njit

from alphaconsensus.sequences import encode_peptide_to_ord, unmodified_sequence

# =============================================================================
# Substitution Matrices
# =============================================================================

# NCBI BLOSUM62 (Henikoff & Henikoff, 1992)
_BLOSUM62_TEXT = """
   A  R  N  D  C  Q  E  G  H  I  L  K  M  F  P  S  T  W  Y  V  B  Z  X  *
A  4 -1 -2 -2  0 -1 -1  0 -2 -1 -1 -1 -1 -2 -1  1  0 -3 -2  0 -2 -1  0 -4
R -1  5  0 -2 -3  1  0 -2  0 -3 -2  2 -1 -3 -2 -1 -1 -3 -2 -3 -1  0 -1 -4
N -2  0  6  1 -3  0  0  0  1 -3 -3  0 -2 -3 -2  1  0 -4 -2 -3  3  0 -1 -4
D -2 -2  1  6 -3  0  2 -1 -1 -3 -4 -1 -3 -3 -1  0 -1 -4 -3 -3  4  1 -1 -4
C  0 -3 -3 -3  9 -3 -4 -3 -3 -1 -1 -3 -1 -2 -3 -1 -1 -2 -2 -1 -3 -3 -2 -4
Q -1  1  0  0 -3  5  2 -2  0 -3 -2  1  0 -3 -1  0 -1 -2 -1 -2  0  3 -1 -4
E -1  0  0  2 -4  2  5 -2  0 -3 -3  1 -2 -3 -1  0 -1 -3 -2 -2  1  4 -1 -4
G  0 -2  0 -1 -3 -2 -2  6 -2 -4 -4 -2 -3 -3 -2  0 -2 -2 -3 -3 -1 -2 -1 -4
H -2  0  1 -1 -3  0  0 -2  8 -3 -3 -1 -2 -1 -2 -1 -2 -2  2 -3  0  0 -1 -4
I -1 -3 -3 -3 -1 -3 -3 -4 -3  4  2 -3  1  0 -3 -2 -1 -3 -1  3 -3 -3 -1 -4
L -1 -2 -3 -4 -1 -2 -3 -4 -3  2  4 -2  2  0 -3 -2 -1 -2 -1  1 -4 -3 -1 -4
K -1  2  0 -1 -3  1  1 -2 -1 -3 -2  5 -1 -3 -1  0 -1 -3 -2 -2  0  1 -1 -4
M -1 -1 -2 -3 -1  0 -2 -3 -2  1  2 -1  5  0 -2 -1 -1 -1 -1  1 -3 -1 -1 -4
F -2 -3 -3 -3 -2 -3 -3 -3 -1  0  0 -3  0  6 -4 -2 -2  1  3 -1 -3 -3 -1 -4
P -1 -2 -2 -1 -3 -1 -1 -2 -2 -3 -3 -1 -2 -4  7 -1 -1 -4 -3 -2 -2 -1 -2 -4
S  1 -1  1  0 -1  0  0  0 -1 -2 -2  0 -1 -2 -1  4  1 -3 -2 -2  0  0  0 -4
T  0 -1  0 -1 -1 -1 -1 -2 -2 -1 -1 -1 -1 -2 -1  1  5 -2 -2  0 -1 -1  0 -4
W -3 -3 -4 -4 -2 -2 -3 -2 -2 -3 -2 -3 -1  1 -4 -3 -2 11  2 -3 -4 -3 -2 -4
Y -2 -2 -2 -3 -2 -1 -2 -3  2 -1 -1 -2 -1  3 -3 -2 -2  2  7 -1 -3 -2 -1 -4
V  0 -3 -3 -3 -1 -2 -2 -3 -3  3  1 -2  1 -1 -2 -2  0 -3 -1  4 -3 -2 -1 -4
B -2 -1  3  4 -3  0  1 -1  0 -3 -4  0 -3 -3 -2  0 -1 -4 -3 -3  4  1 -1 -4
Z -1  0  0  1 -3  3  4 -2  0 -3 -3  1 -1 -3 -1  0 -1 -3 -2 -2  1  4 -1 -4
X  0 -1 -1 -1 -2 -1 -1 -1 -1 -1 -1 -1 -1 -1 -2  0  0 -2 -1 -1 -1 -1 -1 -4
* -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4  1
"""


def _parse_matrix(text: str) -> np.ndarray:
    """Parse a whitespace-separated matrix into an ord()-indexed 256x256 array."""
    lines = [line.split() for line in text.strip().splitlines()]
    columns = lines[0]
    table = {row[0]: [int(value) for value in row[1:]] for row in lines[1:]}

    # Default every code to the 'X' row/column, then fill known residues
    x_row = table['X']
    x_col = [table[row_aa][columns.index('X')] for row_aa in columns]

    matrix = np.empty((256, 256), dtype=np.int64)
    matrix[:, :] = x_row[columns.index('X')]
    for j, col_aa in enumerate(columns):
        matrix[:, ord(col_aa)] = x_row[j]
    for i, row_aa in enumerate(columns):
        matrix[ord(row_aa), :] = x_col[i]
        for j, col_aa in enumerate(columns):
            matrix[ord(row_aa), ord(col_aa)] = table[row_aa][j]
    return matrix


BLOSUM62 = _parse_matrix(_BLOSUM62_TEXT)

SUBSTITUTION_MATRICES = {
    "BLOSUM62": BLOSUM62,
}


# =============================================================================
# Alignment (Numba-Compiled)
# =============================================================================

@njit(cache=True)
def global_alignment_score(
    seq1_ord: np.ndarray,
    seq2_ord: np.ndarray,
    matrix: np.ndarray,
    gap_penalty: int,
) -> int:
    """Needleman-Wunsch global alignment score with a linear gap penalty.

    Parameters
    ----------
    seq1_ord, seq2_ord : np.ndarray (uint8)
        Sequences as ord() values
    matrix : np.ndarray (int64, 256x256)
        ord()-indexed substitution matrix
    gap_penalty : int
        Positive penalty subtracted for every gap position

    Returns
    -------
    int
        Optimal global alignment score

    Notes
    -----
    Uses two rolling rows, O(len1 * len2) time and O(len2) memory.
    """
    n1 = len(seq1_ord)
    n2 = len(seq2_ord)

    previous = np.empty(n2 + 1, dtype=np.int64)
    current = np.empty(n2 + 1, dtype=np.int64)
    for j in range(n2 + 1):
        previous[j] = -gap_penalty * j

    for i in range(1, n1 + 1):
        current[0] = -gap_penalty * i
        a = seq1_ord[i - 1]
        for j in range(1, n2 + 1):
            match = previous[j - 1] + matrix[a, seq2_ord[j - 1]]
            delete = previous[j] - gap_penalty
            insert = current[j - 1] - gap_penalty
            best = match
            if delete > best:
                best = delete
            if insert > best:
                best = insert
            current[j] = best
        for j in range(n2 + 1):
            previous[j] = current[j]

    return previous[n2]


@lru_cache(maxsize=200000)
def _similarity_unmodified(seq1: str, seq2: str, matrix_name: str, gap_penalty: int) -> float:
    if seq1 == seq2:
        return 1.0

    matrix = SUBSTITUTION_MATRICES[matrix_name]
    ord1 = encode_peptide_to_ord(seq1)
    ord2 = encode_peptide_to_ord(seq2)

    score = global_alignment_score(ord1, ord2, matrix, gap_penalty)
    self1 = global_alignment_score(ord1, ord1, matrix, gap_penalty)
    self2 = global_alignment_score(ord2, ord2, matrix, gap_penalty)

    normalizer = min(self1, self2)
    if normalizer <= 0:
        return 0.0
    return max(0.0, min(1.0, score / normalizer))


def sequence_similarity(
    seq1: str,
    seq2: str,
    matrix: str = "BLOSUM62",
    gap_penalty: int = 5,
) -> float:
    """Similarity of two peptide sequences in [0, 1] (modifications ignored).

    Args:
        seq1: First sequence (bracket notation allowed)
        seq2: Second sequence
        matrix: Name of the substitution matrix
        gap_penalty: Linear gap penalty

    Returns:
        Similarity, 1.0 for identical unmodified sequences
    """
    a = unmodified_sequence(seq1)
    b = unmodified_sequence(seq2)
    # Symmetric measure: order the pair so the cache sees each pair once
    if b < a:
        a, b = b, a
    return _similarity_unmodified(a, b, matrix, gap_penalty)
