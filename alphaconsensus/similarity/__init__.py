"""Similarity measures between candidate peptide sequences.

This module provides:
- Substitution-matrix alignment similarity (PEPMatrix)
- Shared fragment-ion similarity (PEPIons)
"""

from .alignment import (
    BLOSUM62,
    SUBSTITUTION_MATRICES,
    global_alignment_score,
    sequence_similarity,
)

from .ion_ladder import (
    count_shared_ions,
    generate_ion_ladder,
    ion_similarity,
)

__all__ = [
    # Alignment
    'BLOSUM62',
    'SUBSTITUTION_MATRICES',
    'global_alignment_score',
    'sequence_similarity',

    # Fragment ions
    'count_shared_ions',
    'generate_ion_ladder',
    'ion_similarity',
]
