"""Identification records and run bookkeeping.

This module provides:
- Peptide hits and identifications (one spectrum, one run)
- Run metadata records
- Pre-grouped feature containers and identification groups
- Run index mapping run identifiers to dense slots
"""

from .records import (
    ConsensusResult,
    Feature,
    IdentificationGroup,
    PeptideHit,
    PeptideIdentification,
    RunMetadata,
)

from .run_index import RunIndex

__all__ = [
    'ConsensusResult',
    'Feature',
    'IdentificationGroup',
    'PeptideHit',
    'PeptideIdentification',
    'RunMetadata',
    'RunIndex',
]
