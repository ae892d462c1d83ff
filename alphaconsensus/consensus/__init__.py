"""Consensus scoring of grouped peptide identifications.

This module provides five interchangeable algorithms behind one interface
(``ConsensusAlgorithm.apply``), selected by name:

- best: best score per sequence (same score type required)
- average: mean score over reporting runs (same score type required)
- ranks: rank-based score in (0, 1], any score types
- PEPMatrix: PEP combination weighted by substitution-matrix similarity
- PEPIons: PEP combination weighted by shared fragment ions

Examples
--------
>>> from alphaconsensus.config import ConsensusIDParams
>>> algorithm = create_algorithm(ConsensusIDParams(algorithm="best", considered_hits=1))
>>> consensus = algorithm.apply(group.identifications, number_of_runs=3)
"""

from __future__ import annotations

from typing import Dict, Type

from alphaconsensus.config import ConsensusIDParams
from alphaconsensus.exceptions import InvalidConfigurationError

from .base import ConsensusAlgorithm, SequenceScore
from .identity import AverageAlgorithm, BestAlgorithm, RanksAlgorithm
from .similarity import PEPIonsAlgorithm, PEPMatrixAlgorithm, is_pep_score_type

ALGORITHM_CLASSES: Dict[str, Type[ConsensusAlgorithm]] = {
    "PEPMatrix": PEPMatrixAlgorithm,
    "PEPIons": PEPIonsAlgorithm,
    "best": BestAlgorithm,
    "average": AverageAlgorithm,
    "ranks": RanksAlgorithm,
}


def create_algorithm(params: ConsensusIDParams) -> ConsensusAlgorithm:
    """Create the consensus algorithm selected in the parameters.

    Args:
        params: Consensus parameters (validated here)

    Returns:
        Configured ConsensusAlgorithm instance

    Raises:
        InvalidConfigurationError: If the parameters are invalid
    """
    params.validate()

    if params.algorithm == "PEPMatrix":
        return PEPMatrixAlgorithm(
            considered_hits=params.considered_hits,
            min_support=params.min_support,
            matrix=params.pep_matrix.matrix,
            penalty=params.pep_matrix.penalty,
        )
    if params.algorithm == "PEPIons":
        return PEPIonsAlgorithm(
            considered_hits=params.considered_hits,
            min_support=params.min_support,
            mass_tolerance=params.pep_ions.mass_tolerance,
            min_shared=params.pep_ions.min_shared,
        )
    if params.algorithm in ALGORITHM_CLASSES:
        return ALGORITHM_CLASSES[params.algorithm](
            considered_hits=params.considered_hits,
            min_support=params.min_support,
        )
    raise InvalidConfigurationError(f"Unknown consensus algorithm '{params.algorithm}'")


__all__ = [
    'ALGORITHM_CLASSES',
    'AverageAlgorithm',
    'BestAlgorithm',
    'ConsensusAlgorithm',
    'PEPIonsAlgorithm',
    'PEPMatrixAlgorithm',
    'RanksAlgorithm',
    'SequenceScore',
    'create_algorithm',
    'is_pep_score_type',
]
