"""Shared machinery of all consensus scoring algorithms.

A consensus algorithm reduces the identifications of one group (one
spectrum, several runs) to a single identification whose hits are re-scored
by agreement between the runs.

Common steps (``ConsensusAlgorithm.apply``)
-------------------------------------------
1. Copy the identifications; order each hit list by the run's own
   ranks (by score where a run gave no ranks), remove duplicate sequences
   (keeping the better hit) and keep the top ``considered_hits`` hits
   (0 = all)
2. Let the algorithm compute a score and a support value per sequence
3. Sort consensus hits by score; ties go to higher support, then to the
   sequence seen first
4. Drop hits with support below ``min_support`` and assign ranks

Support is the fraction of the other runs that agree with a hit, in [0, 1].
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Sequence

from alphaconsensus.constants import SUPPORT_META_KEY
from alphaconsensus.identification.records import PeptideHit, PeptideIdentification

logger = logging.getLogger(__name__)


@dataclass
class SequenceScore:
    """Consensus score of one candidate sequence."""

    score: float
    support: float
    charge: int = 0


class ConsensusAlgorithm(ABC):
    """Interface of the consensus scoring algorithms.

    Subclasses implement ``score_sequences`` and declare the output score
    type and direction; ``check_score_types`` enforces their preconditions.
    """

    name = ""

    def __init__(self, considered_hits: int = 10, min_support: float = 0.0):
        self.considered_hits = considered_hits
        self.min_support = min_support

    def apply(
        self,
        identifications: Sequence[PeptideIdentification],
        number_of_runs: int = 0,
    ) -> List[PeptideIdentification]:
        """Compute the consensus of one group of identifications.

        Args:
            identifications: Identifications of the same spectrum from different runs
            number_of_runs: Number of runs in the whole data set (0 = number of
                identifications given)

        Returns:
            Empty list if no hits were given, otherwise a list with one
            consensus identification. The input is not modified.
        """
        if not identifications:
            return []

        self.check_score_types(identifications)

        n_runs = max(number_of_runs, len(identifications))
        prepared = [self._prepare(pep_id) for pep_id in identifications]
        if not any(pep_id.hits for pep_id in prepared):
            return []

        results = self.score_sequences(prepared, n_runs)
        higher_better = self.output_higher_score_better(prepared)

        # Dicts keep insertion order, so the enumeration index is the first occurrence
        ordered = sorted(
            enumerate(results.items()),
            key=lambda item: (
                -item[1][1].score if higher_better else item[1][1].score,
                -item[1][1].support,
                item[0],
            ),
        )

        consensus = PeptideIdentification(
            run_id=prepared[0].run_id,
            rt=prepared[0].rt,
            mz=prepared[0].mz,
            score_type=self.output_score_type(prepared),
            higher_score_better=higher_better,
            spectrum_reference=prepared[0].spectrum_reference,
        )
        for _, (sequence, result) in ordered:
            if result.support < self.min_support:
                continue
            consensus.hits.append(PeptideHit(
                sequence=sequence,
                score=result.score,
                charge=result.charge,
                meta={SUPPORT_META_KEY: result.support},
            ))

        if not consensus.hits:
            logger.debug("All consensus hits removed by min_support")
            return []

        consensus.assign_ranks()
        return [consensus]

    def _prepare(self, pep_id: PeptideIdentification) -> PeptideIdentification:
        prepared = pep_id.copy()
        prepared.sort_by_rank()

        unique_hits = []
        seen = set()
        for hit in prepared.hits:
            if hit.sequence in seen:
                continue
            seen.add(hit.sequence)
            unique_hits.append(hit)

        if self.considered_hits > 0:
            unique_hits = unique_hits[:self.considered_hits]
        prepared.hits = unique_hits
        return prepared

    @staticmethod
    def support(n_agreeing: float, n_runs: int) -> float:
        """Fraction of the other runs agreeing (n_agreeing includes the run itself)."""
        if n_runs <= 1:
            return 0.0
        return min(1.0, max(0.0, (n_agreeing - 1.0) / (n_runs - 1.0)))

    @abstractmethod
    def check_score_types(self, identifications: Sequence[PeptideIdentification]) -> None:
        """Raise InvalidConfigurationError if the scores do not suit the algorithm."""

    @abstractmethod
    def score_sequences(
        self, identifications: List[PeptideIdentification], n_runs: int
    ) -> Dict[str, SequenceScore]:
        """Score every candidate sequence, in order of first occurrence."""

    @abstractmethod
    def output_score_type(self, identifications: List[PeptideIdentification]) -> str:
        ...

    @abstractmethod
    def output_higher_score_better(self, identifications: List[PeptideIdentification]) -> bool:
        ...

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(considered_hits={self.considered_hits}, "
                f"min_support={self.min_support})")
