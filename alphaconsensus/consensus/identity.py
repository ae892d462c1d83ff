"""Consensus algorithms that only count identical sequences.

- best: best score any run gave the sequence
- average: mean score over the runs that reported the sequence
- ranks: score from the rank of the sequence in each run's hit list

Missing runs
------------
``average`` averages over reporting runs only; a run that did not report
a sequence neither lowers nor raises its score (no zero-fill). Support
still reflects how many runs agreed, and equal averages are ordered by
support. ``ranks`` instead penalizes a missing run with the worst possible
rank, so agreement is part of the score itself.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

import numpy as np

from alphaconsensus.consensus.base import ConsensusAlgorithm, SequenceScore
from alphaconsensus.exceptions import InvalidConfigurationError
from alphaconsensus.identification.records import PeptideIdentification


def check_uniform_score_type(identifications: Sequence[PeptideIdentification], name: str) -> None:
    """Ensure all identifications with hits share score type and direction."""
    reference = None
    for pep_id in identifications:
        if not pep_id.hits:
            continue
        current = (pep_id.score_type, pep_id.higher_score_better)
        if reference is None:
            reference = current
        elif current != reference:
            raise InvalidConfigurationError(
                f"Consensus algorithm '{name}' requires the same score type for all "
                f"identifications, found '{reference[0]}' (higher better: {reference[1]}) "
                f"and '{current[0]}' (higher better: {current[1]})"
            )


class _IdentityAlgorithm(ConsensusAlgorithm):
    """Pools the scores of identical sequences and aggregates them."""

    def score_sequences(
        self, identifications: List[PeptideIdentification], n_runs: int
    ) -> Dict[str, SequenceScore]:
        self.preprocess(identifications)

        pooled: Dict[str, List[float]] = {}
        charges: Dict[str, int] = {}
        for pep_id in identifications:
            for hit in pep_id.hits:
                pooled.setdefault(hit.sequence, []).append(hit.score)
                charges.setdefault(hit.sequence, hit.charge)

        higher_better = self.input_higher_score_better(identifications)
        return {
            sequence: SequenceScore(
                score=self.aggregate(np.array(scores, dtype=np.float64), higher_better, n_runs),
                support=self.support(len(scores), n_runs),
                charge=charges[sequence],
            )
            for sequence, scores in pooled.items()
        }

    def preprocess(self, identifications: List[PeptideIdentification]) -> None:
        """Hook to transform scores before pooling (in place, on copies)."""

    @staticmethod
    def input_higher_score_better(identifications: List[PeptideIdentification]) -> bool:
        for pep_id in identifications:
            if pep_id.hits:
                return pep_id.higher_score_better
        return True

    def check_score_types(self, identifications: Sequence[PeptideIdentification]) -> None:
        check_uniform_score_type(identifications, self.name)

    def output_score_type(self, identifications: List[PeptideIdentification]) -> str:
        for pep_id in identifications:
            if pep_id.hits:
                return pep_id.score_type
        return identifications[0].score_type

    def output_higher_score_better(self, identifications: List[PeptideIdentification]) -> bool:
        return self.input_higher_score_better(identifications)

    def aggregate(self, scores: np.ndarray, higher_better: bool, n_runs: int) -> float:
        raise NotImplementedError


class BestAlgorithm(_IdentityAlgorithm):
    """Consensus score = best score of the sequence in any run."""

    name = "best"

    def aggregate(self, scores: np.ndarray, higher_better: bool, n_runs: int) -> float:
        return float(scores.max() if higher_better else scores.min())


class AverageAlgorithm(_IdentityAlgorithm):
    """Consensus score = mean score over the runs reporting the sequence."""

    name = "average"

    def aggregate(self, scores: np.ndarray, higher_better: bool, n_runs: int) -> float:
        return float(scores.mean())


class RanksAlgorithm(_IdentityAlgorithm):
    """Consensus score from ranks, in (0, 1] with 1 being best.

    Each run gives a sequence the score rank - 1 (best hit: 0). A run that
    did not report the sequence gives N, the number of considered hits
    (the longest hit list if all hits are considered). The sum over all runs
    is normalized: score = 1 - sum / (N * runs). Score types of the runs do
    not need to match.
    """

    name = "ranks"

    def __init__(self, considered_hits: int = 10, min_support: float = 0.0):
        super().__init__(considered_hits, min_support)
        self._current_considered_hits = considered_hits

    def preprocess(self, identifications: List[PeptideIdentification]) -> None:
        longest = 0
        for pep_id in identifications:
            if pep_id.is_ranked:
                pep_id.renumber_ranks()
            else:
                pep_id.assign_ranks()
            for hit in pep_id.hits:
                hit.score = float(hit.rank - 1)
            longest = max(longest, len(pep_id.hits))

        self._current_considered_hits = self.considered_hits if self.considered_hits > 0 else longest

    def aggregate(self, scores: np.ndarray, higher_better: bool, n_runs: int) -> float:
        n_hits = self._current_considered_hits
        total = scores.sum() + (n_runs - len(scores)) * n_hits
        return float(1.0 - total / (n_hits * n_runs))

    def check_score_types(self, identifications: Sequence[PeptideIdentification]) -> None:
        """Any score types are accepted, ranks are computed per run."""

    def output_score_type(self, identifications: List[PeptideIdentification]) -> str:
        return "Consensus_ranks"

    def output_higher_score_better(self, identifications: List[PeptideIdentification]) -> bool:
        return True
