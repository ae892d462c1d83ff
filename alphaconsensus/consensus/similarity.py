"""Probabilistic consensus from posterior error probabilities and sequence similarity.

Implements the consensus scoring of Nahnsen et al., "Probabilistic Consensus
Scoring Improves Tandem Mass Spectrometry Peptide Identification",
J. Proteome Res. 2011 (DOI: 10.1021/pr2002879).

For a hit with sequence s and PEP p from one run, every other run
contributes its best-matching hit (highest similarity, ties broken by lower
PEP) with similarity w and PEP q:

    score(s) = (p + sum(w * q)) / (1 + sum(w))^2

Identical sequences reported by all runs with low PEPs therefore end up
with a much lower (better) consensus PEP, and similar but not identical
sequences still lend partial support. Runs without hits contribute nothing.

Two similarity measures are available:
- PEPMatrix: substitution-matrix alignment of the sequences
- PEPIons: shared theoretical b/y fragment ions

All input scores must be posterior error probabilities.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

from alphaconsensus.constants import PEP_SCORE_TYPES
from alphaconsensus.consensus.base import ConsensusAlgorithm, SequenceScore
from alphaconsensus.exceptions import InvalidConfigurationError
from alphaconsensus.identification.records import PeptideIdentification
from alphaconsensus.similarity.alignment import sequence_similarity
from alphaconsensus.similarity.ion_ladder import ion_similarity


def is_pep_score_type(score_type: str) -> bool:
    return score_type.strip().lower() in PEP_SCORE_TYPES


def check_pep_score_types(identifications: Sequence[PeptideIdentification], name: str) -> None:
    """Raise InvalidConfigurationError unless all identifications with hits carry PEPs."""
    for pep_id in identifications:
        if pep_id.hits and not is_pep_score_type(pep_id.score_type):
            raise InvalidConfigurationError(
                f"Consensus algorithm '{name}' requires posterior error probabilities, "
                f"found score type '{pep_id.score_type}' in identification run "
                f"'{pep_id.run_id}'. Calculate PEPs for all search results first."
            )


class _SimilarityAlgorithm(ConsensusAlgorithm):
    """PEP-based consensus; subclasses define the sequence similarity."""

    def get_similarity(self, seq1: str, seq2: str) -> float:
        raise NotImplementedError

    def score_sequences(
        self, identifications: List[PeptideIdentification], n_runs: int
    ) -> Dict[str, SequenceScore]:
        results: Dict[str, SequenceScore] = {}

        for idx1, pep_id1 in enumerate(identifications):
            for hit1 in pep_id1.hits:
                # Each sequence is scored once, from its first occurrence
                if hit1.sequence in results:
                    continue

                score = hit1.score
                sum_similarity = 1.0  # Similarity with itself

                for idx2, pep_id2 in enumerate(identifications):
                    if idx2 == idx1 or not pep_id2.hits:
                        continue

                    # Best match: highest similarity, then lowest PEP
                    similarity, neg_pep = max(
                        (self.get_similarity(hit1.sequence, hit2.sequence), -hit2.score)
                        for hit2 in pep_id2.hits
                    )
                    score += similarity * -neg_pep
                    sum_similarity += similarity

                score /= sum_similarity * sum_similarity
                results[hit1.sequence] = SequenceScore(
                    score=score,
                    support=self.support(sum_similarity, n_runs),
                    charge=hit1.charge,
                )

        return results

    def check_score_types(self, identifications: Sequence[PeptideIdentification]) -> None:
        check_pep_score_types(identifications, self.name)

    def output_score_type(self, identifications: List[PeptideIdentification]) -> str:
        return f"Consensus_{self.name}"

    def output_higher_score_better(self, identifications: List[PeptideIdentification]) -> bool:
        return False


class PEPMatrixAlgorithm(_SimilarityAlgorithm):
    """PEP consensus with substitution-matrix sequence similarity."""

    name = "PEPMatrix"

    def __init__(
        self,
        considered_hits: int = 10,
        min_support: float = 0.0,
        matrix: str = "BLOSUM62",
        penalty: int = 5,
    ):
        super().__init__(considered_hits, min_support)
        self.matrix = matrix
        self.penalty = penalty

    def get_similarity(self, seq1: str, seq2: str) -> float:
        return sequence_similarity(seq1, seq2, self.matrix, self.penalty)


class PEPIonsAlgorithm(_SimilarityAlgorithm):
    """PEP consensus with shared fragment-ion similarity."""

    name = "PEPIons"

    def __init__(
        self,
        considered_hits: int = 10,
        min_support: float = 0.0,
        mass_tolerance: float = 0.5,
        min_shared: int = 2,
    ):
        super().__init__(considered_hits, min_support)
        self.mass_tolerance = mass_tolerance
        self.min_shared = min_shared

    def get_similarity(self, seq1: str, seq2: str) -> float:
        return ion_similarity(seq1, seq2, self.mass_tolerance, self.min_shared)
