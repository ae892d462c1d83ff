"""Pytest configuration for AlphaConsensus tests.

Common fixtures: identification runs, the three-run example group used by
the end-to-end tests, PEP-scored groups for the similarity algorithms, and a
fixed consensus context so output metadata is reproducible.
"""

from datetime import datetime

import pytest

from alphaconsensus.config import ConsensusContext
from alphaconsensus.identification import PeptideHit, PeptideIdentification, RunMetadata


def make_identification(run_id, rt, mz, hits, score_type="score", higher_score_better=True,
                        spectrum_reference=""):
    """Build a PeptideIdentification from (sequence, score) tuples."""
    return PeptideIdentification(
        run_id=run_id,
        rt=rt,
        mz=mz,
        hits=[PeptideHit(sequence=sequence, score=score) for sequence, score in hits],
        score_type=score_type,
        higher_score_better=higher_score_better,
        spectrum_reference=spectrum_reference,
    )


@pytest.fixture
def make_id():
    """Factory for peptide identifications (see make_identification)."""
    return make_identification


@pytest.fixture
def runs():
    """Metadata of three identification runs."""
    return [
        RunMetadata(identifier="run_a", search_engine="Mascot", score_type="score"),
        RunMetadata(identifier="run_b", search_engine="XTandem", score_type="score"),
        RunMetadata(identifier="run_c", search_engine="Comet", score_type="score"),
    ]


@pytest.fixture
def example_identifications():
    """Three runs, one event each at RT=100.0, m/z=500.0.

    Top hits: PEPTIDEA (0.9), PEPTIDEA (0.8), PEPTIDEB (0.95).
    """
    return [
        make_identification("run_a", 100.0, 500.0, [("PEPTIDEA", 0.9)]),
        make_identification("run_b", 100.0, 500.0, [("PEPTIDEA", 0.8)]),
        make_identification("run_c", 100.0, 500.0, [("PEPTIDEB", 0.95)]),
    ]


@pytest.fixture
def pep_identifications():
    """Three runs with PEP scores (lower is better) for the same spectrum."""
    kwargs = dict(score_type="Posterior Error Probability", higher_score_better=False)
    return [
        make_identification("run_a", 100.0, 500.0,
                            [("PEPTIDEK", 0.05), ("PEPTIDER", 0.4)], **kwargs),
        make_identification("run_b", 100.02, 500.01,
                            [("PEPTIDEK", 0.1), ("PEPTLDEK", 0.3)], **kwargs),
        make_identification("run_c", 99.98, 499.99,
                            [("PEPTIDER", 0.2)], **kwargs),
    ]


@pytest.fixture
def aa_masses_dict():
    """Amino acid residue masses dictionary."""
    from alphaconsensus.constants import AA_MASSES_DICT
    return AA_MASSES_DICT


@pytest.fixture
def fixed_context():
    """Consensus context with a fixed timestamp and version."""
    return ConsensusContext(date_time=datetime(2024, 5, 17, 12, 30, 0), version="9.9.9")

