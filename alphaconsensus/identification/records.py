"""In-memory records for peptide identifications.

One ``PeptideIdentification`` is the search result of one spectrum in one
identification run: precursor RT and m/z plus an ordered list of candidate
``PeptideHit`` objects. ``Feature`` is a pre-grouped container (one measured
precursor with identifications from possibly several runs attached), and
``IdentificationGroup`` is what the grouping engine produces from flat input.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional

import numpy as np


@dataclass
class PeptideHit:
    """One candidate sequence for a spectrum."""

    sequence: str
    score: float
    rank: int = 0    # 1-based, 0 if not ranked yet
    charge: int = 0  # 0 if unknown
    meta: Dict[str, Any] = field(default_factory=dict)

    def copy(self) -> 'PeptideHit':
        return replace(self, meta=dict(self.meta))


@dataclass
class PeptideIdentification:
    """Search result of one spectrum in one identification run.

    RT and m/z are optional at the record level so that incomplete input can
    be represented; grouping rejects records without them.
    """

    run_id: str
    rt: Optional[float] = None
    mz: Optional[float] = None
    hits: List[PeptideHit] = field(default_factory=list)
    score_type: str = ""
    higher_score_better: bool = True
    spectrum_reference: str = ""

    @property
    def has_rt(self) -> bool:
        return self.rt is not None and not math.isnan(self.rt)

    @property
    def has_mz(self) -> bool:
        return self.mz is not None and not math.isnan(self.mz)

    def copy(self) -> 'PeptideIdentification':
        return replace(self, hits=[hit.copy() for hit in self.hits])

    def sort_hits(self) -> None:
        """Sort hits best-first according to ``higher_score_better`` (stable)."""
        self.hits.sort(key=lambda hit: hit.score, reverse=self.higher_score_better)

    @property
    def is_ranked(self) -> bool:
        """True if every hit carries a rank from its identification run."""
        return bool(self.hits) and all(hit.rank > 0 for hit in self.hits)

    def sort_by_rank(self) -> None:
        """Order hits by their run's own ranking, or by score if unranked (stable)."""
        if self.is_ranked:
            self.hits.sort(key=lambda hit: hit.rank)
        else:
            self.sort_hits()

    def renumber_ranks(self) -> None:
        """Renumber existing ranks 1..n in hit order; equal ranks stay shared."""
        rank = 0
        previous = None
        for hit in self.hits:
            if previous is None or hit.rank != previous:
                rank += 1
                previous = hit.rank
            hit.rank = rank

    def assign_ranks(self) -> None:
        """Sort hits and assign 1-based ranks; equal scores share a rank."""
        self.sort_hits()
        rank = 0
        previous_score = None
        for hit in self.hits:
            if previous_score is None or hit.score != previous_score:
                rank += 1
                previous_score = hit.score
            hit.rank = rank

    @property
    def best_hit(self) -> Optional[PeptideHit]:
        return self.hits[0] if self.hits else None


@dataclass
class RunMetadata:
    """Description of one identification run (search engine execution)."""

    identifier: str
    search_engine: str = ""
    search_engine_version: str = ""
    date_time: Optional[datetime] = None
    score_type: str = ""
    higher_score_better: bool = True


@dataclass
class Feature:
    """Pre-grouped container: one measured precursor with attached identifications."""

    rt: float
    mz: float
    identifications: List[PeptideIdentification] = field(default_factory=list)
    feature_id: str = ""


@dataclass
class IdentificationGroup:
    """Identifications from different runs judged to be the same measurement.

    ``indices`` point into the flat arena passed to the grouping engine, in
    the same order as ``identifications``.
    """

    identifications: List[PeptideIdentification]
    indices: List[int] = field(default_factory=list)
    rt: float = 0.0
    mz: float = 0.0

    @classmethod
    def from_members(
        cls, identifications: List[PeptideIdentification], indices: List[int]
    ) -> 'IdentificationGroup':
        """Create a group with centroid RT/m/z as the mean of its members."""
        rts = np.array([pep_id.rt for pep_id in identifications], dtype=np.float64)
        mzs = np.array([pep_id.mz for pep_id in identifications], dtype=np.float64)
        return cls(
            identifications=identifications,
            indices=indices,
            rt=float(np.mean(rts)),
            mz=float(np.mean(mzs)),
        )

    @property
    def run_ids(self) -> List[str]:
        return [pep_id.run_id for pep_id in self.identifications]

    def __len__(self) -> int:
        return len(self.identifications)


@dataclass
class ConsensusResult:
    """Consensus identification of one group, placed at the group centroid."""

    rt: float
    mz: float
    identification: PeptideIdentification
    group_index: int = -1
