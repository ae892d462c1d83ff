"""End-to-end consensus identification.

Two input shapes are supported:

- Flat: run metadata plus a list of peptide identifications, each with RT
  and m/z. Identifications are grouped across runs first (QT linking), then
  each group is reduced to one consensus identification at the group
  centroid. Groups without any consensus hit are dropped.
- Pre-grouped: run metadata plus features that already carry their
  identifications. Each feature's identifications are replaced by their
  consensus (possibly empty); the features themselves are kept.

In both cases the input run metadata is replaced by one new record that
describes the consensus computation. Output is only produced after every
group has been scored; any error aborts the whole run.

Examples
--------
>>> from alphaconsensus.config import ConsensusIDParams
>>> tool = ConsensusID(ConsensusIDParams(algorithm="best", considered_hits=1))
>>> output = tool.run_flat(runs, identifications)
>>> output.identifications[0].hits[0].sequence
'PEPTIDEB'
"""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from itertools import repeat
from typing import List, Optional, Sequence, Union

from alphaconsensus.config import ConsensusContext, ConsensusIDParams
from alphaconsensus.consensus import ConsensusAlgorithm, create_algorithm
from alphaconsensus.constants import SEARCH_ENGINE_NAME
from alphaconsensus.exceptions import IncompatibleInputError
from alphaconsensus.grouping import group_identifications, groups_from_features
from alphaconsensus.identification import (
    ConsensusResult,
    Feature,
    PeptideIdentification,
    RunIndex,
    RunMetadata,
)

logger = logging.getLogger(__name__)


@dataclass
class ConsensusOutput:
    """Result of a consensus run, in the shape of its input."""

    run_metadata: RunMetadata
    identifications: List[PeptideIdentification] = field(default_factory=list)
    results: List[ConsensusResult] = field(default_factory=list)
    features: List[Feature] = field(default_factory=list)

    @property
    def runs(self) -> List[RunMetadata]:
        """Run metadata of the output: exactly one record."""
        return [self.run_metadata]


def _score_group(
    algorithm: ConsensusAlgorithm,
    identifications: List[PeptideIdentification],
    number_of_runs: int,
) -> List[PeptideIdentification]:
    return algorithm.apply(identifications, number_of_runs)


def _group_reference(reference: str, group_idx: int) -> str:
    # Consensus identifications share one run, so references must be unique per group
    return f"{reference}@group_{group_idx}" if reference else f"group_{group_idx}"


def create_run_metadata(
    context: ConsensusContext, score_type: str = "", higher_score_better: bool = True
) -> RunMetadata:
    """Create the run metadata record that describes the consensus computation."""
    return RunMetadata(
        identifier=f"ConsensusID_{context.date_time:%Y-%m-%dT%H:%M:%S}",
        search_engine=SEARCH_ENGINE_NAME,
        search_engine_version=context.version,
        date_time=context.date_time,
        score_type=score_type,
        higher_score_better=higher_score_better,
    )


class ConsensusID:
    """Consensus identification over several identification runs.

    Args:
        params: Consensus parameters (defaults if None)
        context: Timestamp and version for the output metadata; taken at the
            start of each run if None
    """

    def __init__(
        self,
        params: Optional[ConsensusIDParams] = None,
        context: Optional[ConsensusContext] = None,
    ):
        self.params = params if params is not None else ConsensusIDParams()
        self.context = context

    def run(
        self,
        runs: Sequence[RunMetadata],
        records: Sequence[Union[PeptideIdentification, Feature]],
    ) -> ConsensusOutput:
        """Dispatch on the input shape (features → pre-grouped, identifications → flat)."""
        n_features = sum(1 for record in records if isinstance(record, Feature))
        if n_features == 0:
            return self.run_flat(runs, records)
        if n_features == len(records):
            return self.run_grouped(runs, records)
        raise IncompatibleInputError(
            "Input mixes features and peptide identifications; use one shape per run"
        )

    def run_flat(
        self,
        runs: Sequence[RunMetadata],
        identifications: Sequence[PeptideIdentification],
    ) -> ConsensusOutput:
        """Group identifications across runs and compute one consensus per group.

        Args:
            runs: Metadata of the input identification runs
            identifications: Identifications of all runs, each with RT and m/z

        Returns:
            ConsensusOutput with one consensus identification per non-empty group,
            at the group centroid, in group order

        Raises:
            InvalidConfigurationError: Invalid parameters or unsuitable score types
            IncompatibleInputError: Identification without RT/m/z or with an unknown run
        """
        algorithm = create_algorithm(self.params)
        algorithm.check_score_types(identifications)
        context = self.context if self.context is not None else ConsensusContext.now()

        run_index = RunIndex.from_identifiers(
            [run.identifier for run in runs] + [pep_id.run_id for pep_id in identifications]
        )
        logger.info(
            f"Consensus ({self.params.algorithm}) of {len(identifications):,} peptide "
            f"identifications from {len(run_index)} identification runs"
        )

        per_run: List[List[PeptideIdentification]] = [[] for _ in range(len(run_index))]
        n_without_hits = 0
        for pep_id in identifications:
            per_run[run_index.slot(pep_id.run_id)].append(pep_id)
            if not pep_id.hits:
                n_without_hits += 1
        if n_without_hits:
            logger.warning(f"{n_without_hits:,} peptide identifications have no hits")

        groups = group_identifications(per_run, self.params.rt_delta, self.params.mz_delta)
        consensus = self._score_groups(
            algorithm, [group.identifications for group in groups], len(run_index)
        )

        first = next((ids[0] for ids in consensus if ids), None)
        run_metadata = create_run_metadata(
            context,
            score_type=first.score_type if first is not None else "",
            higher_score_better=first.higher_score_better if first is not None else True,
        )

        results = []
        for group_idx, (group, consensus_ids) in enumerate(zip(groups, consensus)):
            if not consensus_ids:
                continue
            pep_id = consensus_ids[0]
            pep_id.rt = group.rt
            pep_id.mz = group.mz
            pep_id.run_id = run_metadata.identifier
            pep_id.spectrum_reference = _group_reference(pep_id.spectrum_reference, group_idx)
            results.append(ConsensusResult(rt=group.rt, mz=group.mz,
                                           identification=pep_id, group_index=group_idx))

        logger.info(
            f"✓ {len(results):,} consensus identifications "
            f"({len(groups) - len(results):,} groups without hits dropped)"
        )
        return ConsensusOutput(
            run_metadata=run_metadata,
            identifications=[result.identification for result in results],
            results=results,
        )

    def run_grouped(
        self,
        runs: Sequence[RunMetadata],
        features: Sequence[Feature],
    ) -> ConsensusOutput:
        """Compute the consensus of the identifications attached to each feature.

        Features are modified in place: their identifications are replaced by
        the consensus identification (or an empty list).

        Args:
            runs: Metadata of the input identification runs
            features: Pre-grouped features

        Returns:
            ConsensusOutput holding the same features
        """
        algorithm = create_algorithm(self.params)
        all_ids = [pep_id for feature in features for pep_id in feature.identifications]
        algorithm.check_score_types(all_ids)
        context = self.context if self.context is not None else ConsensusContext.now()

        if runs:
            number_of_runs = len(runs)
        else:
            number_of_runs = len(RunIndex.from_identifiers(pep_id.run_id for pep_id in all_ids))
        logger.info(
            f"Consensus ({self.params.algorithm}) for {len(features):,} features "
            f"({len(all_ids):,} peptide identifications, {number_of_runs} identification runs)"
        )

        n_crowded = sum(1 for feature in features if len(feature.identifications) > number_of_runs)
        if n_crowded:
            logger.warning(
                f"{n_crowded:,} features hold more peptide identifications than there are "
                f"identification runs ({number_of_runs})"
            )

        groups = groups_from_features(features)
        consensus = self._score_groups(
            algorithm, [group.identifications for group in groups], number_of_runs
        )

        first = next((ids[0] for ids in consensus if ids), None)
        run_metadata = create_run_metadata(
            context,
            score_type=first.score_type if first is not None else "",
            higher_score_better=first.higher_score_better if first is not None else True,
        )

        n_identified = 0
        for feature_idx, (feature, consensus_ids) in enumerate(zip(features, consensus)):
            for pep_id in consensus_ids:
                pep_id.rt = feature.rt
                pep_id.mz = feature.mz
                pep_id.run_id = run_metadata.identifier
                pep_id.spectrum_reference = _group_reference(pep_id.spectrum_reference, feature_idx)
            feature.identifications = consensus_ids
            n_identified += bool(consensus_ids)

        logger.info(f"✓ {n_identified:,} of {len(features):,} features with a consensus identification")
        return ConsensusOutput(run_metadata=run_metadata, features=list(features))

    def _score_groups(
        self,
        algorithm: ConsensusAlgorithm,
        groups: List[List[PeptideIdentification]],
        number_of_runs: int,
    ) -> List[List[PeptideIdentification]]:
        """Score groups independently; results keep the group order."""
        n_jobs = self.params.n_jobs
        if n_jobs > 1 and len(groups) > 1:
            chunksize = max(1, len(groups) // (4 * n_jobs))
            logger.info(f"Scoring {len(groups):,} groups with {n_jobs} processes...")
            with ProcessPoolExecutor(max_workers=n_jobs) as executor:
                return list(executor.map(
                    _score_group, repeat(algorithm), groups, repeat(number_of_runs),
                    chunksize=chunksize,
                ))

        consensus = []
        for idx, identifications in enumerate(groups):
            consensus.append(_score_group(algorithm, identifications, number_of_runs))
            if (idx + 1) % 10000 == 0:
                logger.info(f"  Scored {idx + 1:,} / {len(groups):,} groups")
        return consensus
