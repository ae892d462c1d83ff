"""
Cross-run linking of peptide identifications by precursor position.

Identifications from different runs that belong to the same spectrum are
found by treating each one as a point in (RT, m/z) space and linking points
from different runs with a greedy quality-threshold (QT) strategy:

1. For every unassigned point, build its candidate cluster: the point itself
   plus at most one unassigned point from each other run, taken in order of
   increasing distance and only if compatible with every member already in
   the cluster (pairwise within rt_delta and mz_delta).
2. Commit the best candidate cluster (most runs, then smallest summed
   distance, then lowest centroid RT, then lowest centroid m/z).
3. Recompute the candidates whose neighborhood lost points; repeat until
   every point is assigned.

Because all members are pairwise within tolerance, every member is also
within tolerance of the cluster centroid. Charge states are ignored.

Pre-grouped input (features with attached identifications) skips linking
entirely, see ``groups_from_features``.
"""

from __future__ import annotations

import heapq
import logging
from typing import List, Sequence, Tuple

import numpy as np
from numba import njit

from alphaconsensus.exceptions import IncompatibleInputError, InvalidConfigurationError
from alphaconsensus.identification.records import (
    Feature,
    IdentificationGroup,
    PeptideIdentification,
)

logger = logging.getLogger(__name__)

# Slack for the RT window search; pairs are re-checked with exact tolerances
_WINDOW_EPSILON = 1e-9


@njit
def _normalized_delta(delta: float, tolerance: float) -> float:
    """Delta as a fraction of the tolerance (0 if the tolerance is 0)."""
    if tolerance == 0.0:
        return 0.0
    return delta / tolerance


@njit
def find_compatible_pairs(
    rt_sorted: np.ndarray,
    mz_sorted: np.ndarray,
    run_sorted: np.ndarray,
    rt_delta: float,
    mz_delta: float,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Find all pairs of points from different runs within both tolerances.

    Args:
        rt_sorted: RT values sorted ascending
        mz_sorted: m/z values in the same order
        run_sorted: Run slots in the same order
        rt_delta: Maximum RT difference
        mz_delta: Maximum m/z difference (Da)

    Returns:
        (first, second, distance) arrays of positions into the sorted arrays,
        with first < second, and the tolerance-normalized Euclidean distance
    """
    n = len(rt_sorted)

    # Right end of the RT window for each point (binary search)
    right = np.searchsorted(rt_sorted, rt_sorted + rt_delta + _WINDOW_EPSILON, side='right')

    # First pass: count pairs to pre-allocate
    n_pairs = 0
    for i in range(n):
        for j in range(i + 1, right[i]):
            if run_sorted[i] == run_sorted[j]:
                continue
            if abs(rt_sorted[j] - rt_sorted[i]) <= rt_delta and \
                    abs(mz_sorted[j] - mz_sorted[i]) <= mz_delta:
                n_pairs += 1

    first = np.empty(n_pairs, dtype=np.int64)
    second = np.empty(n_pairs, dtype=np.int64)
    distance = np.empty(n_pairs, dtype=np.float64)

    # Second pass: fill
    k = 0
    for i in range(n):
        for j in range(i + 1, right[i]):
            if run_sorted[i] == run_sorted[j]:
                continue
            d_rt = abs(rt_sorted[j] - rt_sorted[i])
            d_mz = abs(mz_sorted[j] - mz_sorted[i])
            if d_rt <= rt_delta and d_mz <= mz_delta:
                x = _normalized_delta(d_rt, rt_delta)
                y = _normalized_delta(d_mz, mz_delta)
                first[k] = i
                second[k] = j
                distance[k] = np.sqrt(x * x + y * y)
                k += 1

    return first, second, distance


def _check_coordinates(runs: Sequence[Sequence[PeptideIdentification]]) -> None:
    for identifications in runs:
        for pep_id in identifications:
            if not pep_id.has_rt or not pep_id.has_mz:
                raise IncompatibleInputError(
                    f"Peptide identification without RT and/or m/z information found in "
                    f"identification run '{pep_id.run_id}'. Make sure that this information "
                    f"is included for all identifications."
                )


class _Linker:
    """Greedy QT linking over an arena of points (index-based, no aliasing)."""

    def __init__(self, rt: np.ndarray, mz: np.ndarray, run: np.ndarray,
                 rt_delta: float, mz_delta: float):
        self.rt = rt
        self.mz = mz
        self.run = run
        self.rt_delta = rt_delta
        self.mz_delta = mz_delta
        self.n = len(rt)
        self.assigned = np.zeros(self.n, dtype=np.bool_)
        self.neighbors = self._build_neighbors()

    def _build_neighbors(self) -> List[List[Tuple[float, float, float, int]]]:
        order = np.argsort(self.rt, kind='stable')
        first, second, distance = find_compatible_pairs(
            self.rt[order], self.mz[order], self.run[order].astype(np.int64),
            float(self.rt_delta), float(self.mz_delta),
        )

        neighbors: List[List[Tuple[float, float, float, int]]] = [[] for _ in range(self.n)]
        for a, b, d in zip(order[first], order[second], distance):
            a = int(a)
            b = int(b)
            d = float(d)
            neighbors[a].append((d, float(self.rt[b]), float(self.mz[b]), b))
            neighbors[b].append((d, float(self.rt[a]), float(self.mz[a]), a))

        for entries in neighbors:
            entries.sort()
        return neighbors

    def _compatible(self, i: int, j: int) -> bool:
        return (abs(self.rt[i] - self.rt[j]) <= self.rt_delta
                and abs(self.mz[i] - self.mz[j]) <= self.mz_delta)

    def candidate(self, center: int) -> Tuple[tuple, List[int]]:
        """Build the candidate cluster around a center and its ranking key."""
        members = [center]
        used_runs = {int(self.run[center])}
        total_distance = 0.0

        for distance, _, _, j in self.neighbors[center]:
            if self.assigned[j] or int(self.run[j]) in used_runs:
                continue
            if all(self._compatible(j, m) for m in members[1:]):
                members.append(j)
                used_runs.add(int(self.run[j]))
                total_distance += distance

        centroid_rt = float(np.mean(self.rt[members]))
        centroid_mz = float(np.mean(self.mz[members]))
        key = (-len(members), total_distance, centroid_rt, centroid_mz, center)
        return key, members

    def link(self) -> List[List[int]]:
        """Run the greedy loop; returns clusters as lists of arena indices."""
        version = np.zeros(self.n, dtype=np.int64)
        heap = []
        for center in range(self.n):
            key, _ = self.candidate(center)
            heap.append((key, 0))
        heapq.heapify(heap)

        clusters = []
        while heap:
            key, entry_version = heapq.heappop(heap)
            center = key[-1]
            if self.assigned[center] or entry_version != version[center]:
                continue

            # Entry is current: recompute members (cheap) and commit
            _, members = self.candidate(center)
            self.assigned[members] = True
            clusters.append(members)

            # Candidates that could have used the committed points are stale
            stale = set()
            for m in members:
                for _, _, _, k in self.neighbors[m]:
                    if not self.assigned[k]:
                        stale.add(k)
            for k in stale:
                version[k] += 1
                new_key, _ = self.candidate(k)
                heapq.heappush(heap, (new_key, int(version[k])))

        return clusters


def group_identifications(
    runs: Sequence[Sequence[PeptideIdentification]],
    rt_delta: float,
    mz_delta: float,
) -> List[IdentificationGroup]:
    """Group identifications from different runs that belong to the same spectrum.

    Args:
        runs: One collection of identifications per run; the position in this
            sequence is the run slot
        rt_delta: Maximum RT deviation within a group (>= 0)
        mz_delta: Maximum precursor m/z deviation within a group, in Da (>= 0)

    Returns:
        Groups sorted by centroid RT, then m/z. Every input identification is
        in exactly one group; no group holds two identifications of one run.
        Members are ordered by run slot.

    Raises:
        IncompatibleInputError: If any identification lacks RT or m/z
        InvalidConfigurationError: If a tolerance is negative
    """
    if rt_delta < 0 or mz_delta < 0:
        raise InvalidConfigurationError(
            f"Tolerances must be >= 0, got rt_delta={rt_delta}, mz_delta={mz_delta}"
        )
    _check_coordinates(runs)

    # Arena: flat storage of all identifications, addressed by index
    arena: List[PeptideIdentification] = []
    run_slots: List[int] = []
    for slot, identifications in enumerate(runs):
        for pep_id in identifications:
            arena.append(pep_id)
            run_slots.append(slot)

    if not arena:
        return []

    logger.info(f"Linking {len(arena):,} peptide identifications from {len(runs)} runs...")

    rt = np.array([pep_id.rt for pep_id in arena], dtype=np.float64)
    mz = np.array([pep_id.mz for pep_id in arena], dtype=np.float64)
    run = np.array(run_slots, dtype=np.int64)

    linker = _Linker(rt, mz, run, rt_delta, mz_delta)
    clusters = linker.link()

    groups = []
    for members in clusters:
        members = sorted(members, key=lambda idx: (run[idx], idx))
        groups.append(IdentificationGroup.from_members(
            [arena[idx] for idx in members], [int(idx) for idx in members]
        ))
    groups.sort(key=lambda group: (group.rt, group.mz, group.indices[0]))

    n_singletons = sum(1 for group in groups if len(group) == 1)
    logger.info(f"✓ Formed {len(groups):,} groups ({n_singletons:,} singletons)")
    return groups


def groups_from_features(features: Sequence[Feature]) -> List[IdentificationGroup]:
    """Treat each pre-grouped feature as one group, without linking.

    The feature's own RT and m/z are used as the group coordinates; attached
    identifications are not required to carry coordinates.
    """
    return [
        IdentificationGroup(
            identifications=list(feature.identifications),
            indices=list(range(len(feature.identifications))),
            rt=feature.rt,
            mz=feature.mz,
        )
        for feature in features
    ]


def group_membership(groups: Sequence[IdentificationGroup], n_identifications: int) -> np.ndarray:
    """Map each arena index to its group index (-1 if unassigned)."""
    membership = np.full(n_identifications, -1, dtype=np.int64)
    for group_idx, group in enumerate(groups):
        membership[group.indices] = group_idx
    return membership
