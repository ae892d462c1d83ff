"""Parameters for consensus identification.

All tolerances are absolute: RT in the unit of the input (usually seconds),
m/z and fragment masses in Da. Parameters are plain dataclasses; call
``validate()`` before any work starts so that a bad configuration fails
before grouping or scoring.

Examples
--------
>>> params = ConsensusIDParams(algorithm="ranks", considered_hits=5)
>>> params.validate()

>>> params = ConsensusIDParams.from_dict({"algorithm": "PEPIons", "PEPIons:min_shared": 3})
>>> params.pep_ions.min_shared
3
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Mapping, Optional, Union

from alphaconsensus import __version__
from alphaconsensus.constants import (
    ALGORITHMS,
    DEFAULT_ALGORITHM,
    DEFAULT_CONSIDERED_HITS,
    DEFAULT_MZ_DELTA,
    DEFAULT_RT_DELTA,
)
from alphaconsensus.exceptions import InvalidConfigurationError


@dataclass
class PEPMatrixParams:
    """Parameters for sequence-similarity consensus scoring.

    Similarity between two sequences is a global alignment score with the
    substitution matrix and a linear gap penalty, normalized by the smaller
    self-alignment score.
    """

    matrix: str = "BLOSUM62"
    penalty: int = 5  # Gap penalty (positive, subtracted per gap position)

    def validate(self) -> None:
        from alphaconsensus.similarity.alignment import SUBSTITUTION_MATRICES

        if self.matrix not in SUBSTITUTION_MATRICES:
            raise InvalidConfigurationError(
                f"Unknown substitution matrix '{self.matrix}'. "
                f"Use one of: {', '.join(sorted(SUBSTITUTION_MATRICES))}"
            )
        if self.penalty < 1:
            raise InvalidConfigurationError(f"Gap penalty must be >= 1, got {self.penalty}")


@dataclass
class PEPIonsParams:
    """Parameters for fragment-ion similarity consensus scoring."""

    mass_tolerance: float = 0.5  # Da, for matching theoretical fragment ions
    min_shared: int = 2          # Fewer shared ions means similarity 0

    def validate(self) -> None:
        if self.mass_tolerance < 0:
            raise InvalidConfigurationError(
                f"Fragment mass tolerance must be >= 0, got {self.mass_tolerance}"
            )
        if self.min_shared < 1:
            raise InvalidConfigurationError(
                f"Minimum number of shared ions must be >= 1, got {self.min_shared}"
            )


@dataclass
class ConsensusIDParams:
    """Parameters for a consensus identification run.

    Attributes:
        rt_delta: Maximum RT deviation between identifications of the same spectrum
        mz_delta: Maximum precursor m/z deviation (Da) between identifications
        considered_hits: Number of top hits per identification used for scoring (0 = all)
        algorithm: One of PEPMatrix, PEPIons, best, average, ranks
        min_support: Consensus hits supported by a smaller fraction of the other runs are removed
        n_jobs: Number of worker processes used to score groups
        pep_matrix: Sub-parameters for PEPMatrix
        pep_ions: Sub-parameters for PEPIons
    """

    rt_delta: float = DEFAULT_RT_DELTA
    mz_delta: float = DEFAULT_MZ_DELTA
    considered_hits: int = DEFAULT_CONSIDERED_HITS
    algorithm: str = DEFAULT_ALGORITHM
    min_support: float = 0.0
    n_jobs: int = 1
    pep_matrix: PEPMatrixParams = field(default_factory=PEPMatrixParams)
    pep_ions: PEPIonsParams = field(default_factory=PEPIonsParams)

    def validate(self) -> None:
        """Check all values, raising InvalidConfigurationError on the first problem."""
        if self.rt_delta < 0:
            raise InvalidConfigurationError(f"rt_delta must be >= 0, got {self.rt_delta}")
        if self.mz_delta < 0:
            raise InvalidConfigurationError(f"mz_delta must be >= 0, got {self.mz_delta}")
        if self.considered_hits < 0:
            raise InvalidConfigurationError(
                f"considered_hits must be >= 0, got {self.considered_hits}"
            )
        if self.algorithm not in ALGORITHMS:
            raise InvalidConfigurationError(
                f"Unknown consensus algorithm '{self.algorithm}'. Use one of: {', '.join(ALGORITHMS)}"
            )
        if not 0.0 <= self.min_support <= 1.0:
            raise InvalidConfigurationError(
                f"min_support must be in [0, 1], got {self.min_support}"
            )
        if self.n_jobs < 1:
            raise InvalidConfigurationError(f"n_jobs must be >= 1, got {self.n_jobs}")

        sub_params = self.algorithm_params()
        if sub_params is not None:
            sub_params.validate()

    def algorithm_params(self) -> Optional[Union[PEPMatrixParams, PEPIonsParams]]:
        """Return the sub-parameters of the selected algorithm (None if it has none)."""
        if self.algorithm == "PEPMatrix":
            return self.pep_matrix
        if self.algorithm == "PEPIons":
            return self.pep_ions
        return None

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> 'ConsensusIDParams':
        """Build parameters from a flat mapping.

        Sub-parameters use a section prefix, e.g. ``"PEPMatrix:penalty"`` or
        ``"PEPIons:mass_tolerance"``. Unknown keys raise InvalidConfigurationError.

        Args:
            values: Mapping of parameter names to values

        Returns:
            ConsensusIDParams (not yet validated)
        """
        top_level = {f.name for f in fields(cls)} - {"pep_matrix", "pep_ions"}
        sections = {"PEPMatrix": PEPMatrixParams, "PEPIons": PEPIonsParams}

        kwargs = {}
        section_kwargs = {name: {} for name in sections}

        for key, value in values.items():
            if ":" in key:
                section, name = key.split(":", 1)
                if section not in sections or name not in {
                    f.name for f in fields(sections[section])
                }:
                    raise InvalidConfigurationError(f"Unknown parameter '{key}'")
                section_kwargs[section][name] = value
            elif key in top_level:
                kwargs[key] = value
            else:
                raise InvalidConfigurationError(f"Unknown parameter '{key}'")

        return cls(
            pep_matrix=PEPMatrixParams(**section_kwargs["PEPMatrix"]),
            pep_ions=PEPIonsParams(**section_kwargs["PEPIons"]),
            **kwargs,
        )


@dataclass(frozen=True)
class ConsensusContext:
    """Invocation-wide values stamped into the output run metadata."""

    date_time: datetime
    version: str = __version__

    @classmethod
    def now(cls) -> 'ConsensusContext':
        return cls(date_time=datetime.now())
