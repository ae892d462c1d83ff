"""Tests for consensus parameters and their validation."""

from datetime import datetime

import pytest

from alphaconsensus import __version__
from alphaconsensus.config import (
    ConsensusContext,
    ConsensusIDParams,
    PEPIonsParams,
    PEPMatrixParams,
)
from alphaconsensus.exceptions import ConsensusIDError, InvalidConfigurationError


class TestDefaults:
    """Test default values."""

    def test_top_level_defaults(self):
        params = ConsensusIDParams()

        assert params.rt_delta == 0.1
        assert params.mz_delta == 0.1
        assert params.considered_hits == 10
        assert params.algorithm == "PEPMatrix"
        assert params.min_support == 0.0
        assert params.n_jobs == 1
        params.validate()

    def test_sub_parameter_defaults(self):
        params = ConsensusIDParams()

        assert params.pep_matrix == PEPMatrixParams(matrix="BLOSUM62", penalty=5)
        assert params.pep_ions == PEPIonsParams(mass_tolerance=0.5, min_shared=2)

    def test_algorithm_params(self):
        assert isinstance(ConsensusIDParams(algorithm="PEPMatrix").algorithm_params(), PEPMatrixParams)
        assert isinstance(ConsensusIDParams(algorithm="PEPIons").algorithm_params(), PEPIonsParams)
        assert ConsensusIDParams(algorithm="ranks").algorithm_params() is None


class TestValidation:
    """Test rejection of invalid parameters."""

    @pytest.mark.parametrize("kwargs", [
        {"rt_delta": -0.1},
        {"mz_delta": -1.0},
        {"considered_hits": -1},
        {"algorithm": "majority"},
        {"min_support": 1.5},
        {"min_support": -0.1},
        {"n_jobs": 0},
        {"pep_matrix": PEPMatrixParams(matrix="PAM30MS")},
        {"pep_matrix": PEPMatrixParams(penalty=0)},
        {"algorithm": "PEPIons", "pep_ions": PEPIonsParams(mass_tolerance=-0.5)},
        {"algorithm": "PEPIons", "pep_ions": PEPIonsParams(min_shared=0)},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(InvalidConfigurationError):
            ConsensusIDParams(**kwargs).validate()

    def test_inactive_sub_parameters_ignored(self):
        params = ConsensusIDParams(algorithm="best", pep_matrix=PEPMatrixParams(matrix="PAM30MS"))
        params.validate()

    def test_zero_tolerances_allowed(self):
        ConsensusIDParams(rt_delta=0.0, mz_delta=0.0, considered_hits=0).validate()

    def test_error_hierarchy(self):
        with pytest.raises(ValueError) as excinfo:
            ConsensusIDParams(n_jobs=0).validate()

        assert isinstance(excinfo.value, ConsensusIDError)
        assert "n_jobs" in excinfo.value.message


class TestFromDict:
    """Test construction from flat mappings."""

    def test_prefixed_keys(self):
        params = ConsensusIDParams.from_dict({
            "algorithm": "PEPIons",
            "rt_delta": 5.0,
            "PEPIons:min_shared": 3,
            "PEPMatrix:penalty": 8,
        })

        assert params.algorithm == "PEPIons"
        assert params.rt_delta == 5.0
        assert params.pep_ions.min_shared == 3
        assert params.pep_ions.mass_tolerance == 0.5
        assert params.pep_matrix.penalty == 8

    @pytest.mark.parametrize("key", ["rt_tolerance", "PEPMatrix:gap", "Ranks:penalty"])
    def test_unknown_keys(self, key):
        with pytest.raises(InvalidConfigurationError, match="Unknown parameter"):
            ConsensusIDParams.from_dict({key: 1})

    def test_empty_mapping_gives_defaults(self):
        assert ConsensusIDParams.from_dict({}) == ConsensusIDParams()


class TestConsensusContext:
    """Test invocation context."""

    def test_now(self):
        before = datetime.now()
        context = ConsensusContext.now()

        assert context.date_time >= before
        assert context.version == __version__

    def test_injected(self):
        stamp = datetime(2020, 1, 1)
        context = ConsensusContext(date_time=stamp, version="1.2.3")

        assert context.date_time == stamp
        assert context.version == "1.2.3"
