"""AlphaConsensus - consensus peptide identification across identification runs.

Combines the results of several search engines (or several searches) on the
same MS data into one identification per spectrum:

- Cross-run grouping of identifications by precursor RT and m/z (QT linking)
- Consensus scoring: best, average, ranks, PEPMatrix, PEPIons
- Flat identification lists and pre-grouped features as input

Examples
--------
>>> from alphaconsensus import ConsensusID, ConsensusIDParams
>>> tool = ConsensusID(ConsensusIDParams(algorithm="ranks"))
>>> output = tool.run(runs, identifications)
"""

__version__ = "0.1.0"

from alphaconsensus import identification
from alphaconsensus import grouping
from alphaconsensus import similarity
from alphaconsensus import consensus
from alphaconsensus.config import ConsensusContext, ConsensusIDParams, PEPIonsParams, PEPMatrixParams
from alphaconsensus.exceptions import (
    ConsensusIDError,
    IncompatibleInputError,
    InvalidConfigurationError,
)
from alphaconsensus.pipeline import ConsensusID, ConsensusOutput

__all__ = [
    "identification",
    "grouping",
    "similarity",
    "consensus",
    "ConsensusContext",
    "ConsensusIDParams",
    "PEPIonsParams",
    "PEPMatrixParams",
    "ConsensusIDError",
    "IncompatibleInputError",
    "InvalidConfigurationError",
    "ConsensusID",
    "ConsensusOutput",
]
