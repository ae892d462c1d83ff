#!/usr/bin/env python
"""Compute consensus peptide identifications from a PSM table.

Reads a tab-separated PSM table holding the identifications of several
identification runs (search engines) on the same MS data, groups them
across runs by RT and precursor m/z (or uses the ``feature`` column when
present), and writes one consensus identification per group.

Exit codes:
    0  success
    2  invalid configuration
    3  incompatible input

Example:
    python scripts/run_consensus_id.py --in psms.tsv --out consensus.tsv \
        --algorithm best --considered-hits 1
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import argparse
import logging

from alphaconsensus.config import ConsensusIDParams
from alphaconsensus.constants import ALGORITHMS
from alphaconsensus.exceptions import IncompatibleInputError, InvalidConfigurationError
from alphaconsensus.io import load_psm_table, store_psm_table
from alphaconsensus.pipeline import ConsensusID

logger = logging.getLogger('run_consensus_id')

EXIT_OK = 0
EXIT_INVALID_CONFIGURATION = 2
EXIT_INCOMPATIBLE_INPUT = 3


def build_parser() -> argparse.ArgumentParser:
    defaults = ConsensusIDParams()

    parser = argparse.ArgumentParser(
        description='Consensus peptide identification across identification runs'
    )
    parser.add_argument('--in', dest='input', type=str, required=True,
                        help='Input PSM table (TSV)')
    parser.add_argument('--out', dest='output', type=str, required=True,
                        help='Output PSM table (TSV)')
    parser.add_argument('--rt-delta', type=float, default=defaults.rt_delta,
                        help='Maximum RT deviation between identifications in a group')
    parser.add_argument('--mz-delta', type=float, default=defaults.mz_delta,
                        help='Maximum precursor m/z deviation (Da) in a group')
    parser.add_argument('--considered-hits', type=int, default=defaults.considered_hits,
                        help='Top hits per identification used for scoring (0 = all)')
    parser.add_argument('--algorithm', type=str, default=defaults.algorithm, choices=ALGORITHMS,
                        help='Consensus algorithm')
    parser.add_argument('--min-support', type=float, default=defaults.min_support,
                        help='Minimum fraction of other runs supporting a consensus hit')
    parser.add_argument('--matrix', type=str, default=defaults.pep_matrix.matrix,
                        help='PEPMatrix: substitution matrix')
    parser.add_argument('--penalty', type=int, default=defaults.pep_matrix.penalty,
                        help='PEPMatrix: alignment gap penalty')
    parser.add_argument('--mass-tolerance', type=float, default=defaults.pep_ions.mass_tolerance,
                        help='PEPIons: fragment mass tolerance (Da)')
    parser.add_argument('--min-shared', type=int, default=defaults.pep_ions.min_shared,
                        help='PEPIons: minimum number of shared fragment ions')
    parser.add_argument('--n-jobs', type=int, default=defaults.n_jobs,
                        help='Worker processes for scoring groups')
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level')
    return parser


def params_from_args(args: argparse.Namespace) -> ConsensusIDParams:
    return ConsensusIDParams.from_dict({
        'rt_delta': args.rt_delta,
        'mz_delta': args.mz_delta,
        'considered_hits': args.considered_hits,
        'algorithm': args.algorithm,
        'min_support': args.min_support,
        'n_jobs': args.n_jobs,
        'PEPMatrix:matrix': args.matrix,
        'PEPMatrix:penalty': args.penalty,
        'PEPIons:mass_tolerance': args.mass_tolerance,
        'PEPIons:min_shared': args.min_shared,
    })


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    input_path = Path(args.input).expanduser()
    output_path = Path(args.output).expanduser()

    try:
        params = params_from_args(args)
        params.validate()

        runs, records = load_psm_table(input_path)
        output = ConsensusID(params).run(runs, records)

        if output.features:
            store_psm_table(output_path, output.features, output.runs)
        else:
            store_psm_table(output_path, output.identifications, output.runs)
    except InvalidConfigurationError as error:
        logger.error(f"Invalid configuration: {error.message}")
        return EXIT_INVALID_CONFIGURATION
    except (IncompatibleInputError, FileNotFoundError) as error:
        logger.error(f"Incompatible input: {error}")
        return EXIT_INCOMPATIBLE_INPUT

    logger.info(f"✓ Consensus written to {output_path} (run {output.run_metadata.identifier})")
    return EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
