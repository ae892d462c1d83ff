"""Tab-separated PSM tables.

One row per peptide hit. Rows sharing ``run`` and ``spectrum`` (and
``feature``, if present) form one peptide identification; an identification
without hits is written as a single row with empty ``sequence`` and
``score``.

Required columns
----------------
run, spectrum, rt, mz, score_type, higher_score_better, sequence, score

Optional columns
----------------
rank, charge
search_engine, search_engine_version, date_time: run metadata (ISO 8601
timestamp), repeated on every row of the run
feature, feature_rt, feature_mz: pre-grouped input; identifications are
attached to the feature named in ``feature``

Empty ``rt`` / ``mz`` cells load as missing values.

Design principles:
1. Pure Python csv module (streaming reader)
2. Input order of identifications and hits is preserved
"""

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

from alphaconsensus.constants import SUPPORT_META_KEY
from alphaconsensus.exceptions import IncompatibleInputError
from alphaconsensus.identification.records import (
    Feature,
    PeptideHit,
    PeptideIdentification,
    RunMetadata,
)

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = (
    'run', 'spectrum', 'rt', 'mz', 'score_type', 'higher_score_better', 'sequence', 'score',
)
OUTPUT_COLUMNS = (
    'run', 'spectrum', 'rt', 'mz', 'score_type', 'higher_score_better',
    'rank', 'sequence', 'charge', 'score', 'support',
    'search_engine', 'search_engine_version', 'date_time',
)
FEATURE_COLUMNS = ('feature', 'feature_rt', 'feature_mz')

_TRUE_VALUES = {'1', 'true', 'yes', 't', 'y'}


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or value.strip() == '':
        return None
    return float(value)


def _optional_datetime(value: Optional[str]) -> Optional[datetime]:
    if value is None or value.strip() == '':
        return None
    return datetime.fromisoformat(value.strip())


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def _format_float(value: Optional[float]) -> str:
    return '' if value is None else repr(float(value))


def _metadata_values(run: Optional[RunMetadata]) -> Dict[str, str]:
    if run is None:
        return {'search_engine': '', 'search_engine_version': '', 'date_time': ''}
    return {
        'search_engine': run.search_engine,
        'search_engine_version': run.search_engine_version,
        'date_time': run.date_time.isoformat() if run.date_time is not None else '',
    }


def load_psm_table(
    path: Union[str, Path],
) -> Tuple[List[RunMetadata], List[Union[PeptideIdentification, Feature]]]:
    """Load a PSM table.

    Parameters
    ----------
    path : str or Path
        Tab-separated input file

    Returns
    -------
    runs : list of RunMetadata
        One record per distinct ``run`` value, in order of appearance
    records : list
        Peptide identifications (flat table) or features (table with a
        ``feature`` column)

    Raises
    ------
    FileNotFoundError
        If the file does not exist
    IncompatibleInputError
        If required columns are missing or a value cannot be parsed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"PSM table not found: {path}")

    logger.info(f"Reading PSM table: {path.name}")

    runs: Dict[str, RunMetadata] = {}
    identifications: Dict[Tuple[str, str, str], PeptideIdentification] = {}
    features: Dict[str, Feature] = {}

    with open(path, 'r', newline='') as f:
        reader = csv.DictReader(f, delimiter='\t')
        columns = set(reader.fieldnames or [])
        missing = [column for column in REQUIRED_COLUMNS if column not in columns]
        if missing:
            raise IncompatibleInputError(
                f"PSM table {path.name} lacks required columns: {', '.join(missing)}"
            )
        grouped = 'feature' in columns

        for line_number, row in enumerate(reader, start=2):
            try:
                run_id = row['run']
                key = (row['feature'] if grouped else '', run_id, row['spectrum'])

                if run_id not in runs:
                    runs[run_id] = RunMetadata(
                        identifier=run_id,
                        search_engine=row.get('search_engine') or '',
                        search_engine_version=row.get('search_engine_version') or '',
                        date_time=_optional_datetime(row.get('date_time')),
                        score_type=row['score_type'],
                        higher_score_better=_parse_bool(row['higher_score_better']),
                    )

                pep_id = identifications.get(key)
                if pep_id is None:
                    pep_id = PeptideIdentification(
                        run_id=run_id,
                        rt=_optional_float(row['rt']),
                        mz=_optional_float(row['mz']),
                        score_type=row['score_type'],
                        higher_score_better=_parse_bool(row['higher_score_better']),
                        spectrum_reference=row['spectrum'],
                    )
                    identifications[key] = pep_id

                    if grouped:
                        feature_id = row['feature']
                        if feature_id not in features:
                            features[feature_id] = Feature(
                                rt=float(row['feature_rt']),
                                mz=float(row['feature_mz']),
                                feature_id=feature_id,
                            )
                        features[feature_id].identifications.append(pep_id)

                if row['sequence']:
                    pep_id.hits.append(PeptideHit(
                        sequence=row['sequence'],
                        score=float(row['score']),
                        rank=int(row.get('rank') or 0),
                        charge=int(row.get('charge') or 0),
                    ))
            except (KeyError, TypeError, ValueError) as error:
                raise IncompatibleInputError(
                    f"Cannot parse line {line_number} of {path.name}: {error}"
                ) from error

    if grouped:
        logger.info(
            f"✓ Read {len(identifications):,} identifications on {len(features):,} features "
            f"from {len(runs)} runs"
        )
        return list(runs.values()), list(features.values())

    logger.info(f"✓ Read {len(identifications):,} identifications from {len(runs)} runs")
    return list(runs.values()), list(identifications.values())


def _identification_rows(
    pep_id: PeptideIdentification, spectrum: str, run: Optional[RunMetadata]
) -> List[Dict[str, str]]:
    base = {
        'run': pep_id.run_id,
        'spectrum': spectrum,
        'rt': _format_float(pep_id.rt),
        'mz': _format_float(pep_id.mz),
        'score_type': pep_id.score_type,
        'higher_score_better': str(pep_id.higher_score_better).lower(),
    }
    base.update(_metadata_values(run))
    if not pep_id.hits:
        return [dict(base, rank='', sequence='', charge='', score='', support='')]

    rows = []
    for hit in pep_id.hits:
        support = hit.meta.get(SUPPORT_META_KEY)
        rows.append(dict(
            base,
            rank=str(hit.rank),
            sequence=hit.sequence,
            charge=str(hit.charge),
            score=repr(float(hit.score)),
            support='' if support is None else repr(float(support)),
        ))
    return rows


def _table_rows(
    records: Sequence[Union[PeptideIdentification, Feature]],
    runs: Optional[Sequence[RunMetadata]] = None,
) -> Tuple[Tuple[str, ...], Iterator[Dict[str, str]]]:
    """Column names and a row iterator for identifications or features."""
    run_lookup = {run.identifier: run for run in runs or []}
    grouped = any(isinstance(record, Feature) for record in records)
    columns = OUTPUT_COLUMNS + FEATURE_COLUMNS if grouped else OUTPUT_COLUMNS

    def rows() -> Iterator[Dict[str, str]]:
        for idx, record in enumerate(records):
            if isinstance(record, Feature):
                feature_id = record.feature_id or f"feature_{idx}"
                feature_values = {
                    'feature': feature_id,
                    'feature_rt': repr(float(record.rt)),
                    'feature_mz': repr(float(record.mz)),
                }
                for id_idx, pep_id in enumerate(record.identifications):
                    spectrum = pep_id.spectrum_reference or f"{feature_id}_{id_idx}"
                    for row in _identification_rows(pep_id, spectrum, run_lookup.get(pep_id.run_id)):
                        yield dict(row, **feature_values)
            else:
                spectrum = record.spectrum_reference or f"consensus_{idx}"
                yield from _identification_rows(record, spectrum, run_lookup.get(record.run_id))

    return columns, rows()


def store_psm_table(
    path: Union[str, Path],
    records: Sequence[Union[PeptideIdentification, Feature]],
    runs: Optional[Sequence[RunMetadata]] = None,
) -> None:
    """Write identifications (or features with their identifications) as a PSM table.

    Parameters
    ----------
    path : str or Path
        Output file
    records : list
        Peptide identifications, or features (adds the feature columns)
    runs : list of RunMetadata, optional
        Run metadata written on the rows of each run (search engine,
        version and timestamp); empty cells for runs not listed
    """
    path = Path(path)
    columns, rows = _table_rows(records, runs)

    n_rows = 0
    with open(path, 'w', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=columns, delimiter='\t')
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
            n_rows += 1

    logger.info(f"✓ Wrote {n_rows:,} rows to {path.name}")


def to_dataframe(
    records: Sequence[Union[PeptideIdentification, Feature]],
    runs: Optional[Sequence[RunMetadata]] = None,
):
    """Return the PSM table of identifications or features as a pandas DataFrame.

    Requires pandas (optional dependency). Numeric columns are converted;
    missing values become NaN.
    """
    import pandas as pd

    columns, rows = _table_rows(records, runs)
    df = pd.DataFrame(list(rows), columns=list(columns))
    for column in ('rt', 'mz', 'rank', 'charge', 'score', 'support', 'feature_rt', 'feature_mz'):
        if column in df.columns:
            df[column] = pd.to_numeric(df[column], errors='coerce')
    df['higher_score_better'] = df['higher_score_better'] == 'true'
    return df
