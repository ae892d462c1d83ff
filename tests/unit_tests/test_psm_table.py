"""Tests for tab-separated PSM tables and the command line script."""

import csv
import importlib.util
from pathlib import Path

import pytest

from alphaconsensus.config import ConsensusIDParams
from alphaconsensus.constants import SEARCH_ENGINE_NAME
from alphaconsensus.exceptions import IncompatibleInputError
from alphaconsensus.identification import Feature
from alphaconsensus.io import load_psm_table, store_psm_table, to_dataframe
from alphaconsensus.pipeline import ConsensusID

HEADER = "run\tspectrum\trt\tmz\tscore_type\thigher_score_better\trank\tsequence\tcharge\tscore\n"

EXAMPLE_TABLE = HEADER + (
    "run_a\tscan=1\t100.0\t500.0\tscore\ttrue\t1\tPEPTIDEA\t2\t0.9\n"
    "run_a\tscan=1\t100.0\t500.0\tscore\ttrue\t2\tPEPTIDEC\t2\t0.1\n"
    "run_b\tscan=1\t100.0\t500.0\tscore\ttrue\t1\tPEPTIDEA\t2\t0.8\n"
    "run_c\tscan=1\t100.0\t500.0\tscore\ttrue\t1\tPEPTIDEB\t2\t0.95\n"
    "run_c\tscan=7\t250.0\t612.3\tscore\ttrue\t\t\t\t\n"
)


def _write(path, text):
    path.write_text(text)
    return path


def _load_script():
    script = Path(__file__).resolve().parents[2] / "scripts" / "run_consensus_id.py"
    spec = importlib.util.spec_from_file_location("run_consensus_id", script)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestLoad:
    """Test reading PSM tables."""

    def test_rows_form_identifications(self, tmp_path):
        runs, identifications = load_psm_table(_write(tmp_path / "psms.tsv", EXAMPLE_TABLE))

        assert [run.identifier for run in runs] == ["run_a", "run_b", "run_c"]
        assert len(identifications) == 4

        first = identifications[0]
        assert first.run_id == "run_a"
        assert first.spectrum_reference == "scan=1"
        assert first.rt == 100.0 and first.mz == 500.0
        assert first.higher_score_better
        assert [(hit.sequence, hit.score, hit.rank, hit.charge) for hit in first.hits] == [
            ("PEPTIDEA", 0.9, 1, 2), ("PEPTIDEC", 0.1, 2, 2),
        ]

    def test_identification_without_hits(self, tmp_path):
        _, identifications = load_psm_table(_write(tmp_path / "psms.tsv", EXAMPLE_TABLE))

        assert identifications[3].spectrum_reference == "scan=7"
        assert identifications[3].hits == []

    def test_empty_coordinates_are_missing(self, tmp_path):
        table = HEADER + "run_a\tscan=1\t\t500.0\tpep\tfalse\t1\tPEPTIDEK\t2\t0.01\n"
        _, identifications = load_psm_table(_write(tmp_path / "psms.tsv", table))

        assert identifications[0].rt is None
        assert not identifications[0].has_rt
        assert not identifications[0].higher_score_better

    def test_missing_columns(self, tmp_path):
        path = _write(tmp_path / "psms.tsv", "run\tspectrum\tsequence\nrun_a\t1\tPEPTIDE\n")

        with pytest.raises(IncompatibleInputError, match="rt"):
            load_psm_table(path)

    def test_unparseable_value(self, tmp_path):
        table = HEADER + "run_a\tscan=1\t100.0\t500.0\tscore\ttrue\t1\tPEPTIDE\t2\thigh\n"

        with pytest.raises(IncompatibleInputError, match="line 2"):
            load_psm_table(_write(tmp_path / "psms.tsv", table))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_psm_table(tmp_path / "missing.tsv")

    def test_feature_table(self, tmp_path):
        table = (
            "feature\tfeature_rt\tfeature_mz\t" + HEADER
            + "f1\t100.0\t500.0\trun_a\ts1\t\t\tscore\ttrue\t1\tPEPTIDEA\t2\t0.9\n"
            + "f1\t100.0\t500.0\trun_b\ts1\t\t\tscore\ttrue\t1\tPEPTIDEB\t2\t0.8\n"
            + "f2\t300.0\t700.0\trun_a\ts2\t\t\tscore\ttrue\t1\tACDEFK\t2\t0.4\n"
        )
        runs, features = load_psm_table(_write(tmp_path / "features.tsv", table))

        assert len(runs) == 2
        assert [feature.feature_id for feature in features] == ["f1", "f2"]
        assert all(isinstance(feature, Feature) for feature in features)
        assert features[0].rt == 100.0
        assert [pep_id.run_id for pep_id in features[0].identifications] == ["run_a", "run_b"]

    def test_feature_table_keeps_identifications_per_feature(self, tmp_path):
        table = (
            "feature\tfeature_rt\tfeature_mz\t" + HEADER
            + "f1\t100.0\t500.0\trun_a\tscan=1\t\t\tscore\ttrue\t1\tPEPTIDEA\t2\t0.9\n"
            + "f2\t300.0\t700.0\trun_a\tscan=1\t\t\tscore\ttrue\t1\tACDEFK\t2\t0.4\n"
        )
        _, features = load_psm_table(_write(tmp_path / "features.tsv", table))

        assert [len(feature.identifications) for feature in features] == [1, 1]
        assert features[1].identifications[0].hits[0].sequence == "ACDEFK"


class TestStore:
    """Test writing consensus results."""

    def test_consensus_output(self, tmp_path, fixed_context):
        runs, identifications = load_psm_table(_write(tmp_path / "psms.tsv", EXAMPLE_TABLE))
        output = ConsensusID(
            ConsensusIDParams(algorithm="best", considered_hits=1), context=fixed_context
        ).run_flat(runs, identifications)

        out_path = tmp_path / "consensus.tsv"
        store_psm_table(out_path, output.identifications)

        with open(out_path, newline='') as f:
            rows = list(csv.DictReader(f, delimiter='\t'))
        assert [row["sequence"] for row in rows] == ["PEPTIDEB", "PEPTIDEA"]
        assert [row["rank"] for row in rows] == ["1", "2"]
        assert rows[0]["run"] == output.run_metadata.identifier
        assert float(rows[1]["support"]) == pytest.approx(0.5)

        _, reloaded = load_psm_table(out_path)
        assert len(reloaded) == 1
        assert reloaded[0].hits[0].score == pytest.approx(0.95)
        assert reloaded[0].rt == pytest.approx(100.0)

    def test_run_metadata_written(self, tmp_path, fixed_context):
        runs, identifications = load_psm_table(_write(tmp_path / "psms.tsv", EXAMPLE_TABLE))
        output = ConsensusID(
            ConsensusIDParams(algorithm="best", considered_hits=1), context=fixed_context
        ).run_flat(runs, identifications)

        out_path = tmp_path / "consensus.tsv"
        store_psm_table(out_path, output.identifications, output.runs)

        reloaded_runs, _ = load_psm_table(out_path)
        assert len(reloaded_runs) == 1
        metadata = reloaded_runs[0]
        assert metadata.identifier == output.run_metadata.identifier
        assert metadata.search_engine == SEARCH_ENGINE_NAME
        assert metadata.search_engine_version == "9.9.9"
        assert metadata.date_time == fixed_context.date_time
        assert metadata.score_type == output.run_metadata.score_type

    def test_groups_sharing_spectrum_reference(self, tmp_path, runs, make_id, fixed_context):
        identifications = [
            make_id("run_a", 10.0, 400.0, [("AAAK", 0.5)], spectrum_reference="scan=1"),
            make_id("run_b", 50.0, 700.0, [("CCCK", 0.6)], spectrum_reference="scan=1"),
        ]
        output = ConsensusID(
            ConsensusIDParams(algorithm="best"), context=fixed_context
        ).run_flat(runs, identifications)

        out_path = tmp_path / "consensus.tsv"
        store_psm_table(out_path, output.identifications, output.runs)

        _, reloaded = load_psm_table(out_path)
        assert len(reloaded) == 2
        assert [pep_id.hits[0].sequence for pep_id in reloaded] == ["AAAK", "CCCK"]
        assert [pep_id.rt for pep_id in reloaded] == [10.0, 50.0]

    def test_features(self, tmp_path, make_id):
        features = [
            Feature(rt=10.0, mz=400.0, feature_id="f1",
                    identifications=[make_id("consensus", 10.0, 400.0, [("PEPTIDEK", 0.5)])]),
            Feature(rt=20.0, mz=500.0, feature_id="f2",
                    identifications=[make_id("consensus", 20.0, 500.0, [])]),
        ]
        out_path = tmp_path / "features.tsv"
        store_psm_table(out_path, features)

        _, reloaded = load_psm_table(out_path)
        assert [feature.feature_id for feature in reloaded] == ["f1", "f2"]
        assert reloaded[0].identifications[0].hits[0].sequence == "PEPTIDEK"
        assert reloaded[1].identifications[0].hits == []


class TestDataFrame:
    """Test pandas export."""

    def test_to_dataframe(self, tmp_path):
        pytest.importorskip("pandas")
        runs, identifications = load_psm_table(_write(tmp_path / "psms.tsv", EXAMPLE_TABLE))

        df = to_dataframe(identifications)

        assert len(df) == 5
        assert list(df["sequence"][:2]) == ["PEPTIDEA", "PEPTIDEC"]
        assert df["score"].iloc[0] == pytest.approx(0.9)
        assert df["score"].isna().iloc[4]
        assert df["higher_score_better"].all()
        assert "feature" not in df.columns


class TestCommandLine:
    """Test the run_consensus_id script."""

    @pytest.fixture
    def script(self):
        return _load_script()

    def test_success(self, script, tmp_path):
        in_path = _write(tmp_path / "psms.tsv", EXAMPLE_TABLE)
        out_path = tmp_path / "consensus.tsv"

        code = script.main(["--in", str(in_path), "--out", str(out_path),
                            "--algorithm", "best", "--considered-hits", "1"])

        assert code == 0
        out_runs, identifications = load_psm_table(out_path)
        assert identifications[0].hits[0].sequence == "PEPTIDEB"
        assert out_runs[0].search_engine == SEARCH_ENGINE_NAME
        assert out_runs[0].date_time is not None

    def test_invalid_configuration(self, script, tmp_path):
        in_path = _write(tmp_path / "psms.tsv", EXAMPLE_TABLE)

        code = script.main(["--in", str(in_path), "--out", str(tmp_path / "out.tsv"),
                            "--algorithm", "best", "--rt-delta", "-1"])
        assert code == 2

    def test_pep_algorithm_on_scores(self, script, tmp_path):
        in_path = _write(tmp_path / "psms.tsv", EXAMPLE_TABLE)

        code = script.main(["--in", str(in_path), "--out", str(tmp_path / "out.tsv"),
                            "--algorithm", "PEPMatrix"])
        assert code == 2

    def test_incompatible_input(self, script, tmp_path):
        table = HEADER + "run_a\tscan=1\t\t500.0\tscore\ttrue\t1\tPEPTIDEK\t2\t0.5\n"
        in_path = _write(tmp_path / "psms.tsv", table)
        out_path = tmp_path / "out.tsv"

        code = script.main(["--in", str(in_path), "--out", str(out_path), "--algorithm", "best"])

        assert code == 3
        assert not out_path.exists()
