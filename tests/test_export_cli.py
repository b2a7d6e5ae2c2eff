"""Tests for CSV export and the command-line interface."""

import csv
import json

import pytest
from typer.testing import CliRunner

from outbreak_detection.analysis import DetectionAnalyzer
from outbreak_detection.cli import app, build_network, run_experiment
from outbreak_detection.config import ExperimentConfig
from outbreak_detection.export import FIELDNAMES, result_records, write_results_csv

runner = CliRunner()


@pytest.fixture
def toy_config(tmp_path):
    return ExperimentConfig.toy_complete_graph().model_copy(
        update={"output_dir": str(tmp_path / "out")}
    )


class TestExperiment:
    """Test the simulate-then-test driver."""

    def test_build_network(self, toy_config):
        network = build_network(toy_config)
        assert network.name == "completegraph_staff20"
        assert network.min_label() == 2

    def test_build_network_from_file(self, tmp_path):
        path = tmp_path / "staff.txt"
        path.write_text("2,3\n3,4\n4,2\n")
        config = ExperimentConfig(network_type="file", network_file=str(path))
        network = build_network(config)
        assert network.name == "staff"
        assert network.vertices() == {2, 3, 4}

    def test_build_network_from_whitespace_file(self, tmp_path):
        path = tmp_path / "staff.txt"
        path.write_text("0 1\n1 5\n5 0\n")
        config = ExperimentConfig(
            network_type="file", network_file=str(path), network_file_separator=None
        )
        network = build_network(config)
        # Labels are shifted up to the start label, keeping the gap before 5
        assert network.vertices() == {2, 3, 7}

    def test_run_experiment(self, toy_config):
        analyzer = run_experiment(toy_config)
        assert sorted(k for _, k in analyzer.results) == [1, 2, 3]
        for output in analyzer.results.values():
            assert 0.0 <= output.mean <= 1.0
            assert output.sample_size == 5
            assert output.batch_size == 1

    def test_batched_random_experiment(self, toy_config):
        config = toy_config.model_copy(update={"batches": 3, "testing_order": "random"})
        analyzer = run_experiment(config)
        assert all(analyzer.random_order.values())
        assert all(output.batch_size == 3 for output in analyzer.results.values())


class TestExport:
    """Test result export."""

    def test_records(self, toy_config):
        analyzer = run_experiment(toy_config)
        records = list(result_records(analyzer, timestamp="2020-11-18T00:00:00Z"))
        assert len(records) == 3
        for record in records:
            assert list(record) == FIELDNAMES
            assert record["lower_ci"] <= record["detection_probability"] <= record["upper_ci"]
            assert record["utc"] == "2020-11-18T00:00:00Z"

    def test_write_appends_without_repeating_header(self, tmp_path, toy_config):
        analyzer = run_experiment(toy_config)
        path = tmp_path / "results.csv"
        write_results_csv(path, analyzer)
        write_results_csv(path, analyzer)

        with path.open() as fh:
            rows = list(csv.reader(fh))
        assert rows[0] == FIELDNAMES
        assert len(rows) == 1 + 2 * 3

        write_results_csv(path, analyzer, append=False)
        with path.open() as fh:
            assert len(list(csv.reader(fh))) == 1 + 3

    def test_empty_analyzer(self, tmp_path):
        path = write_results_csv(tmp_path / "empty.csv", DetectionAnalyzer())
        assert path.read_text().strip() == ",".join(FIELDNAMES)


class TestCli:
    """Test the Typer commands."""

    def test_show_config(self):
        result = runner.invoke(app, ["show-config"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["network_type"] == "neighboring"

    def test_run_with_config(self, tmp_path, toy_config):
        config_path = tmp_path / "toy.json"
        toy_config.save(config_path)

        result = runner.invoke(app, ["run", "--config", str(config_path)])
        assert result.exit_code == 0, result.output

        out = tmp_path / "out"
        assert (out / "config.json").exists()
        with (out / "testresults.csv").open() as fh:
            rows = list(csv.DictReader(fh))
        assert [int(r["tests_per_day"]) for r in rows] == [1, 2, 3]

    def test_run_with_options(self, tmp_path):
        out = tmp_path / "opts"
        result = runner.invoke(
            app,
            [
                "run",
                "--network-type", "neighboring",
                "--network-size", "12",
                "--degree", "4",
                "--time-horizon", "3",
                "--repetitions", "10",
                "--batches", "2",
                "--max-tests-per-day", "2",
                "--output-dir", str(out),
            ],
        )
        assert result.exit_code == 0, result.output
        saved = ExperimentConfig.load(out / "config.json")
        assert saved.network_name() == "neighboringgraph_staff12_degree4"
        assert saved.tests_per_day == [1, 2]

    def test_simulate(self, tmp_path, toy_config):
        config_path = tmp_path / "toy.json"
        toy_config.save(config_path)

        result = runner.invoke(app, ["simulate", "--config", str(config_path)])
        assert result.exit_code == 0, result.output
        summary = json.loads((tmp_path / "out" / "simulation_summary.json").read_text())
        assert summary["repetitions"] == 5
        assert len(summary["final_infectious"]) == 5
