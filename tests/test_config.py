"""
Tests for Run Configuration and the Command-Line Entry Point

Run with: pytest tests/test_config.py -v
"""

import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from gridbench.config import BenchmarkConfig
from gridbench.exceptions import InvalidConfigurationError
from gridbench.main import build_parser, config_from_args, main, run


class TestBenchmarkConfig:
    """Tests for the configuration dataclass."""

    def test_defaults(self):
        """Defaults match the reference benchmarking session."""
        config = BenchmarkConfig()

        assert config.dataset == 2
        assert config.grid_type == 3
        assert not config.perform_kdtree_tuning
        assert config.perform_buildtime_benchmarking
        assert config.test_output_size == 256
        assert config.tries_per_parameter_set == 5
        assert config.warmup_runs == 3
        assert config.settle_seconds == 5.0
        assert config.validate() is config

    @pytest.mark.parametrize("changes", [
        {"dataset": 7},
        {"grid_type": 4},
        {"test_output_size": 0},
        {"tries_per_parameter_set": 0},
        {"warmup_runs": -1},
        {"settle_seconds": -0.5},
        {"max_iterations": -1},
    ])
    def test_invalid(self, changes):
        """Invalid settings are configuration errors."""
        with pytest.raises(InvalidConfigurationError):
            BenchmarkConfig(**changes).validate()

    def test_json_file(self, tmp_path):
        """Settings survive a save and load."""
        path = tmp_path / "run.json"
        config = BenchmarkConfig(dataset=3, grid_type=1, settle_seconds=0.0)

        config.save_to_json(str(path))

        assert BenchmarkConfig.load_from_json(str(path)) == config

    def test_unknown_key(self):
        """Unknown keys are rejected rather than ignored."""
        with pytest.raises(InvalidConfigurationError):
            BenchmarkConfig.from_dict({"dataset": 3, "grid": 1})


class TestCommandLine:
    """Tests for flag parsing and the entry point."""

    def test_flags_override_defaults(self):
        """Only explicitly given flags change the configuration."""
        args = build_parser().parse_args(["--dataset", "3", "--settle", "0", "--no-build-benchmark"])
        config = config_from_args(args)

        assert config.dataset == 3
        assert config.settle_seconds == 0.0
        assert config.perform_buildtime_benchmarking is False
        assert config.perform_querytime_benchmarking is True
        assert config.grid_type == 3

    def test_flags_override_config_file(self, tmp_path):
        """Flags take precedence over the JSON file."""
        path = tmp_path / "run.json"
        BenchmarkConfig(dataset=3, grid_type=2, warmup_runs=0).save_to_json(str(path))

        args = build_parser().parse_args(["--config", str(path), "--grid-type", "1"])
        config = config_from_args(args)

        assert config.dataset == 3
        assert config.grid_type == 1
        assert config.warmup_runs == 0

    def test_invalid_grid_type_exit_status(self, capsys):
        """An unknown index tag is fatal with status 2."""
        status = main(["--dataset", "3", "--grid-type", "4", "-q"])

        assert status == 2
        assert "grid_type" in capsys.readouterr().err

    def test_full_run_on_synthetic_data(self, tmp_path, capsys, monkeypatch):
        """Every phase runs on the synthetic profile and writes the image."""
        monkeypatch.setattr("gridbench.datasets.SYNTHETIC_SIZE", 30)
        output = tmp_path / "test.png"
        config = BenchmarkConfig(
            dataset=3, grid_type=1, settle_seconds=0.0, warmup_runs=1,
            tries_per_parameter_set=2, test_output_size=16,
            test_output_filename=str(output)
        )

        assert run(config, quiet=True) == 0

        text = capsys.readouterr().out
        assert "Performing buildtime benchmarking (dataset 3, index 1)" in text
        assert "Performing querytime benchmarking (dataset 3, index 1)" in text
        assert "Gridding Times" in text
        assert output.exists()

    def test_tuning_phase(self, tmp_path, capsys, monkeypatch):
        """The tuning phase reads its commands from the given source."""
        monkeypatch.setattr("gridbench.datasets.SYNTHETIC_SIZE", 20)
        output = tmp_path / "tuning.png"
        config = BenchmarkConfig(
            dataset=3, perform_kdtree_tuning=True,
            perform_buildtime_benchmarking=False, perform_querytime_benchmarking=False,
            produce_test_output=False, test_output_size=8,
            test_output_filename=str(output)
        )

        run(config, quiet=True, commands=["5 4"])

        text = capsys.readouterr().out
        assert "Performing KDTree tuning" in text
        assert "Running with Expansion Factor = 2.000000" in text
        assert output.exists()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
