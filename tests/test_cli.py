"""
Tests for the command-line interface.
"""

from decimal import Decimal

import pytest
from click.testing import CliRunner

from index_rebalancer import __version__
from index_rebalancer.cli import main
from index_rebalancer.config import ENV_OVERRIDES, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_OVERRIDES:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def runner():
    return CliRunner()


class TestRunCommand:
    """Tests for the run command."""

    def test_run_writes_outputs(self, runner, tmp_path, market_data_csv):
        out = tmp_path / "out"
        result = runner.invoke(
            main, ["run", "--data", str(market_data_csv), "--amount", "100", "-o", str(out)]
        )

        assert result.exit_code == 0, result.output
        assert "Dates: 2" in result.output
        assert (out / "rebalancing-report-2025-04-08.md").exists()
        assert (out / "rebalancing-report-2025-04-09.md").exists()
        assert (out / "orders.csv").exists()
        assert (out / "holdings.csv").exists()
        assert (out / "decision_log.jsonl").exists()

    def test_no_report_flag(self, runner, tmp_path, market_data_csv):
        out = tmp_path / "out"
        result = runner.invoke(
            main,
            ["run", "-d", str(market_data_csv), "-a", "100", "-o", str(out), "--no-report"],
        )

        assert result.exit_code == 0, result.output
        assert not list(out.glob("*.md"))
        assert (out / "orders.csv").exists()

    def test_output_dir_reset(self, runner, tmp_path, market_data_csv):
        out = tmp_path / "out"
        out.mkdir()
        (out / "stale.md").write_text("old")

        result = runner.invoke(
            main, ["run", "-d", str(market_data_csv), "-a", "100", "-o", str(out)]
        )

        assert result.exit_code == 0, result.output
        assert not (out / "stale.md").exists()

    def test_run_config_written(self, runner, tmp_path, market_data_csv):
        out = tmp_path / "out"
        result = runner.invoke(
            main, ["run", "-d", str(market_data_csv), "-a", "100", "-o", str(out), "-p", "0.9"]
        )

        assert result.exit_code == 0, result.output
        written = load_config(out / "config.yaml")
        assert written.percentile == Decimal("0.9")

    def test_output_dir_containing_data_refused(self, runner, tmp_path, market_data_csv):
        """Test an output directory holding the input file is left untouched."""
        work = tmp_path / "work"
        work.mkdir()
        data_path = work / "market_caps.csv"
        data_path.write_text(market_data_csv.read_text())

        result = runner.invoke(
            main, ["run", "-d", str(data_path), "-a", "100", "-o", str(work)]
        )

        assert result.exit_code == 1
        assert "contains the input file" in result.output
        assert data_path.read_text() == market_data_csv.read_text()

    def test_amount_prompted(self, runner, tmp_path, market_data_csv):
        out = tmp_path / "out"
        result = runner.invoke(
            main, ["run", "-d", str(market_data_csv), "-o", str(out)], input="250\n"
        )

        assert result.exit_code == 0, result.output
        assert "Initial allocation: $250.00M" in result.output

    def test_invalid_prompted_amount_reprompts(self, runner, tmp_path, market_data_csv):
        out = tmp_path / "out"
        result = runner.invoke(
            main, ["run", "-d", str(market_data_csv), "-o", str(out)], input="-5\n100\n"
        )

        assert result.exit_code == 0, result.output
        assert "valid positive number" in result.output
        assert "Initial allocation: $100.00M" in result.output

    @pytest.mark.parametrize("amount", ["abc", "0", "-10"])
    def test_invalid_amount_option(self, runner, tmp_path, market_data_csv, amount):
        result = runner.invoke(
            main, ["run", "-d", str(market_data_csv), "-a", amount, "-o", str(tmp_path / "out")]
        )
        assert result.exit_code == 2

    def test_invalid_percentile(self, runner, tmp_path, market_data_csv):
        result = runner.invoke(
            main,
            ["run", "-d", str(market_data_csv), "-a", "100", "-p", "1.5", "-o", str(tmp_path / "out")],
        )
        assert result.exit_code == 2

    def test_config_file_amount(self, runner, tmp_path, market_data_csv):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("initial_allocation_amount: 42\npercentile: 1\n")
        out = tmp_path / "out"

        result = runner.invoke(
            main, ["run", "-d", str(market_data_csv), "-c", str(config_path), "-o", str(out)]
        )

        assert result.exit_code == 0, result.output
        assert "Initial allocation: $42.00M" in result.output
        assert "Percentile: 100%" in result.output

    def test_data_file_chosen_from_directory(self, runner, tmp_path, market_data_csv, monkeypatch):
        monkeypatch.setenv("REBALANCE_DATA_DIR", str(market_data_csv.parent))
        out = tmp_path / "out"

        result = runner.invoke(main, ["run", "-a", "100", "-o", str(out)])

        assert result.exit_code == 0, result.output
        assert market_data_csv.name in result.output

    def test_data_file_prompt_with_several_files(self, runner, tmp_path, market_data_csv, monkeypatch):
        data_dir = tmp_path / "data"
        data_dir.mkdir()
        (data_dir / "a.csv").write_text(market_data_csv.read_text())
        (data_dir / "b.csv").write_text(market_data_csv.read_text())
        monkeypatch.setenv("REBALANCE_DATA_DIR", str(data_dir))

        result = runner.invoke(main, ["run", "-a", "100", "-o", str(tmp_path / "out")], input="b.csv\n")

        assert result.exit_code == 0, result.output
        assert "b.csv" in result.output

    def test_missing_data_dir(self, runner, tmp_path, monkeypatch):
        monkeypatch.setenv("REBALANCE_DATA_DIR", str(tmp_path / "nope"))

        result = runner.invoke(main, ["run", "-a", "100", "-o", str(tmp_path / "out")])
        assert result.exit_code == 1

    def test_invalid_data_file(self, runner, tmp_path):
        bad = tmp_path / "bad.csv"
        bad.write_text("date,company\n08/04/2025,A\n")

        result = runner.invoke(main, ["run", "-d", str(bad), "-a", "100", "-o", str(tmp_path / "out")])
        assert result.exit_code == 1
        assert "missing required columns" in result.output


class TestSelectCommand:
    """Tests for the select command."""

    def test_select_first_date(self, runner, market_data_csv):
        result = runner.invoke(main, ["select", "-d", str(market_data_csv)])

        assert result.exit_code == 0, result.output
        assert "Selection for 2025-04-08 (4/5 companies)" in result.output

    def test_select_specific_date(self, runner, market_data_csv):
        result = runner.invoke(main, ["select", "-d", str(market_data_csv), "--date", "2025-04-09"])

        assert result.exit_code == 0, result.output
        assert "Selection for 2025-04-09" in result.output
        assert " E " in result.output

    def test_select_unknown_date(self, runner, market_data_csv):
        result = runner.invoke(main, ["select", "-d", str(market_data_csv), "--date", "2025-05-01"])
        assert result.exit_code == 1

    def test_select_bad_date_format(self, runner, market_data_csv):
        result = runner.invoke(main, ["select", "-d", str(market_data_csv), "--date", "09/04/2025"])
        assert result.exit_code == 1

    def test_select_bad_percentile(self, runner, market_data_csv):
        result = runner.invoke(main, ["select", "-d", str(market_data_csv), "-p", "abc"])
        assert result.exit_code == 1


def test_version(runner):
    result = runner.invoke(main, ["--version"])
    assert __version__ in result.output
