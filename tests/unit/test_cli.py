"""
Unit Tests - Command Line Interface
"""
import argparse
import json

import pytest
import polars as pl

from music_analytics.cli import main, parse_params, write_frame


def _run(*argv):
    return main(["--log-level", "ERROR", *argv])


class TestParseParams:
    """Tests for key=value parameter parsing"""

    def test_typed_values(self):
        """Test values are converted to the declared types"""
        params = parse_params("top_artists_by_genre", ["genre=Jazz", "n=5", "case_sensitive=yes"])

        assert params == {"genre": "Jazz", "n": 5, "case_sensitive": True}

    @pytest.mark.parametrize("raw", [["n"], ["genre=Rock"], ["n=five"]])
    def test_rejected(self, raw):
        """Test malformed, undeclared and ill-typed parameters"""
        with pytest.raises(argparse.ArgumentTypeError):
            parse_params("top_invoice_totals", raw)


class TestCommands:
    """Tests for the CLI commands"""

    def test_list(self, capsys):
        """Test the report list"""
        assert _run("list") == 0

        out = capsys.readouterr().out
        assert "top_invoice_totals [n:int]" in out
        assert "senior_most_employee" in out

    def test_run_to_csv(self, sample_csv_dir, tmp_path):
        """Test a report written to a CSV file"""
        output = tmp_path / "out" / "top.csv"

        code = _run("--csv-dir", str(sample_csv_dir), "run", "top_invoice_totals", "-p", "n=2", "--output", str(output))

        assert code == 0
        assert pl.read_csv(output)["invoice_id"].to_list() == [3, 1]

    def test_run_prints(self, sample_csv_dir, capsys):
        """Test a report printed to stdout"""
        code = _run("--csv-dir", str(sample_csv_dir), "run", "senior_most_employee")

        assert code == 0
        assert "Madan" in capsys.readouterr().out

    def test_run_all(self, sample_csv_dir, tmp_path):
        """Test one file per report"""
        output_dir = tmp_path / "reports"

        code = _run("--csv-dir", str(sample_csv_dir), "run-all", "--output-dir", str(output_dir), "--format", "json")

        assert code == 0
        written = json.loads((output_dir / "top_spender_per_country.json").read_text())
        assert [row["customer_id"] for row in written] == [1, 2, 3]
        assert (output_dir / "invoice_count_by_country.json").exists()

    def test_check_passes(self, sample_csv_dir, capsys):
        """Test consistent totals exit cleanly"""
        assert _run("--csv-dir", str(sample_csv_dir), "check") == 0
        assert "All invoice totals match their lines" in capsys.readouterr().out

    def test_check_reports_mismatch(self, sample_csv_dir, capsys):
        """Test an inconsistent total gives exit status 2"""
        path = sample_csv_dir / "invoice.csv"
        pl.read_csv(path).with_columns(pl.lit(9.99).alias("total")).write_csv(path)

        assert _run("--csv-dir", str(sample_csv_dir), "check", "--tolerance", "0.01") == 2
        assert "invoice_total_mismatches" in capsys.readouterr().out

    def test_invalid_parameter_exits(self, sample_csv_dir):
        """Test a bad parameter is a usage error"""
        with pytest.raises(SystemExit) as exc_info:
            _run("--csv-dir", str(sample_csv_dir), "run", "top_invoice_totals", "-p", "genre=Rock")

        assert exc_info.value.code == 2

    def test_missing_csv_dir(self, tmp_path):
        """Test an unreadable source returns status 1"""
        assert _run("--csv-dir", str(tmp_path / "missing"), "run", "senior_most_employee") == 1

    def test_unreachable_database(self, tmp_path):
        """Test a database that cannot be opened returns status 1"""
        url = f"sqlite:///{tmp_path / 'missing' / 'store.db'}"

        assert _run("--database-url", url, "run", "top_invoice_totals") == 1

    def test_missing_data(self, sample_csv_dir):
        """Test an empty relation returns status 1"""
        (sample_csv_dir / "invoice_line.csv").unlink()

        assert _run("--csv-dir", str(sample_csv_dir), "run", "top_genre_per_country") == 1


def test_write_frame_unknown_suffix(tmp_path):
    """Test unsupported output formats are rejected"""
    with pytest.raises(ValueError, match="Unsupported"):
        write_frame(pl.DataFrame({"a": [1]}), tmp_path / "out.xlsx")
