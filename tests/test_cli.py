import csv
import json

import pytest
from click.testing import CliRunner

from gold_loan.main import cli


@pytest.fixture
def runner():
    return CliRunner()


def test_schemes_lists_builtin_schemes(runner):
    result = runner.invoke(cli, ["schemes"])
    assert result.exit_code == 0
    assert "scheme-1" in result.output
    assert "day_basis_compound" in result.output


def test_calculate_prints_payoff(runner):
    result = runner.invoke(
        cli,
        ["calculate", "--scheme", "scheme-2", "-a", "10000", "-s", "2025-01-01", "-e", "2025-01-06"],
    )
    assert result.exit_code == 0
    assert "Total interest     : 100.00" in result.output
    assert "Total payable      : 10100.00" in result.output


def test_calculate_with_reductions(runner):
    result = runner.invoke(
        cli,
        [
            "calculate",
            "--scheme",
            "scheme-1",
            "-a",
            "10000",
            "-s",
            "2025-01-01",
            "-e",
            "2025-04-01",
            "--interest-taken",
            "--reduction",
            "100",
        ],
    )
    assert result.exit_code == 0
    assert "Interest reduction : 200.00" in result.output
    assert "Total payable      : 10300.00" in result.output


def test_calculate_rejects_inverted_range(runner):
    result = runner.invoke(
        cli,
        ["calculate", "--scheme", "scheme-1", "-a", "10000", "-s", "2025-02-01", "-e", "2025-01-01"],
    )
    assert result.exit_code == 1
    assert "End date cannot be before start date." in result.output


def test_calculate_rejects_bad_amount(runner):
    result = runner.invoke(
        cli,
        ["calculate", "--scheme", "scheme-1", "-a", "lots", "-s", "2025-01-01", "-e", "2025-02-01"],
    )
    assert result.exit_code == 2


def test_calculate_unknown_scheme(runner):
    result = runner.invoke(
        cli,
        ["calculate", "--scheme", "scheme-9", "-a", "10000", "-s", "2025-01-01", "-e", "2025-02-01"],
    )
    assert result.exit_code == 2
    assert "scheme-9" in result.output


def test_calculate_json_export(runner, tmp_path):
    out = tmp_path / "payoff.json"
    result = runner.invoke(
        cli,
        [
            "calculate",
            "--scheme",
            "scheme-4",
            "-a",
            "10000",
            "-s",
            "2024-01-01",
            "-e",
            "2025-03-01",
            "--output",
            str(out),
        ],
    )
    assert result.exit_code == 0
    data = json.loads(out.read_text())["result"]
    assert data["total_interest"] == 2900
    assert data["effective_rate"] == 30
    assert data["sub_periods"] == [{"rate": 24.0, "months": 12.0}, {"rate": 30.0, "months": 2.0}]


def test_compare_prints_every_active_scheme(runner):
    result = runner.invoke(cli, ["compare", "-a", "10000", "-s", "2025-01-01", "-e", "2025-01-06"])
    assert result.exit_code == 0
    for slug in ("scheme-1", "scheme-2", "scheme-3", "scheme-4"):
        assert slug in result.output


def test_compare_csv_export(runner, tmp_path):
    out = tmp_path / "comparison.csv"
    result = runner.invoke(
        cli,
        ["compare", "-a", "10000", "-s", "2025-01-01", "-e", "2025-01-06", "--output", str(out)],
    )
    assert result.exit_code == 0
    with out.open(newline="") as f:
        rows = list(csv.DictReader(f))
    assert [row["Scheme"] for row in rows] == ["scheme-1", "scheme-2", "scheme-3", "scheme-4"]
    assert rows[1]["Total_Payable"] == "10100.0"


def test_compare_rejects_unknown_format(runner, tmp_path):
    result = runner.invoke(
        cli,
        ["compare", "-a", "10000", "-s", "2025-01-01", "-e", "2025-01-06", "--output", str(tmp_path / "x.txt")],
    )
    assert result.exit_code == 2


def test_schemes_file_replaces_builtin_schemes(runner, tmp_path):
    schemes_file = tmp_path / "schemes.json"
    schemes_file.write_text(
        json.dumps(
            {
                "schemes": [
                    {"slug": "house", "name": "House", "interest_rate": "1", "calculation_type": "flat"},
                    {
                        "slug": "retired",
                        "interest_rate": "3",
                        "calculation_type": "flat",
                        "status": "inactive",
                    },
                ]
            }
        )
    )
    listing = runner.invoke(cli, ["--schemes-file", str(schemes_file), "schemes", "--active-only"])
    assert listing.exit_code == 0
    assert "house" in listing.output
    assert "retired" not in listing.output

    result = runner.invoke(
        cli,
        [
            "--schemes-file",
            str(schemes_file),
            "calculate",
            "--scheme",
            "house",
            "-a",
            "10000",
            "-s",
            "2025-01-01",
            "-e",
            "2025-01-11",
        ],
    )
    assert result.exit_code == 0
    assert "Total payable      : 10100.00" in result.output


def test_invalid_schemes_file(runner, tmp_path):
    schemes_file = tmp_path / "schemes.json"
    schemes_file.write_text(json.dumps([{"slug": "bad", "interest_rate": "1", "calculation_type": "simple"}]))
    result = runner.invoke(cli, ["--schemes-file", str(schemes_file), "schemes"])
    assert result.exit_code == 1
    assert "Invalid schemes file" in result.output


@pytest.mark.parametrize("content", [[1, 2], {"schemes": "scheme-1"}, "scheme-1"])
def test_schemes_file_with_non_object_entries(runner, tmp_path, content):
    schemes_file = tmp_path / "schemes.json"
    schemes_file.write_text(json.dumps(content))
    result = runner.invoke(cli, ["--schemes-file", str(schemes_file), "schemes"])
    assert result.exit_code == 1
    assert "Invalid schemes file" in result.output
