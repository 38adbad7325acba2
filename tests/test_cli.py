"""
Tests for the Typer CLI. Only offline commands are exercised.
"""

import pytest
from typer.testing import CliRunner

from evolvinghome.cli import EXIT_CODES, app
from evolvinghome.core.errors import ErrorKind

runner = CliRunner()


class TestRoofCommand:

    def test_estimate(self):
        result = runner.invoke(app, ["roof", "240", "--floors", "2", "--type", "detached"])
        assert result.exit_code == 0
        assert "Footprint: 120.0 m²" in result.output

    def test_invalid_floor_area(self):
        result = runner.invoke(app, ["roof", "0"])
        assert result.exit_code == EXIT_CODES[ErrorKind.VALIDATION]
        assert "validation" in result.output


class TestScoreCommand:

    def test_baseline_plus_improvements(self):
        result = runner.invoke(app, ["score", "62", "-i", "heat_pump", "-i", "heat_pump"])
        assert result.exit_code == 0
        assert "72" in result.output
        assert "heat pump" in result.output

    @pytest.mark.parametrize("args", [["score", "120"], ["score", "62", "-i", "hot_tub"]])
    def test_invalid(self, args):
        assert runner.invoke(app, args).exit_code == 2


class TestSolarCommand:

    def test_offline_estimate(self):
        result = runner.invoke(app, [
            "solar", "--lat", "51.5", "--lon", "-0.1", "--roof-area", "20", "--peak-power", "4", "--offline",
        ])
        assert result.exit_code == 0
        assert "3,296 kWh" in result.output
        assert "uk_latitude_table" in result.output

    def test_needs_location(self):
        result = runner.invoke(app, ["solar", "--roof-area", "20", "--offline"])
        assert result.exit_code == 2


def test_exit_codes_distinct():
    assert sorted(EXIT_CODES.values()) == [2, 3, 4, 5]
