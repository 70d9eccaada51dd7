"""Tests for the command line entry point."""

import json

import pytest
from click.testing import CliRunner

from redact import main


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def card_path(tmp_path, png_bytes):
    path = tmp_path / "in" / "card.png"
    path.parent.mkdir()
    path.write_bytes(png_bytes)
    return path


class TestMain:
    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "--pages-json" in result.output

    def test_redacts_with_saved_pages(self, runner, tmp_path, card_path, pages_json_file):
        output_dir = tmp_path / "out"
        result = runner.invoke(main, [
            "--input", str(card_path),
            "--output", str(output_dir),
            "--pages-json", str(pages_json_file),
            "--workers", "1",
        ])
        assert result.exit_code == 0, result.output
        assert "Done!" in result.output
        assert "1 identity number, 1 tax identifier, 1 phone number" in result.output
        assert (output_dir / "card_redacted.png").exists()

        with open(output_dir / "summary.json", encoding="utf-8") as f:
            summary = json.load(f)
        assert summary["corpus_stats"]["redacted_documents"] == 1
        assert (output_dir / "detections.json").exists()
        assert (output_dir / "detections.csv").exists()

    def test_saved_pages_need_single_file(self, runner, tmp_path, card_path, png_bytes, pages_json_file):
        (card_path.parent / "second.png").write_bytes(png_bytes)
        result = runner.invoke(main, [
            "--input", str(card_path.parent),
            "--output", str(tmp_path / "out"),
            "--pages-json", str(pages_json_file),
        ])
        assert result.exit_code == 1
        assert "--pages-json needs a single input file" in result.output

    def test_no_documents(self, runner, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        result = runner.invoke(main, ["--input", str(empty), "--output", str(tmp_path / "out")])
        assert result.exit_code == 1

    def test_bad_min_confidence(self, runner, tmp_path, card_path):
        result = runner.invoke(main, [
            "--input", str(card_path),
            "--output", str(tmp_path / "out"),
            "--min-confidence", "passport=0.5",
        ])
        assert result.exit_code == 2

    def test_missing_input(self, runner, tmp_path):
        result = runner.invoke(main, ["--input", str(tmp_path / "nope"), "--output", str(tmp_path / "out")])
        assert result.exit_code == 2
