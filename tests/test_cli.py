"""Tests for the command-line interface."""

import json
import logging
import os

import pytest

from smart_press import __version__
from smart_press.cli.compression_cli import parse_sizes
from smart_press.cli.main import main
from smart_press.cli.stats_cli import formats_table


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo the root logger changes made by main()."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def stats_file(tmp_path):
    return str(tmp_path / "stats.json")


def test_version(capsys):
    assert main(["version"]) == 0
    assert __version__ in capsys.readouterr().out


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "compress" in capsys.readouterr().out


def test_parse_sizes():
    assert parse_sizes("150x150, 300x,x600") == [(150, 150), (300, 0), (0, 600)]
    assert parse_sizes(None) == [(0, 0)]

    with pytest.raises(ValueError):
        parse_sizes("150by150")


def test_compress_writes_sizes_and_stats(source_jpeg, tmp_path, stats_file, capsys):
    output_dir = tmp_path / "out"

    code = main(
        [
            "compress",
            source_jpeg,
            "--sizes",
            "48x48,32x",
            "--output",
            str(output_dir),
            "--stats-file",
            stats_file,
            "--target-psnr",
            "30",
        ]
    )

    assert code == 0
    assert sorted(os.listdir(output_dir)) == [
        "photo-smart-32x21.jpg",
        "photo-smart-48x48.jpg",
    ]
    out = capsys.readouterr().out
    assert "Compression complete!" in out
    assert "smart-48x48" in out

    with open(stats_file) as handle:
        stored = json.load(handle)
    assert stored["smart_press_compression_metrics"]["totals"]["count"] == 2


def test_compress_no_smart_uses_direct(source_jpeg, tmp_path, stats_file, capsys):
    code = main(
        [
            "compress",
            source_jpeg,
            "--sizes",
            "20x20",
            "--output",
            str(tmp_path / "out"),
            "--no-smart",
            "--format",
            "png",
            "--stats-file",
            stats_file,
        ]
    )

    assert code == 0
    assert "direct" in capsys.readouterr().out
    assert os.path.exists(tmp_path / "out" / "photo-smart-20x20.png")


def test_compress_invalid_sizes(source_jpeg, capsys):
    assert main(["compress", source_jpeg, "--sizes", "abc"]) == 1
    assert "Invalid sizes" in capsys.readouterr().err


def test_compress_invalid_psnr(source_jpeg, capsys):
    assert main(["compress", source_jpeg, "--target-psnr", "-3"]) == 1
    assert "Invalid PSNR target" in capsys.readouterr().err


def test_compress_missing_input(tmp_path, capsys):
    assert main(["compress", str(tmp_path / "missing.jpg")]) == 1
    assert "Input file not found" in capsys.readouterr().err


def test_stats_json_and_clear(source_jpeg, tmp_path, stats_file, capsys):
    main(
        [
            "compress",
            source_jpeg,
            "--sizes",
            "24x24",
            "--output",
            str(tmp_path / "out"),
            "--stats-file",
            stats_file,
        ]
    )
    capsys.readouterr()

    assert main(["stats", "--json", "--stats-file", stats_file]) == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["total_operations"] == 1
    assert summary["formats"]["jpeg"]["count"] == 1

    assert main(["stats", "--stats-file", stats_file]) == 0
    out = capsys.readouterr().out
    assert "COMPRESSION SUMMARY" in out
    assert "jpeg" in out

    assert main(["clear-stats", "--stats-file", stats_file]) == 0
    capsys.readouterr()

    main(["stats", "--json", "--stats-file", stats_file])
    assert json.loads(capsys.readouterr().out)["total_operations"] == 0


def test_stats_empty_store(stats_file, capsys):
    assert main(["stats", "--stats-file", stats_file]) == 0
    assert "No compression recorded yet." in capsys.readouterr().out


def test_formats_table_sorted_by_count():
    summary = {
        "formats": {
            "png": {"count": 1, "average_quality": 100.0},
            "jpeg": {"count": 3, "average_quality": 72.5},
        }
    }

    table = formats_table(summary)

    assert list(table.index) == ["jpeg", "png"]
    assert table.loc["jpeg", "average_quality"] == 72.5
    assert "average_psnr" in table.columns


def test_log_file_receives_messages(source_jpeg, tmp_path, stats_file):
    log_file = tmp_path / "run.log"

    main(
        [
            "compress",
            source_jpeg,
            "--sizes",
            "16x16",
            "--output",
            str(tmp_path / "out"),
            "--stats-file",
            stats_file,
            "--log-file",
            str(log_file),
        ]
    )

    assert "Smart compression applied" in log_file.read_text()
