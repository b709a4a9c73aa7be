"""Tests for settings and tuning options."""

import json

from smart_press.config import (
    DEFAULT_SETTINGS,
    DEFAULT_THUMBNAIL_QUALITY,
    TuningOptions,
    load_settings,
    resolve_tuning_options,
    sanitize_settings,
    save_settings,
)


def test_normalized_clamps_values():
    options = TuningOptions(
        initial_quality=140,
        min_quality=-5,
        max_iterations=0,
        min_savings_percent=250,
    ).normalized()

    assert options.initial_quality == 100
    assert options.min_quality == 0
    assert options.max_iterations == 1
    assert options.min_savings_percent == 100.0


def test_normalized_fixes_inverted_range():
    assert TuningOptions(initial_quality=80, min_quality=95).normalized().min_quality == 80
    assert TuningOptions(initial_quality=50, min_quality=95).normalized().min_quality == 60
    assert TuningOptions(initial_quality=90, min_quality=95).normalized().min_quality == 90


def test_with_context_and_upscaled_flag():
    options = TuningOptions().with_context({"density": "2x"}, upscaled=True)

    assert options.context == {"density": "2x"}
    assert options.telemetry_context() == {"density": "2x", "upscaled": True}
    assert TuningOptions().telemetry_context() == {}


def test_from_mapping_uses_defaults():
    options = TuningOptions.from_mapping({"initial_quality": "70", "unknown": 1})

    assert options.initial_quality == 70
    assert options.min_quality == TuningOptions().min_quality


def test_sanitize_settings_clamps_quality():
    assert sanitize_settings({"thumbnail_quality": 10})["thumbnail_quality"] == 60
    assert sanitize_settings({"thumbnail_quality": 150})["thumbnail_quality"] == 100
    assert (
        sanitize_settings({"thumbnail_quality": "junk"})["thumbnail_quality"]
        == DEFAULT_THUMBNAIL_QUALITY
    )


def test_sanitize_settings_fills_missing_keys():
    assert set(sanitize_settings({})) == set(DEFAULT_SETTINGS)


def test_load_settings_missing_file(tmp_path):
    assert load_settings(tmp_path / "nope.json") == sanitize_settings(DEFAULT_SETTINGS)


def test_load_settings_invalid_json(tmp_path, caplog):
    path = tmp_path / "settings.json"
    path.write_text("[1, 2")

    assert load_settings(path) == sanitize_settings(DEFAULT_SETTINGS)
    assert "Could not read settings" in caplog.text


def test_save_and_load_settings(tmp_path):
    path = tmp_path / "conf" / "settings.json"

    saved = save_settings(path, {"thumbnail_quality": 72, "smart_target_psnr": 38})

    assert json.loads(path.read_text())["thumbnail_quality"] == 72
    assert load_settings(path) == saved
    assert saved["smart_target_psnr"] == 38.0


def test_resolve_tuning_options():
    enabled, options = resolve_tuning_options(
        {"smart_compression_enabled": False, "thumbnail_quality": 75}
    )

    assert enabled is False
    assert options.initial_quality == 75

    _, overridden = resolve_tuning_options({}, quality=100)
    assert overridden.initial_quality == 100
