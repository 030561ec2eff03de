"""Tests for environment-backed configuration helpers."""

from __future__ import annotations

import os

import pytest

from livescribe import config
from livescribe.core.pipeline.segmentation import SegmentationConfig


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch, tmp_path):
    """Ensure each test starts with a clean configuration environment."""

    env_path = tmp_path / ".env"
    monkeypatch.setattr(config, "_ENV_PATH", env_path)
    monkeypatch.setattr(config, "_settings", None)
    monkeypatch.chdir(tmp_path)

    for key in list(os.environ):
        if key.startswith("LIVESCRIBE_"):
            monkeypatch.delenv(key, raising=False)

    yield


def test_list_environment_settings_reflects_defaults():
    entries = {entry.env_name: entry for entry in config.list_environment_settings()}

    assert "LIVESCRIBE_SAMPLE_RATE" in entries
    assert "LIVESCRIBE_SILENCE_MS" in entries
    assert "LIVESCRIBE_READINESS_GRACE_MS" in entries
    assert "LIVESCRIBE_OPENAI_POSTPROCESS_MODEL" in entries
    assert entries["LIVESCRIBE_STATS_RETENTION_HOURS"].default == 24 * 45


def test_update_environment_setting_persists_and_reloads():
    updated = config.update_environment_setting("silence_ms", "900")

    assert updated.silence_ms == 900
    assert config.get_settings().silence_ms == 900
    assert os.environ["LIVESCRIBE_SILENCE_MS"] == "900"

    env_contents = config._ENV_PATH.read_text().strip().splitlines()  # type: ignore[attr-defined]
    assert "LIVESCRIBE_SILENCE_MS=900" in env_contents


def test_clear_environment_setting_removes_override():
    config.update_environment_setting("sample_rate", "24000")
    cleared = config.clear_environment_setting("sample_rate")

    assert cleared.sample_rate == config.Settings().sample_rate
    assert "LIVESCRIBE_SAMPLE_RATE" not in os.environ
    assert not config._ENV_PATH.exists()  # type: ignore[attr-defined]


def test_invalid_value_is_rejected_and_previous_restored():
    config.update_environment_setting("pre_roll_ms", "100")

    with pytest.raises(config.EnvironmentSettingError):
        config.update_environment_setting("pre_roll_ms", "not-a-number")

    assert os.environ["LIVESCRIBE_PRE_ROLL_MS"] == "100"
    assert config.get_settings().pre_roll_ms == 100


def test_unknown_setting_is_rejected():
    with pytest.raises(config.EnvironmentSettingError):
        config.update_environment_setting("does_not_exist", "1")


def test_readiness_grace_is_converted_to_seconds(monkeypatch):
    monkeypatch.setenv("LIVESCRIBE_READINESS_GRACE_MS", "25")

    assert config.Settings().readiness_grace_seconds == pytest.approx(0.025)


def test_segmentation_config_from_settings_clamps_values(monkeypatch):
    monkeypatch.setenv("LIVESCRIBE_SAMPLE_RATE", "0")
    monkeypatch.setenv("LIVESCRIBE_PRE_ROLL_MS", "-50")
    monkeypatch.setenv("LIVESCRIBE_LANGUAGE", "de")

    segmentation = SegmentationConfig.from_settings(config.Settings())

    assert segmentation.sample_rate == 1
    assert segmentation.pre_roll_ms == 0
    assert segmentation.pre_roll_byte_limit == 0
    assert segmentation.language == "de"


def test_environment_settings_flag_secrets_and_overrides(monkeypatch):
    monkeypatch.setenv("LIVESCRIBE_MAX_SEGMENT_MS", "5000")

    entries = {entry.field: entry for entry in config.list_environment_settings()}

    assert entries["openai_api_key"].secret
    assert not entries["sample_rate"].secret
    assert entries["max_segment_ms"].overridden
    assert not entries["silence_ms"].overridden
    assert entries["stats_path"].default == config.Settings().stats_path


def test_env_file_keeps_unrelated_lines():
    config._ENV_PATH.write_text("# comment\nOTHER=1\n")  # type: ignore[attr-defined]

    config.update_environment_setting("language", "fr")
    config.update_environment_setting("language", "it")

    assert config._ENV_PATH.read_text().splitlines() == [  # type: ignore[attr-defined]
        "# comment",
        "OTHER=1",
        "LIVESCRIBE_LANGUAGE=it",
    ]
