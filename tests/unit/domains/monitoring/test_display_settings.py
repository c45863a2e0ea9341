"""Tests for display settings and their YAML loader."""

from __future__ import annotations

import pytest

from vitalwatch.domains.monitoring.domain_logic.display_settings import (
    DisplaySettings,
    DisplaySettingsError,
    load_display_settings,
)


class TestDisplaySettings:
    def test_defaults_show_everything(self):
        settings = DisplaySettings()
        assert settings.min_probability_threshold == 0
        assert all(settings.as_dict()["enabled_risks"].values())

    def test_missing_category_stays_enabled(self):
        settings = DisplaySettings(enabled_risks={"fall": False})
        assert not settings.is_enabled("fall")
        assert settings.is_enabled("cardiac")

    def test_unknown_category_rejected(self):
        with pytest.raises(DisplaySettingsError, match="stroke"):
            DisplaySettings(enabled_risks={"stroke": True})

    @pytest.mark.parametrize("threshold", [-1, 100.5])
    def test_threshold_out_of_range_rejected(self, threshold):
        with pytest.raises(DisplaySettingsError):
            DisplaySettings(min_probability_threshold=threshold)

    def test_with_overrides_merges(self):
        base = DisplaySettings(enabled_risks={"fall": False}, min_probability_threshold=20)
        merged = base.with_overrides(enabled_risks={"cardiac": False})
        assert not merged.is_enabled("fall")
        assert not merged.is_enabled("cardiac")
        assert merged.min_probability_threshold == 20
        assert base.is_enabled("cardiac")

    def test_with_overrides_threshold(self):
        assert DisplaySettings().with_overrides(min_probability_threshold=50).min_probability_threshold == 50

    def test_from_dict_rejects_non_bool(self):
        with pytest.raises(DisplaySettingsError, match="true or false"):
            DisplaySettings.from_dict({"enabled_risks": {"fall": "no"}})

    def test_from_dict_rejects_non_numeric_threshold(self):
        with pytest.raises(DisplaySettingsError):
            DisplaySettings.from_dict({"min_probability_threshold": "high"})


class TestLoadDisplaySettings:
    def test_no_path_gives_defaults(self):
        assert load_display_settings("") == DisplaySettings()
        assert load_display_settings(None) == DisplaySettings()

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_display_settings(tmp_path / "missing.yaml") == DisplaySettings()

    def test_loads_yaml(self, tmp_path):
        path = tmp_path / "display.yaml"
        path.write_text(
            "enabled_risks:\n"
            "  fall: false\n"
            "  autonomic: false\n"
            "min_probability_threshold: 30\n"
        )
        settings = load_display_settings(path)
        assert not settings.is_enabled("fall")
        assert not settings.is_enabled("autonomic")
        assert settings.is_enabled("cardiac")
        assert settings.min_probability_threshold == 30

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_display_settings(path) == DisplaySettings()

    def test_invalid_yaml_raises(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("enabled_risks: [unclosed\n")
        with pytest.raises(DisplaySettingsError, match="Invalid YAML"):
            load_display_settings(path)

    def test_unknown_category_in_file_raises(self, tmp_path):
        path = tmp_path / "display.yaml"
        path.write_text("enabled_risks:\n  stroke: true\n")
        with pytest.raises(DisplaySettingsError):
            load_display_settings(path)
