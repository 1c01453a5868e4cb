"""Tests for config schema validation and the config accessors."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from lobbywatch.config import (
    DEFAULT_CONFIG_PATH,
    get,
    get_validated_config,
    load_config,
    reset_config,
    set_config_value,
)
from lobbywatch.config_schema import (
    AppConfig,
    DiscoveryConfig,
    LoggingConfig,
    ReporterConfig,
    load_validated_config,
    validate_config_dict,
)


class TestDefaults:
    """Every key has a default, so an empty config is valid."""

    def test_empty_config(self) -> None:
        config = validate_config_dict({})
        assert config.discovery.pattern == "testlogs/ghost*/ghost.log"
        assert config.tracker.create_grace_seconds == 10.0
        assert config.tracker.default_slots == 10
        assert config.tracker.six_v_six_slots == 12
        assert config.tracker.forget_after_seconds == 12 * 3600
        assert config.reporter.obsolete_after_seconds == 12 * 3600
        assert config.reporter.output_file == "currentgames.json"
        assert config.server.enabled is False

    def test_checked_in_config_is_valid(self) -> None:
        config = load_validated_config(DEFAULT_CONFIG_PATH)
        assert config == AppConfig()


class TestValidation:
    """Typos and invalid values fail fast."""

    def test_unknown_section_rejected(self) -> None:
        with pytest.raises(ValidationError):
            validate_config_dict({"discovry": {"pattern": "x"}})

    def test_unknown_key_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DiscoveryConfig(patern="x")  # type: ignore[call-arg]

    def test_non_positive_interval_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DiscoveryConfig(scan_interval=0)

    def test_timestamp_mode(self) -> None:
        assert validate_config_dict({"tracker": {"timestamps": "log"}}).tracker.timestamps == "log"
        with pytest.raises(ValidationError):
            validate_config_dict({"tracker": {"timestamps": "utc"}})

    def test_log_level_normalised(self) -> None:
        assert LoggingConfig(level="debug").level == "DEBUG"
        with pytest.raises(ValidationError):
            LoggingConfig(level="chatty")

    def test_output_file_can_be_disabled(self) -> None:
        assert ReporterConfig(output_file=None).output_file is None


class TestLoading:
    """Tests for YAML loading and the module-level accessors."""

    def test_load_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("discovery:\n  pattern: /home/ghost*/ghost.log\nserver:\n  port: 9000\n")

        load_config(path)

        assert get_validated_config().discovery.pattern == "/home/ghost*/ghost.log"
        assert get("server.port") == 9000

    def test_missing_explicit_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("tracker:\n  default_slots: -1\n")
        with pytest.raises(ValidationError):
            load_config(path)

    def test_get_falls_back_to_schema_defaults(self) -> None:
        assert get("tailer.poll_interval") == 0.5
        assert get("no.such.key", "fallback") == "fallback"

    def test_set_config_value_revalidates(self) -> None:
        set_config_value("reporter.refresh_interval", 2.5)
        assert get_validated_config().reporter.refresh_interval == 2.5
        with pytest.raises(ValidationError):
            set_config_value("reporter.refresh_interval", -1)

    def test_reset_reloads_default(self) -> None:
        set_config_value("server.port", 9999)
        reset_config()
        assert get_validated_config().server.port == 8080
