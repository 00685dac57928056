"""Tests for scope configuration handling."""

from configparser import ConfigParser

import pytest

from fleascope.config import (
    DefaultTriggerPolicy,
    ScopeConfig,
    load_scope_config,
    save_scope_config,
    validate_scope_section,
)


@pytest.fixture
def scopes_file(tmp_path):
    """Create a scopes.ini with one bench scope."""
    path = tmp_path / ".fleascope" / "scopes.ini"
    path.parent.mkdir()
    config = ConfigParser()
    config["bench"] = {
        "port": "/dev/ttyACM0",
        "command_timeout": "3.5",
        "retries": "5",
        "default_trigger_policy": "digital_free_run",
        "read_calibrations": "no",
    }
    with path.open("w") as f:
        config.write(f)
    return path


class TestLoadScopeConfig:
    def test_load_section(self, scopes_file):
        config = load_scope_config("bench", scopes_file)
        assert config.port == "/dev/ttyACM0"
        assert config.command_timeout == 3.5
        assert config.retries == 5
        assert config.default_trigger_policy == DefaultTriggerPolicy.DIGITAL_FREE_RUN
        assert config.read_calibrations is False
        # untouched keys keep their defaults
        assert config.poll_interval == ScopeConfig().poll_interval

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_scope_config("bench", tmp_path / "nope.ini") == ScopeConfig()

    def test_missing_section_gives_defaults(self, scopes_file):
        assert load_scope_config("other", scopes_file) == ScopeConfig()

    def test_unknown_key(self, scopes_file):
        config = ConfigParser()
        config.read(scopes_file)
        config["bench"]["frobnicate"] = "1"
        with scopes_file.open("w") as f:
            config.write(f)
        with pytest.raises(ValueError, match="frobnicate"):
            load_scope_config("bench", scopes_file)

    def test_invalid_value(self, scopes_file):
        config = ConfigParser()
        config.read(scopes_file)
        config["bench"]["retries"] = "-1"
        with scopes_file.open("w") as f:
            config.write(f)
        with pytest.raises(ValueError):
            load_scope_config("bench", scopes_file)

    def test_validate_section(self):
        config = ConfigParser()
        config["ok"] = {"port": "COM3"}
        config["bad"] = {"port": "COM3", "speed": "fast"}
        assert validate_scope_section(config, "ok") == (True, "")
        is_valid, msg = validate_scope_section(config, "bad")
        assert not is_valid
        assert "speed" in msg


class TestSaveScopeConfig:
    def test_round_trip(self, tmp_path):
        path = tmp_path / "sub" / "scopes.ini"
        config = ScopeConfig(
            port="COM3",
            retries=0,
            reference_voltage=3.25,
            default_trigger_policy=DefaultTriggerPolicy.DIGITAL_FREE_RUN,
            read_calibrations=False,
        )
        assert save_scope_config("lab", config, path) == path
        assert load_scope_config("lab", path) == config

    def test_keeps_other_sections(self, scopes_file):
        save_scope_config("lab", ScopeConfig(port="COM4"), scopes_file)
        assert load_scope_config("bench", scopes_file).port == "/dev/ttyACM0"
        assert load_scope_config("lab", scopes_file).port == "COM4"


class TestScopeConfig:
    @pytest.mark.parametrize(
        "field, value",
        [
            ("retries", -1),
            ("command_timeout", 0.0),
            ("poll_interval", -0.1),
            ("reference_voltage", 0.0),
            ("baudrate", 0),
        ],
    )
    def test_validate_rejects(self, field, value):
        config = ScopeConfig(**{field: value})
        with pytest.raises(ValueError):
            config.validate()

    def test_defaults_are_valid(self):
        ScopeConfig().validate()

    def test_from_dict(self):
        config = ScopeConfig.from_dict({"default_trigger_policy": "analog_auto"})
        assert config.default_trigger_policy == DefaultTriggerPolicy.ANALOG_AUTO
