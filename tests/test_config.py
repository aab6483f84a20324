"""Tests for configuration and logging setup."""

import io
import logging
import sys

import pytest
import structlog

from ninomiya.config import BUS_NAME, TESTING_BUS_NAME, NinomiyaConfig, default_config_path
from ninomiya.errors import ConfigError
from ninomiya.logging import configure_logging, parse_level


class TestNinomiyaConfig:
    """Test configuration loading."""

    def test_defaults(self, tmp_path):
        """A missing file gives the defaults."""
        config = NinomiyaConfig.load(tmp_path / "none.toml")

        assert config.default_timeout == 3.0
        assert config.log_level == "warn"
        assert config.replace_existing is False

    def test_bus_name_for(self):
        """Testing mode selects the reserved name."""
        config = NinomiyaConfig()

        assert config.bus_name_for(False) == BUS_NAME
        assert config.bus_name_for(True) == TESTING_BUS_NAME
        assert BUS_NAME != TESTING_BUS_NAME

    def test_from_file(self, tmp_path):
        """File keys map onto config fields."""
        path = tmp_path / "config.toml"
        path.write_text('duration = 5\nlog_level = "debug"\nreplace = true\n')

        config = NinomiyaConfig.from_file(path)

        assert config.default_timeout == 5.0
        assert config.log_level == "debug"
        assert config.replace_existing is True

    def test_unknown_key(self, tmp_path):
        """Unknown keys are rejected."""
        path = tmp_path / "config.toml"
        path.write_text("theme = 'dark'\n")

        with pytest.raises(ConfigError, match="theme"):
            NinomiyaConfig.from_file(path)

    def test_wrong_type(self, tmp_path):
        """A boolean duration is rejected."""
        path = tmp_path / "config.toml"
        path.write_text("duration = true\n")

        with pytest.raises(ConfigError):
            NinomiyaConfig.from_file(path)

    def test_bad_toml(self, tmp_path):
        """Unparseable files raise ConfigError."""
        path = tmp_path / "config.toml"
        path.write_text("duration = \n")

        with pytest.raises(ConfigError):
            NinomiyaConfig.from_file(path)

    def test_non_positive_duration(self, tmp_path):
        """The default timeout must be positive."""
        path = tmp_path / "config.toml"
        path.write_text("duration = 0\n")

        with pytest.raises(ConfigError):
            NinomiyaConfig.from_file(path)

    def test_lenient_load_falls_back(self, tmp_path):
        """With strict=False a broken file yields defaults."""
        path = tmp_path / "config.toml"
        path.write_text("nonsense = 1\n")

        config = NinomiyaConfig.load(path, strict=False)

        assert config == NinomiyaConfig()

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        """NINOMIYA_* variables win over the file."""
        path = tmp_path / "config.toml"
        path.write_text("duration = 5\n")
        monkeypatch.setenv("NINOMIYA_DEFAULT_TIMEOUT", "1.5")
        monkeypatch.setenv("NINOMIYA_LOG", "info")
        monkeypatch.setenv("NINOMIYA_REPLACE", "yes")

        config = NinomiyaConfig.load(path)

        assert config.default_timeout == 1.5
        assert config.log_level == "info"
        assert config.replace_existing is True

    def test_bad_environment_value(self, tmp_path, monkeypatch):
        """Non-numeric timeouts in the environment are rejected."""
        monkeypatch.setenv("NINOMIYA_DEFAULT_TIMEOUT", "soon")

        with pytest.raises(ConfigError):
            NinomiyaConfig.load(tmp_path / "none.toml")

    def test_with_overrides_skips_none(self):
        """None overrides keep the current value."""
        config = NinomiyaConfig(replace_existing=True)

        updated = config.with_overrides(replace_existing=None, interactive=True)

        assert updated.replace_existing is True
        assert updated.interactive is True

    def test_default_path_honours_xdg(self, tmp_path, monkeypatch):
        """The file lives under XDG_CONFIG_HOME."""
        monkeypatch.delenv("NINOMIYA_CONFIG")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

        assert default_config_path() == tmp_path / "ninomiya" / "config.toml"

    def test_explicit_path(self, tmp_path, monkeypatch):
        """NINOMIYA_CONFIG names the file directly."""
        monkeypatch.setenv("NINOMIYA_CONFIG", str(tmp_path / "other.toml"))

        assert default_config_path() == tmp_path / "other.toml"


class TestLogging:
    """Test log level handling."""

    def test_parse_level(self):
        """Levels are case-insensitive; warning is an alias."""
        assert parse_level("DEBUG") == "debug"
        assert parse_level("warning") == "warn"
        assert parse_level(None) == "warn"
        assert parse_level("loud") is None

    def test_configure_returns_level(self):
        """configure_logging() reports the level in effect."""
        assert configure_logging("info") == "info"

    def test_unknown_level_falls_back(self):
        """An unrecognized level falls back to warn."""
        assert configure_logging("chatty") == "warn"

    def test_trace_enables_library_debug(self):
        """trace lets the D-Bus library's debug records through."""
        configure_logging("trace")

        assert logging.getLogger().level == logging.DEBUG

    def test_debug_keeps_library_quiet(self):
        """debug only applies to ninomiya's own loggers."""
        configure_logging("debug")

        assert logging.getLogger().level == logging.INFO

    def test_filtering(self, capsys):
        """Records below the threshold are dropped."""
        configure_logging("error")
        logger = structlog.get_logger("ninomiya.test")

        logger.warning("should_not_appear")
        logger.error("should_appear")

        err = capsys.readouterr().err
        assert "should_appear" in err
        assert "should_not_appear" not in err

    def test_stderr_resolved_when_logging(self, monkeypatch):
        """Output goes to the current sys.stderr, not the one seen at configure time."""
        configure_logging("warn")
        replacement = io.StringIO()
        monkeypatch.setattr(sys, "stderr", replacement)

        structlog.get_logger("ninomiya.test").warning("after_swap")

        assert "after_swap" in replacement.getvalue()
