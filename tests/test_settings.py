"""
Tests for settings loading and logging setup.
"""

import logging

import pytest

from cdp_lineage.core.config_validation import ConfigValidationError
from cdp_lineage.core.logger import configure_logging, resolve_level, route_server_logs, setup_logging
from cdp_lineage.core.settings import DashboardSettings, env_overrides, load_settings, validate_environment


class TestDashboardSettings:
    """Tests for settings defaults and overrides."""

    def test_defaults(self):
        settings = DashboardSettings()
        assert settings.overflow_limit == 30
        assert settings.detail_overflow_limit == 30
        assert settings.hub_name == "CDP"
        assert settings.include_info_tier is True
        assert settings.data_file is None

    def test_from_dict_ignores_unknown(self):
        settings = DashboardSettings.from_dict({"overflow_limit": 12, "description": "x"})
        assert settings.overflow_limit == 12

    def test_env_overrides(self, clean_env):
        clean_env.setenv("CDP_OVERFLOW_LIMIT", "7")
        clean_env.setenv("CDP_HUB_NAME", "Platform")
        clean_env.setenv("CDP_INCLUDE_INFO_TIER", "false")
        settings = DashboardSettings.from_env()
        assert settings.overflow_limit == 7
        assert settings.hub_name == "Platform"
        assert settings.include_info_tier is False
        assert settings.detail_overflow_limit == 30

    def test_no_env_returns_same(self, clean_env):
        settings = DashboardSettings(overflow_limit=3)
        assert settings.with_env() is settings

    def test_log_settings_from_env(self, clean_env, tmp_path):
        clean_env.setenv("CDP_LOG_LEVEL", "debug")
        clean_env.setenv("CDP_LOG_FILE", str(tmp_path / "dash.log"))
        settings = DashboardSettings.from_env()
        assert settings.log_level == "DEBUG"
        assert settings.log_file == str(tmp_path / "dash.log")

    def test_unparsable_env_names_variable(self, clean_env):
        clean_env.setenv("CDP_OVERFLOW_LIMIT", "lots")
        with pytest.raises(ValueError, match="CDP_OVERFLOW_LIMIT"):
            DashboardSettings.from_env()


class TestEnvironmentValidation:
    """Tests for env_overrides / validate_environment."""

    def test_overrides_from_mapping(self):
        overrides = env_overrides({"CDP_OVERFLOW_LIMIT": " 12 ", "CDP_HUB_NAME": "", "OTHER": "x"})
        assert overrides == {"overflow_limit": 12}

    def test_valid_environment(self):
        assert validate_environment({"CDP_OVERFLOW_LIMIT": "5", "CDP_LOG_LEVEL": "warning"}) == []

    def test_schema_errors_name_the_variable(self):
        errors = validate_environment({"CDP_OVERFLOW_LIMIT": "0", "CDP_LOG_LEVEL": "chatty"})
        assert len(errors) == 2
        assert any(e.startswith("CDP_OVERFLOW_LIMIT:") for e in errors)
        assert any(e.startswith("CDP_LOG_LEVEL:") for e in errors)

    def test_parse_error_reported(self):
        assert validate_environment({"CDP_DETAIL_OVERFLOW_LIMIT": "ten"}) == [
            "CDP_DETAIL_OVERFLOW_LIMIT: 'ten' is not an integer"
        ]


class TestLoadSettings:

    def test_from_file(self, clean_env, temp_config_dir):
        settings = load_settings(temp_config_dir / "dashboard_settings.json")
        assert settings.overflow_limit == 5
        assert settings.detail_overflow_limit == 3
        assert settings.hub_name == "Test Hub"
        assert settings.include_info_tier is False

    def test_env_beats_file(self, clean_env, temp_config_dir):
        clean_env.setenv("CDP_OVERFLOW_LIMIT", "9")
        settings = load_settings(temp_config_dir / "dashboard_settings.json")
        assert settings.overflow_limit == 9

    def test_use_env_false(self, clean_env, temp_config_dir):
        clean_env.setenv("CDP_OVERFLOW_LIMIT", "9")
        settings = load_settings(temp_config_dir / "dashboard_settings.json", use_env=False)
        assert settings.overflow_limit == 5

    def test_missing_file_uses_defaults(self, clean_env, tmp_path):
        assert load_settings(tmp_path / "absent.json") == DashboardSettings()

    def test_invalid_file_raises(self, clean_env, invalid_config_file):
        with pytest.raises(ConfigValidationError):
            load_settings(invalid_config_file)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_stdout_handler(self):
        logger = setup_logging("cdp_lineage.test_logging")
        assert logger.level == logging.INFO
        assert len(logger.handlers) == 1
        assert logger.propagate is False

    def test_repeat_calls_do_not_duplicate(self):
        setup_logging("cdp_lineage.test_logging")
        logger = setup_logging("cdp_lineage.test_logging")
        assert len(logger.handlers) == 1

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "dashboard.log"
        logger = setup_logging("cdp_lineage.test_logging_file", log_file=str(log_file), log_to_stdout=False)
        logger.info("hello")
        for handler in logger.handlers:
            handler.flush()
        assert "| INFO | cdp_lineage.test_logging_file | hello" in log_file.read_text(encoding="utf-8")
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    def test_level_names(self):
        assert resolve_level("debug") == logging.DEBUG
        assert resolve_level(" Warning ") == logging.WARNING
        assert resolve_level(logging.ERROR) == logging.ERROR
        with pytest.raises(ValueError, match="Unknown log level"):
            resolve_level("chatty")

    def test_configure_from_settings(self, tmp_path):
        log_file = tmp_path / "settings.log"
        logger = configure_logging(DashboardSettings(log_level="WARNING", log_file=str(log_file)))
        assert logger.name == "cdp_lineage"
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 2

    def test_verbose_and_cli_file_win(self, tmp_path):
        cli_file = tmp_path / "cli.log"
        logger = configure_logging(
            DashboardSettings(log_level="ERROR", log_file=str(tmp_path / "settings.log")),
            verbose=True,
            log_file=str(cli_file),
        )
        assert logger.level == logging.DEBUG
        logging.getLogger("cdp_lineage.core.aggregator").debug("engine message")
        for handler in logger.handlers:
            handler.flush()
        assert "engine message" in cli_file.read_text(encoding="utf-8")
        assert not (tmp_path / "settings.log").exists()

    def test_server_logs_share_handlers(self):
        logger = setup_logging()
        route_server_logs(logger)
        access = logging.getLogger("uvicorn.access")
        assert access.handlers == logger.handlers
        assert access.propagate is False
