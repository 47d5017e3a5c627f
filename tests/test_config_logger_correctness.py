import logging
from datetime import datetime

import pytest

from chartscan.analyzer.structural import (
    CupAndHandleSettings, PositionalBreakoutSettings, SwingBreakoutSettings, TieredBreakoutSettings,
    TieredPositionalSettings
)
from chartscan.config.loader import Config, ConfigError, load_config
from chartscan.logger.logger import Logger


@pytest.fixture
def ini_file(tmp_path):
    path = tmp_path / "config.ini"
    path.write_text(
        "[debug]\nlogger_debug = true\n\n"
        "[directories]\nlog_dir = custom_logs\n\n"
        "[scanner]\nbenchmark_return_65d = 4.5\n\n"
        "[swing_breakout]\nmin_rows = 70\nmax_consolidation_range = 0.08\n\n"
        "[positional_breakout]\nmin_rr_for_tier1 = 1\n\n"
        "[cup_and_handle]\nallow_post_breakout = false\nmin_confidence_score = 80\n",
        encoding="utf-8",
    )
    return path


def test_defaults_without_files(tmp_path):
    config = Config(ini_path=tmp_path / "none.ini", env_path=tmp_path / "none.env")
    assert config.LOGGER_DEBUG is False
    assert config.LOG_DIR == "logs"
    assert config.LOG_TO_FILE is False
    assert config.BENCHMARK_RETURN_65D == 0.0
    assert config.BENCHMARK_RETURN_20D == 0.0
    assert config.SWING_BREAKOUT == {}
    assert SwingBreakoutSettings.from_config(config) == SwingBreakoutSettings()


def test_ini_values_are_typed(ini_file, tmp_path):
    config = load_config(ini_file, tmp_path / "none.env")
    assert config.LOGGER_DEBUG is True
    assert config.LOG_DIR == "custom_logs"
    assert config.BENCHMARK_RETURN_65D == 4.5
    assert config.get_config('swing_breakout', 'min_rows') == 70
    assert config.get_config('swing_breakout', 'missing', 'fallback') == 'fallback'


def test_settings_from_config(ini_file, tmp_path):
    config = load_config(ini_file, tmp_path / "none.env")

    swing = SwingBreakoutSettings.from_config(config)
    assert swing.min_rows == 70
    assert swing.max_consolidation_range == 0.08
    assert swing.consolidation_min_days == 5

    positional = PositionalBreakoutSettings.from_config(config)
    assert positional.min_rr_for_tier1 == 1.0
    assert isinstance(positional.min_rr_for_tier1, float)

    cup = CupAndHandleSettings.from_config(config)
    assert cup.allow_post_breakout is False
    assert cup.min_confidence_score == 80.0


def test_settings_without_config_use_defaults():
    assert PositionalBreakoutSettings.from_config(None).min_bars == 200


def test_env_file_overrides_ini(ini_file, tmp_path):
    env = tmp_path / "scanner.env"
    env.write_text("CHARTSCAN_SWING_BREAKOUT__MIN_ROWS=80\nOTHER_KEY=value\n", encoding="utf-8")
    config = Config(ini_path=ini_file, env_path=env)

    assert SwingBreakoutSettings.from_config(config).min_rows == 80
    assert config.get_env('OTHER_KEY') == 'value'
    assert config.get_section('other_key') == {}


def test_reload_picks_up_changes(ini_file, tmp_path):
    config = Config(ini_path=ini_file, env_path=tmp_path / "none.env")
    ini_file.write_text("[scanner]\nbenchmark_return_65d = 9\n", encoding="utf-8")
    config.reload()
    assert config.BENCHMARK_RETURN_65D == 9.0
    assert config.SWING_BREAKOUT == {}


def test_malformed_ini_raises(tmp_path):
    path = tmp_path / "broken.ini"
    path.write_text("min_rows = 60\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        Config(ini_path=path, env_path=tmp_path / "none.env")


def test_non_integer_setting_is_rejected(tmp_path):
    path = tmp_path / "config.ini"
    path.write_text("[swing_breakout]\nmin_rows = 60.5\n", encoding="utf-8")
    config = Config(ini_path=path, env_path=tmp_path / "none.env")
    with pytest.raises(ValueError):
        SwingBreakoutSettings.from_config(config)


def test_logger_writes_dated_files(tmp_path):
    logger = Logger("scan_test", log_filename_prefix="cs_", log_dir=str(tmp_path),
                    logger_debug=True, log_to_file=True)
    logger.info("scan started")
    logger.error("scan failed")
    for handler in logger.handlers:
        handler.flush()

    today = datetime.now().strftime("%Y_%m_%d")
    main_log = tmp_path / "scan_test" / today / "cs_scan_test.log"
    error_log = tmp_path / "errors" / today / "cs_scan_test.log"
    assert "scan started" in main_log.read_text(encoding="utf-8")
    error_text = error_log.read_text(encoding="utf-8")
    assert "scan failed" in error_text
    assert "scan started" not in error_text

    for handler in logger.handlers:
        handler.close()


def test_logger_levels_and_console_only(tmp_path):
    quiet = Logger("quiet", log_dir=str(tmp_path), logger_debug=False, log_to_file=False)
    assert quiet.level == logging.INFO
    assert len(quiet.handlers) == 1
    assert not (tmp_path / "quiet").exists()

    verbose = Logger("a/b", log_dir=str(tmp_path), logger_debug=True, log_to_file=False)
    assert verbose.name == "a_b"
    assert verbose.level == logging.DEBUG


def test_tiered_settings_sections(tmp_path):
    ini = tmp_path / "config.ini"
    ini.write_text("[tiered_swing]\ntier_2b_distance_pct = 6\n\n"
                   "[tiered_positional]\nmin_bars = 150\n", encoding="utf-8")
    config = Config(ini_path=ini, env_path=tmp_path / "none.env")

    swing = TieredBreakoutSettings.from_config(config)
    assert swing.tier_2b_distance_pct == 6.0
    assert swing.min_bars == 60

    positional = TieredPositionalSettings.from_config(config)
    assert positional.min_bars == 150
    assert positional.tier_2b_distance_pct == 8.0
    assert positional.consolidation_max_days == 60
