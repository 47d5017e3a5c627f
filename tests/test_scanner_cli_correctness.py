import json

import numpy as np
import pytest

from chartscan.analyzer.pattern_engine import CANDLESTICK_PATTERNS
from chartscan.analyzer.scanner import PatternScanner, scan_series
from chartscan.cli import load_csv, main, parse_args
from chartscan.config.loader import Config
from chartscan.utils.series import ChartscanError, PriceSeries


def _write_csv(path, rows, header="Date,Open,High,Low,Close,Volume"):
    start = np.datetime64('2024-01-01')
    lines = [header]
    for i, row in enumerate(rows):
        lines.append(",".join([str(start + i)] + [str(value) for value in row]))
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def test_scan_record_for_swing_breakout(make_series, swing_rows):
    record = scan_series(make_series(swing_rows), "SWING")

    assert record.symbol == "SWING"
    assert record.bars == 61
    assert record.swing_breakout.match
    assert not record.positional_breakout.match
    assert record.positional_breakout.fail_reason == "Need 200+ bars, got 61"
    assert record.has_structural_match
    assert set(record.candlestick_patterns) <= set(CANDLESTICK_PATTERNS)
    assert record.tiered_breakout.tier == "1"
    assert {"fresh-52w-high", "ath-breakout"} <= set(record.positional_signals)
    for name in record.divergences:
        indicator_id, div_type = name.split(":")
        assert indicator_id.endswith("_divergence")

    data = record.to_dict()
    assert data['swing_breakout']['consolidation']['high'] == 121.0
    assert data['tiered_breakout']['tier_classification']['tier'] == "1"
    json.dumps(data, default=str)


def test_scan_record_for_cup_and_handle(make_series, cup_rows):
    record = PatternScanner().scan(make_series(cup_rows), "CUP")
    assert record.cup_and_handle.match
    assert record.has_structural_match


def test_empty_series_is_not_scanned():
    record = PatternScanner().scan(PriceSeries([], [], [], [], [], []), "EMPTY")
    assert record.bars == 0
    assert record.scan_date == ""
    assert record.swing_breakout is None
    assert record.tiered_breakout is None
    assert record.positional_signals == []
    assert not record.has_structural_match


def test_scanner_reads_thresholds_from_config(tmp_path, make_series, swing_rows):
    ini = tmp_path / "config.ini"
    ini.write_text("[swing_breakout]\nmin_rows = 100\n", encoding="utf-8")
    config = Config(ini_path=ini, env_path=tmp_path / "missing.env")

    record = PatternScanner(config).scan(make_series(swing_rows), "CFG")
    assert not record.swing_breakout.match
    assert record.swing_breakout.failure.details == {'rows': 61, 'required': 100}


def test_load_csv_normalises_and_sorts(tmp_path):
    path = tmp_path / "INFY.csv"
    path.write_text(
        " Date ,Open,High,Low,Close,Volume\n"
        "2024-01-03,3,4,2,3.5,300\n"
        "2024-01-01,1,2,0.5,1.5,100\n"
        "2024-01-02,2,3,1.5,2.5,\n"
        "2024-01-03,3,4,2,3.8,350\n",
        encoding="utf-8",
    )
    series = load_csv(path)
    assert series.dates == ['2024-01-01', '2024-01-02', '2024-01-03']
    assert series.close.tolist() == [1.5, 2.5, 3.8]
    assert series.volume.tolist() == [100.0, 0.0, 350.0]


def test_load_csv_without_volume(tmp_path):
    path = tmp_path / "TCS.csv"
    path.write_text("date,open,high,low,close\n2024-01-01,1,2,0.5,1.5\n", encoding="utf-8")
    assert load_csv(path).volume.tolist() == [0.0]


def test_load_csv_missing_columns(tmp_path):
    path = tmp_path / "BAD.csv"
    path.write_text("date,open,close\n2024-01-01,1,1.5\n", encoding="utf-8")
    with pytest.raises(ChartscanError, match="missing columns"):
        load_csv(path)


def test_parse_args():
    args = parse_args(["a.csv", "b.csv", "--matches-only", "-c", "x.ini"])
    assert args.files == ["a.csv", "b.csv"]
    assert args.matches_only
    assert args.config == "x.ini"
    assert args.symbol is None


def test_main_prints_scan_records(tmp_path, capsys, swing_rows):
    csv_path = _write_csv(tmp_path / "INFY.csv", swing_rows)
    exit_code = main([str(csv_path), "-c", str(tmp_path / "missing.ini")])

    assert exit_code == 0
    out = capsys.readouterr().out
    assert '"symbol": "INFY"' in out
    assert '"swing_breakout"' in out


def test_main_symbol_override(tmp_path, capsys, swing_rows):
    csv_path = _write_csv(tmp_path / "data.csv", swing_rows)
    assert main([str(csv_path), "-s", "RELIANCE", "-c", str(tmp_path / "missing.ini")]) == 0
    assert '"symbol": "RELIANCE"' in capsys.readouterr().out


def test_main_matches_only_skips_plain_series(tmp_path, capsys):
    rows = [[100.0, 100.5, 99.5, 100.0, 1000]] * 70
    csv_path = _write_csv(tmp_path / "FLAT.csv", rows)
    assert main([str(csv_path), "--matches-only", "-c", str(tmp_path / "missing.ini")]) == 0
    assert '"symbol"' not in capsys.readouterr().out


def test_main_errors(tmp_path, swing_rows):
    missing_ini = str(tmp_path / "missing.ini")
    bad = tmp_path / "BAD.csv"
    bad.write_text("date,close\n2024-01-01,1\n", encoding="utf-8")
    assert main([str(bad), "-c", missing_ini]) == 1
    assert main([str(tmp_path / "nope.csv"), "-c", missing_ini]) == 1

    first = _write_csv(tmp_path / "A.csv", swing_rows)
    second = _write_csv(tmp_path / "B.csv", swing_rows)
    assert main([str(first), str(second), "-s", "X", "-c", missing_ini]) == 2
