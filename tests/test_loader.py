"""Unit tests for data.loader."""

from datetime import date

import pandas as pd
import pytest
from market_sim.core.errors import DataUnavailableError
from market_sim.data.loader import bars_from_frame, load_csv, load_directory, option_bars_from_frame


def test_bars_from_frame_sorts_and_dedupes():
    df = pd.DataFrame({
        "Date": ["2019-01-03", "2019-01-02", "2019-01-03"],
        "Open": [2.0, 1.0, 3.0],
        "High": [2.0, 1.0, 3.0],
        "Low": [2.0, 1.0, 3.0],
        "Close": [2.0, 1.0, 3.0],
    })
    bars = bars_from_frame(df)
    assert [b.time for b in bars] == [date(2019, 1, 2), date(2019, 1, 3)]
    assert bars[-1].close == 3.0
    assert bars[0].volume == 0.0


def test_bars_from_frame_datetime_index():
    df = pd.DataFrame(
        {"open": [1.0], "high": [1.0], "low": [1.0], "close": [1.0], "volume": [10]},
        index=pd.DatetimeIndex(["2019-01-02"]),
    )
    assert bars_from_frame(df)[0].time == date(2019, 1, 2)


def test_missing_columns():
    with pytest.raises(ValueError):
        bars_from_frame(pd.DataFrame({"time": ["2019-01-02"], "close": [1.0]}))


def test_option_bars_from_frame():
    df = pd.DataFrame({
        "time": ["2019-01-02", "2019-01-03"],
        "bid": [87.4, 80.0],
        "ask": [88.4, 81.0],
        "expiration": ["2019-01-17", "2019-01-17"],
        "strike": [1845, 1845],
        "right": ["C", "P"],
    })
    bars = option_bars_from_frame(df, underlying="spx")
    assert bars[0].underlying == "SPX"
    assert bars[0].expiration == date(2019, 1, 17)
    assert [b.is_put for b in bars] == [False, True]
    assert bars[0].close == pytest.approx(87.9)


def test_load_csv(tmp_path):
    path = tmp_path / "SPY.csv"
    path.write_text(
        "date,open,high,low,close,volume\n"
        "2019-01-02,250,252,249,251,1000\n"
        "2019-01-03,251,251,245,246,1200\n",
        encoding="utf-8",
    )
    ds = load_csv(path)
    assert ds.symbol == "SPY"
    assert len(ds) == 2
    assert not ds.is_option
    assert load_directory(tmp_path, ["spy"])[0].last_date == date(2019, 1, 3)


def test_load_csv_option_file(tmp_path):
    path = tmp_path / "SPXC1845.csv"
    path.write_text(
        "time,bid,ask,expiration,strike,is_put,underlying\n"
        "2019-01-02,87.4,88.4,2019-01-17,1845,false,spx\n",
        encoding="utf-8",
    )
    ds = load_csv(path)
    assert ds.is_option
    assert ds.underlying == "SPX"
    assert ds.bars[0].is_put is False


def test_load_csv_missing_file(tmp_path):
    with pytest.raises(DataUnavailableError):
        load_csv(tmp_path / "NOPE.csv")
