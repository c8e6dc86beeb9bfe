"""
Load daily bars from pandas DataFrames or CSV files into DataSources.
Equity columns: time|date, open, high, low, close[, volume].
Option columns: time|date, bid, ask, expiration, strike, is_put|right[, underlying].
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

import pandas as pd

from market_sim.core.errors import DataUnavailableError
from market_sim.core.types import Bar, OptionBar
from market_sim.instruments.data_source import DataSource

logger = logging.getLogger("market_sim.data")

EQUITY_COLUMNS = ("open", "high", "low", "close")
OPTION_COLUMNS = ("bid", "ask", "expiration", "strike")


def _normalize(df: pd.DataFrame, required: Iterable[str]) -> pd.DataFrame:
    """Lower-case columns, resolve the date column, sort by date, drop duplicate dates."""
    df = df.rename(columns={c: str(c).strip().lower() for c in df.columns})
    if "time" not in df.columns:
        if "date" in df.columns:
            df = df.rename(columns={"date": "time"})
        elif isinstance(df.index, pd.DatetimeIndex):
            df = df.rename_axis("time").reset_index()
        else:
            raise ValueError("bar frame needs a 'time' or 'date' column")
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"bar frame is missing columns: {', '.join(missing)}")
    df = df.assign(time=pd.to_datetime(df["time"]).dt.date)
    df = df.sort_values("time", kind="mergesort")
    dupes = df["time"].duplicated(keep="last")
    if dupes.any():
        logger.warning("Dropping %d duplicate date row(s)", int(dupes.sum()))
        df = df[~dupes]
    return df


def bars_from_frame(df: pd.DataFrame) -> List[Bar]:
    """Equity bars; rows without a close are skipped."""
    df = _normalize(df, EQUITY_COLUMNS)
    df = df.dropna(subset=["close"])
    volume = df["volume"] if "volume" in df.columns else pd.Series(0.0, index=df.index)
    return [
        Bar(time=t, open=float(o), high=float(h), low=float(lo), close=float(c), volume=float(v or 0.0))
        for t, o, h, lo, c, v in zip(df["time"], df["open"], df["high"], df["low"], df["close"], volume.fillna(0.0))
    ]


def _is_put(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("p", "put", "true", "1")
    return bool(value)


def option_bars_from_frame(df: pd.DataFrame, underlying: Optional[str] = None) -> List[OptionBar]:
    """Option quote bars. `underlying` overrides an 'underlying' column."""
    df = _normalize(df, OPTION_COLUMNS)
    if "is_put" in df.columns:
        puts = df["is_put"].map(_is_put)
    elif "right" in df.columns:
        puts = df["right"].map(_is_put)
    else:
        raise ValueError("option frame needs an 'is_put' or 'right' column")
    if underlying is None:
        if "underlying" not in df.columns:
            raise ValueError("option frame needs an underlying symbol")
        underlyings = df["underlying"].astype(str).str.upper()
    else:
        underlyings = pd.Series(underlying.upper(), index=df.index)
    expirations = pd.to_datetime(df["expiration"]).dt.date
    bid_volume = df["bid_volume"] if "bid_volume" in df.columns else pd.Series(0.0, index=df.index)
    ask_volume = df["ask_volume"] if "ask_volume" in df.columns else pd.Series(0.0, index=df.index)
    return [
        OptionBar(
            time=t, bid=float(b), ask=float(a), expiration=e, strike=float(k),
            is_put=bool(p), underlying=u, bid_volume=float(bv), ask_volume=float(av),
        )
        for t, b, a, e, k, p, u, bv, av in zip(
            df["time"], df["bid"], df["ask"], expirations, df["strike"], puts, underlyings,
            bid_volume.fillna(0.0), ask_volume.fillna(0.0),
        )
    ]


def load_csv(
    path: Union[str, Path],
    symbol: Optional[str] = None,
    name: Optional[str] = None,
    underlying: Optional[str] = None,
) -> DataSource:
    """
    Load one CSV into a DataSource. The symbol defaults to the file stem; a file
    with bid/ask columns is read as option quotes.
    """
    path = Path(path)
    if not path.exists():
        raise DataUnavailableError(symbol or path.stem, f"data file not found: {path}")
    df = pd.read_csv(path)
    symbol = symbol or path.stem
    columns = {str(c).strip().lower() for c in df.columns}
    if {"bid", "ask"} <= columns:
        bars = option_bars_from_frame(df, underlying)
    else:
        bars = bars_from_frame(df)
    logger.info("Loaded %d bars for %s from %s", len(bars), symbol.upper(), path)
    return DataSource(symbol, bars, name=name, underlying=underlying)


def load_directory(data_dir: Union[str, Path], symbols: Iterable[str]) -> List[DataSource]:
    """Load `<data_dir>/<SYMBOL>.csv` for each symbol."""
    data_dir = Path(data_dir)
    return [load_csv(data_dir / f"{s.upper()}.csv", symbol=s) for s in symbols]
