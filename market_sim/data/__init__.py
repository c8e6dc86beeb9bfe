"""Data loading: pandas frames and CSV files into DataSources."""

from market_sim.data.loader import bars_from_frame, option_bars_from_frame, load_csv, load_directory

__all__ = ["bars_from_frame", "option_bars_from_frame", "load_csv", "load_directory"]
