"""Instruments: bar histories and their engine-attached views."""

from market_sim.instruments.data_source import DataSource, data_source_from_closes
from market_sim.instruments.instrument import Instrument, InstrumentView

__all__ = ["DataSource", "data_source_from_closes", "Instrument", "InstrumentView"]
