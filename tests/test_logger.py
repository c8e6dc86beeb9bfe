"""Unit tests for core.logger."""

import json
import logging

from market_sim.core.logger import JsonFormatter, setup_logging


def test_setup_logging_file_handler(tmp_path):
    logger = setup_logging("DEBUG", tmp_path, "sim.log")
    assert logger.name == "market_sim"
    assert logger.level == logging.DEBUG
    logging.getLogger("market_sim.backtest").info("hello")
    for handler in logger.handlers:
        handler.flush()
    assert "hello" in (tmp_path / "sim.log").read_text(encoding="utf-8")
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()


def test_json_formatter():
    record = logging.LogRecord("market_sim.x", logging.WARNING, __file__, 1, "dropped %d", (3,), None)
    payload = json.loads(JsonFormatter().format(record))
    assert payload["level"] == "WARNING"
    assert payload["message"] == "dropped 3"
