import logging

import pytest

from suipanel import logger
from suipanel.logger import LogBuffer


def test_newest_first_and_format():
    buf = LogBuffer()
    buf.add("INFO", "first")
    buf.add("ERROR", "second")
    lines = buf.get_logs(10, "debug")
    assert lines[0].endswith(" ERROR - second")
    assert lines[1].endswith(" INFO - first")


def test_level_filter_keeps_more_severe():
    buf = LogBuffer()
    buf.add("DEBUG", "d")
    buf.add("INFO", "i")
    buf.add("WARNING", "w")
    buf.add("ERROR", "e")
    lines = buf.get_logs(10, "warning")
    assert [line.rsplit(" - ", 1)[1] for line in lines] == ["e", "w"]


def test_unknown_level_acts_as_error():
    buf = LogBuffer()
    buf.add("INFO", "i")
    buf.add("ERROR", "e")
    assert buf.get_logs(10, "nonsense") == buf.get_logs(10, "error")


def test_count_bound_allows_one_extra():
    buf = LogBuffer()
    for n in range(5):
        buf.add("INFO", str(n))
    count = 2
    assert len(buf.get_logs(count, "debug")) == count + 1


def test_buffer_is_bounded():
    buf = LogBuffer()
    total = 10241
    for n in range(total):
        buf.add("INFO", str(n))
    lines = buf.get_logs(20000, "debug")
    assert len(lines) == 10240
    assert lines[-1].endswith(" - 1")


def test_module_functions_feed_buffer():
    logger.error("a", 1)
    assert logger.get_logs(0, "error")[0].endswith("ERROR - a1")
    logger.error(1, 2)
    assert logger.get_logs(0, "error")[0].endswith("ERROR - 1 2")


def test_formatted_variant():
    logger.infof("x=%v", 5)
    assert logger.get_logs(0, "info")[0].endswith("INFO - x=5")


def test_warning_not_shown_at_error_level():
    logger.warningf("careful %s", "now")
    logger.errorf("bad %s", "thing")
    assert all(" WARNING - " not in line for line in logger.get_logs(50, "error"))


def test_init_logger_sets_level():
    log = logger.init_logger("warn")
    assert log is logger.get_logger()
    assert log.level == logging.WARNING
    assert len(log.handlers) == 1


def test_init_logger_rejects_unknown_level():
    with pytest.raises(ValueError):
        logger.init_logger("chatty")