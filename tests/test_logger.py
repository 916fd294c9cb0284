import logging

import pytest

from workload_inspector.utils.logger import (
    CONSOLE_FORMAT,
    ColoredFormatter,
    get_logger,
    set_logger,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if getattr(handler, "_workload_inspector_handler", False) and handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


def make_record(level=logging.ERROR, msg="pipe broke"):
    return logging.LogRecord("workload_inspector.test", level, __file__, 1, msg, None, None)


def test_colored_formatter_tints_level_name():
    formatter = ColoredFormatter("%(levelname)s %(message)s", use_color=True)
    record = make_record()

    assert formatter.format(record) == "\033[31mERROR\033[0m pipe broke"
    assert record.levelname == "ERROR"


def test_colored_formatter_plain_without_color():
    formatter = ColoredFormatter("%(levelname)s %(message)s", use_color=False)
    assert formatter.format(make_record(logging.INFO)) == "INFO pipe broke"


def test_console_format_names_the_logger():
    formatter = ColoredFormatter(CONSOLE_FORMAT, use_color=False)
    line = formatter.format(make_record(logging.WARNING))
    assert line.endswith("WARNING workload_inspector.test: pipe broke")


def test_set_logger_replaces_its_own_handlers():
    root = logging.getLogger()
    foreign = logging.NullHandler()
    root.addHandler(foreign)

    set_logger("INFO")
    set_logger("DEBUG")

    ours = [h for h in root.handlers if getattr(h, "_workload_inspector_handler", False)]
    assert len(ours) == 1
    assert foreign in root.handlers
    assert root.level == logging.DEBUG


@pytest.mark.parametrize(
    "level, debug, expected",
    [
        ("warning", False, logging.WARNING),
        ("bogus", False, logging.INFO),
        (logging.ERROR, False, logging.ERROR),
        ("ERROR", True, logging.DEBUG),
    ],
)
def test_set_logger_level(level, debug, expected):
    assert set_logger(level, debug=debug).level == expected


def test_set_logger_writes_log_file(tmp_path):
    log_file = tmp_path / "logs" / "inspector.log"
    set_logger("INFO", log_file=log_file)

    get_logger("workload_inspector.test").info("stage started")
    for handler in logging.getLogger().handlers:
        handler.flush()

    contents = log_file.read_text()
    assert "INFO [pid " in contents
    assert "workload_inspector.test: stage started" in contents
