import logging

from pcapdj.utils import get_logger, log


class Collect(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


def test_child_loggers_reach_package_handlers():
    h = Collect()
    log.addHandler(h)
    try:
        get_logger("feed").error("Could not open filename x.pcap")
        get_logger("feed").debug("below the package level")
    finally:
        log.removeHandler(h)
    assert [r.name for r in h.records] == ["pcapdj.feed"]
    assert h.records[0].getMessage() == "Could not open filename x.pcap"


def test_get_logger_without_name_is_the_package_logger():
    assert get_logger() is log
    assert log.propagate is False
