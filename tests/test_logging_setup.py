import logging

from capclient.logging_setup import setup_logging


def test_setup_logging_format_and_quiet_urllib3(monkeypatch):
    seen = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: seen.update(kwargs))
    monkeypatch.setattr(logging.getLogger("urllib3"), "level", logging.NOTSET)

    logger = setup_logging("debug")

    assert seen["format"] == "%(asctime)s %(levelname)s %(message)s"
    assert seen["level"] == logging.DEBUG
    assert logging.getLogger("urllib3").level == logging.WARNING
    assert logger.name == "capclient"
