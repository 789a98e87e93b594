import logging
import sys

from logging_config import setup_logging


def test_configures_root_logger_once(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", root.level)

    setup_logging("debug")
    setup_logging("warning")

    assert len(root.handlers) == 1
    assert root.handlers[0].stream is sys.stdout
    assert root.level == logging.DEBUG


def test_unknown_level_falls_back_to_info(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", root.level)

    setup_logging("chatty")

    assert root.level == logging.INFO
