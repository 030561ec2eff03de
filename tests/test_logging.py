from __future__ import annotations

import logging

from livescribe import logging as app_logging


def test_configure_logging_adjusts_level_after_first_call(monkeypatch) -> None:
    monkeypatch.setattr(app_logging, "_LOGGER_CONFIGURED", True)
    root = logging.getLogger()
    monkeypatch.setattr(root, "level", root.level)

    app_logging.configure_logging("debug")
    assert root.level == logging.DEBUG

    app_logging.configure_logging("not-a-level")
    assert root.level == logging.INFO


def test_get_logger_defaults_to_package_name() -> None:
    assert app_logging.get_logger().name == "livescribe"
    assert app_logging.get_logger("livescribe.cli").name == "livescribe.cli"
