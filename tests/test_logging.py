"""Tests for logger setup and URL redaction."""

import logging

from stealth_search.utils.logging import get_logger, safe_url


def test_safe_url_strips_query_and_credentials() -> None:
    assert (
        safe_url("https://user:pw@www.google.com/search?q=secret#frag")
        == "https://www.google.com/search"
    )
    assert safe_url("http://proxy.example.net:8080/a?b=c") == "http://proxy.example.net:8080/a"


def test_get_logger_configures_once(monkeypatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "debug")

    logger = get_logger("stealth_search.tests.logging")
    again = get_logger("stealth_search.tests.logging")

    assert logger is again
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
