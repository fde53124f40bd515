from __future__ import annotations

import io
import logging

from ledger_import.logging_setup import configure_logging, get_logger


def test_configure_logging_writes_to_stream_once() -> None:
    buf = io.StringIO()
    configure_logging("WARNING", fmt="%(levelname)s %(message)s", stream=buf)
    # A second call is a no-op and must not add another handler.
    configure_logging("DEBUG", stream=io.StringIO())

    log = get_logger("ledger_import.test")
    log.info("hidden")
    log.warning("shown %d", 1)

    assert buf.getvalue() == "WARNING shown 1\n"
    pkg = logging.getLogger("ledger_import")
    assert len(pkg.handlers) == 1
    assert pkg.propagate is False


def test_level_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("LEDGER_IMPORT_LOG_LEVEL", "debug")
    buf = io.StringIO()
    configure_logging(fmt="%(message)s", stream=buf)

    get_logger("ledger_import.test").debug("details")

    assert buf.getvalue() == "details\n"


def test_unconfigured_logger_is_silent(capsys) -> None:
    get_logger("ledger_import.test").warning("nobody listening")

    pkg = logging.getLogger("ledger_import")
    assert any(isinstance(h, logging.NullHandler) for h in pkg.handlers)
    assert capsys.readouterr().err == ""
