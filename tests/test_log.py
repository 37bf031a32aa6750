import logging

import pytest

from briks.log import configure_logging


@pytest.fixture
def briks_logger():
    logger = logging.getLogger("briks")
    handlers, level = list(logger.handlers), logger.level

    yield logger

    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()

    logger.handlers = handlers
    logger.setLevel(level)


def test_log_configure_logging(briks_logger, tmp_path):
    path = tmp_path / "briks.log"

    assert configure_logging(path, "INFO") is briks_logger
    assert briks_logger.level == logging.INFO

    logging.getLogger("briks.decoder").info("dropped sequence")
    logging.getLogger("briks.decoder").debug("not recorded")

    for handler in briks_logger.handlers:
        handler.flush()

    content = path.read_text(encoding="utf-8")

    assert "briks.decoder: dropped sequence" in content
    assert "not recorded" not in content


def test_log_configure_logging_once(briks_logger, tmp_path, monkeypatch):
    monkeypatch.setenv("BRIKS_LOG", str(tmp_path / "env.log"))
    monkeypatch.delenv("BRIKS_LOG_LEVEL", raising=False)

    configure_logging()
    configure_logging(tmp_path / "other.log")

    file_handlers = [
        handler
        for handler in briks_logger.handlers
        if isinstance(handler, logging.FileHandler)
    ]

    assert len(file_handlers) == 1
    assert briks_logger.level == logging.DEBUG
    assert (tmp_path / "env.log").exists()
    assert not (tmp_path / "other.log").exists()
