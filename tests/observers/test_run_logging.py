import logging

import pytest

from seedling.logging.log import LIBRARY_LOGGERS, init_logging, log_dir


@pytest.fixture
def restore_loggers():
    names = ("seedling-test",) + LIBRARY_LOGGERS
    saved = {}
    for n in names:
        lg = logging.getLogger(n)
        saved[n] = (list(lg.handlers), lg.level, lg.propagate)
    yield
    for n, (handlers, level, propagate) in saved.items():
        lg = logging.getLogger(n)
        for h in lg.handlers:
            if h not in handlers:
                h.close()
        lg.handlers[:] = handlers
        lg.setLevel(level)
        lg.propagate = propagate


def test_init_logging_writes_run_log(tmp_path, restore_loggers):
    logger, run_id, log_path = init_logging(base_dir=tmp_path, name="seedling-test")
    logger.debug("connecting")
    logging.getLogger("paramiko.transport").warning("banner timeout")

    for h in logger.handlers:
        h.flush()
    assert log_path.parent == tmp_path
    assert run_id in log_path.name
    text = log_path.read_text()
    assert "connecting" in text
    assert "banner timeout" in text


def test_console_level_follows_verbose(tmp_path, restore_loggers):
    logger, _, _ = init_logging(base_dir=tmp_path, name="seedling-test")
    console = [h for h in logger.handlers if not isinstance(h, logging.FileHandler)][0]
    assert console.level == logging.WARNING

    logger, _, _ = init_logging(base_dir=tmp_path, name="seedling-test", verbose=True)
    console = [h for h in logger.handlers if not isinstance(h, logging.FileHandler)][0]
    assert console.level == logging.DEBUG


def test_log_dir_env(monkeypatch, tmp_path):
    monkeypatch.setenv("SEEDLING_LOG_DIR", str(tmp_path))
    assert log_dir() == tmp_path
