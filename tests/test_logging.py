import json
import logging

import pytest
from flask import Flask

import app as catalog_app


@pytest.fixture
def shared_loggers():
    saved = {}
    for name in catalog_app._SHARED_LOGGERS:
        logger = logging.getLogger(name)
        saved[name] = (logger.handlers[:], logger.level, logger.propagate)
    yield
    for name, (handlers, level, propagate) in saved.items():
        logger = logging.getLogger(name)
        logger.handlers = handlers
        logger.setLevel(level)
        logger.propagate = propagate


def _json_lines(text):
    return [json.loads(line) for line in text.splitlines() if line.startswith("{")]


def test_file_handler_fallback_warning_is_json(tmp_path, capsys, shared_loggers):  # noqa: ARG001
    not_a_dir = tmp_path / "instance"
    not_a_dir.write_text("occupied", encoding="utf-8")
    flask_app = Flask(__name__, instance_path=str(not_a_dir))

    catalog_app._configure_logging(flask_app)

    assert len(flask_app.logger.handlers) == 1
    records = _json_lines(capsys.readouterr().err)
    warning = next(r for r in records if r["msg"].startswith("Logging to stderr only"))
    assert warning["level"] == "WARNING"
    assert warning["request_id"] == "startup"


def test_request_logs_carry_request_id(tmp_path, capsys, shared_loggers):  # noqa: ARG001
    flask_app = Flask(__name__, instance_path=str(tmp_path / "instance"))
    catalog_app._configure_logging(flask_app)

    with flask_app.test_request_context("/api/cards", headers={"X-Request-ID": "rid-1"}):
        from flask import g

        g.request_id = "rid-1"
        flask_app.logger.info("hello")

    record = _json_lines(capsys.readouterr().err)[-1]
    assert record["msg"] == "hello"
    assert record["request_id"] == "rid-1"
    assert record["path"] == "/api/cards"
    assert record["method"] == "GET"
