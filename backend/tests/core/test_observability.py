"""Log formatting - extras survive into both JSON and text output."""

import json
import logging

from clarity_crm.infrastructure.observability import JSONFormatter, TextFormatter, setup_logging


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("clarity_crm.test", logging.INFO, __file__, 1, "Deal created", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_known_extras():
    line = JSONFormatter().format(_record(user_id="u1", resource_id="d1", secret="x"))
    log = json.loads(line)
    assert log["message"] == "Deal created"
    assert log["service"] == "clarity-crm-api"
    assert log["user_id"] == "u1"
    assert log["resource_id"] == "d1"
    assert "secret" not in log


def test_text_formatter_appends_extras():
    line = TextFormatter().format(_record(status_code=201))
    assert "Deal created" in line
    assert line.endswith("| status_code=201")


def test_setup_logging_quiets_sql_echo():
    handlers, level = logging.root.handlers[:], logging.root.level
    try:
        setup_logging("debug", "text")
        assert logging.root.level == logging.DEBUG
        assert isinstance(logging.root.handlers[0].formatter, TextFormatter)
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    finally:
        logging.root.handlers = handlers
        logging.root.setLevel(level)
