"""Tests for the persistent system log and the logging configuration."""

import json
import logging
from datetime import timedelta

from notevault.core.logging_config import (
    TEXT_DATEFMT,
    TEXT_FORMAT,
    JsonLineFormatter,
    RedactingFilter,
    RequestIdFilter,
    request_id_var,
)
from notevault.database import local_now
from notevault.models import SystemLog
from notevault.services import log_service


class TestSystemLog:

    def test_write_and_read(self, db, user):
        log_service.log(db, "Processed save action", user_id=user.user_id,
                        request_method="POST", request_uri="/api/notes", request_data="{}")
        entries = log_service.get_by_user(db, user.user_id)
        assert [e.message for e in entries] == ["Processed save action"]
        assert entries[0].request_uri == "/api/notes"

    def test_request_data_truncated(self, db):
        log_service.log(db, "big", request_data="x" * (log_service.MAX_REQUEST_DATA + 50))
        entry = log_service.get_recent(db)[0]
        assert len(entry.request_data) == log_service.MAX_REQUEST_DATA

    def test_newest_first(self, db):
        log_service.log(db, "first")
        log_service.log(db, "second")
        assert [e.message for e in log_service.get_recent(db)] == ["second", "first"]

    def test_purge_old_entries(self, db):
        db.add(SystemLog(message="ancient", timestamp=local_now() - timedelta(days=200)))
        db.commit()
        log_service.log(db, "fresh")

        assert log_service.purge_old_entries(db, days=90) == 1
        assert [e.message for e in log_service.get_recent(db)] == ["fresh"]

    def test_purge_disabled(self, db):
        db.add(SystemLog(message="ancient", timestamp=local_now() - timedelta(days=200)))
        db.commit()
        assert log_service.purge_old_entries(db, days=0) == 0
        assert len(log_service.get_recent(db)) == 1

    def test_entries_removed_with_user(self, db, user):
        log_service.log(db, "mine", user_id=user.user_id)
        db.delete(user)
        db.commit()
        assert log_service.get_recent(db) == []


def _record(msg, **extra):
    record = logging.LogRecord("notevault.test", logging.INFO, __file__, 1, msg, (), None)
    record.__dict__.update(extra)
    RequestIdFilter().filter(record)
    return record


class TestLogFormatting:

    def test_json_formatter_merges_extra(self):
        payload = json.loads(JsonLineFormatter().format(_record("saved", noteid=4)))
        assert payload["msg"] == "saved"
        assert payload["noteid"] == 4
        assert payload["level"] == "INFO"
        assert "request_id" not in payload

    def test_json_formatter_includes_request_id(self):
        token = request_id_var.set("req-1")
        try:
            payload = json.loads(JsonLineFormatter().format(_record("hello")))
        finally:
            request_id_var.reset(token)
        assert payload["request_id"] == "req-1"

    def test_text_format_carries_request_id(self):
        token = request_id_var.set("req-2")
        try:
            line = logging.Formatter(TEXT_FORMAT, TEXT_DATEFMT).format(_record("hello"))
        finally:
            request_id_var.reset(token)
        assert "[req-2] notevault.test: hello" in line

    def test_redacting_filter(self):
        record = _record('login password="hunter22" with Bearer abcdefghijklmnopqrstuvwxyz')
        RedactingFilter().filter(record)
        assert "hunter22" not in record.msg
        assert "abcdefghijklmnopqrstuvwxyz" not in record.msg
        assert RedactingFilter.MASK in record.msg

    def test_redacting_filter_formats_args_first(self):
        record = logging.LogRecord("t", logging.INFO, __file__, 1, "remember_token=%s", ("abcdef",), None)
        RedactingFilter().filter(record)
        assert record.getMessage() == "remember_token=[redacted]"
