"""Tests for structured logging configuration."""
import json
import logging
import os
from unittest.mock import patch

import pytest

from adstats.logging_config import configure_logging, JSONFormatter


@pytest.fixture(autouse=True)
def _reset_root_logger():
    """Reset root logger state after each test."""
    root = logging.getLogger()
    original_level = root.level
    original_handlers = root.handlers[:]
    yield
    root.setLevel(original_level)
    root.handlers = original_handlers


class TestConfigureLogging:

    def test_default_level_is_info(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop('LOG_LEVEL', None)
            configure_logging()
        assert logging.getLogger().level == logging.INFO

    def test_log_level_case_insensitive(self):
        with patch.dict(os.environ, {'LOG_LEVEL': 'debug'}):
            configure_logging()
        assert logging.getLogger().level == logging.DEBUG

    def test_invalid_log_level_defaults_to_info(self):
        with patch.dict(os.environ, {'LOG_LEVEL': 'NONSENSE'}):
            configure_logging()
        assert logging.getLogger().level == logging.INFO

    def test_text_format(self, capsys):
        with patch.dict(os.environ, {'LOG_FORMAT': 'text', 'LOG_LEVEL': 'INFO'}):
            configure_logging()
        logging.getLogger('pipeline.test').info("synced %d rows", 3)
        output = capsys.readouterr().err
        assert 'pipeline.test' in output
        assert 'synced 3 rows' in output
        assert 'INFO' in output

    def test_json_format_merges_fields(self, capsys):
        with patch.dict(os.environ, {'LOG_FORMAT': 'json', 'LOG_LEVEL': 'INFO'}):
            configure_logging()
        logging.getLogger('pipeline.processor').info(
            "sync summary", extra={'fields': {'tenant_id': 't-1', 'rows_written': 4}})
        parsed = json.loads(capsys.readouterr().err.strip())
        assert parsed['message'] == 'sync summary'
        assert parsed['logger'] == 'pipeline.processor'
        assert parsed['tenant_id'] == 't-1'
        assert parsed['rows_written'] == 4

    def test_json_format_includes_exception(self, capsys):
        with patch.dict(os.environ, {'LOG_FORMAT': 'json', 'LOG_LEVEL': 'INFO'}):
            configure_logging()
        try:
            raise ValueError("boom")
        except ValueError:
            logging.getLogger('test.exc').error("failed", exc_info=True)
        parsed = json.loads(capsys.readouterr().err.strip())
        assert parsed['level'] == 'ERROR'
        assert 'ValueError' in parsed['exception']

    def test_third_party_loggers_quieted_to_warning(self):
        configure_logging()
        for name in ['urllib3', 'rq.worker', 'apscheduler']:
            assert logging.getLogger(name).level == logging.WARNING

    def test_no_duplicate_handlers_on_repeated_calls(self):
        configure_logging()
        configure_logging()
        assert len(logging.getLogger().handlers) == 1


class TestJSONFormatter:

    def _record(self, **extra):
        record = logging.LogRecord(
            name='test', level=logging.INFO, pathname='', lineno=0,
            msg='hello %s', args=('world',), exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_format_basic_record(self):
        parsed = json.loads(JSONFormatter().format(self._record()))
        assert parsed['message'] == 'hello world'
        assert parsed['level'] == 'INFO'

    def test_fields_do_not_override_core_keys(self):
        parsed = json.loads(JSONFormatter().format(self._record(fields={'message': 'spoofed', 'job_id': 'j1'})))
        assert parsed['message'] == 'hello world'
        assert parsed['job_id'] == 'j1'

    def test_non_serialisable_fields_are_stringified(self):
        from datetime import date
        parsed = json.loads(JSONFormatter().format(self._record(fields={'date': date(2026, 3, 10)})))
        assert parsed['date'] == '2026-03-10'
