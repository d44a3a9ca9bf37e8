"""
Tests for log formatters, filters and handlers.
"""

import json
import logging
import threading

import pytest

from http_controller.core.logging import (
    ExtraFieldsFilter,
    JSONFormatter,
    RequestContextFilter,
    TextFormatter,
    clear_request_context,
    create_file_handler,
    get_formatter,
    get_request_context,
    request_context,
    set_request_context,
)


def _record(msg="GET %s -> %s", args=("https://api.example.com/", 200), **extra):
    record = logging.LogRecord(
        name="http_controller.core.dispatcher",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=args,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def clean_context():
    clear_request_context()
    yield
    clear_request_context()

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Formatters
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TestJSONFormatter:

    def test_base_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "http_controller.core.dispatcher"
        assert entry["message"] == "GET https://api.example.com/ -> 200"
        assert entry["timestamp"].endswith("+00:00")

    def test_extra_fields_included(self):
        entry = json.loads(JSONFormatter().format(_record(status_code=404, task_id=3)))

        assert entry["status_code"] == 404
        assert entry["task_id"] == 3

    def test_unserializable_extra_uses_str(self):
        entry = json.loads(JSONFormatter().format(_record(when=threading.Event)))

        assert "Event" in entry["when"]


class TestTextFormatter:

    def test_format(self):
        text = TextFormatter().format(_record(status_code=200))

        assert "[INFO] [http_controller.core.dispatcher] GET https://api.example.com/ -> 200" in text
        assert text.endswith("status_code=200")


def test_get_formatter():
    assert isinstance(get_formatter("JSON"), JSONFormatter)
    assert isinstance(get_formatter("text"), TextFormatter)
    with pytest.raises(ValueError, match="Unknown format type"):
        get_formatter("xml")

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Filters
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TestRequestContext:

    def test_set_get_clear(self):
        set_request_context(task_id=7, tag=2)
        assert get_request_context() == {"task_id": 7, "tag": 2}

        clear_request_context()
        assert get_request_context() == {}

    def test_context_manager_restores_previous(self):
        set_request_context(task_id=1, tag=0)

        with request_context(task_id=2, tag=9):
            assert get_request_context() == {"task_id": 2, "tag": 9}

        assert get_request_context() == {"task_id": 1, "tag": 0}

    def test_context_is_thread_local(self):
        set_request_context(task_id=5)
        seen = []

        thread = threading.Thread(target=lambda: seen.append(get_request_context()))
        thread.start()
        thread.join()

        assert seen == [{}]

    def test_filter_adds_context(self):
        record = _record()
        with request_context(task_id=11, tag=4):
            assert RequestContextFilter().filter(record)

        assert record.task_id == 11
        assert record.tag == 4

    def test_filter_keeps_explicit_fields(self):
        record = _record(task_id=99)
        with request_context(task_id=11):
            RequestContextFilter().filter(record)

        assert record.task_id == 99


class TestExtraFieldsFilter:

    def test_adds_static_fields(self):
        record = _record()
        ExtraFieldsFilter({"service": "api", "environment": "production"}).filter(record)

        assert record.service == "api"
        assert record.environment == "production"

    def test_does_not_override(self):
        record = _record(service="worker")
        ExtraFieldsFilter({"service": "api"}).filter(record)

        assert record.service == "worker"

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Handlers
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def test_file_handler_creates_directory(tmp_path):
    path = tmp_path / "nested" / "dir" / "controller.log"

    handler = create_file_handler(str(path), logging.INFO, JSONFormatter(), max_bytes=1024, backup_count=2)
    try:
        handler.emit(_record())
    finally:
        handler.close()

    assert path.exists()
    assert handler.maxBytes == 1024
    assert handler.backupCount == 2
    assert json.loads(path.read_text().splitlines()[0])["level"] == "INFO"
