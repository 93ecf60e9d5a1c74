"""Unit tests for logging configuration, formatters and operation logging."""

from __future__ import annotations

import json
import logging
import sys

import pytest

from nested_set.core.settings import LoggingSettings
from nested_set.infra.logging import (
    JSONFormatter,
    LazyLoggerAdapter,
    configure_logging,
    get_lazy_logger,
    log_db_operation,
    log_operation,
    operation_context,
    reset_logging_state,
    setup_logging,
)


@pytest.fixture
def restore_logging():
    """Snapshot root and sqlalchemy logger state, restore it after the test."""
    root = logging.getLogger()
    sql = logging.getLogger("sqlalchemy.engine")
    saved = (root.handlers[:], root.level, sql.level)
    reset_logging_state()

    yield

    for handler in root.handlers[:]:
        if handler not in saved[0]:
            handler.close()
    root.handlers[:] = saved[0]
    root.setLevel(saved[1])
    sql.setLevel(saved[2])
    reset_logging_state()


def make_record(msg: str, *args, **extra) -> logging.LogRecord:
    record = logging.LogRecord("nested_set.test", logging.INFO, __file__, 1, msg, args, None)
    record.__dict__.update(extra)
    return record


@pytest.mark.unit
class TestJSONFormatter:
    """Test suite for JSONFormatter."""

    def test_formats_single_json_line(self):
        line = JSONFormatter().format(make_record("moved %s", "ford focus"))
        data = json.loads(line)

        assert "\n" not in line
        assert data["level"] == "INFO"
        assert data["logger"] == "nested_set.test"
        assert data["message"] == "moved ford focus"
        assert data["timestamp"].endswith("Z")

    def test_extra_fields_become_keys(self):
        record = make_record("done", operation="nested_set.append_to", node_id=4, duration_ms=1.5)
        data = json.loads(JSONFormatter().format(record))

        assert data["operation"] == "nested_set.append_to"
        assert data["node_id"] == 4
        assert data["duration_ms"] == 1.5

    def test_static_fields_and_custom_keys(self):
        formatter = JSONFormatter(fmt_keys={"msg": "message"}, static={"service": "catalog"})
        data = json.loads(formatter.format(make_record("hello")))

        assert data["msg"] == "hello"
        assert data["service"] == "catalog"
        assert "level" not in data

    def test_exception_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord(
                "nested_set.test", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )

        data = json.loads(JSONFormatter().format(record))

        assert "ValueError: boom" in data["exception"]

    def test_unserializable_extra_uses_str(self):
        data = json.loads(JSONFormatter().format(make_record("x", scope=object())))

        assert data["scope"].startswith("<object object")


@pytest.mark.unit
class TestConfigureLogging:
    """Test suite for configure_logging and setup_logging."""

    def test_console_text_config(self, restore_logging):
        config = configure_logging(log_level="debug")

        assert config["root"]["level"] == "DEBUG"
        assert config["root"]["handlers"] == ["console"]
        assert config["handlers"]["console"]["formatter"] == "text"
        assert logging.getLogger().level == logging.DEBUG

    def test_json_file_config(self, restore_logging, tmp_path):
        log_file = tmp_path / "logs" / "nested_set.jsonl"
        config = configure_logging(
            json_logs=True,
            file_path=log_file,
            console_enabled=False,
            file_backup_count=2,
        )

        assert config["root"]["handlers"] == ["file"]
        assert config["handlers"]["file"]["formatter"] == "json"
        assert config["handlers"]["file"]["backupCount"] == 2
        assert log_file.parent.is_dir()

        logging.getLogger("nested_set.test").warning("written", extra={"node_id": 9})
        for handler in logging.getLogger().handlers:
            handler.flush()

        data = json.loads(log_file.read_text().splitlines()[-1])
        assert data["message"] == "written"
        assert data["node_id"] == 9

    def test_sql_logger_level(self, restore_logging):
        configure_logging(sql_level="info")

        assert logging.getLogger("sqlalchemy.engine").level == logging.INFO

    def test_setup_logging_runs_once(self, restore_logging):
        setup_logging(LoggingSettings(level="ERROR"))
        setup_logging(LoggingSettings(level="DEBUG"))

        assert logging.getLogger().level == logging.ERROR

        setup_logging(LoggingSettings(level="DEBUG"), force=True)

        assert logging.getLogger().level == logging.DEBUG

    def test_setup_logging_overrides(self, restore_logging):
        setup_logging(LoggingSettings(level="INFO"), log_level="WARNING")

        assert logging.getLogger().level == logging.WARNING


@pytest.mark.unit
class TestLazyLogger:
    """Test suite for LazyLoggerAdapter."""

    def test_callable_not_evaluated_when_disabled(self):
        logger = get_lazy_logger("nested_set.test.lazy")
        logger.logger.setLevel(logging.INFO)
        calls = []

        logger.debug(lambda: calls.append("evaluated") or "message")

        assert calls == []

    def test_callable_evaluated_when_enabled(self, caplog):
        logger = get_lazy_logger("nested_set.test.lazy_enabled")

        with caplog.at_level(logging.DEBUG, logger="nested_set.test.lazy_enabled"):
            logger.debug(lambda: "shift by 2")
            logger.info("rows: %s", lambda: 3)

        assert [r.getMessage() for r in caplog.records] == ["shift by 2", "rows: 3"]

    def test_adapter_type(self):
        assert isinstance(get_lazy_logger("nested_set.test"), LazyLoggerAdapter)


@pytest.mark.unit
class TestOperationLogging:
    """Test suite for log_operation, log_db_operation and operation_context."""

    @pytest.mark.asyncio
    async def test_log_db_operation_success(self, caplog):
        @log_db_operation("roots")
        async def roots():
            return ["cars"]

        with caplog.at_level(logging.DEBUG, logger=__name__):
            assert await roots() == ["cars"]

        record = caplog.records[-1]
        assert record.getMessage() == "db.roots.roots"
        assert record.operation == "db.roots"
        assert record.success is True
        assert record.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_log_operation_failure(self, caplog):
        @log_operation("nested_set.read")
        async def broken():
            raise RuntimeError("store down")

        with caplog.at_level(logging.DEBUG, logger=__name__), pytest.raises(RuntimeError):
            await broken()

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.getMessage() == "nested_set.read.broken failed"
        assert record.error_type == "RuntimeError"
        assert record.success is False

    def test_log_operation_requires_coroutine(self):
        with pytest.raises(TypeError, match="coroutine function"):

            @log_operation("sync")
            def not_async():
                return None

    @pytest.mark.asyncio
    async def test_operation_context_completed(self, caplog):
        logger = logging.getLogger("nested_set.test.ctx")

        with caplog.at_level(logging.DEBUG, logger="nested_set.test.ctx"):
            async with operation_context("nested_set.append_to", logger=logger, node_id=4) as ctx:
                ctx.set_result(start=14)

        record = caplog.records[-1]
        assert record.getMessage() == "nested_set.append_to completed"
        assert record.node_id == 4
        assert record.start == 14
        assert record.success is True
        assert ctx.result == {"start": 14}

    @pytest.mark.asyncio
    async def test_operation_context_failed(self, caplog):
        logger = logging.getLogger("nested_set.test.ctx_failed")

        with (
            caplog.at_level(logging.DEBUG, logger="nested_set.test.ctx_failed"),
            pytest.raises(ValueError),
        ):
            async with operation_context("nested_set.delete", logger=logger, node_id=3):
                raise ValueError("boom")

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.getMessage() == "nested_set.delete failed: boom"
        assert record.error_type == "ValueError"

    @pytest.mark.asyncio
    async def test_operation_context_silent_when_disabled(self, caplog):
        logger = logging.getLogger("nested_set.test.ctx_silent")
        logger.setLevel(logging.CRITICAL)

        async with operation_context("nested_set.noop", logger=logger) as ctx:
            ctx.set_result(rows=1)

        assert [r for r in caplog.records if r.name == "nested_set.test.ctx_silent"] == []
