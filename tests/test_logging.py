"""Tests for structured logging infrastructure."""

import io
import json
import logging
from datetime import datetime

import pytest

from object_store.logging_config import (
    StructuredFormatter,
    StructuredLogger,
    configure_logging,
    correlation_id_var,
)


@pytest.fixture
def log_stream():
    """Attach a JSON handler to the object_store logger tree."""
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())

    root = logging.getLogger("object_store")
    previous_level = root.level
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)
    yield stream
    root.removeHandler(handler)
    root.setLevel(previous_level)


def parse_lines(stream: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


def test_structured_formatter_basic():
    """StructuredFormatter emits valid JSON."""
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())

    logger = logging.getLogger("test_basic")
    logger.setLevel(logging.INFO)
    logger.addHandler(handler)

    logger.info("Test message")

    log_data = json.loads(stream.getvalue().strip())

    assert log_data["level"] == "INFO"
    assert log_data["logger"] == "test_basic"
    assert log_data["message"] == "Test message"
    assert log_data["timestamp"].endswith("Z")
    datetime.fromisoformat(log_data["timestamp"].rstrip("Z"))
    assert "correlation_id" not in log_data


def test_structured_formatter_with_correlation_id():
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())

    logger = logging.getLogger("test_correlation")
    logger.setLevel(logging.INFO)
    logger.addHandler(handler)

    correlation_id_var.set("corr-123")
    try:
        logger.info("Test with correlation")
        log_data = json.loads(stream.getvalue().strip())
        assert log_data["correlation_id"] == "corr-123"
    finally:
        correlation_id_var.set(None)


def test_structured_formatter_with_exception():
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())

    logger = logging.getLogger("test_exception")
    logger.setLevel(logging.ERROR)
    logger.addHandler(handler)

    try:
        raise ValueError("Test error")
    except ValueError:
        logger.exception("Error occurred")

    log_data = json.loads(stream.getvalue().strip())

    assert log_data["level"] == "ERROR"
    assert "ValueError: Test error" in log_data["exc_info"]


def test_structured_logger_fields(log_stream):
    logger = StructuredLogger("object_store.test")

    logger.info(
        "Created object",
        object_id="abc123",
        operation="create",
        duration_ms=7,
        size_bytes=42,
    )

    (entry,) = parse_lines(log_stream)
    assert entry["object_id"] == "abc123"
    assert entry["operation"] == "create"
    assert entry["duration_ms"] == 7
    assert entry["extra"] == {"size_bytes": 42}


def test_structured_logger_respects_level(log_stream):
    logging.getLogger("object_store").setLevel(logging.WARNING)
    logger = StructuredLogger("object_store.test")

    logger.info("hidden")
    logger.warning("shown")

    assert [e["message"] for e in parse_lines(log_stream)] == ["shown"]


@pytest.mark.asyncio
async def test_store_operations_are_logged(log_stream, store):
    object_id = await store.create_object("logged.txt", b"data")
    await store.delete_object(object_id)

    entries = parse_lines(log_stream)
    operations = [(e.get("operation"), e.get("object_id")) for e in entries]

    assert ("create", object_id) in operations
    assert ("delete", object_id) in operations


@pytest.mark.asyncio
async def test_tool_calls_carry_correlation_id(log_stream, server):
    from object_store.tools.objects import _object_create

    await _object_create(server, path="traced", content="x")

    completed = [
        e for e in parse_lines(log_stream)
        if e.get("operation") == "objstore.object.create"
        and e["message"].startswith("Completed")
    ]
    assert len(completed) == 1
    assert completed[0]["correlation_id"]
    assert completed[0]["extra"]["success"] is True
    # Cleared once the call returns
    assert correlation_id_var.get() is None


def test_configure_logging_replaces_handlers(tmp_path):
    log_file = tmp_path / "store.log"

    configure_logging(log_level="DEBUG", structured=True, log_file=str(log_file))
    configure_logging(log_level="INFO", structured=False, log_file=str(log_file))

    root = logging.getLogger("object_store")
    try:
        assert root.level == logging.INFO
        assert len(root.handlers) == 2
        assert not isinstance(root.handlers[0].formatter, StructuredFormatter)
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers.clear()
