"""Tests for logging setup and helpers."""

from __future__ import annotations

import json

import pytest

from ddresize import logging as logging_module


@pytest.fixture
def records():
    """Capture records through a plain list sink."""
    logging_module.logger.remove()
    captured: list[dict] = []

    def sink(message):
        captured.append(message.record)

    logging_module.logger.add(sink, level="TRACE", enqueue=False)
    yield captured
    logging_module.logger.remove()


def test_setup_logging_writes_operation_logs(tmp_path):
    """Test INFO events reach the operations and structured logs."""
    log_dir = tmp_path / "logs"
    logging_module.setup_logging(log_dir=log_dir)

    log = logging_module.get_logger(job_id="image-1234", source="imaging")
    log.info("Imaging session started")
    log.debug("Handles open")
    logging_module.logger.complete()
    logging_module.logger.remove()

    operations = (log_dir / "operations.log").read_text()
    assert "Imaging session started" in operations
    assert "Handles open" not in operations

    line = (log_dir / "structured.jsonl").read_text().splitlines()[0]
    record = json.loads(line)["record"]
    assert record["extra"]["job_id"] == "image-1234"
    assert not (log_dir / "debug.log").exists()


def test_setup_logging_debug_and_trace_files(tmp_path):
    """Test --debug and --trace add their own log files."""
    log_dir = tmp_path / "logs"
    logging_module.setup_logging(debug=True, trace=True, log_dir=log_dir)

    logging_module.get_logger(source="test").trace("Chunk read")
    logging_module.logger.complete()
    logging_module.logger.remove()

    assert (log_dir / "debug.log").exists()
    assert "Chunk read" in (log_dir / "trace.log").read_text()


def test_get_logger_preserves_context_metadata(records):
    """Test bound logger keeps job_id, tags, and source metadata."""
    log = logging_module.get_logger(job_id="image-123", tags=["imaging"], source="imaging")
    log.info("Context test")

    assert records
    record = records[0]
    assert record["extra"]["job_id"] == "image-123"
    assert record["extra"]["tags"] == ["imaging"]
    assert record["extra"]["source"] == "imaging"


def test_combined_filter_blocks_progress_logs_above_trace():
    """Test combined filter suppresses per-chunk progress above TRACE level."""
    record = {
        "message": "80.0KB of 1.0MB",
        "extra": {"tags": ["imaging", "progress"]},
        "level": logging_module.logger.level("INFO"),
    }

    assert logging_module._combined_filter(record) is False

    record["level"] = logging_module.logger.level("TRACE")
    assert logging_module._combined_filter(record) is True


def test_combined_filter_blocks_raw_query_output():
    """Test raw command output only passes at TRACE level."""
    record = {
        "message": 'stdout: {"blockdevices": []}',
        "extra": {"tags": ["inventory"]},
        "level": logging_module.logger.level("DEBUG"),
    }

    assert logging_module._combined_filter(record) is False

    record["message"] = "lsblk found 2 disks"
    assert logging_module._combined_filter(record) is True


class TestOperationContext:
    """Test operation_context start/success/failure events."""

    def test_success(self, records):
        with logging_module.operation_context("prepare", drive="E:") as log:
            log.debug("Resolving drive")

        messages = [(r["level"].name, r["message"]) for r in records]
        assert messages[0] == ("INFO", "Prepare started")
        assert messages[-1] == ("SUCCESS", "Prepare completed")
        assert records[0]["extra"]["drive"] == "E:"

    def test_failure_is_logged_and_reraised(self, records):
        with pytest.raises(RuntimeError):
            with logging_module.operation_context("prepare", job_id="prepare-1"):
                raise RuntimeError("boom")

        failure = records[-1]
        assert failure["level"].name == "ERROR"
        assert failure["extra"]["error_type"] == "RuntimeError"
        assert failure["extra"]["job_id"] == "prepare-1"


class TestLoggerFactory:
    def test_for_imaging(self, records):
        logging_module.LoggerFactory.for_imaging("image-42").info("x")

        extra = records[0]["extra"]
        assert extra["job_id"] == "image-42"
        assert extra["source"] == "imaging"
        assert "imaging" in extra["tags"]

    def test_for_imaging_generates_job_id(self, records):
        logging_module.LoggerFactory.for_imaging().info("x")

        assert records[0]["extra"]["job_id"].startswith("image-")

    def test_for_progress_is_tagged(self, records):
        logging_module.LoggerFactory.for_progress().trace("x")

        assert "progress" in records[0]["extra"]["tags"]


class TestThrottledLogger:
    def test_suppresses_within_interval(self, records):
        throttled = logging_module.ThrottledLogger(logging_module.get_logger(), 60.0)

        throttled.info("copy", "first")
        throttled.info("copy", "second")
        throttled.info("other", "third")

        assert [r["message"] for r in records] == ["first", "third"]

    def test_zero_interval_logs_everything(self, records):
        throttled = logging_module.ThrottledLogger(logging_module.get_logger(), 0.0)

        throttled.info("copy", "first")
        throttled.info("copy", "second")

        assert len(records) == 2


class TestEventLogger:
    @pytest.mark.parametrize(
        "outcome, level",
        [("completed", "SUCCESS"), ("failed", "WARNING"), ("cancelled", "WARNING")],
    )
    def test_imaging_finished_level(self, records, outcome, level):
        logging_module.EventLogger.log_imaging_finished(
            logging_module.get_logger(), outcome, 100, 100
        )

        assert records[0]["level"].name == level
        assert records[0]["extra"]["outcome"] == outcome

    def test_devices_listed(self, records):
        logging_module.EventLogger.log_devices_listed(logging_module.get_logger(), 2)

        assert records[0]["message"] == "Found 2 removable USB device(s)"
        assert records[0]["extra"]["device_count"] == 2
