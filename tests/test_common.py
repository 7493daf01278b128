"""Tests for configuration, logging helpers and the error taxonomy."""

import json
import logging

import pytest
from pydantic import ValidationError

from hexgraph.common import (
    CorruptGraphData,
    HexGraphError,
    InvalidWeight,
    TimedLogger,
    UnsupportedFormat,
    get_logger,
    load_config,
    log_data_processing,
    setup_logging,
)
from hexgraph.common.logging import StructuredFormatter


class TestConfig:
    """Tests for environment-driven configuration."""

    def test_defaults(self, monkeypatch):
        for name in (
            "HEXGRAPH_RESOLUTION",
            "HEXGRAPH_HEURISTIC",
            "HEXGRAPH_SPATIAL_BACKEND",
            "HEXGRAPH_BATCH_WORKERS",
            "HEXGRAPH_MIN_LONGEDGE_LEN",
        ):
            monkeypatch.delenv(name, raising=False)
        settings = load_config()
        assert settings.graph.resolution == 9
        assert settings.search.heuristic == "grid"
        assert settings.spatial_index.backend == "balanced-tree"
        assert settings.search.batch_workers == 4
        assert settings.graph.min_longedge_len == 4

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("HEXGRAPH_RESOLUTION", "7")
        monkeypatch.setenv("HEXGRAPH_SPATIAL_BACKEND", "static-packed-bvh")
        monkeypatch.setenv("ENABLE_STRUCTURED_LOGGING", "false")
        settings = load_config()
        assert settings.graph.resolution == 7
        assert settings.spatial_index.backend == "static-packed-bvh"
        assert not settings.logging.enable_structured_logging

    @pytest.mark.parametrize(
        "name,value",
        [
            ("HEXGRAPH_RESOLUTION", "16"),
            ("HEXGRAPH_HEURISTIC", "manhattan"),
            ("HEXGRAPH_SPATIAL_BACKEND", "quadtree"),
            ("HEXGRAPH_BATCH_WORKERS", "0"),
            ("HEXGRAPH_COMPRESSION_LEVEL", "17"),
            ("HEXGRAPH_MIN_LONGEDGE_LEN", "1"),
        ],
    )
    def test_invalid_values(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ValidationError):
            load_config()


class TestErrors:
    """Tests for the error taxonomy."""

    def test_hierarchy(self):
        assert issubclass(InvalidWeight, HexGraphError)
        assert issubclass(InvalidWeight, ValueError)

    def test_context_is_kept(self):
        cause = RuntimeError("boom")
        error = CorruptGraphData("bad block", offset=23, original_exception=cause)
        assert error.offset == 23
        assert "byte offset 23" in str(error)
        assert error.original_exception is cause
        assert UnsupportedFormat("old", version=3).version == 3


class TestLogging:
    """Tests for logging helpers."""

    def test_log_data_processing(self):
        entry = log_data_processing("batch_routing", records_processed=3, records_failed=1, found=2)
        assert entry["success_rate"] == 0.75
        assert entry["found"] == 2
        assert log_data_processing("empty", records_processed=0)["success_rate"] == 0

    def test_timed_logger_reports_failure(self, caplog):
        logger = get_logger("tests")
        logger.addHandler(caplog.handler)
        try:
            with pytest.raises(ValueError):
                with TimedLogger(logger, "failing operation"):
                    raise ValueError("nope")
        finally:
            logger.removeHandler(caplog.handler)

        failures = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert failures and failures[0].error_type == "ValueError"

    def test_component_loggers_share_the_package_handler(self):
        root = setup_logging(level="warning", structured=False)
        try:
            child = get_logger("routing.batch")
            assert len(root.handlers) == 1
            assert not child.handlers
            assert child.getEffectiveLevel() == logging.WARNING
        finally:
            setup_logging()

    def test_structured_formatter_fields(self):
        formatter = StructuredFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
        record = logging.LogRecord("hexgraph.tests", logging.INFO, __file__, 1, "hello", None, None)
        record.stage = "assembly_passes"
        entry = json.loads(formatter.format(record))
        assert entry["service"] == "hexgraph"
        assert entry["level"] == "INFO"
        assert entry["message"] == "hello"
        assert entry["stage"] == "assembly_passes"
        assert entry["timestamp"].endswith("+00:00")
