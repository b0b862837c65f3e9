"""Unit tests for diagnostic sinks."""

import logging
import threading

import pytest

from flowexpr.expression import CollectingDiagnosticSink, Diagnostic, LoggingDiagnosticSink
from flowexpr.logging import get_logger
from flowexpr.types import DiagnosticKind


@pytest.mark.unit
class TestDiagnostic:
    """Tests for the Diagnostic record."""

    def test_to_dict(self):
        diagnostic = Diagnostic(
            kind=DiagnosticKind.EVALUATION_FAILED,
            message="Expression evaluation failed",
            expression="1 +",
            code="EXPRESSION_SYNTAX",
        )
        data = diagnostic.to_dict()
        assert data["kind"] == "evaluation_failed"
        assert data["expression"] == "1 +"
        assert data["code"] == "EXPRESSION_SYNTAX"
        assert data["node_id"] is None
        assert "timestamp" in data


@pytest.mark.unit
class TestCollectingSink:
    """Tests for CollectingDiagnosticSink."""

    def test_collects_and_filters(self):
        sink = CollectingDiagnosticSink()
        sink.emit(Diagnostic(kind=DiagnosticKind.UNRESOLVED, message="a"))
        sink.emit(Diagnostic(kind=DiagnosticKind.EVALUATION_FAILED, message="b"))
        assert len(sink.events) == 2
        assert [d.message for d in sink.of_kind(DiagnosticKind.UNRESOLVED)] == ["a"]
        sink.clear()
        assert sink.events == []

    def test_events_is_a_copy(self):
        sink = CollectingDiagnosticSink()
        sink.emit(Diagnostic(kind=DiagnosticKind.UNRESOLVED, message="a"))
        sink.events.clear()
        assert len(sink.events) == 1

    def test_concurrent_emit(self):
        sink = CollectingDiagnosticSink()

        def emit_many():
            for _ in range(100):
                sink.emit(Diagnostic(kind=DiagnosticKind.UNRESOLVED, message="x"))

        threads = [threading.Thread(target=emit_many) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert len(sink.events) == 800


@pytest.mark.unit
class TestLoggingSink:
    """Tests for LoggingDiagnosticSink."""

    @pytest.fixture
    def sink(self):
        return LoggingDiagnosticSink(get_logger("diagnostics-test"))

    def test_failure_logged_as_warning(self, sink, caplog):
        with caplog.at_level(logging.DEBUG, logger="flowexpr.diagnostics-test"):
            sink.emit(
                Diagnostic(
                    kind=DiagnosticKind.EVALUATION_FAILED,
                    message="Expression evaluation failed",
                    expression="1 +",
                )
            )
        [record] = [r for r in caplog.records if r.getMessage() == "Expression evaluation failed"]
        assert record.levelno == logging.WARNING
        assert record.expression == "1 +"

    def test_unresolved_logged_as_debug(self, sink, caplog):
        with caplog.at_level(logging.DEBUG, logger="flowexpr.diagnostics-test"):
            sink.emit(Diagnostic(kind=DiagnosticKind.UNRESOLVED, message="Placeholder left unresolved"))
        [record] = [r for r in caplog.records if r.getMessage() == "Placeholder left unresolved"]
        assert record.levelno == logging.DEBUG
        assert not hasattr(record, "code")
