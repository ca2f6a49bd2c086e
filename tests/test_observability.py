"""
Structured logging and contract event log tests.
"""

import io
import json

import pytest

from btcu.certificate import CertificateRegistry
from btcu.observability import (
    GENESIS_HASH,
    ContractLayer,
    EventLog,
    configure_logging,
    correlation_id_var,
    get_logger,
    set_correlation_id,
    timed_operation,
)


@pytest.fixture
def log_stream():
    stream = io.StringIO()
    configure_logging(level="debug", fmt="json", stream=stream)
    yield stream
    configure_logging(level="warning", fmt="json")


def _records(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines() if line]


class TestStructuredLogging:

    def test_json_lines(self, log_stream):
        logger = get_logger("unit", ContractLayer.LEDGER)
        token = set_correlation_id("corr-test")
        try:
            logger.info("hello", course_id=1)
        finally:
            correlation_id_var.reset(token)
        (record,) = _records(log_stream)
        assert record["message"] == "hello"
        assert record["logger"] == "btcu.ledger.unit"
        assert record["layer"] == "ledger"
        assert record["correlation_id"] == "corr-test"
        assert record["context"] == {"course_id": 1}

    def test_failed_call_logs_error_code(self, log_stream, deployer, wallet1, wallet2):
        registry = CertificateRegistry(deployer)
        registry.mint(wallet1, wallet2)
        failures = [r for r in _records(log_stream) if r.get("operation") == "mint-for-student"]
        assert failures[-1]["level"] == "warning"
        assert failures[-1]["error_code"] == 100

    def test_successful_call_logs_info(self, log_stream, deployer, wallet1):
        CertificateRegistry(deployer).mint(deployer, wallet1)
        ops = [r for r in _records(log_stream) if r.get("operation") == "mint-for-student"]
        assert ops[-1]["level"] == "info"
        assert "error_code" not in ops[-1]

    def test_configure_twice_does_not_duplicate(self):
        stream = io.StringIO()
        configure_logging(level="info", stream=stream)
        configure_logging(level="info", stream=stream)
        get_logger("dup", ContractLayer.CLI).info("once")
        assert len(_records(stream)) == 1
        configure_logging()

    def test_text_format(self):
        stream = io.StringIO()
        configure_logging(level="info", fmt="text", stream=stream)
        get_logger("plain", ContractLayer.CONFIG).info("readable")
        assert "btcu.config.plain: readable" in stream.getvalue()
        configure_logging()

    def test_timed_operation(self, log_stream):
        logger = get_logger("timer", ContractLayer.SCENARIO)

        @timed_operation(logger, "work")
        def work():
            return 3

        assert work() == 3
        (record,) = [r for r in _records(log_stream) if r.get("operation") == "work"]
        assert record["duration_ms"] >= 0


class TestEventLog:

    def _log(self):
        return EventLog("ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM.test", get_logger("events", ContractLayer.SESSION))

    def test_hash_chain(self):
        log = self._log()
        assert log.head == GENESIS_HASH
        first = log.emit("add-course", "caller-a", args=[1])
        second = log.emit("add-whitelist", "caller-b", args=[2])
        assert first.prev_hash == GENESIS_HASH
        assert second.prev_hash == first.event_hash
        assert log.head == second.event_hash
        assert [e.sequence for e in log.events()] == [0, 1]
        assert log.verify()

    def test_tamper_detected(self):
        log = self._log()
        log.emit("add-course", "caller-a", args=[1])
        log.emit("add-course", "caller-a", args=[2])
        log.events()[0].payload["args"] = [99]
        assert not log.verify()

    def test_filter_by_function(self):
        log = self._log()
        log.emit("a", "x")
        log.emit("b", "x")
        log.emit("a", "x")
        assert len(log.events("a")) == 2
        assert len(log) == 3

    def test_unscoped_events_get_distinct_correlation_ids(self, deployer, wallet1, wallet2):
        registry = CertificateRegistry(deployer)
        registry.mint(deployer, wallet1)
        registry.mint(deployer, wallet2)
        first, second = registry.events.events()
        assert first.correlation_id and second.correlation_id
        assert first.correlation_id != second.correlation_id
        assert correlation_id_var.get() == ""

    def test_scoped_events_share_correlation_id(self, deployer, wallet1):
        registry = CertificateRegistry(deployer)
        token = set_correlation_id("corr-scope")
        try:
            registry.mint(deployer, wallet1)
        finally:
            correlation_id_var.reset(token)
        (event,) = registry.events.events()
        assert event.correlation_id == "corr-scope"

    def test_contract_events_record_principals(self, deployer, wallet1):
        registry = CertificateRegistry(deployer)
        registry.mint(deployer, wallet1)
        (event,) = registry.events.events()
        assert event.contract == registry.principal
        assert event.caller == deployer
        assert event.payload == {"args": [wallet1], "result": 1}
