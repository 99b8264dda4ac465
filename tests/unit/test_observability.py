"""
Tests for logging context and client metrics.
"""

import json
import logging

import structlog
from prometheus_client import CollectorRegistry

from shared.logging import (
    add_correlation_context,
    clear_context,
    configure_logging,
    get_logger,
    set_request_id,
    set_user_context,
)
from shared.metrics import ClientMetrics


class TestCorrelationContext:
    """Test cases for log correlation processors."""

    def teardown_method(self):
        clear_context()

    def test_context_is_added(self):
        set_request_id("req-1")
        set_user_context(193)

        event = add_correlation_context(None, "info", {"event": "hello"})

        assert event == {"event": "hello", "request_id": "req-1", "user_id": "193"}

    def test_generated_request_id(self):
        request_id = set_request_id()
        assert len(request_id) == 36

    def test_empty_context(self):
        clear_context()
        assert add_correlation_context(None, "info", {"event": "x"}) == {"event": "x"}

    def test_bound_user_id_wins_over_context(self):
        set_user_context(193)

        event = add_correlation_context(None, "info", {"event": "x", "user_id": 42})

        assert event["user_id"] == 42


class TestConfigureLogging:
    """Test cases for the structlog pipeline."""

    def teardown_method(self):
        structlog.reset_defaults()
        clear_context()

    def _rendered(self, caplog, name):
        record = next(r for r in caplog.records if r.name == name)
        return json.loads(record.getMessage())

    def test_json_events_carry_service_and_correlation(self, caplog):
        caplog.set_level(logging.INFO)
        configure_logging(service_name="iris-test", log_level="info", json_logs=True)
        set_request_id("req-42")
        set_user_context(193)

        get_logger("iris.test.json").info("client ready", attempt=1)

        event = self._rendered(caplog, "iris.test.json")
        assert event["event"] == "client ready"
        assert event["service"] == "iris-test"
        assert event["request_id"] == "req-42"
        assert event["user_id"] == "193"
        assert event["level"] == "info"
        assert event["logger"] == "iris.test.json"
        assert event["attempt"] == 1
        assert "timestamp" in event

    def test_initial_values_are_rendered(self, caplog):
        caplog.set_level(logging.INFO)
        configure_logging(service_name="iris-test", json_logs=True)
        set_user_context(193)

        get_logger("iris.test.bound", user_id=7).info("scoped")

        assert self._rendered(caplog, "iris.test.bound")["user_id"] == 7

    def test_level_filter(self, caplog):
        caplog.set_level(logging.WARNING)
        configure_logging(service_name="iris-test", log_level="warning", json_logs=True)

        get_logger("iris.test.quiet").info("hidden")

        assert not [r for r in caplog.records if r.name == "iris.test.quiet"]


class TestClientMetrics:
    """Test cases for ClientMetrics."""

    def test_instances_do_not_share_registries(self):
        first = ClientMetrics()
        second = ClientMetrics()

        first.record_retry("server_error")

        assert first.sample("iris_client_retries_total", reason="server_error") == 1
        assert second.sample("iris_client_retries_total", reason="server_error") == 0

    def test_record_request(self):
        metrics = ClientMetrics(CollectorRegistry())

        metrics.record_request("GET", "primary", "200", 0.25)
        metrics.record_request("GET", "primary", "200", 0.5)

        assert metrics.sample("iris_client_requests_total", method="GET", target="primary", status="200") == 2
        assert metrics.sample(
            "iris_client_request_duration_seconds_sum", method="GET", target="primary"
        ) == 0.75

    def test_errors_and_token_fetches(self):
        metrics = ClientMetrics()

        metrics.record_error("SERVER_ERROR")
        metrics.record_token_fetch("rejected")

        assert metrics.sample("iris_client_errors_total", error_type="SERVER_ERROR") == 1
        assert metrics.sample("iris_client_token_fetches_total", outcome="rejected") == 1
        assert metrics.get_metric("missing") is None
