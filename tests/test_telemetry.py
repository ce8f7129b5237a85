"""Tests for tracing setup."""

import logging

from fastapi import FastAPI

from opsdash.telemetry import _instrument, get_tracer, otel_enabled, setup_otel


def test_setup_is_a_noop_when_disabled(monkeypatch):
    monkeypatch.delenv("OTEL_ENABLED", raising=False)

    assert otel_enabled() is False
    assert setup_otel(FastAPI()) == []


def test_enabled_flag_values(monkeypatch):
    monkeypatch.setenv("OTEL_ENABLED", "Yes")
    assert otel_enabled() is True
    monkeypatch.setenv("OTEL_ENABLED", "0")
    assert otel_enabled() is False


def test_tracer_yields_spans_without_a_provider():
    tracer = get_tracer("opsdash.services.metrics.dashboard")
    with tracer.start_as_current_span("metrics.snapshot") as span:
        span.set_attribute("metrics.records", 3)


def test_failed_instrumentation_is_logged_and_skipped(caplog):
    def broken():
        raise ModuleNotFoundError("opentelemetry.instrumentation.httpx")

    with caplog.at_level(logging.WARNING, logger="opsdash.telemetry"):
        assert _instrument("httpx", broken) is False

    assert "otel_instrumentation_unavailable target=httpx" in caplog.text


def test_successful_instrumentation_is_reported():
    calls = []
    assert _instrument("fastapi", lambda: calls.append("fastapi")) is True
    assert calls == ["fastapi"]
