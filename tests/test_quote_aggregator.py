"""
Tests for concurrent quote collection with partial failures.
"""
import asyncio
import time

import pytest

from logistics_oms.core.exceptions import (
    CarrierRejectedError,
    NoQuotesAvailableError,
    ProviderError,
)
from logistics_oms.core.monitoring import MetricsCollector
from logistics_oms.services.quote_aggregator import QuoteAggregator


@pytest.fixture
def aggregator():
    return QuoteAggregator(metrics=MetricsCollector(), default_timeout=2.0)


@pytest.mark.asyncio
async def test_returns_all_quotes_when_every_carrier_answers(aggregator, make_carrier, sample_request):
    adapters = [
        make_carrier("A", price="50.00", days=3),
        make_carrier("B", price="40.00", days=5),
        make_carrier("C", price="45.00", days=4),
    ]

    quotes = await aggregator.collect_quotes(sample_request, adapters)

    assert sorted(q.carrier_code for q in quotes) == ["A", "B", "C"]
    assert all(a.calls == 1 for a in adapters)


@pytest.mark.asyncio
async def test_failing_carriers_are_excluded(aggregator, make_carrier, sample_request):
    adapters = [
        make_carrier("A", price="50.00", days=3),
        make_carrier("B", error=ProviderError("HTTP 503", carrier_code="B", status_code=503)),
        make_carrier("C", error=RuntimeError("adapter bug")),
        make_carrier("D", price="45.00", days=4),
    ]

    collection = await aggregator.collect(sample_request, adapters)

    assert sorted(q.carrier_code for q in collection.quotes) == ["A", "D"]
    reasons = {f.carrier_code: f.reason for f in collection.failures}
    assert reasons == {"B": "api_error", "C": "api_error"}
    assert aggregator.metrics.get_counter("carrier_quote_success", {"carrier": "A"}) == 1
    assert aggregator.metrics.get_counter(
        "carrier_quote_failure", {"carrier": "B", "reason": "api_error"}
    ) == 1


@pytest.mark.asyncio
async def test_rejections_keep_their_reason(aggregator, make_carrier, sample_request):
    adapters = [
        make_carrier("A", price="50.00", days=3),
        make_carrier("HEAVY", price="10.00", days=1, max_weight_kg=1.0),
        make_carrier(
            "B",
            error=CarrierRejectedError("route closed", rejection_reason="route_not_serviceable", carrier_code="B"),
        ),
    ]

    collection = await aggregator.collect(sample_request, adapters)

    assert [q.carrier_code for q in collection.quotes] == ["A"]
    reasons = {f.carrier_code: f.reason for f in collection.failures}
    assert reasons == {"HEAVY": "weight_exceeded", "B": "route_not_serviceable"}
    # Acceptance is checked before the carrier is called
    assert adapters[1].calls == 0


@pytest.mark.asyncio
async def test_slow_carrier_is_cut_off_by_its_timeout(aggregator, make_carrier, sample_request):
    adapters = [
        make_carrier("FAST", price="40.00", days=2),
        make_carrier("SLOW", price="10.00", days=1, delay=5.0, timeout=0.05),
    ]

    started = time.monotonic()
    collection = await aggregator.collect(sample_request, adapters)
    elapsed = time.monotonic() - started

    assert [q.carrier_code for q in collection.quotes] == ["FAST"]
    assert collection.failures[0].carrier_code == "SLOW"
    assert collection.failures[0].reason == "timeout"
    assert elapsed < 2.0
    assert adapters[1].cancelled is True


@pytest.mark.asyncio
async def test_carriers_are_called_concurrently(aggregator, make_carrier, sample_request):
    adapters = [make_carrier(code, price="40.00", days=2, delay=0.2) for code in ("A", "B", "C", "D")]

    started = time.monotonic()
    quotes = await aggregator.collect_quotes(sample_request, adapters)
    elapsed = time.monotonic() - started

    assert len(quotes) == 4
    # Sequential calls would take at least 0.8s
    assert elapsed < 0.6


@pytest.mark.asyncio
async def test_all_failures_raise_no_quotes(aggregator, make_carrier, sample_request):
    adapters = [
        make_carrier("A", error=ProviderError("down", carrier_code="A")),
        make_carrier("B", delay=5.0, timeout=0.05, price="1.00", days=1),
    ]

    with pytest.raises(NoQuotesAvailableError) as exc_info:
        await aggregator.collect_quotes(sample_request, adapters)

    failures = exc_info.value.details["failures"]
    assert {f["carrier_code"] for f in failures} == {"A", "B"}


@pytest.mark.asyncio
async def test_no_adapters_raise_no_quotes(aggregator, sample_request):
    with pytest.raises(NoQuotesAvailableError):
        await aggregator.collect_quotes(sample_request, [])


@pytest.mark.asyncio
async def test_collect_does_not_raise_on_empty_result(aggregator, make_carrier, sample_request):
    collection = await aggregator.collect(
        sample_request, [make_carrier("A", error=ProviderError("down", carrier_code="A"))]
    )
    assert not collection
    assert collection.quotes == []
    assert len(collection.failures) == 1


@pytest.mark.asyncio
async def test_cancelling_the_caller_cancels_in_flight_calls(aggregator, make_carrier, sample_request):
    adapters = [make_carrier(code, price="40.00", days=2, delay=5.0) for code in ("A", "B")]

    task = asyncio.create_task(aggregator.collect(sample_request, adapters))
    await asyncio.sleep(0.05)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert all(a.cancelled for a in adapters)


@pytest.mark.asyncio
async def test_malformed_reply_is_a_provider_failure(aggregator, make_carrier, sample_request):
    adapters = [
        make_carrier("A", price="50.00", days=3),
        make_carrier("NOPRICE", price=None, days=3),
        make_carrier("BADDAYS", price="20.00", days="soon"),
    ]

    collection = await aggregator.collect(sample_request, adapters)

    assert [q.carrier_code for q in collection.quotes] == ["A"]
    assert {f.carrier_code for f in collection.failures} == {"NOPRICE", "BADDAYS"}


@pytest.mark.asyncio
async def test_foreign_currency_carrier_is_excluded(aggregator, make_carrier, sample_request):
    adapters = [
        make_carrier("A", price="50.00", days=3, expected_currency="INR"),
        make_carrier("B", price="40.00", days=5, expected_currency="INR"),
        make_carrier("C", price="1.00", days=2, currency="USD", expected_currency="INR"),
    ]

    collection = await aggregator.collect(sample_request, adapters)

    assert sorted(q.carrier_code for q in collection.quotes) == ["A", "B"]
    assert [(f.carrier_code, f.reason) for f in collection.failures] == [("C", "currency_mismatch")]
    assert aggregator.metrics.get_counter(
        "carrier_quote_failure", {"carrier": "C", "reason": "currency_mismatch"}
    ) == 1
