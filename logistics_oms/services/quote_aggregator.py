"""
Quote Aggregator

Fans a shipment request out to every carrier adapter concurrently and joins
the results. A carrier that fails, refuses, or overruns its timeout is
logged and left out; it never stops the others. Only an empty result is an
error.

Cancelling the caller cancels every in-flight carrier call.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union

from logistics_oms.core.exceptions import NoQuotesAvailableError, ProviderError
from logistics_oms.core.monitoring import MetricsCollector
from logistics_oms.modules.shipping.carriers.base import BaseCarrier, Quote, ShipmentRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CarrierFailure:
    """Why one carrier produced no quote."""
    carrier_code: str
    carrier_name: str
    reason: str
    message: str


@dataclass
class QuoteCollection:
    """Outcome of one fan-out: the quotes plus the carriers that failed."""
    quotes: List[Quote] = field(default_factory=list)
    failures: List[CarrierFailure] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.quotes)


class QuoteAggregator:
    """Concurrent quote collection across carrier adapters."""

    def __init__(self, metrics: Optional[MetricsCollector] = None, default_timeout: float = 8.0):
        self.metrics = metrics
        self.default_timeout = default_timeout

    async def collect(self, request: ShipmentRequest, adapters: Sequence[BaseCarrier]) -> QuoteCollection:
        """Query every adapter at once; never raises for carrier failures."""
        if not adapters:
            logger.warning("No carrier adapters configured", extra={"order_ref": request.order_ref})
            return QuoteCollection()

        outcomes = await asyncio.gather(
            *(self._quote_one(adapter, request) for adapter in adapters)
        )

        collection = QuoteCollection()
        for outcome in outcomes:
            if isinstance(outcome, CarrierFailure):
                collection.failures.append(outcome)
            else:
                collection.quotes.append(outcome)

        logger.info(
            f"Collected {len(collection.quotes)} quotes for {request.order_ref} "
            f"({len(collection.failures)} carriers failed)",
            extra={
                "event": "quotes_collected",
                "order_ref": request.order_ref,
                "quoted": [q.carrier_code for q in collection.quotes],
                "failed": [f.carrier_code for f in collection.failures],
            },
        )
        return collection

    async def collect_quotes(self, request: ShipmentRequest, adapters: Sequence[BaseCarrier]) -> List[Quote]:
        """
        Collect quotes from all adapters.

        Raises:
            NoQuotesAvailableError: every adapter failed, or none was given
        """
        collection = await self.collect(request, adapters)
        if not collection.quotes:
            raise NoQuotesAvailableError(
                "No carrier quotes available",
                details={
                    "order_ref": request.order_ref,
                    "failures": [
                        {"carrier_code": f.carrier_code, "reason": f.reason}
                        for f in collection.failures
                    ],
                },
            )
        return collection.quotes

    async def _quote_one(self, adapter: BaseCarrier, request: ShipmentRequest) -> Union[Quote, CarrierFailure]:
        timeout = getattr(adapter, "timeout", None) or self.default_timeout
        started = time.monotonic()

        try:
            quote = await asyncio.wait_for(adapter.fetch_quote(request), timeout=timeout)
        except asyncio.TimeoutError:
            return self._failure(adapter, "timeout", f"No reply within {timeout}s")
        except ProviderError as e:
            return self._failure(adapter, e.reason, e.message)
        except Exception as e:
            logger.exception(f"Unexpected error quoting {adapter.code}")
            return self._failure(adapter, "api_error", f"{type(e).__name__}: {e}")

        elapsed_ms = (time.monotonic() - started) * 1000
        if self.metrics:
            self.metrics.increment("carrier_quote_success", labels={"carrier": adapter.code})
            self.metrics.observe("carrier_quote_latency_ms", elapsed_ms, labels={"carrier": adapter.code})
        logger.debug(f"{adapter.code} quoted {quote.price} {quote.currency} in {elapsed_ms:.0f}ms")
        return quote

    def _failure(self, adapter: BaseCarrier, reason: str, message: str) -> CarrierFailure:
        logger.warning(
            f"Carrier {adapter.code} excluded: {reason} - {message}",
            extra={"event": "carrier_excluded", "carrier_code": adapter.code, "reason": reason},
        )
        if self.metrics:
            self.metrics.increment("carrier_quote_failure", labels={"carrier": adapter.code, "reason": reason})
        return CarrierFailure(
            carrier_code=adapter.code,
            carrier_name=adapter.name,
            reason=reason,
            message=message,
        )
