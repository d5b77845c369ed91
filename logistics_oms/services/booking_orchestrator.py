"""
Booking Orchestrator

Creates an order and assigns its carrier in a single database transaction:

    STARTED -> ITEMS_PERSISTED -> QUOTES_COLLECTED -> QUOTE_SELECTED -> COMMITTED
                                                                     \\-> ABORTED

Any failure after the order row is written rolls the whole transaction back
before the error reaches the caller, so an order is never visible without
its carrier assignment. There is no fallback carrier: no quotes means no
order.
"""
import enum
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from logistics_oms.core.exceptions import (
    NoQuotesAvailableError,
    NotFoundError,
    TransactionFailureError,
)
from logistics_oms.core.monitoring import MetricsCollector
from logistics_oms.models import (
    Carrier,
    CarrierAssignment,
    CarrierQuote,
    CarrierRejection,
    Order,
    OrderItem,
    OrderStatus,
)
from logistics_oms.modules.shipping.carriers.base import BaseCarrier, Quote, ShipmentRequest
from logistics_oms.schemas.booking import OrderInput
from logistics_oms.services.quote_aggregator import QuoteAggregator, QuoteCollection
from logistics_oms.services.quote_selector import (
    DEFAULT_RELIABILITY,
    SelectedQuote,
    SelectionCriteria,
    select_scored,
)
from logistics_oms.services.warehouse_lookup import (
    ReliabilitySource,
    WarehouseLocation,
    WarehouseLookup,
)

logger = logging.getLogger(__name__)


class BookingState(str, enum.Enum):
    STARTED = "started"
    ITEMS_PERSISTED = "items_persisted"
    QUOTES_COLLECTED = "quotes_collected"
    QUOTE_SELECTED = "quote_selected"
    COMMITTED = "committed"
    ABORTED = "aborted"


def generate_order_number() -> str:
    """Generate unique order number."""
    return f"ORD-{datetime.now(timezone.utc).strftime('%Y%m%d')}-{uuid.uuid4().hex[:8].upper()}"


@dataclass
class BookingResult:
    """Outcome of a committed booking."""
    order_id: int
    order_number: str
    selected: SelectedQuote
    carrier_id: int
    all_quotes: List[Quote] = field(default_factory=list)

    @property
    def quote(self) -> Quote:
        return self.selected.quote

    @property
    def selected_carrier(self) -> str:
        return self.quote.carrier_name

    @property
    def shipping_cost(self) -> Decimal:
        return self.quote.price

    @property
    def estimated_delivery_days(self) -> int:
        return self.quote.estimated_delivery_days

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_id": self.order_id,
            "order_number": self.order_number,
            "selected_carrier": self.selected_carrier,
            "carrier_code": self.quote.carrier_code,
            "quote_id": self.quote.quote_id,
            "shipping_cost": self.shipping_cost,
            "currency": self.quote.currency,
            "estimated_delivery_days": self.estimated_delivery_days,
            "estimated_delivery_date": self.quote.estimated_delivery_date,
            "criteria": self.selected.criteria.to_dict(),
            "all_quotes": [
                {
                    "quote_id": q.quote_id,
                    "carrier_code": q.carrier_code,
                    "carrier_name": q.carrier_name,
                    "price": q.price,
                    "currency": q.currency,
                    "delivery_days": q.estimated_delivery_days,
                    "service_type": q.service_type,
                }
                for q in self.all_quotes
            ],
        }


async def mark_quote_selected(session: AsyncSession, order_id: int, quote_id: str) -> datetime:
    """
    Flag exactly one stored quote of an order as the selected one.

    Keyed by quote_id, so a carrier offering several services for the same
    order cannot end up with more than one row selected.
    """
    selected_at = datetime.now(timezone.utc)

    await session.execute(
        update(CarrierQuote)
        .where(CarrierQuote.order_id == order_id)
        .values(is_selected=False, selected_at=None)
    )
    result = await session.execute(
        update(CarrierQuote)
        .where(CarrierQuote.order_id == order_id, CarrierQuote.quote_id == quote_id)
        .values(is_selected=True, selected_at=selected_at)
    )
    if result.rowcount != 1:
        raise TransactionFailureError(
            "Selected quote was not stored with the order",
            details={"order_id": order_id, "quote_id": quote_id, "rows": result.rowcount},
        )
    return selected_at


class BookingOrchestrator:
    """
    Books an order against the best carrier quote.

    All collaborators are injected; the orchestrator holds no global state.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        aggregator: QuoteAggregator,
        adapters: Sequence[BaseCarrier],
        warehouses: WarehouseLookup,
        reliability: ReliabilitySource,
        default_reliability: float = DEFAULT_RELIABILITY,
        selector: Callable[..., SelectedQuote] = select_scored,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.session_factory = session_factory
        self.aggregator = aggregator
        self.adapters = list(adapters)
        self.warehouses = warehouses
        self.reliability = reliability
        self.default_reliability = default_reliability
        self.selector = selector
        self.metrics = metrics

    async def book_order(self, order_input: OrderInput, criteria: SelectionCriteria) -> BookingResult:
        """
        Create the order, quote every carrier, pick the best, and commit.

        Raises:
            NotFoundError: unknown warehouse or carrier
            NoQuotesAvailableError: no carrier produced a quote
            InvalidInputError: quotes could not be compared
            TransactionFailureError: the database rejected a write
        """
        order_number = generate_order_number()
        state = BookingState.STARTED
        logger.info(
            f"Booking started for {order_number}",
            extra={"event": "booking_started", "order_number": order_number,
                   "warehouse_id": order_input.warehouse_id},
        )

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    order = await self._persist_order(session, order_input, order_number)
                    state = BookingState.ITEMS_PERSISTED

                    warehouse = await self.warehouses.get_warehouse(order_input.warehouse_id, session=session)
                    request = self.build_request(order_input, warehouse, order_number)

                    collection = await self.aggregator.collect(request, self.adapters)
                    if not collection.quotes:
                        raise NoQuotesAvailableError(
                            "No carrier quotes available",
                            details={
                                "order_number": order_number,
                                "failures": [
                                    {"carrier_code": f.carrier_code, "reason": f.reason}
                                    for f in collection.failures
                                ],
                            },
                        )
                    state = BookingState.QUOTES_COLLECTED

                    reliability = await self.reliability.get_scores(
                        sorted({q.carrier_code for q in collection.quotes}), session=session
                    )
                    selected = self.selector(
                        collection.quotes, criteria, reliability, self.default_reliability
                    )
                    state = BookingState.QUOTE_SELECTED
                    logger.info(
                        f"Selected {selected.quote.carrier_code} for {order_number}: "
                        f"{selected.quote.price} {selected.quote.currency}, "
                        f"{selected.quote.estimated_delivery_days} days",
                        extra={
                            "event": "quote_selected",
                            "order_number": order_number,
                            "carrier_code": selected.quote.carrier_code,
                            "quote_id": selected.quote.quote_id,
                            "price": str(selected.quote.price),
                            "delivery_days": selected.quote.estimated_delivery_days,
                            "composite_score": selected.scored.composite_score,
                        },
                    )

                    carrier_id = await self._resolve_carrier_id(session, selected.quote)
                    await self._persist_quotes(session, order.id, collection, selected, carrier_id)
                    self._apply_selection(order, selected, carrier_id)
                    await self._insert_assignment(
                        session, order, order_input, warehouse, selected, carrier_id, collection
                    )
                    await session.flush()
                    order_id = order.id

        except SQLAlchemyError as e:
            self._record_abort(order_number, state, e)
            raise TransactionFailureError(
                f"Booking transaction failed: {type(e).__name__}",
                details={"order_number": order_number, "state": state.value},
            ) from e
        except Exception as e:
            self._record_abort(order_number, state, e)
            raise

        logger.info(
            f"Booking committed for {order_number}",
            extra={"event": "booking_committed", "order_number": order_number, "order_id": order_id},
        )
        if self.metrics:
            self.metrics.increment("booking_committed")

        return BookingResult(
            order_id=order_id,
            order_number=order_number,
            selected=selected,
            carrier_id=carrier_id,
            all_quotes=sorted(
                collection.quotes,
                key=lambda q: (q.price, q.estimated_delivery_days, q.carrier_code, q.quote_id),
            ),
        )

    def build_request(
        self, order_input: OrderInput, warehouse: WarehouseLocation, order_ref: str
    ) -> ShipmentRequest:
        return ShipmentRequest(
            origin=warehouse.to_location(),
            destination=order_input.delivery.to_location(),
            items=tuple(line.to_manifest_item() for line in order_input.items),
            order_ref=order_ref,
        )

    # ==================== Steps ====================

    async def _persist_order(self, session: AsyncSession, order_input: OrderInput, order_number: str) -> Order:
        delivery = order_input.delivery
        order = Order(
            order_number=order_number,
            customer_id=order_input.customer_id,
            warehouse_id=order_input.warehouse_id,
            status=OrderStatus.PENDING,
            total_amount=order_input.total_amount,
            priority=order_input.priority,
            express_delivery=order_input.express_delivery,
            special_instructions=order_input.special_instructions,
            delivery_address=delivery.address,
            delivery_latitude=delivery.latitude,
            delivery_longitude=delivery.longitude,
            delivery_postal_code=delivery.postal_code,
        )
        session.add(order)
        await session.flush()

        session.add_all([
            OrderItem(
                order_id=order.id,
                product_id=line.product_id,
                quantity=line.quantity,
                price=line.price,
                weight_kg=line.weight_kg,
                dimensions={
                    "length": line.length_cm,
                    "width": line.width_cm,
                    "height": line.height_cm,
                },
                is_fragile=line.is_fragile,
                requires_cold_storage=line.requires_cold_storage,
            )
            for line in order_input.items
        ])
        await session.flush()
        return order

    async def _resolve_carrier_id(self, session: AsyncSession, quote: Quote) -> int:
        if quote.carrier_id is not None:
            return quote.carrier_id
        result = await session.execute(select(Carrier.id).where(Carrier.code == quote.carrier_code))
        carrier_id = result.scalar_one_or_none()
        if carrier_id is None:
            raise NotFoundError("Carrier", quote.carrier_code)
        return carrier_id

    async def _persist_quotes(
        self,
        session: AsyncSession,
        order_id: int,
        collection: QuoteCollection,
        selected: SelectedQuote,
        selected_carrier_id: int,
    ) -> None:
        for quote in collection.quotes:
            carrier_id = quote.carrier_id
            if quote.quote_id == selected.quote.quote_id:
                carrier_id = selected_carrier_id
            session.add(CarrierQuote(
                quote_id=quote.quote_id,
                order_id=order_id,
                carrier_id=carrier_id,
                carrier_code=quote.carrier_code,
                carrier_name=quote.carrier_name,
                quoted_price=quote.price,
                currency=quote.currency,
                estimated_delivery_days=quote.estimated_delivery_days,
                estimated_delivery_date=quote.estimated_delivery_date,
                service_type=quote.service_type,
                valid_until=quote.valid_until,
                breakdown={k: str(v) for k, v in quote.breakdown.items()},
                raw_payload=quote.raw_payload,
                is_selected=False,
            ))

        for failure in collection.failures:
            session.add(CarrierRejection(
                order_id=order_id,
                carrier_code=failure.carrier_code,
                carrier_name=failure.carrier_name,
                reason=failure.reason,
                message=failure.message[:500],
            ))

        await session.flush()
        await mark_quote_selected(session, order_id, selected.quote.quote_id)

        await session.execute(
            update(CarrierQuote)
            .where(CarrierQuote.quote_id == selected.quote.quote_id)
            .values(composite_score=selected.scored.composite_score)
        )

    def _apply_selection(self, order: Order, selected: SelectedQuote, carrier_id: int) -> None:
        quote = selected.quote
        order.carrier_id = carrier_id
        order.shipping_cost = quote.price
        order.shipping_currency = quote.currency
        order.estimated_delivery_days = quote.estimated_delivery_days
        order.estimated_delivery_date = quote.estimated_delivery_date
        order.status = OrderStatus.CARRIER_ASSIGNED

    async def _insert_assignment(
        self,
        session: AsyncSession,
        order: Order,
        order_input: OrderInput,
        warehouse: WarehouseLocation,
        selected: SelectedQuote,
        carrier_id: int,
        collection: QuoteCollection,
    ) -> CarrierAssignment:
        scored = selected.scored
        assignment = CarrierAssignment(
            order_id=order.id,
            carrier_id=carrier_id,
            carrier_code=selected.quote.carrier_code,
            quote_id=selected.quote.quote_id,
            status="pending",
            request_payload={
                "order": order_input.model_dump(mode="json"),
                "quote": selected.quote.to_dict(),
                "criteria": selected.criteria.to_dict(),
                "scores": {
                    "price": scored.price_score,
                    "speed": scored.speed_score,
                    "reliability": scored.reliability_score,
                    "composite": scored.composite_score,
                },
                "selected_at": selected.selected_at.isoformat(),
                "quotes_considered": [q.quote_id for q in collection.quotes],
                "pickup": {
                    "warehouse_id": warehouse.id,
                    "address": f"{warehouse.name}, {warehouse.address}",
                    "latitude": warehouse.latitude,
                    "longitude": warehouse.longitude,
                    "postal_code": warehouse.postal_code,
                },
                "delivery": order_input.delivery.model_dump(mode="json"),
            },
        )
        session.add(assignment)
        await session.flush()
        return assignment

    def _record_abort(self, order_number: str, state: BookingState, error: Exception) -> None:
        logger.warning(
            f"Booking aborted for {order_number} at {state.value}: {type(error).__name__}: {error}",
            extra={
                "event": "booking_aborted",
                "order_number": order_number,
                "state": state.value,
                "error_type": type(error).__name__,
            },
        )
        if self.metrics:
            self.metrics.increment("booking_aborted", labels={"state": state.value})
