"""
Checkout Service — the order lifecycle controller.

    checkout ─► price cart ─► insert CREATED ─► gateway intent ─► AWAITING_PAYMENT
    confirm  ─► verify signature ─► find by gateway id ─► settle PAID (+ coupon use)
                                                      └─► PAYMENT_FAILED

Every write is conditional on the state the service read. A replayed or
concurrent confirmation loses the compare-and-set and is answered with the
state that won, so the paid transition and its coupon use happen once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from kungfu import Result, Ok, Error

from crunchpay._types import Clock, Money, ZERO, to_money, to_minor_units, utcnow
from crunchpay.catalog import Catalog
from crunchpay.coupons import CartContext, CouponRejection, evaluate, normalize_code
from crunchpay.gateway import Gateway, VerificationError
from crunchpay.orders import (
    AppliedCoupon,
    FulfillmentStatus,
    LineItem,
    Order,
    OrderStatus,
    TransitionError,
    new_order,
)
from crunchpay.store import Commit, Ledger
from crunchpay.checkout._types import (
    CartLine,
    CheckoutRequest,
    PreviewRequest,
    ConfirmRequest,
    FailureReport,
    CheckoutReceipt,
    Quote,
    ConfirmOutcome,
    CheckoutError,
    CheckoutErrors,
    ConfirmError,
    ConfirmErrors,
    FulfillmentError,
    FulfillmentErrorKind,
)

logger = logging.getLogger(__name__)

COUPON_LIMIT_REACHED = "coupon_limit_reached"
INVALID_SIGNATURE = "invalid_signature"
MAX_REASON_LENGTH = 64


@dataclass(frozen=True, slots=True)
class _Priced:
    line_items: tuple[LineItem, ...]
    subtotal: Money
    applied_coupon: AppliedCoupon | None


class CheckoutService:
    """
    Orchestrates coupon pricing, gateway intents and settlement.

    Example:
        service = CheckoutService(ledger, gateway, catalog)

        match await service.checkout(CheckoutRequest(items, "SAVE20", user_id="u1")):
            case Ok(receipt):
                receipt.intent.gateway_order_id   # hand to the payment widget
            case Error(err):
                err.kind, err.retryable

        match await service.confirm(ConfirmRequest(confirmation, user_id="u1")):
            case Ok(outcome):
                outcome.status, outcome.already_finalized
            case Error(err):
                ...
    """

    def __init__(
        self,
        ledger: Ledger,
        gateway: Gateway,
        catalog: Catalog,
        *,
        currency: str = "INR",
        clock: Clock = utcnow,
        max_line_quantity: int = 100,
    ) -> None:
        self._ledger = ledger
        self._gateway = gateway
        self._catalog = catalog
        self._currency = currency
        self._clock = clock
        self._max_line_quantity = max_line_quantity

    # ═══════════════════════════════════════════════════════════════════════════
    # Checkout
    # ═══════════════════════════════════════════════════════════════════════════

    async def checkout(self, req: CheckoutRequest) -> Result[CheckoutReceipt, CheckoutError]:
        match await self._price(req.items, req.coupon_code, req.user_id):
            case Error(e):
                return Error(e)
            case Ok(priced):
                pass

        order = new_order(
            user_id=req.user_id,
            line_items=priced.line_items,
            applied_coupon=priced.applied_coupon,
            currency=self._currency,
            created_at=self._clock(),
        )
        if to_minor_units(order.total_price) <= 0:
            return Error(CheckoutErrors.nothing_to_pay())

        match await self._ledger.insert_order(order):
            case Error(e):
                logger.error("Could not persist order %s: %s", order.id, e.message)
                return Error(CheckoutErrors.store())
            case Ok(_):
                logger.info("Order %s created (total %s %s)", order.id, order.total_price, order.currency)

        match await self._gateway.create_intent(order.id, order.total_price, order.currency):
            case Error(gateway_error):
                # Order stays CREATED; checking out again is the retry.
                return Error(CheckoutErrors.gateway(gateway_error))
            case Ok(intent):
                pass

        awaiting = order.with_intent(intent.gateway_order_id)
        match await self._ledger.apply(awaiting, order):
            case Ok(Commit.APPLIED):
                logger.info("Order %s awaiting payment on %s", order.id, intent.gateway_order_id)
                return Ok(CheckoutReceipt(order=awaiting, intent=intent))
            case Ok(commit):
                logger.error("Order %s changed under checkout: %s", order.id, commit.value)
                return Error(CheckoutErrors.store())
            case Error(e):
                logger.error("Could not record intent for %s: %s", order.id, e.message)
                return Error(CheckoutErrors.store())

    async def preview(self, req: PreviewRequest) -> Result[Quote, CheckoutError]:
        """Price a cart and coupon without creating anything."""
        match await self._price(req.items, req.coupon_code, req.user_id):
            case Error(e):
                return Error(e)
            case Ok(priced):
                discount = priced.applied_coupon.discount if priced.applied_coupon else ZERO
                return Ok(
                    Quote(
                        subtotal=priced.subtotal,
                        discount=discount,
                        final_total=to_money(max(ZERO, priced.subtotal - discount)),
                        coupon_code=priced.applied_coupon.code if priced.applied_coupon else None,
                    )
                )

    async def _price(
        self,
        items: tuple[CartLine, ...],
        coupon_code: str | None,
        user_id: str | None,
    ) -> Result[_Priced, CheckoutError]:
        match self._normalize_cart(items):
            case Error(e):
                return Error(e)
            case Ok(lines):
                pass

        line_items: list[LineItem] = []
        for line in lines:
            match await self._catalog.price_snapshot(line.product_id):
                case Error(e):
                    logger.error("Catalog lookup failed for %s: %s", line.product_id, e.message)
                    return Error(CheckoutErrors.store())
                case Ok(None):
                    return Error(CheckoutErrors.unknown_product(line.product_id))
                case Ok(product):
                    line_items.append(
                        LineItem(
                            product_id=product.id,
                            name=product.name,
                            quantity=line.quantity,
                            unit_price=to_money(product.price),
                        )
                    )

        subtotal = to_money(sum((item.line_total for item in line_items), ZERO))
        code = normalize_code(coupon_code) if coupon_code else ""
        if not code:
            return Ok(_Priced(tuple(line_items), subtotal, None))

        match await self._ledger.get_coupon(code):
            case Error(e):
                logger.error("Coupon lookup failed for %s: %s", code, e.message)
                return Error(CheckoutErrors.store())
            case Ok(None):
                return self._rejected(code, CouponRejection.UNKNOWN_COUPON)
            case Ok(coupon):
                pass

        match evaluate(coupon, CartContext(subtotal=subtotal, user_id=user_id, now=self._clock())):
            case Error(rejection):
                return self._rejected(code, rejection)
            case Ok(outcome):
                applied = AppliedCoupon(code=coupon.code, discount=outcome.discount)
                return Ok(_Priced(tuple(line_items), subtotal, applied))

    def _normalize_cart(
        self, items: tuple[CartLine, ...]
    ) -> Result[tuple[CartLine, ...], CheckoutError]:
        """Reject malformed lines, merge repeated products."""
        if not items:
            return Error(CheckoutErrors.malformed_cart("Cart is empty"))

        quantities: dict[str, int] = {}
        for line in items:
            product_id = line.product_id.strip()
            if not product_id:
                return Error(CheckoutErrors.malformed_cart("Cart line is missing a product"))
            if line.quantity < 1:
                return Error(CheckoutErrors.malformed_cart("Quantity must be at least 1"))
            quantities[product_id] = quantities.get(product_id, 0) + line.quantity

        for product_id, quantity in quantities.items():
            if quantity > self._max_line_quantity:
                return Error(
                    CheckoutErrors.malformed_cart(
                        f"Quantity for {product_id} exceeds {self._max_line_quantity}"
                    )
                )

        return Ok(tuple(CartLine(pid, qty) for pid, qty in quantities.items()))

    @staticmethod
    def _rejected(code: str, rejection: CouponRejection) -> Result[_Priced, CheckoutError]:
        logger.info("Coupon %s rejected: %s", code, rejection.value)
        return Error(CheckoutErrors.coupon_rejected(rejection))

    # ═══════════════════════════════════════════════════════════════════════════
    # Confirmation
    # ═══════════════════════════════════════════════════════════════════════════

    async def confirm(self, req: ConfirmRequest) -> Result[ConfirmOutcome, ConfirmError]:
        """
        Apply a payment confirmation. Safe to call any number of times.

        Note: the order is located by the gateway order id carried in the
        signed payload, never by req.order_id alone.
        """
        match self._gateway.verify(req.confirmation):
            case Error(VerificationError.INVALID_SIGNATURE):
                logger.warning(
                    "Invalid payment signature for %s", req.confirmation.gateway_order_id
                )
                return await self._reject_signature(req)
            case Ok(verified):
                pass

        match await self._locate(verified.gateway_order_id, req.user_id, req.order_id):
            case Error(e):
                return Error(e)
            case Ok(order):
                pass

        if order.status.is_final:
            return Ok(ConfirmOutcome.of(order, already_finalized=True))

        paid = order.settle(verified.gateway_payment_id, paid_at=self._clock())
        match await self._ledger.settle(paid, order):
            case Error(e):
                logger.error("Could not settle %s: %s", order.id, e.message)
                return Error(ConfirmErrors.store())
            case Ok(Commit.APPLIED):
                logger.info("Order %s paid (%s)", order.id, verified.gateway_payment_id)
                return Ok(ConfirmOutcome.of(paid, already_finalized=False))
            case Ok(Commit.STALE):
                return await self._current(order.id)
            case Ok(Commit.GLOBAL_LIMIT_REACHED | Commit.PER_USER_LIMIT_REACHED as commit):
                logger.warning(
                    "Coupon %s could not be redeemed for %s: %s",
                    order.applied_coupon.code if order.applied_coupon else None,
                    order.id,
                    commit.value,
                )
                failed = order.fail(
                    COUPON_LIMIT_REACHED,
                    gateway_payment_id=verified.gateway_payment_id,
                    signature_verified=True,
                )
                return await self._write_failure(failed, order)

    async def report_failure(self, report: FailureReport) -> Result[ConfirmOutcome, ConfirmError]:
        """AWAITING_PAYMENT → PAYMENT_FAILED on a gateway-reported failure."""
        match await self._locate(report.gateway_order_id, report.user_id, None):
            case Error(e):
                return Error(e)
            case Ok(order):
                pass

        if order.status.is_final:
            return Ok(ConfirmOutcome.of(order, already_finalized=True))

        reason = report.reason.strip()[:MAX_REASON_LENGTH] or "payment_failed"
        failed = order.fail(reason, gateway_payment_id=report.gateway_payment_id)
        return await self._write_failure(failed, order)

    async def _reject_signature(self, req: ConfirmRequest) -> Result[ConfirmOutcome, ConfirmError]:
        """
        Fail the caller's own awaiting order, then report the bad signature.

        Guest orders have no owner to check the caller against and are left as
        they are; a genuine confirmation can still settle them.
        """
        match await self._locate(req.confirmation.gateway_order_id, req.user_id, req.order_id):
            case Ok(order) if order.user_id is not None and order.status is OrderStatus.AWAITING_PAYMENT:
                failed = order.fail(INVALID_SIGNATURE)
                match await self._ledger.apply(failed, order):
                    case Ok(Commit.APPLIED):
                        logger.info("Order %s failed: %s", order.id, INVALID_SIGNATURE)
                    case Ok(_):
                        pass
                    case Error(e):
                        logger.error("Could not fail %s: %s", order.id, e.message)
            case _:
                pass
        return Error(ConfirmErrors.invalid_signature())

    async def _locate(
        self,
        gateway_order_id: str,
        user_id: str | None,
        order_id: str | None,
    ) -> Result[Order, ConfirmError]:
        match await self._ledger.find_by_gateway_order(gateway_order_id):
            case Error(e):
                logger.error("Order lookup failed for %s: %s", gateway_order_id, e.message)
                return Error(ConfirmErrors.store())
            case Ok(None):
                return Error(ConfirmErrors.order_not_found())
            case Ok(order):
                pass

        if order_id is not None and order_id != order.id:
            return Error(ConfirmErrors.order_mismatch())
        if order.user_id is not None and order.user_id != user_id:
            return Error(ConfirmErrors.not_order_owner())
        return Ok(order)

    async def _write_failure(
        self, failed: Order, previous: Order
    ) -> Result[ConfirmOutcome, ConfirmError]:
        match await self._ledger.apply(failed, previous):
            case Error(e):
                logger.error("Could not fail %s: %s", previous.id, e.message)
                return Error(ConfirmErrors.store())
            case Ok(Commit.APPLIED):
                logger.info("Order %s failed: %s", failed.id, failed.payment.failure_reason)
                return Ok(ConfirmOutcome.of(failed, already_finalized=False))
            case Ok(_):
                return await self._current(previous.id)

    async def _current(self, order_id: str) -> Result[ConfirmOutcome, ConfirmError]:
        """Answer a lost race with whatever state won it."""
        match await self._ledger.get_order(order_id):
            case Error(e):
                logger.error("Could not re-read %s: %s", order_id, e.message)
                return Error(ConfirmErrors.store())
            case Ok(None):
                return Error(ConfirmErrors.order_not_found())
            case Ok(order):
                return Ok(ConfirmOutcome.of(order, already_finalized=True))

    # ═══════════════════════════════════════════════════════════════════════════
    # Fulfillment
    # ═══════════════════════════════════════════════════════════════════════════

    async def advance_fulfillment(
        self, order_id: str, target: FulfillmentStatus
    ) -> Result[Order, FulfillmentError]:
        match await self._ledger.get_order(order_id):
            case Error(e):
                logger.error("Order lookup failed for %s: %s", order_id, e.message)
                return Error(FulfillmentError(FulfillmentErrorKind.STORE_UNAVAILABLE, "Order store unavailable"))
            case Ok(None):
                return Error(FulfillmentError(FulfillmentErrorKind.ORDER_NOT_FOUND, "Order not found"))
            case Ok(order):
                pass

        try:
            updated = order.advance(target, at=self._clock())
        except TransitionError as e:
            return Error(FulfillmentError(FulfillmentErrorKind.ILLEGAL_TRANSITION, str(e)))

        match await self._ledger.apply(updated, order):
            case Error(e):
                logger.error("Could not update %s: %s", order_id, e.message)
                return Error(FulfillmentError(FulfillmentErrorKind.STORE_UNAVAILABLE, "Order store unavailable"))
            case Ok(Commit.APPLIED):
                logger.info("Order %s fulfillment: %s", order_id, target.value)
                return Ok(updated)
            case Ok(_):
                return Error(FulfillmentError(FulfillmentErrorKind.CONFLICT, "Order was modified concurrently"))

    async def cancel(self, order_id: str) -> Result[Order, FulfillmentError]:
        return await self.advance_fulfillment(order_id, FulfillmentStatus.CANCELLED)


__all__ = ("CheckoutService", "COUPON_LIMIT_REACHED", "INVALID_SIGNATURE")
