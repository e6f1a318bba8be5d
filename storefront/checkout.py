"""
Checkout flow.

Identification -> Delivery -> Payment -> Submitted, one step at a time. Going
back keeps what was typed; cancelling discards the form but not the cart.

Submitting relays the order to the operator no matter what the backend does:
recording the order and writing stock back are background tasks whose
failures are only logged, and stock is decremented locally right away.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from . import pricing
from .background import settle, spawn
from .cart import Cart
from .config import Settings
from .errors import InvalidTransition, ValidationFailure
from .ledger import StockLedger
from .notifications import NotificationDispatcher, format_order_message
from .schemas import CheckoutForm, Order, OrderLine

logger = logging.getLogger(__name__)


class CheckoutStep(str, Enum):
    IDENTIFICATION = "identification"
    DELIVERY = "delivery"
    PAYMENT = "payment"
    SUBMITTED = "submitted"


FORWARD = {
    CheckoutStep.IDENTIFICATION: CheckoutStep.DELIVERY,
    CheckoutStep.DELIVERY: CheckoutStep.PAYMENT,
    CheckoutStep.PAYMENT: CheckoutStep.SUBMITTED,
}

BACKWARD = {
    CheckoutStep.DELIVERY: CheckoutStep.IDENTIFICATION,
    CheckoutStep.PAYMENT: CheckoutStep.DELIVERY,
}

# form field that must be filled before leaving each step
REQUIRED_FIELD = {
    CheckoutStep.IDENTIFICATION: "name",
    CheckoutStep.DELIVERY: "address",
    CheckoutStep.PAYMENT: "payment",
}


@dataclass
class CheckoutReceipt:
    order: Order
    message: str
    pending: asyncio.Future


class CheckoutOrchestrator:
    def __init__(
        self,
        cart: Cart,
        ledger: StockLedger,
        orders,
        dispatcher: NotificationDispatcher,
        settings: Settings,
    ):
        self.cart = cart
        self.ledger = ledger
        self.orders = orders
        self.dispatcher = dispatcher
        self.settings = settings
        self.step = CheckoutStep.IDENTIFICATION
        self.form = CheckoutForm()

    def update(self, name: Optional[str] = None, address: Optional[str] = None, payment: Optional[str] = None) -> CheckoutForm:
        changes = {k: v for k, v in {"name": name, "address": address, "payment": payment}.items() if v is not None}
        self.form = self.form.model_copy(update=changes)
        return self.form

    async def advance(self) -> Optional[CheckoutReceipt]:
        """Move one step forward. Returns a receipt when the order is submitted."""
        target = FORWARD.get(self.step)
        if target is None:
            raise InvalidTransition(f"Cannot advance from {self.step.value}")
        self._validate_step()
        if target is CheckoutStep.SUBMITTED:
            return await self._submit()
        self.step = target
        return None

    def back(self) -> CheckoutStep:
        target = BACKWARD.get(self.step)
        if target is None:
            raise InvalidTransition(f"Cannot go back from {self.step.value}")
        self.step = target
        return self.step

    def cancel(self) -> None:
        if self.step is CheckoutStep.SUBMITTED:
            raise InvalidTransition("Order already submitted")
        self._reset()

    def _validate_step(self) -> None:
        field = REQUIRED_FIELD[self.step]
        value = getattr(self.form, field).strip()
        if not value:
            raise ValidationFailure(f"Checkout field '{field}' is required")
        if field == "payment" and value not in self.settings.PAYMENT_METHODS:
            raise ValidationFailure(f"Unknown payment method: {value}")

    def _build_order(self) -> Order:
        lines = self.cart.snapshot()
        coupon = self.cart.coupon
        return Order(
            customer_name=self.form.name.strip(),
            customer_address=self.form.address.strip(),
            payment_method=self.form.payment.strip(),
            items=tuple(
                OrderLine(
                    product_id=line.product.id,
                    name=line.product.name,
                    price=pricing.effective_price(line.product),
                    selected_color=line.selected_color,
                    selected_size=line.selected_size,
                    quantity=line.quantity,
                )
                for line in lines
            ),
            subtotal=pricing.subtotal(lines),
            discount_code=coupon.code if coupon else None,
            discount_amount=pricing.discount_amount(lines, coupon),
            total=pricing.total(lines, coupon),
        )

    async def _submit(self) -> CheckoutReceipt:
        if not self.cart.lines:
            raise ValidationFailure("Cart is empty")
        order = self._build_order()
        coupon = self.cart.coupon
        self.step = CheckoutStep.SUBMITTED

        tasks = [spawn("order recording", self.orders.insert(order))]

        message = format_order_message(
            order,
            coupon,
            store_name=self.settings.STORE_NAME,
            currency=self.settings.CURRENCY_SYMBOL,
        )
        try:
            await self.dispatcher.dispatch(message, self.settings.NOTIFY_DESTINATION)
        except Exception:
            logger.exception("Order summary for %s could not be dispatched", order.customer_name)

        for item in order.items:
            remaining = self.ledger.decrement(item.product_id, item.selected_color, item.selected_size, item.quantity)
            logger.debug("%s (%s, %s) down to %d", item.name, item.selected_color, item.selected_size, remaining)
            task = self.ledger.persist(item.product_id)
            if task is not None:
                tasks.append(task)

        self.cart.clear()
        self._reset()
        logger.info("Order submitted by %s, total %.2f", order.customer_name, order.total)
        return CheckoutReceipt(order=order, message=message, pending=settle(tasks))

    def _reset(self) -> None:
        self.form = CheckoutForm()
        self.step = CheckoutStep.IDENTIFICATION
