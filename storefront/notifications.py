"""
Order summaries for the store operator.

The summary is plain text with WhatsApp markup (``*bold*``). Delivery happens
outside the storefront: the dispatcher builds a click-to-chat link that the
shopper's client opens.
"""
from __future__ import annotations

import logging
from typing import Optional, Protocol
from urllib.parse import quote

from .schemas import Coupon, Order

logger = logging.getLogger(__name__)


def format_money(amount: float, symbol: str = "R$") -> str:
    return f"{symbol} {amount:.2f}".replace(".", ",")


def format_order_message(
    order: Order,
    coupon: Optional[Coupon] = None,
    store_name: str = "BELLE LINGERIE",
    currency: str = "R$",
) -> str:
    msg = (
        f"*PEDIDO {store_name}*\n\n"
        f"👤 *Cliente:* {order.customer_name}\n"
        f"📍 *Endereço:* {order.customer_address}\n"
        f"💳 *Pagamento:* {order.payment_method}\n\n"
        f"🛒 *ITENS:*"
    )
    for item in order.items:
        msg += f"\n- {item.quantity}x {item.name} ({item.selected_size}, {item.selected_color})"
    if coupon is not None:
        msg += f"\n\n🏷️ *Cupom:* {coupon.code} (-{coupon.discount:g}%)"
    msg += f"\n\n💰 *Total:* {format_money(order.total, currency)}"
    return msg


def whatsapp_link(destination: str, message: str) -> str:
    return f"https://wa.me/{destination}?text={quote(message, safe='')}"


class NotificationDispatcher(Protocol):
    async def dispatch(self, message: str, destination: str) -> None: ...


class WhatsAppDispatcher:
    async def dispatch(self, message: str, destination: str) -> None:
        logger.info("Order summary ready for %s: %s", destination, whatsapp_link(destination, message))
