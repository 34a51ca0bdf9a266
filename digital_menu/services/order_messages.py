"""
Order Message Formatting

Renders a priced order into the WhatsApp text sent to the establishment and
builds the click-to-chat link that pre-fills it.
"""

import re
from decimal import Decimal
from typing import Any, Optional
from urllib.parse import quote

from digital_menu.core.config import get_settings
from digital_menu.core.exceptions import MissingContactChannelError
from digital_menu.models import Establishment, Order


def _money(value: Any, symbol: str) -> str:
    return f"{symbol} {Decimal(str(value)):.2f}"


def normalize_contact_handle(phone: Optional[str]) -> Optional[str]:
    """Digits-only form of a phone number, or None when nothing is left."""
    if not phone:
        return None
    digits = re.sub(r"\D", "", phone)
    return digits or None


def require_contact_handle(establishment: Establishment) -> str:
    handle = normalize_contact_handle(establishment.whatsapp_phone)
    if handle is None:
        raise MissingContactChannelError(establishment.id)
    return handle


def format_order_message(
    establishment: Establishment,
    order: Order,
    currency_symbol: Optional[str] = None,
) -> str:
    """
    Render the order as WhatsApp-flavoured text.

    Sections appear in a fixed order: header, customer block, items, total,
    general notes, status. Option lines carry a price suffix only when the
    option added something to the unit price.
    """
    symbol = currency_symbol or get_settings().currency_symbol

    lines = [f"*New Order - {establishment.name}*", ""]
    lines.append(f"*Customer:* {order.customer_name}")
    lines.append(f"*Phone:* {order.customer_phone}")
    if order.customer_address:
        lines.append(f"*Address:* {order.customer_address}")
    lines.append("*Items:*")

    for item in order.items:
        lines.append(
            f"- {item.quantity}x {item.product_name} ({_money(item.unit_price, symbol)})"
        )
        if item.selected_options:
            lines.append("  *Options:*")
            for option in item.selected_options:
                option_line = f"  - {option['group_name']}: {option['value']}"
                extra = Decimal(str(option.get("extra_price") or "0"))
                if extra > 0:
                    option_line += f" (+{_money(extra, symbol)})"
                lines.append(option_line)
        if item.notes:
            lines.append(f"  *Notes:* {item.notes}")

    lines.append("")
    lines.append(f"*Total:* {_money(order.total, symbol)}")

    if order.notes:
        lines.append("")
        lines.append(f"*General notes:* {order.notes}")

    status = order.status.value if order.status is not None else "pending"
    lines.append("")
    lines.append(f"*Status:* {status}")

    return "\n".join(lines)


def build_notification_link(
    establishment: Establishment,
    message: str,
    base_url: Optional[str] = None,
) -> str:
    """
    Build the WhatsApp click-to-chat URL for the establishment.

    Raises:
        MissingContactChannelError: The establishment has no usable number
    """
    handle = require_contact_handle(establishment)
    base_url = (base_url or get_settings().whatsapp_base_url).rstrip("/")
    return f"{base_url}/{handle}?text={quote(message, safe='')}"
