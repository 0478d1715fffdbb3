import logging
from html import escape
from typing import Optional

from aiogram import Bot
from aiogram.client.default import DefaultBotProperties

from marketplace.core.config import get_settings
from marketplace.db.models.order import Order, OrderStatus

logger = logging.getLogger(__name__)

_STATUS_HEADLINES = {
    OrderStatus.PENDING: "🛒 New order",
    OrderStatus.CANCELLED: "❌ Order cancelled",
    OrderStatus.RETURNED: "↩️ Order returned",
}


def format_order_alert(order: Order) -> str:
    status = OrderStatus(order.status)
    headline = _STATUS_HEADLINES.get(status, "📦 Order updated")
    lines = [
        f"<b>{headline}</b>",
        f"Order: <b>#{escape(order.order_number)}</b>",
        f"Total: {order.total_amount} {order.buyer_currency or ''}".rstrip(),
        f"Status: {status.value}",
    ]
    if order.status_explanation:
        lines.append(f"Reason: {escape(order.status_explanation)}")
    return "\n".join(lines)


class TelegramNotificationService:
    def __init__(self, token: Optional[str] = None):
        token = token if token is not None else get_settings().TELEGRAM_BOT_TOKEN
        self.bot = Bot(token=token, default=DefaultBotProperties(parse_mode="HTML")) if token else None

    @property
    def is_configured(self) -> bool:
        return self.bot is not None

    async def send_order_notification(self, chat_id: str, order: Order) -> bool:
        if not self.is_configured:
            logger.debug("Telegram bot token not configured, skipping order alert")
            return False
        await self.bot.send_message(chat_id=chat_id, text=format_order_alert(order))
        return True

    async def close(self) -> None:
        if self.bot is not None:
            await self.bot.session.close()
