import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from fastapi_mail.errors import ConnectionErrors

from marketplace.core.config import get_settings
from marketplace.db.models.invoice import Invoice
from marketplace.db.models.order import Order, OrderStatus
from marketplace.services.email.config import get_email_settings

logger = logging.getLogger(__name__)

TEMPLATE_FOLDER = Path(__file__).parent / "templates"

# subject and template per seller notification kind
SELLER_NOTIFICATIONS = {
    "new_order": ("New order #{order_number}", "seller_notification.html"),
    "order_cancelled": ("Order #{order_number} was cancelled", "seller_notification.html"),
    "order_returned": ("Order #{order_number} was returned", "seller_notification.html"),
}

_CUSTOMER_SUBJECTS = {
    OrderStatus.IN_TRANSIT: "Your order #{order_number} has shipped",
    OrderStatus.DELIVERED: "Your order #{order_number} was delivered",
    OrderStatus.CANCELLED: "Your order #{order_number} was cancelled",
    OrderStatus.RETURNED: "Your order #{order_number} was returned",
}


class EmailService:
    """Service for sending emails using FastAPI-Mail"""

    def __init__(self):
        email_settings = get_email_settings()
        self.config = ConnectionConfig(
            MAIL_USERNAME=email_settings.MAIL_USERNAME,
            MAIL_PASSWORD=email_settings.MAIL_PASSWORD,
            MAIL_FROM=email_settings.MAIL_FROM,
            MAIL_PORT=email_settings.MAIL_PORT,
            MAIL_SERVER=email_settings.MAIL_SERVER,
            MAIL_FROM_NAME=email_settings.MAIL_FROM_NAME,
            MAIL_STARTTLS=email_settings.MAIL_STARTTLS,
            MAIL_SSL_TLS=email_settings.MAIL_SSL_TLS,
            USE_CREDENTIALS=email_settings.MAIL_USE_CREDENTIALS,
            VALIDATE_CERTS=email_settings.MAIL_VALIDATE_CERTS,
            SUPPRESS_SEND=int(email_settings.MAIL_SUPPRESS_SEND),
            TEMPLATE_FOLDER=TEMPLATE_FOLDER,
        )
        self.fastmail = FastMail(self.config)
        self.frontend_url = get_settings().FRONTEND_URL

    async def send_email(
        self,
        recipients: List[str],
        subject: str,
        template_name: str,
        template_body: Dict[str, Any],
    ) -> bool:
        """Send a templated html email"""
        try:
            message = MessageSchema(
                subject=subject,
                recipients=[str(r) for r in recipients],
                template_body=template_body,
                subtype=MessageType.html,
            )
            await self.fastmail.send_message(message, template_name=template_name)
            return True
        except ConnectionErrors as e:
            logger.error(f"Failed to send email '{subject}': {str(e)}")
            return False

    async def send_invoice_summary(self, email: str, invoice: Invoice) -> bool:
        template_body = {
            "invoice_number": invoice.invoice_number,
            "week_start": invoice.week_start_date.isoformat(),
            "week_end": invoice.week_end_date.isoformat(),
            "due_date": invoice.due_date.isoformat(),
            "order_count": invoice.order_count,
            "total_amount_mkd": str(invoice.total_amount_mkd),
            "total_amount_eur": str(invoice.total_amount_eur),
            "items": [
                {
                    "order_number": item.order_number,
                    "product_price": str(item.product_price),
                    "platform_fee": str(item.platform_fee),
                    "affiliate_fee": str(item.affiliate_fee),
                    "total_owed": str(item.total_owed),
                }
                for item in invoice.items
            ],
            "invoice_url": f"{self.frontend_url}/invoices/{invoice.id}",
        }
        return await self.send_email(
            recipients=[email],
            subject=f"Invoice {invoice.invoice_number}",
            template_name="invoice_summary.html",
            template_body=template_body,
        )

    async def send_seller_notification(self, email: str, kind: str, payload: Dict[str, Any]) -> bool:
        if kind not in SELLER_NOTIFICATIONS:
            raise ValueError(f"Unknown seller notification: {kind}")
        subject, template_name = SELLER_NOTIFICATIONS[kind]
        return await self.send_email(
            recipients=[email],
            subject=subject.format(**payload),
            template_name=template_name,
            template_body={"kind": kind, **payload},
        )

    async def send_order_status_email(self, email: str, order: Order) -> bool:
        status = OrderStatus(order.status)
        subject = _CUSTOMER_SUBJECTS.get(status)
        if subject is None:
            return False
        return await self.send_email(
            recipients=[email],
            subject=subject.format(order_number=order.order_number),
            template_name="order_status.html",
            template_body={
                "order_number": order.order_number,
                "status": status.value,
                "tracking_id": order.tracking_id,
                "explanation": order.status_explanation,
                "order_url": f"{self.frontend_url}/account/orders/{order.id}",
            },
        )


@lru_cache()
def get_email_service() -> EmailService:
    return EmailService()
