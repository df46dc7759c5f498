"""Refund processed alert: internal record of an admin-issued refund."""

from notifications.templates.names import Audience, EmailTemplate
from shared.money import display


class RefundProcessedAlertTemplate:
    name = EmailTemplate.ADMIN_REFUND_PROCESSED.value
    audience = Audience.ADMIN.value

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        return {
            "subject": f"[Refund] Order #{order_id} - {display(context.get('refund_amount', 0))}",
            "body": (
                f"A refund was processed.\n\n"
                f"Order ID: {order_id}\n"
                f"Refund ID: {context.get('refund_id', 'N/A')}\n"
                f"Amount: {display(context.get('refund_amount', 0))}\n"
                f"Reason: {context.get('reason', 'N/A')}\n"
                f"Customer: {context.get('customer_email', 'N/A')}\n"
                f"Processed by: {context.get('admin_email', 'N/A')}\n"
                f"Stock restored: {'yes' if context.get('stock_restored') else 'no'}\n"
            ),
        }
