"""Low stock alert template: internal notification to the store admin."""

from notifications.templates.names import Audience, EmailTemplate


class LowStockAlertTemplate:
    name = EmailTemplate.ADMIN_LOW_STOCK.value
    audience = Audience.ADMIN.value

    @staticmethod
    def render(context: dict) -> dict:
        product_name = context.get("product_name") or context.get("product_id", "N/A")
        return {
            "subject": f"[Low Stock] {product_name}",
            "body": (
                f"Low stock alert for {product_name}\n\n"
                f"Product ID: {context.get('product_id', 'N/A')}\n"
                f"Current Stock: {context.get('stock', 0)}\n"
                f"Threshold: {context.get('threshold', 0)}\n\n"
                "Please review and reorder as needed."
            ),
        }
