"""Out of stock alert template: internal notification to the store admin."""

from notifications.templates.names import Audience, EmailTemplate


class OutOfStockAlertTemplate:
    name = EmailTemplate.ADMIN_OUT_OF_STOCK.value
    audience = Audience.ADMIN.value

    @staticmethod
    def render(context: dict) -> dict:
        product_name = context.get("product_name") or context.get("product_id", "N/A")
        return {
            "subject": f"[Out of Stock] {product_name}",
            "body": (
                f"{product_name} is now out of stock.\n\n"
                f"Product ID: {context.get('product_id', 'N/A')}\n"
                f"Last order: #{context.get('order_id', 'N/A')}\n\n"
                "The product is hidden from checkout until it is restocked."
            ),
        }
