"""Stock restoration failure alert: asks the admin to reconcile stock by hand."""

from notifications.templates.names import Audience, EmailTemplate


class RestorationFailureAlertTemplate:
    name = EmailTemplate.ADMIN_STOCK_RESTORATION_FAILED.value
    audience = Audience.ADMIN.value

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        failures = context.get("failures", [])
        lines = [
            f"  {failure.get('productId')}: +{failure.get('requestedDelta')} ({failure.get('error')})"
            for failure in failures
        ]
        return {
            "subject": f"[Action Required] Stock not restored for order #{order_id}",
            "body": (
                f"Order #{order_id} moved to {context.get('status', 'N/A')} but stock could not be "
                "restored for the following products:\n\n" + "\n".join(lines) + "\n\n"
                "Please adjust these products' stock manually."
            ),
        }
