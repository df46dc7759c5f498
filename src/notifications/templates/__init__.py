"""Template registry: maps email template names to template classes.

Each template knows its audience (customer or admin) and how to render a
plain-text subject and body from the context supplied by the caller.
"""

from notifications.templates.delivery_confirmation import DeliveryConfirmationTemplate
from notifications.templates.low_stock_alert import LowStockAlertTemplate
from notifications.templates.names import EmailTemplate
from notifications.templates.new_order_alert import NewOrderAlertTemplate
from notifications.templates.order_cancellation import OrderCancellationTemplate
from notifications.templates.order_confirmation import OrderConfirmationTemplate
from notifications.templates.out_of_stock_alert import OutOfStockAlertTemplate
from notifications.templates.refund_notification import RefundNotificationTemplate
from notifications.templates.refund_processed_alert import RefundProcessedAlertTemplate
from notifications.templates.restoration_failure_alert import RestorationFailureAlertTemplate
from notifications.templates.shipping_notification import ShippingNotificationTemplate

TEMPLATE_REGISTRY: dict[str, type] = {
    EmailTemplate.ORDER_CONFIRMATION.value: OrderConfirmationTemplate,
    EmailTemplate.SHIPPING_NOTIFICATION.value: ShippingNotificationTemplate,
    EmailTemplate.DELIVERY_CONFIRMATION.value: DeliveryConfirmationTemplate,
    EmailTemplate.ORDER_CANCELED.value: OrderCancellationTemplate,
    EmailTemplate.ORDER_REFUNDED.value: RefundNotificationTemplate,
    EmailTemplate.ADMIN_NEW_ORDER.value: NewOrderAlertTemplate,
    EmailTemplate.ADMIN_LOW_STOCK.value: LowStockAlertTemplate,
    EmailTemplate.ADMIN_OUT_OF_STOCK.value: OutOfStockAlertTemplate,
    EmailTemplate.ADMIN_REFUND_PROCESSED.value: RefundProcessedAlertTemplate,
    EmailTemplate.ADMIN_STOCK_RESTORATION_FAILED.value: RestorationFailureAlertTemplate,
}


def get_template(name: str):
    """Look up a template class by its name."""
    template_cls = TEMPLATE_REGISTRY.get(name)
    if template_cls is None:
        raise ValueError(f"No template registered for email: {name}")
    return template_cls
