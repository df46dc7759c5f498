from enum import Enum


class EmailTemplate(Enum):
    ORDER_CONFIRMATION = "order-confirmation"
    SHIPPING_NOTIFICATION = "shipping-notification"
    DELIVERY_CONFIRMATION = "delivery-confirmation"
    ORDER_CANCELED = "order-canceled"
    ORDER_REFUNDED = "order-refunded"
    ADMIN_NEW_ORDER = "admin-new-order"
    ADMIN_LOW_STOCK = "admin-low-stock"
    ADMIN_OUT_OF_STOCK = "admin-out-of-stock"
    ADMIN_REFUND_PROCESSED = "admin-refund-processed"
    ADMIN_STOCK_RESTORATION_FAILED = "admin-stock-restoration-failed"


class Audience(Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
