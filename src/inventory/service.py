"""Inventory service — safe mutation of a product's stock counter.

Decrements use optimistic concurrency: the write only lands if ``stock``
still holds the value that was read, and a lost race re-reads and retries
a bounded number of times. Increments are additive, so they only require
the product to still exist.

Products without a ``stock`` attribute are untracked and always available;
both operations leave them untouched and report success.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ValidationError

from shared.clock import utc_now
from shared.errors import InsufficientStockError, StockContentionError
from storage.port import Condition, ItemNotFound, PreconditionFailed, Store, Table

logger = structlog.get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 3


@dataclass(frozen=True)
class StockUpdateRecord:
    """Outcome of one attempted stock mutation for one line item."""

    product_id: str
    requested_delta: int
    old_stock: int | None
    new_stock: int | None
    success: bool
    should_trigger_low_stock_alert: bool = False
    product_name: str | None = None
    low_stock_threshold: int | None = None
    tracked: bool = True
    error: str | None = None

    @property
    def sold_out(self) -> bool:
        return self.tracked and self.success and self.new_stock == 0 and (self.old_stock or 0) > 0

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "requestedDelta": self.requested_delta,
            "oldStock": self.old_stock,
            "newStock": self.new_stock,
            "success": self.success,
            "shouldTriggerLowStockAlert": self.should_trigger_low_stock_alert,
            "lowStockThreshold": self.low_stock_threshold,
            "error": self.error,
        }


@dataclass(frozen=True)
class StockUpdate:
    product: dict
    record: StockUpdateRecord


def crosses_low_stock_threshold(old_stock: int, new_stock: int, threshold: int | None) -> bool:
    """True only on the write that takes stock from at/above the threshold to strictly below it."""
    if threshold is None:
        return False
    return new_stock < threshold and old_stock >= threshold


def _check_quantity(quantity) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError({"quantity": ["Quantity must be a positive integer"]})


class InventoryService:
    def __init__(self, store: Store, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> None:
        self.store = store
        self.max_attempts = max_attempts

    def _untracked(self, product: dict, delta: int) -> StockUpdate:
        return StockUpdate(
            product=product,
            record=StockUpdateRecord(
                product_id=product["id"],
                requested_delta=delta,
                old_stock=None,
                new_stock=None,
                success=True,
                product_name=product.get("name"),
                tracked=False,
            ),
        )

    def decrement(self, product_id: str, quantity: int) -> StockUpdate:
        """Remove ``quantity`` units from stock.

        Raises ``ItemNotFound`` when the product is absent,
        ``InsufficientStockError`` when stock cannot cover the quantity (no
        write happens), and ``StockContentionError`` when every attempt lost
        the race to a concurrent writer.
        """
        _check_quantity(quantity)

        for attempt in range(1, self.max_attempts + 1):
            product = self.store.get(Table.PRODUCTS, product_id)
            old_stock = product.get("stock")
            if old_stock is None:
                return self._untracked(product, -quantity)

            if old_stock < quantity:
                logger.info(
                    "stock_insufficient",
                    product_id=product_id,
                    requested=quantity,
                    available=old_stock,
                )
                raise InsufficientStockError(product_id, quantity, old_stock, product.get("name"))

            new_stock = old_stock - quantity
            try:
                updated = self.store.update(
                    Table.PRODUCTS,
                    product_id,
                    changes={"stock": new_stock, "inStock": new_stock > 0, "updatedAt": utc_now()},
                    condition=Condition.equals("stock", old_stock),
                )
            except PreconditionFailed:
                logger.info("stock_decrement_contended", product_id=product_id, attempt=attempt)
                continue

            threshold = product.get("lowStockThreshold")
            record = StockUpdateRecord(
                product_id=product_id,
                requested_delta=-quantity,
                old_stock=old_stock,
                new_stock=updated["stock"],
                success=True,
                should_trigger_low_stock_alert=crosses_low_stock_threshold(old_stock, updated["stock"], threshold),
                product_name=product.get("name"),
                low_stock_threshold=threshold,
            )
            logger.info(
                "stock_decremented",
                product_id=product_id,
                quantity=quantity,
                old_stock=updated["stock"] + quantity,
                new_stock=updated["stock"],
            )
            return StockUpdate(product=updated, record=record)

        logger.warning("stock_decrement_gave_up", product_id=product_id, attempts=self.max_attempts)
        raise StockContentionError(product_id, self.max_attempts)

    def increment(self, product_id: str, quantity: int) -> StockUpdate:
        """Return ``quantity`` units to stock. The product must still exist."""
        _check_quantity(quantity)

        product = self.store.get(Table.PRODUCTS, product_id)
        if product.get("stock") is None:
            return self._untracked(product, quantity)

        try:
            updated = self.store.update(
                Table.PRODUCTS,
                product_id,
                changes={"inStock": True, "updatedAt": utc_now()},
                increments={"stock": quantity},
                condition=Condition.exists("id"),
            )
        except PreconditionFailed as exc:
            raise ItemNotFound(Table.PRODUCTS, product_id) from exc

        new_stock = updated["stock"]
        logger.info(
            "stock_incremented",
            product_id=product_id,
            quantity=quantity,
            old_stock=new_stock - quantity,
            new_stock=new_stock,
        )
        return StockUpdate(
            product=updated,
            record=StockUpdateRecord(
                product_id=product_id,
                requested_delta=quantity,
                old_stock=new_stock - quantity,
                new_stock=new_stock,
                success=True,
                product_name=product.get("name"),
                low_stock_threshold=product.get("lowStockThreshold"),
            ),
        )
