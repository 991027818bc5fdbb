from decimal import Decimal


class KardexError(Exception):
    """Base class for ledger and order lifecycle failures."""


class InsufficientStockError(KardexError, ValueError):
    def __init__(
        self,
        *,
        item_id: int,
        have: Decimal,
        need: Decimal,
        item_name: str | None = None,
        unit: str | None = None,
    ):
        self.item_id = item_id
        self.item_name = item_name or f"Item #{item_id}"
        self.unit = unit or ""
        self.have = Decimal(have)
        self.need = Decimal(need)
        super().__init__(
            f"Insufficient stock of {self.item_name}: missing {self.missing.normalize():f} {self.unit}".rstrip()
            + f" (have {self.have.normalize():f}, need {self.need.normalize():f})."
        )

    @property
    def missing(self) -> Decimal:
        return self.need - self.have

    def to_detail(self) -> dict:
        return {
            "code": "INSUFFICIENT_STOCK",
            "message": str(self),
            "item_id": self.item_id,
            "item_name": self.item_name,
            "unit": self.unit,
            "have": str(self.have),
            "need": str(self.need),
            "missing": str(self.missing),
        }


class InvalidTransitionError(KardexError, ValueError):
    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Cannot move order from {from_status} to {to_status}.")

    def to_detail(self) -> dict:
        return {
            "code": "INVALID_TRANSITION",
            "message": str(self),
            "from": self.from_status,
            "to": self.to_status,
        }


class TransactionConflictError(KardexError, RuntimeError):
    def __init__(self, item_id: int | None = None):
        self.item_id = item_id
        target = f"item #{item_id}" if item_id is not None else "a record"
        super().__init__(f"Concurrent update detected on {target}; retry the operation.")


class EmptyCartError(KardexError, ValueError):
    def __init__(self):
        super().__init__("The cart has no valid items.")


class NotFoundError(KardexError, LookupError):
    entity = "Record"

    def __init__(self, entity_id):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} not found: {entity_id}")


class ItemNotFoundError(NotFoundError):
    entity = "Inventory item"


class OrderNotFoundError(NotFoundError):
    entity = "Order"


class PurchaseNotFoundError(NotFoundError):
    entity = "Purchase"
