"""Inventory gate: the stock check consulted before an order is placed.

The lifecycle manager programs against ``InventoryGate``; the host wires in a
real adapter. ``FakeInventoryGate`` is a deterministic in-memory stand-in for
tests and local development.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

UNVERIFIED_INVENTORY_WARNING = "Unable to verify inventory. Items will be confirmed during order processing."


@dataclass(frozen=True)
class InventoryCheckResult:
    available: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class InventoryGate(ABC):
    """Abstract interface for inventory adapters."""

    @abstractmethod
    async def check_availability(self, items: list[dict]) -> InventoryCheckResult:
        """Check that every item can be fulfilled.

        Whatever an adapter raises (a dropped connection, a gateway error)
        is taken to mean the inventory service could not be reached.
        """
        ...


class FakeInventoryGate(InventoryGate):
    """In-memory stock levels. Products without a stock entry are unlimited."""

    def __init__(self, stock: dict[str, int] | None = None, low_stock_threshold: int = 3):
        self.stock = dict(stock or {})
        self.low_stock_threshold = low_stock_threshold
        self.reachable = True
        self.checks: list[list[dict]] = []

    def configure(self, stock: dict[str, int] | None = None, reachable: bool = True):
        """Configure the fake gate behavior for testing."""
        if stock is not None:
            self.stock = dict(stock)
        self.reachable = reachable

    async def check_availability(self, items: list[dict]) -> InventoryCheckResult:
        if not self.reachable:
            raise ConnectionError("Inventory service unreachable")

        self.checks.append(items)
        errors, warnings = [], []
        for item in items:
            product_id = item["product_id"]
            if product_id not in self.stock:
                continue
            on_hand = self.stock[product_id]
            name = item.get("product_name", product_id)
            if item["quantity"] > on_hand:
                errors.append(f"{name}: requested {item['quantity']}, only {on_hand} available")
            elif on_hand - item["quantity"] < self.low_stock_threshold:
                warnings.append(f"{name}: only {on_hand - item['quantity']} left in stock after this order")

        return InventoryCheckResult(available=not errors, errors=errors, warnings=warnings)
