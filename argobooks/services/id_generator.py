from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional

from ..domain.company_data import CompanyData
from ..domain.enums import CategoryType

_CATEGORY_PREFIX = {
    CategoryType.SALES: "SAL",
    CategoryType.PURCHASE: "PUR",
    CategoryType.RENTAL: "RNT",
}


class IdGenerator:
    """
    Issues sequential, human-readable ids from the company's counters.
    Each call advances the counter, so ids survive save/reload.
    """

    def __init__(self, company: CompanyData):
        self._company = company

    @property
    def _counters(self):
        return self._company.id_counters

    @staticmethod
    def _year() -> int:
        return datetime.now(timezone.utc).year

    def next_customer_id(self) -> str:
        self._counters.customer += 1
        return f"CUS-{self._counters.customer:03d}"

    def next_product_id(self) -> str:
        self._counters.product += 1
        return f"PRD-{self._counters.product:03d}"

    def next_category_id(self, category_type: Optional[CategoryType]) -> str:
        # One counter shared across category types
        self._counters.category += 1
        prefix = _CATEGORY_PREFIX.get(category_type, "GEN") if category_type is not None else "GEN"
        return f"CAT-{prefix}-{self._counters.category:03d}"

    def next_location_id(self) -> str:
        self._counters.location += 1
        return f"LOC-{self._counters.location:03d}"

    def next_invoice_id(self) -> str:
        self._counters.invoice += 1
        return f"INV-{self._year()}-{self._counters.invoice:05d}"

    def next_invoice_number(self) -> str:
        """Display number for the invoice id issued last; does not advance the counter."""
        return f"#INV-{self._year()}-{self._counters.invoice:03d}"

    def next_payment_id(self) -> str:
        self._counters.payment += 1
        return f"PAY-{self._year()}-{self._counters.payment:05d}"

    def next_inventory_item_id(self) -> str:
        self._counters.inventory_item += 1
        return f"INV-ITM-{self._counters.inventory_item:03d}"

    def next_stock_adjustment_id(self) -> str:
        self._counters.stock_adjustment += 1
        return f"ADJ-{self._counters.stock_adjustment:03d}"

    def next_rental_item_id(self) -> str:
        self._counters.rental_item += 1
        return f"RNT-ITM-{self._counters.rental_item:03d}"

    def next_rental_id(self) -> str:
        self._counters.rental += 1
        return f"RNT-{self._counters.rental:03d}"

    def next_line_item_id(self) -> str:
        self._counters.line_item += 1
        return f"LI-{self._counters.line_item:03d}"

    def generate_sku(self, product_name: str) -> str:
        # First 3 alphanumerics of up to 3 words
        words = (product_name or "").split()[:3]
        prefix = "".join("".join(ch for ch in w if ch.isalnum())[:3].upper() for w in words)
        if not prefix:
            prefix = "SKU"
        return f"{prefix}-{self._counters.product:03d}"
