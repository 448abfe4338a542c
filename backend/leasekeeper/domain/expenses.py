# backend/leasekeeper/domain/expenses.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


def _num(v: Any) -> float:
    if v is None:
        return 0.0
    try:
        return float(v)
    except (TypeError, ValueError):
        return 0.0


@dataclass(frozen=True)
class ExpenseSummary:
    labor_cost: float
    equipment_cost: List[Dict[str, Any]]
    total_expenses: float

    def as_document(self, description: Optional[str] = None) -> Dict[str, Any]:
        doc: Dict[str, Any] = {"labor_cost": self.labor_cost, "equipment_cost": self.equipment_cost}
        if description:
            doc["description"] = description
        return doc


def compute_expense(labor_cost: Any, equipment_cost: Optional[List[Dict[str, Any]]]) -> ExpenseSummary:
    """
    total_expenses = labor_cost + sum(quantity * price_per_unit)

    Each line item's `total` is recomputed; whatever the caller sent for it is
    ignored.
    """
    lines: List[Dict[str, Any]] = []
    equipment_total = 0.0

    for item in equipment_cost or []:
        quantity = _num(item.get("quantity"))
        price = _num(item.get("price_per_unit"))
        total = quantity * price
        equipment_total += total
        lines.append(
            {
                "quantity": quantity,
                "price_per_unit": price,
                "total": total,
                "description": str(item.get("description") or ""),
            }
        )

    labor = _num(labor_cost)
    return ExpenseSummary(labor_cost=labor, equipment_cost=lines, total_expenses=labor + equipment_total)
