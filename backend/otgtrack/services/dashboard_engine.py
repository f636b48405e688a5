"""
dashboard_engine.py — Production and OTG repair indicators.

Covers:
  - Dossier counts per derived status and the delay rate
  - Repair ticket counts, closure rate, busiest operators
  - Ageing of open repair tickets (fresh / medium / old)
  - Supplier scorecard: on-time rate and quality rate (SAV notes)
  - Per-machine activity: received, delayed, open repairs

Nothing is cached: every figure is recomputed from the collections passed in,
with statuses derived for the engine's ``today``.
"""

import logging
import math
from collections import Counter
from datetime import date
from typing import Any, Dict, List, Optional

from otgtrack.models.inventory_schema import InventoryItem, ItemStatus
from otgtrack.models.repair_schema import OTGRepair, RepairStatus
from otgtrack.services.status_engine import derive_status, today_iso

logger = logging.getLogger("otgtrack-dashboard")


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TOP_OPERATORS: int = 5

# Open ticket age in days: fresh < 3, medium 3..7, old > 7
AGEING_FRESH_BELOW_DAYS: int = 3
AGEING_MEDIUM_UP_TO_DAYS: int = 7


def percent(part: float, whole: float, empty: int = 0) -> int:
    """``part / whole`` as a whole percentage, halves rounded up."""
    if whole <= 0:
        return empty
    return math.floor(part / whole * 100 + 0.5)


# ---------------------------------------------------------------------------
# DashboardEngine
# ---------------------------------------------------------------------------

class DashboardEngine:
    """
    Aggregates shown on the workshop dashboard.

    ``machine`` filters accept ``None`` or ``"all"`` for every machine.
    """

    def __init__(self, today: Optional[str] = None):
        self.today = today or today_iso()

    # ── Production ──────────────────────────────────────────────────────────

    def _status_of(self, item: InventoryItem) -> ItemStatus:
        return derive_status(item, self.today)

    @staticmethod
    def _on_machine(machine: Optional[str]) -> bool:
        return bool(machine) and machine != "all"

    def production_stats(
        self,
        items: List[InventoryItem],
        machine: Optional[str] = None,
    ) -> Dict[str, Any]:
        if self._on_machine(machine):
            items = [i for i in items if i.machine == machine]

        counts: Counter = Counter()
        delayed_ids: List[str] = []
        for item in items:
            status = self._status_of(item)
            counts[status] += 1
            if status is ItemStatus.DELAYED:
                delayed_ids.append(item.id)

        total = len(items)
        return {
            "total": total,
            "delayed": counts[ItemStatus.DELAYED],
            "received": counts[ItemStatus.RECEIVED],
            "ordered": counts[ItemStatus.ORDERED],
            "not_ordered": counts[ItemStatus.NOT_ORDERED],
            "delay_rate": percent(counts[ItemStatus.DELAYED], total),
            "delayed_ids": delayed_ids,
        }

    # ── Repairs ─────────────────────────────────────────────────────────────

    def _age_in_days(self, declaration_date: str) -> Optional[int]:
        try:
            declared = date.fromisoformat(declaration_date.strip()[:10])
        except ValueError:
            return None
        return (date.fromisoformat(self.today) - declared).days

    def repair_ageing(self, repairs: List[OTGRepair]) -> Dict[str, int]:
        """Open tickets bucketed by age; undated or unparsable tickets are skipped."""
        ageing = {"fresh": 0, "medium": 0, "old": 0}
        for repair in repairs:
            if not repair.is_open:
                continue
            days = self._age_in_days(repair.declaration_date)
            if days is None:
                continue
            if days < AGEING_FRESH_BELOW_DAYS:
                ageing["fresh"] += 1
            elif days <= AGEING_MEDIUM_UP_TO_DAYS:
                ageing["medium"] += 1
            else:
                ageing["old"] += 1
        return ageing

    def repair_stats(
        self,
        repairs: List[OTGRepair],
        machine: Optional[str] = None,
    ) -> Dict[str, Any]:
        if self._on_machine(machine):
            repairs = [r for r in repairs if r.machine == machine]

        total = len(repairs)
        open_ = sum(1 for r in repairs if r.status is RepairStatus.OPEN)
        closed = sum(1 for r in repairs if r.status is RepairStatus.CLOSED)

        operators = Counter(r.operator for r in repairs if r.operator)
        # Stable sort keeps first-seen order among equal counts
        top = sorted(operators.items(), key=lambda kv: kv[1], reverse=True)[:TOP_OPERATORS]

        return {
            "total": total,
            "open": open_,
            "closed": closed,
            "success_rate": percent(closed, total),
            "top_operators": [{"name": name, "count": count} for name, count in top],
            "ageing": self.repair_ageing(repairs),
            "open_ids": [r.id for r in repairs if r.is_open],
        }

    # ── Suppliers ───────────────────────────────────────────────────────────

    def supplier_analytics(
        self,
        items: List[InventoryItem],
        suppliers: List[str],
    ) -> List[Dict[str, Any]]:
        """
        Scorecard per supplier over every dossier it supplies (either asset).

        on_time_rate = (received - delayed) / total and may go negative;
        quality_rate = dossiers without an SAV note / total. Both are 100 for a
        supplier with no dossier. Sorted by dossier count, busiest first.
        """
        rows = []
        for supplier in suppliers:
            supplied = [
                i for i in items
                if i.supplier_cliche == supplier or i.supplier_forme == supplier
            ]
            total = len(supplied)
            statuses = [self._status_of(i) for i in supplied]
            delayed = statuses.count(ItemStatus.DELAYED)
            received = statuses.count(ItemStatus.RECEIVED)
            sav = sum(1 for i in supplied if i.non_conformity.strip())
            rows.append({
                "name": supplier,
                "total": total,
                "delayed": delayed,
                "received": received,
                "sav": sav,
                "on_time_rate": percent(received - delayed, total, empty=100),
                "quality_rate": percent(total - sav, total, empty=100),
            })
        rows.sort(key=lambda r: r["total"], reverse=True)
        return rows

    # ── Machines ────────────────────────────────────────────────────────────

    def machine_breakdown(
        self,
        items: List[InventoryItem],
        repairs: List[OTGRepair],
        machines: List[str],
    ) -> List[Dict[str, Any]]:
        rows = []
        for machine in machines:
            statuses = [self._status_of(i) for i in items if i.machine == machine]
            row = {
                "name": machine,
                "received": statuses.count(ItemStatus.RECEIVED),
                "delayed": statuses.count(ItemStatus.DELAYED),
                "open_repairs": sum(1 for r in repairs if r.machine == machine and r.is_open),
            }
            if row["received"] + row["delayed"] + row["open_repairs"] > 0:
                rows.append(row)
        return rows

    # ── Summary ─────────────────────────────────────────────────────────────

    def summary(
        self,
        items: List[InventoryItem],
        repairs: List[OTGRepair],
        machines: List[str],
        suppliers: List[str],
        machine: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Everything the dashboard shows. The machine filter narrows production,
        repair and machine figures; the supplier scorecard always covers the
        whole collection.
        """
        scoped_items = items
        scoped_repairs = repairs
        if self._on_machine(machine):
            scoped_items = [i for i in items if i.machine == machine]
            scoped_repairs = [r for r in repairs if r.machine == machine]

        logger.debug(
            f"Dashboard summary: {len(scoped_items)} dossiers, "
            f"{len(scoped_repairs)} repairs, machine={machine or 'all'}"
        )
        return {
            "today": self.today,
            "production": self.production_stats(scoped_items),
            "repairs": self.repair_stats(scoped_repairs),
            "suppliers": self.supplier_analytics(items, suppliers),
            "machines": self.machine_breakdown(scoped_items, scoped_repairs, machines),
        }
