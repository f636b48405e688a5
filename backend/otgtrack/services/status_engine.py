"""
status_engine.py — Lifecycle status of a production dossier.

Covers:
  - Per-asset sub-status from the order flag and the expected/actual dates
  - Combination of the Cliché and Forme sub-statuses into one job status
  - Short-circuit for dossiers that need no tooling at all

Every function here is pure and total: malformed dates never raise, they are
compared as plain strings. ISO ``YYYY-MM-DD`` strings sort the same way as
the calendar dates they encode, so string comparison is exact for
well-formed input.
"""

from datetime import datetime, timezone
from typing import Optional

from otgtrack.models.inventory_schema import AssetType, InventoryItem, ItemStatus


def today_iso() -> str:
    """Current UTC calendar date as ``YYYY-MM-DD``."""
    return datetime.now(timezone.utc).date().isoformat()


def _is_set(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def derive_asset_status(
    is_ordered: bool,
    date_expected: str,
    date_delivery: str,
    today: str,
) -> ItemStatus:
    """
    Sub-status of one tooling asset.

    Precedence: not ordered → received → late (expected date strictly before
    ``today``) → ordered.
    """
    if not is_ordered:
        return ItemStatus.NOT_ORDERED
    if _is_set(date_delivery):
        return ItemStatus.RECEIVED
    if _is_set(date_expected) and date_expected.strip() < today:
        return ItemStatus.DELAYED
    return ItemStatus.ORDERED


def needs_asset(item: InventoryItem, asset_type: AssetType) -> bool:
    """A dossier needs an asset iff that asset's code is non-empty."""
    return _is_set(item.code_for(asset_type))


def asset_status(
    item: InventoryItem,
    asset_type: AssetType,
    today: Optional[str] = None,
) -> ItemStatus:
    """
    Sub-status of one asset of ``item``.

    An asset the dossier does not need reports RECEIVED so it never holds
    back completion or raises a false delay.
    """
    if not needs_asset(item, asset_type):
        return ItemStatus.RECEIVED
    record = item.asset(asset_type)
    return derive_asset_status(
        record.is_ordered,
        record.date_expected,
        record.date_delivery,
        today or today_iso(),
    )


def derive_status(item: InventoryItem, today: Optional[str] = None) -> ItemStatus:
    """
    Overall status of a dossier.

    Priority: DELAYED > RECEIVED (both) > NOT_ORDERED (both) > ORDERED.
    A single-asset dossier therefore takes the status of its one asset.
    """
    needed = [a for a in AssetType if needs_asset(item, a)]
    if not needed:
        return ItemStatus.NOT_ORDERED

    today = today or today_iso()
    statuses = {a: asset_status(item, a, today) for a in AssetType}

    if ItemStatus.DELAYED in statuses.values():
        return ItemStatus.DELAYED
    if all(s is ItemStatus.RECEIVED for s in statuses.values()):
        return ItemStatus.RECEIVED
    # The RECEIVED placeholder of an unneeded asset must not turn an
    # untouched dossier into ORDERED
    if all(statuses[a] is ItemStatus.NOT_ORDERED for a in needed):
        return ItemStatus.NOT_ORDERED
    return ItemStatus.ORDERED
