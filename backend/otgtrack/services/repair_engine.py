"""
repair_engine.py — OTG tooling repair tickets.

Covers:
  - New ticket defaults (first operator, first machine, internal repair)
  - Tooling codes offered for linking, per tool type
  - Linking a code (machine copied from the dossier carrying it)
  - Submission checks (linked code, supplier of an external repair)
  - Closing a ticket
  - Collection add / update / remove and the capped import merge
  - Table filtering

A ticket's link to a dossier is informational only; deleting the dossier
leaves the ticket and its ``linked_code`` untouched.
"""

import logging
from typing import Any, List, Mapping, Optional

from pydantic import ValidationError

from otgtrack.models.inventory_schema import InventoryItem, generate_id, merged_payload
from otgtrack.models.repair_schema import (
    OTGRepair,
    RepairCondition,
    RepairKind,
    RepairStatus,
    RepairToolType,
)
from otgtrack.models.settings_schema import AppConfig
from otgtrack.services.status_engine import today_iso

logger = logging.getLogger("otgtrack-repairs")

# Repair history kept after an import merge (newest first)
MAX_REPAIRS: int = 5000


# ── Ticket lifecycle ─────────────────────────────────────────────────────────

def new_repair(config: AppConfig, today: Optional[str] = None) -> OTGRepair:
    return OTGRepair(
        id=generate_id(),
        type=RepairToolType.CLICHE,
        linked_code="",
        operator=config.operators[0] if config.operators else "",
        machine=config.default_machine,
        condition=RepairCondition.REPARATION,
        repair_kind=RepairKind.INTERNAL,
        supplier="",
        declaration_date=today or today_iso(),
        status=RepairStatus.OPEN,
    )


def available_codes(
    items: List[InventoryItem],
    repair_type: RepairToolType,
    search: str = "",
) -> List[str]:
    """
    Distinct tooling codes a ticket of ``repair_type`` can point at.

    Codes keep the order of the collection (newest dossier first). ``search``
    is a case-insensitive substring filter.
    """
    asset_type = RepairToolType(repair_type).asset_type
    seen = set()
    codes: List[str] = []
    for item in items:
        code = item.code_for(asset_type)
        if not code.strip() or code in seen:
            continue
        seen.add(code)
        codes.append(code)
    if search:
        needle = search.lower()
        codes = [c for c in codes if needle in c.lower()]
    return codes


def link_code(repair: OTGRepair, code: str, items: List[InventoryItem]) -> OTGRepair:
    """Point ``repair`` at ``code``; the machine follows the first dossier carrying it."""
    changes: dict = {"linked_code": code}
    if code:
        asset_type = repair.type.asset_type
        owner = next((i for i in items if i.code_for(asset_type) == code), None)
        if owner is not None:
            changes["machine"] = owner.machine
    return repair.model_copy(update=changes)


def change_repair_type(repair: OTGRepair, repair_type: RepairToolType) -> OTGRepair:
    """Switch the tool type; a code of the other type no longer applies."""
    return repair.model_copy(update={"type": RepairToolType(repair_type), "linked_code": ""})


def validate_repair_submission(repair: OTGRepair) -> List[str]:
    """Reasons the ticket cannot be saved yet; empty when it can."""
    errors: List[str] = []
    if not repair.linked_code:
        errors.append("a tooling code must be selected")
    if repair.is_external and not repair.supplier:
        errors.append("an external repair needs a supplier")
    return errors


def close_repair(
    repair: OTGRepair,
    repair_date: Optional[str] = None,
    corrective_action: Optional[str] = None,
) -> OTGRepair:
    changes: dict = {"status": RepairStatus.CLOSED}
    if repair_date is not None:
        changes["repair_date"] = repair_date
    if corrective_action is not None:
        changes["corrective_action"] = corrective_action
    return repair.model_copy(update=changes)


# ── Collection operations ────────────────────────────────────────────────────

def find_repair(repairs: List[OTGRepair], repair_id: str) -> OTGRepair:
    for repair in repairs:
        if repair.id == repair_id:
            return repair
    raise KeyError(repair_id)


def add_repair(repairs: List[OTGRepair], repair: OTGRepair) -> List[OTGRepair]:
    if any(existing.id == repair.id for existing in repairs):
        raise ValueError(f"repair {repair.id!r} already exists")
    logger.info(f"Repair opened: {repair.id} on {repair.linked_code or '-'} ({repair.machine})")
    return [repair, *repairs]


def update_repair(
    repairs: List[OTGRepair],
    repair_id: str,
    changes: Mapping[str, Any],
) -> List[OTGRepair]:
    """
    Replace a ticket with an edited, re-validated copy.

    Raises:
        KeyError: when no ticket has ``repair_id``.
        ValueError: when the edited ticket does not validate.
    """
    current = find_repair(repairs, repair_id)
    payload = merged_payload(current, changes)
    payload["id"] = repair_id
    try:
        updated = OTGRepair.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"invalid repair {repair_id!r}: {exc.errors()[0]['msg']}") from exc
    return [updated if r.id == repair_id else r for r in repairs]


def replace_repair(repairs: List[OTGRepair], repair: OTGRepair) -> List[OTGRepair]:
    """Swap in ``repair`` for the ticket with the same identifier."""
    find_repair(repairs, repair.id)
    return [repair if r.id == repair.id else r for r in repairs]


def remove_repair(repairs: List[OTGRepair], repair_id: str) -> List[OTGRepair]:
    return [r for r in repairs if r.id != repair_id]


def merge_imported_repairs(
    existing: List[OTGRepair],
    imported: List[OTGRepair],
) -> List[OTGRepair]:
    """Imported tickets go first; the oldest beyond ``MAX_REPAIRS`` are dropped."""
    merged = [*imported, *existing]
    if len(merged) > MAX_REPAIRS:
        logger.warning(f"Repair history truncated: {len(merged) - MAX_REPAIRS} oldest tickets dropped")
    return merged[:MAX_REPAIRS]


# ── Table filter ─────────────────────────────────────────────────────────────

def filter_repairs(
    repairs: List[OTGRepair],
    search: str = "",
    repair_type: Optional[RepairToolType] = None,
) -> List[OTGRepair]:
    needle = (search or "").lower()
    result = []
    for repair in repairs:
        text = (
            repair.operator + repair.machine + repair.linked_code
            + repair.problem_description + repair.supplier
        ).lower()
        if needle and needle not in text:
            continue
        if repair_type is not None and repair.type is not RepairToolType(repair_type):
            continue
        result.append(repair)
    return result
