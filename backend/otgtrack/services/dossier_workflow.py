"""
dossier_workflow.py — Create, edit and filter production dossiers.

Covers:
  - Draft dossiers for the entry form (auto / manual code mode)
  - Machine change on a draft (codes regenerated in auto mode)
  - Submission cleanup of assets the job does not need
  - Collection add / update / remove (newest first, identifier preserved)
  - Table filtering by free text, derived status and machine

Collections are plain lists and are never mutated in place: every operation
returns a new list, so a caller can keep the previous snapshot.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from otgtrack.models.inventory_schema import InventoryItem, ItemStatus, generate_id, merged_payload
from otgtrack.models.settings_schema import AppConfig
from otgtrack.services.code_engine import TemplateTable, initial_codes
from otgtrack.services.status_engine import derive_status, today_iso

logger = logging.getLogger("otgtrack-dossiers")

__all__ = [
    "generate_id",
    "new_dossier",
    "change_machine",
    "finalize_dossier",
    "add_dossier",
    "update_dossier",
    "remove_dossier",
    "find_dossier",
    "filter_dossiers",
]


# ── Draft lifecycle ──────────────────────────────────────────────────────────

def new_dossier(
    config: AppConfig,
    items: List[InventoryItem],
    auto_mode: bool = True,
    today: Optional[str] = None,
    templates: Optional[TemplateTable] = None,
) -> InventoryItem:
    """Blank dossier on the default machine, ready for the entry form."""
    today = today or today_iso()
    machine = config.default_machine
    code_cliche, code_forme = initial_codes(machine, items, templates) if auto_mode else ("", "")
    return InventoryItem(
        id=generate_id(),
        code_cliche=code_cliche,
        code_forme=code_forme,
        machine=machine,
        poses=1,
        date_creation=today,
        date_creation_cliche=today,
        date_creation_forme=today,
        custom_fields=config.custom_field_defaults(),
    )


def change_machine(
    draft: InventoryItem,
    machine: str,
    items: List[InventoryItem],
    auto_mode: bool = True,
    templates: Optional[TemplateTable] = None,
) -> InventoryItem:
    """
    Move a draft to another machine.

    In auto mode both codes are regenerated from the saved collection, so a
    code already typed for the previous machine is replaced.
    """
    changes: Dict[str, Any] = {"machine": machine}
    if auto_mode:
        changes["code_cliche"], changes["code_forme"] = initial_codes(machine, items, templates)
    return draft.model_copy(update=changes)


def finalize_dossier(draft: InventoryItem, has_cliche: bool, has_forme: bool) -> InventoryItem:
    """Clear the code and supplier of every asset the job does not need."""
    changes: Dict[str, Any] = {}
    if not has_cliche:
        changes.update(code_cliche="", supplier_cliche="")
    if not has_forme:
        changes.update(code_forme="", supplier_forme="")
    return draft.model_copy(update=changes) if changes else draft


# ── Collection operations ────────────────────────────────────────────────────

def find_dossier(items: List[InventoryItem], item_id: str) -> InventoryItem:
    for item in items:
        if item.id == item_id:
            return item
    raise KeyError(item_id)


def add_dossier(items: List[InventoryItem], item: InventoryItem) -> List[InventoryItem]:
    """Prepend ``item``; the newest dossier is always first."""
    if any(existing.id == item.id for existing in items):
        raise ValueError(f"dossier {item.id!r} already exists")
    logger.info(f"Dossier added: {item.id} ({item.code_cliche or '-'} / {item.code_forme or '-'})")
    return [item, *items]


def update_dossier(
    items: List[InventoryItem],
    item_id: str,
    changes: Mapping[str, Any],
) -> List[InventoryItem]:
    """
    Replace a dossier with an edited copy.

    ``changes`` may use field names or their camelCase aliases. The result is
    re-validated, so ``poses`` is clamped and null dates are blanked exactly
    as on creation. The identifier can never be changed.

    Raises:
        KeyError: when no dossier has ``item_id``.
        ValueError: when the edited dossier does not validate.
    """
    current = find_dossier(items, item_id)
    payload = merged_payload(current, changes)
    payload["id"] = item_id
    try:
        updated = InventoryItem.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"invalid dossier {item_id!r}: {exc.errors()[0]['msg']}") from exc
    return [updated if item.id == item_id else item for item in items]


def remove_dossier(items: List[InventoryItem], item_id: str) -> List[InventoryItem]:
    """Drop the dossier with ``item_id``; an unknown id leaves the list as is."""
    remaining = [item for item in items if item.id != item_id]
    if len(remaining) != len(items):
        logger.info(f"Dossier removed: {item_id}")
    return remaining


# ── Table filter ─────────────────────────────────────────────────────────────

def _search_text(item: InventoryItem) -> str:
    return (
        item.client + item.reference + item.code_cliche + item.code_forme
        + item.element + item.machine
    ).lower()


def filter_dossiers(
    items: List[InventoryItem],
    search: str = "",
    status: Optional[ItemStatus] = None,
    machine: Optional[str] = None,
    today: Optional[str] = None,
) -> List[InventoryItem]:
    """Rows of the production table matching every given criterion."""
    needle = (search or "").lower()
    today = today or today_iso()
    result = []
    for item in items:
        if needle and needle not in _search_text(item):
            continue
        if status is not None and derive_status(item, today) is not ItemStatus(status):
            continue
        if machine and item.machine != machine:
            continue
        result.append(item)
    return result
