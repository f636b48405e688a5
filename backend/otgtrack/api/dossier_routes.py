"""Dossier routes — production table, entry-form drafts, code suggestions."""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from otgtrack.api.deps import get_store
from otgtrack.models.inventory_schema import AssetType, InventoryItem, ItemStatus
from otgtrack.services import dossier_workflow as workflow
from otgtrack.services.code_engine import next_code
from otgtrack.services.status_engine import asset_status, derive_status, needs_asset, today_iso
from otgtrack.services.store import InventoryStore

router = APIRouter(prefix="/api/dossiers", tags=["Dossiers"])
logger = logging.getLogger("otgtrack-api")


# ─── Pydantic schemas ────────────────────────────────────────────────────────

class DossierSubmission(BaseModel):
    """Entry-form submission: the dossier plus which assets the job needs."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    dossier: InventoryItem
    has_cliche: bool = True
    has_forme: bool = False


def _view(item: InventoryItem, today: str) -> Dict[str, Any]:
    row = item.model_dump(mode="json", by_alias=True)
    row["status"] = derive_status(item, today).value
    return row


# ─── Collection ──────────────────────────────────────────────────────────────

@router.get("")
async def list_dossiers(
    search: str = "",
    status: Optional[ItemStatus] = None,
    machine: Optional[str] = None,
    store: InventoryStore = Depends(get_store),
) -> List[Dict[str, Any]]:
    """Production table rows, newest first, each with its derived status."""
    today = today_iso()
    items = workflow.filter_dossiers(store.items, search, status, machine, today)
    return [_view(item, today) for item in items]


@router.post("", status_code=201)
def create_dossier(
    payload: DossierSubmission,
    store: InventoryStore = Depends(get_store),
) -> Dict[str, Any]:
    item = workflow.finalize_dossier(payload.dossier, payload.has_cliche, payload.has_forme)
    try:
        store.update_items(lambda items: workflow.add_dossier(items, item))
    except ValueError as e:
        logger.warning(f"Dossier rejected: {e}")
        raise HTTPException(status_code=409, detail=str(e))
    logger.info(f"Dossier created: {item.id} ({item.machine})")
    return _view(item, today_iso())


# ─── Entry form helpers ──────────────────────────────────────────────────────

@router.get("/draft")
async def draft_dossier(
    machine: Optional[str] = None,
    auto: bool = True,
    store: InventoryStore = Depends(get_store),
) -> Dict[str, Any]:
    """Blank dossier for the entry form; ``machine`` switches it off the default."""
    draft = workflow.new_dossier(store.config, store.items, auto_mode=auto)
    if machine and machine != draft.machine:
        draft = workflow.change_machine(draft, machine, store.items, auto_mode=auto)
    return draft.model_dump(mode="json", by_alias=True)


@router.get("/next-code")
async def suggest_code(
    machine: str,
    asset_type: AssetType = Query(AssetType.CLICHE, alias="assetType"),
    store: InventoryStore = Depends(get_store),
) -> Dict[str, str]:
    return {
        "machine": machine,
        "assetType": asset_type.value,
        "code": next_code(machine, asset_type, store.items),
    }


# ─── Single dossier ──────────────────────────────────────────────────────────

def _find(store: InventoryStore, item_id: str) -> InventoryItem:
    try:
        return workflow.find_dossier(store.items, item_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Dossier {item_id} not found")


@router.get("/{item_id}")
async def get_dossier(item_id: str, store: InventoryStore = Depends(get_store)) -> Dict[str, Any]:
    return _view(_find(store, item_id), today_iso())


@router.get("/{item_id}/status")
async def get_dossier_status(item_id: str, store: InventoryStore = Depends(get_store)) -> Dict[str, Any]:
    """Overall status with the per-asset breakdown behind it."""
    item = _find(store, item_id)
    today = today_iso()
    assets = {
        a.value: {
            "needed": needs_asset(item, a),
            "status": asset_status(item, a, today).value if needs_asset(item, a) else None,
        }
        for a in AssetType
    }
    return {"id": item.id, "status": derive_status(item, today).value, "assets": assets, "today": today}


@router.put("/{item_id}")
def update_dossier(
    item_id: str,
    changes: Dict[str, Any],
    store: InventoryStore = Depends(get_store),
) -> Dict[str, Any]:
    """Partial edit; keys may be camelCase (``dateDeliveryCliche``) or snake_case."""
    try:
        items = store.update_items(lambda items: workflow.update_dossier(items, item_id, changes))
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Dossier {item_id} not found")
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _view(workflow.find_dossier(items, item_id), today_iso())


@router.delete("/{item_id}")
def delete_dossier(item_id: str, store: InventoryStore = Depends(get_store)) -> Dict[str, Any]:
    before = len(store.items)
    items = store.update_items(lambda items: workflow.remove_dossier(items, item_id))
    return {"id": item_id, "deleted": len(items) < before}
