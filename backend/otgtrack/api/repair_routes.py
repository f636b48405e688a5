"""OTG repair routes — repair tickets linked to tooling codes."""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from otgtrack.api.deps import get_store
from otgtrack.models.repair_schema import OTGRepair, RepairToolType
from otgtrack.services import repair_engine as engine
from otgtrack.services.store import InventoryStore

router = APIRouter(prefix="/api/repairs", tags=["OTG Repairs"])
logger = logging.getLogger("otgtrack-api")


# ─── Pydantic schemas ────────────────────────────────────────────────────────

class CloseRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    repair_date: Optional[str] = None
    corrective_action: Optional[str] = None


def _dump(repair: OTGRepair) -> Dict[str, Any]:
    return repair.model_dump(mode="json", by_alias=True)


def _check_submission(repair: OTGRepair) -> None:
    errors = engine.validate_repair_submission(repair)
    if errors:
        raise HTTPException(status_code=422, detail={"errors": errors})


# ─── Collection ──────────────────────────────────────────────────────────────

@router.get("")
async def list_repairs(
    search: str = "",
    repair_type: Optional[RepairToolType] = Query(None, alias="type"),
    store: InventoryStore = Depends(get_store),
) -> List[Dict[str, Any]]:
    return [_dump(r) for r in engine.filter_repairs(store.repairs, search, repair_type)]


@router.post("", status_code=201)
def create_repair(repair: OTGRepair, store: InventoryStore = Depends(get_store)) -> Dict[str, Any]:
    """
    Open a ticket. When the client leaves ``machine`` blank it is taken from
    the dossier carrying the linked code.
    """
    if not repair.machine:
        repair = engine.link_code(repair, repair.linked_code, store.items)
    _check_submission(repair)
    try:
        store.update_repairs(lambda repairs: engine.add_repair(repairs, repair))
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _dump(repair)


# ─── Form helpers ────────────────────────────────────────────────────────────

@router.get("/draft")
async def draft_repair(store: InventoryStore = Depends(get_store)) -> Dict[str, Any]:
    return _dump(engine.new_repair(store.config))


@router.get("/available-codes")
async def available_codes(
    repair_type: RepairToolType = Query(RepairToolType.CLICHE, alias="type"),
    search: str = "",
    store: InventoryStore = Depends(get_store),
) -> Dict[str, Any]:
    codes = engine.available_codes(store.items, repair_type, search)
    return {"type": repair_type.value, "codes": codes}


# ─── Single ticket ───────────────────────────────────────────────────────────

@router.get("/{repair_id}")
async def get_repair(repair_id: str, store: InventoryStore = Depends(get_store)) -> Dict[str, Any]:
    try:
        return _dump(engine.find_repair(store.repairs, repair_id))
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Repair {repair_id} not found")


@router.put("/{repair_id}")
def update_repair(
    repair_id: str,
    changes: Dict[str, Any],
    store: InventoryStore = Depends(get_store),
) -> Dict[str, Any]:
    """
    Partial edit. Changing the tool type drops the linked code unless the
    same request sets a new one.
    """
    def change(repairs: List[OTGRepair]) -> List[OTGRepair]:
        current = engine.find_repair(repairs, repair_id)
        edited = engine.update_repair(repairs, repair_id, changes)
        updated = engine.find_repair(edited, repair_id)
        if updated.type is not current.type and not ({"linked_code", "linkedCode"} & changes.keys()):
            updated = engine.change_repair_type(updated, updated.type)
        _check_submission(updated)
        return engine.replace_repair(edited, updated)

    try:
        repairs = store.update_repairs(change)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Repair {repair_id} not found")
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _dump(engine.find_repair(repairs, repair_id))


@router.post("/{repair_id}/close")
def close_repair(
    repair_id: str,
    payload: Optional[CloseRequest] = None,
    store: InventoryStore = Depends(get_store),
) -> Dict[str, Any]:
    payload = payload or CloseRequest()

    def change(repairs: List[OTGRepair]) -> List[OTGRepair]:
        closed = engine.close_repair(
            engine.find_repair(repairs, repair_id),
            repair_date=payload.repair_date,
            corrective_action=payload.corrective_action,
        )
        return engine.replace_repair(repairs, closed)

    try:
        repairs = store.update_repairs(change)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Repair {repair_id} not found")
    logger.info(f"Repair closed: {repair_id}")
    return _dump(engine.find_repair(repairs, repair_id))


@router.delete("/{repair_id}")
def delete_repair(repair_id: str, store: InventoryStore = Depends(get_store)) -> Dict[str, Any]:
    before = len(store.repairs)
    repairs = store.update_repairs(lambda repairs: engine.remove_repair(repairs, repair_id))
    return {"id": repair_id, "deleted": len(repairs) < before}
