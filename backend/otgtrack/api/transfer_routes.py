"""Transfer routes — Excel / CSV import and Excel export."""
import logging
import os
from typing import Any, Dict

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import FileResponse

from otgtrack import config as settings
from otgtrack.api.deps import get_store
from otgtrack.services import export_engine
from otgtrack.services.import_engine import parse_dossier_rows, parse_repair_rows, read_table
from otgtrack.services.repair_engine import merge_imported_repairs
from otgtrack.services.store import InventoryStore

router = APIRouter(prefix="/api/transfer", tags=["Import / Export"])
logger = logging.getLogger("otgtrack-api")

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _read_upload(file: UploadFile):
    filename = file.filename or ""
    if not filename.lower().endswith(settings.UPLOAD_EXTENSIONS):
        raise HTTPException(status_code=400, detail="Upload Excel (.xlsx) or CSV file")
    contents = file.file.read()
    if len(contents) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large")
    try:
        return read_table(contents, filename)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Could not decode upload {filename}: {e}")
        raise HTTPException(status_code=400, detail=f"Could not read {filename}")


# ─── Import ──────────────────────────────────────────────────────────────────

@router.post("/import/dossiers")
def import_dossiers(
    file: UploadFile = File(...),
    strict: bool = False,
    store: InventoryStore = Depends(get_store),
) -> Dict[str, Any]:
    """
    Replace the whole production collection with the accepted rows.

    Rejected rows are listed in the response. With ``strict=true`` a single
    rejected row cancels the import.
    """
    rows = _read_upload(file)
    result = parse_dossier_rows(rows, store.config)
    if not result.records or (strict and not result.ok):
        raise HTTPException(status_code=422, detail=result.summary())
    store.replace_items(result.records)
    return result.summary()


@router.post("/import/repairs")
def import_repairs(
    file: UploadFile = File(...),
    strict: bool = False,
    store: InventoryStore = Depends(get_store),
) -> Dict[str, Any]:
    """Add the accepted tickets in front of the existing ones."""
    rows = _read_upload(file)
    result = parse_repair_rows(rows, store.config)
    if not result.records or (strict and not result.ok):
        raise HTTPException(status_code=422, detail=result.summary())
    store.update_repairs(lambda repairs: merge_imported_repairs(repairs, result.records))
    return result.summary()


# ─── Export ──────────────────────────────────────────────────────────────────

@router.get("/export/dossiers")
async def export_dossiers(store: InventoryStore = Depends(get_store)):
    path = export_engine.export_production(store.items, settings.EXPORT_DIR)
    return FileResponse(path, media_type=XLSX_MEDIA_TYPE, filename=os.path.basename(path))


@router.get("/export/repairs")
async def export_repairs(store: InventoryStore = Depends(get_store)):
    path = export_engine.export_repairs(store.repairs, settings.EXPORT_DIR)
    return FileResponse(path, media_type=XLSX_MEDIA_TYPE, filename=os.path.basename(path))
