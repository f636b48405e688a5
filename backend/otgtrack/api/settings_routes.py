"""Settings routes — machines, suppliers, custom fields, table columns, alerts."""
import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from otgtrack.api.deps import get_store
from otgtrack.models.settings_schema import AppConfig
from otgtrack.services import settings_engine as edit
from otgtrack.services.store import InventoryStore

router = APIRouter(prefix="/api/settings", tags=["Workshop Settings"])
logger = logging.getLogger("otgtrack-api")


# ─── Pydantic schemas ────────────────────────────────────────────────────────

class NameRequest(BaseModel):
    name: str


class ColorRequest(BaseModel):
    color: str


class EmailRequest(BaseModel):
    email: str


class CustomFieldRequest(BaseModel):
    label: str
    type: Literal["text", "number", "date"] = "text"


class MoveRequest(BaseModel):
    direction: Literal["up", "down"]


def _out(config: AppConfig):
    return config.model_dump(mode="json", by_alias=True)


# ─── Whole configuration ─────────────────────────────────────────────────────

@router.get("")
async def get_settings(store: InventoryStore = Depends(get_store)):
    return _out(store.config)


@router.put("")
def replace_settings(payload: AppConfig, store: InventoryStore = Depends(get_store)):
    store.replace_config(payload)
    logger.info("Workshop settings replaced")
    return _out(payload)


# ─── Machines ────────────────────────────────────────────────────────────────

@router.post("/machines")
def add_machine(payload: NameRequest, store: InventoryStore = Depends(get_store)):
    return _out(store.update_config(lambda c: edit.add_machine(c, payload.name)))


@router.delete("/machines/{name}")
def remove_machine(name: str, store: InventoryStore = Depends(get_store)):
    return _out(store.update_config(lambda c: edit.remove_machine(c, name)))


@router.put("/machines/{name}/color")
def set_machine_color(name: str, payload: ColorRequest, store: InventoryStore = Depends(get_store)):
    if name not in store.config.machines:
        raise HTTPException(status_code=404, detail=f"Machine {name} not found")
    return _out(store.update_config(lambda c: edit.set_machine_color(c, name, payload.color)))


# ─── Suppliers ───────────────────────────────────────────────────────────────

@router.post("/suppliers")
def add_supplier(payload: NameRequest, store: InventoryStore = Depends(get_store)):
    return _out(store.update_config(lambda c: edit.add_supplier(c, payload.name)))


@router.delete("/suppliers/{name}")
def remove_supplier(name: str, store: InventoryStore = Depends(get_store)):
    return _out(store.update_config(lambda c: edit.remove_supplier(c, name)))


# ─── Custom fields & columns ─────────────────────────────────────────────────

@router.post("/custom-fields")
def add_custom_field(payload: CustomFieldRequest, store: InventoryStore = Depends(get_store)):
    return _out(store.update_config(lambda c: edit.add_custom_field(c, payload.label, payload.type)))


@router.delete("/custom-fields/{field_id}")
def remove_custom_field(field_id: str, store: InventoryStore = Depends(get_store)):
    return _out(store.update_config(lambda c: edit.remove_custom_field(c, field_id)))


@router.post("/columns/{column_id}/move")
def move_column(column_id: str, payload: MoveRequest, store: InventoryStore = Depends(get_store)):
    try:
        return _out(store.update_config(lambda c: edit.move_column(c, column_id, payload.direction)))
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Column {column_id} not found")


@router.post("/columns/{column_id}/toggle")
def toggle_column(column_id: str, store: InventoryStore = Depends(get_store)):
    try:
        return _out(store.update_config(lambda c: edit.toggle_column(c, column_id)))
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Column {column_id} not found")


# ─── E-mail alerts ───────────────────────────────────────────────────────────

@router.post("/notification-emails")
def add_notification_email(payload: EmailRequest, store: InventoryStore = Depends(get_store)):
    return _out(store.update_config(lambda c: edit.add_notification_email(c, payload.email)))


@router.delete("/notification-emails/{email}")
def remove_notification_email(email: str, store: InventoryStore = Depends(get_store)):
    return _out(store.update_config(lambda c: edit.remove_notification_email(c, email)))


@router.post("/email-alerts/toggle")
def toggle_email_alerts(store: InventoryStore = Depends(get_store)):
    return _out(store.update_config(edit.toggle_email_alerts))
