"""
settings_engine.py — Edits to the workshop configuration.

Every function takes an AppConfig and returns a new one; the input is never
modified. Blank or duplicate names are ignored rather than rejected, so a
repeated click in the settings screen is harmless.
"""

import logging
from typing import List, Literal

from otgtrack.models.inventory_schema import generate_id
from otgtrack.models.settings_schema import AppConfig, ColumnConfig, CustomFieldDefinition

logger = logging.getLogger("otgtrack-settings")

NEW_MACHINE_COLOR = "#94a3b8"


# ── Machines ─────────────────────────────────────────────────────────────────

def add_machine(config: AppConfig, name: str) -> AppConfig:
    machine = (name or "").strip().upper()
    if not machine or machine in config.machines:
        return config
    logger.info(f"Machine added: {machine}")
    return config.model_copy(update={
        "machines": [*config.machines, machine],
        "machine_colors": {**config.machine_colors, machine: NEW_MACHINE_COLOR},
    })


def remove_machine(config: AppConfig, name: str) -> AppConfig:
    """Drop a machine and its colour. Dossiers already on it keep the name."""
    colors = {k: v for k, v in config.machine_colors.items() if k != name}
    return config.model_copy(update={
        "machines": [m for m in config.machines if m != name],
        "machine_colors": colors,
    })


def set_machine_color(config: AppConfig, name: str, color: str) -> AppConfig:
    return config.model_copy(update={"machine_colors": {**config.machine_colors, name: color}})


# ── Suppliers ────────────────────────────────────────────────────────────────

def add_supplier(config: AppConfig, name: str) -> AppConfig:
    supplier = (name or "").strip().upper()
    if not supplier or supplier in config.suppliers:
        return config
    return config.model_copy(update={"suppliers": [*config.suppliers, supplier]})


def remove_supplier(config: AppConfig, name: str) -> AppConfig:
    return config.model_copy(update={"suppliers": [s for s in config.suppliers if s != name]})


# ── Notification e-mails ─────────────────────────────────────────────────────

def add_notification_email(config: AppConfig, email: str) -> AppConfig:
    address = (email or "").strip().lower()
    if "@" not in address or address in config.notification_emails:
        return config
    return config.model_copy(update={"notification_emails": [*config.notification_emails, address]})


def remove_notification_email(config: AppConfig, email: str) -> AppConfig:
    return config.model_copy(update={
        "notification_emails": [e for e in config.notification_emails if e != email],
    })


# ── Custom fields and table columns ──────────────────────────────────────────

def add_custom_field(
    config: AppConfig,
    label: str,
    field_type: Literal["text", "number", "date"] = "text",
) -> AppConfig:
    """Define a custom field; it also gets a visible column at the end of the table."""
    label = (label or "").strip()
    if not label:
        return config
    field_id = f"custom_{generate_id()}"
    return config.model_copy(update={
        "custom_field_definitions": [
            *config.custom_field_definitions,
            CustomFieldDefinition(id=field_id, label=label, type=field_type),
        ],
        "column_order": [*config.column_order, ColumnConfig(id=field_id, label=label, visible=True)],
    })


def remove_custom_field(config: AppConfig, field_id: str) -> AppConfig:
    return config.model_copy(update={
        "custom_field_definitions": [f for f in config.custom_field_definitions if f.id != field_id],
        "column_order": [c for c in config.column_order if c.id != field_id],
    })


def _column_index(columns: List[ColumnConfig], column_id: str) -> int:
    for index, column in enumerate(columns):
        if column.id == column_id:
            return index
    raise KeyError(column_id)


def move_column(config: AppConfig, column_id: str, direction: Literal["up", "down"]) -> AppConfig:
    """Swap a column with its neighbour; moving past either end is a no-op."""
    columns = list(config.column_order)
    index = _column_index(columns, column_id)
    target = index - 1 if direction == "up" else index + 1
    if not 0 <= target < len(columns):
        return config
    columns[index], columns[target] = columns[target], columns[index]
    return config.model_copy(update={"column_order": columns})


def toggle_column(config: AppConfig, column_id: str) -> AppConfig:
    columns = list(config.column_order)
    index = _column_index(columns, column_id)
    columns[index] = columns[index].model_copy(update={"visible": not columns[index].visible})
    return config.model_copy(update={"column_order": columns})


def toggle_email_alerts(config: AppConfig) -> AppConfig:
    return config.model_copy(update={"enable_email_alerts": not config.enable_email_alerts})
