"""
import_engine.py — Spreadsheet import of dossiers and repair tickets.

Covers:
  - CSV / Excel upload decoding via pandas (first sheet only)
  - Header lookup accepting the French export labels and English aliases
  - Date normalisation (Excel serials, datetime cells, DD/MM/YYYY text)
  - Row validation with per-row error reporting

A row either becomes a fully validated model or is reported as a RowError;
nothing half-typed reaches the collection. Every imported record gets a fresh
identifier.
"""

import io
import logging
import math
import numbers
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from pydantic import ValidationError

from otgtrack.models.inventory_schema import InventoryItem, generate_id
from otgtrack.models.repair_schema import (
    OTGRepair,
    RepairCondition,
    RepairKind,
    RepairStatus,
    RepairToolType,
)
from otgtrack.models.settings_schema import AppConfig

logger = logging.getLogger("otgtrack-import")


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Day 0 of the Excel 1900 date system, leap-year bug included
EXCEL_EPOCH = date(1899, 12, 30)

TRUTHY_FLAGS = {"OUI", "YES", "TRUE", "1", "X", "VRAI"}

UNKNOWN_OPERATOR = "Inconnu"

_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")
_ISO_PREFIX = re.compile(r"(\d{4}-\d{2}-\d{2})[T ].*")
_FRENCH_DATE = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})")

# field -> accepted headers, first non-empty wins
DOSSIER_HEADERS: Dict[str, Sequence[str]] = {
    "element": ("Désignation Élément", "Item Designation", "Élément", "element"),
    "client": ("Client", "client"),
    "reference": ("Référence", "Reference", "reference"),
    "machine": ("Machine", "machine"),
    "code_cliche": ("Cliché", "Stereo (Cliche)", "Code Cliché", "codeCliche"),
    "code_forme": ("Forme", "Die-Cut (Forme)", "Code Forme", "codeForme"),
    "supplier_cliche": ("Fournisseur Cliché", "Cliche Supplier", "supplierCliche"),
    "supplier_forme": ("Fournisseur Forme", "Forme Supplier", "supplierForme"),
    "poses": ("Poses", "poses"),
    "date_creation": ("Date Création", "Creation Date", "dateCreation"),
    "is_ordered_cliche": ("Cliché Commandé", "Cliche Ordered", "isOrderedCliche"),
    "date_order_cliche": ("Date Commande Cliché", "dateOrderCliche"),
    "date_expected_cliche": ("Date Prévue Cliché", "dateExpectedCliche"),
    "date_delivery_cliche": ("Date Réception Cliché", "dateDeliveryCliche"),
    "is_ordered_forme": ("Forme Commandée", "Forme Ordered", "isOrderedForme"),
    "date_order_forme": ("Date Commande Forme", "dateOrderForme"),
    "date_expected_forme": ("Date Prévue Forme", "dateExpectedForme"),
    "date_delivery_forme": ("Date Réception Forme", "dateDeliveryForme"),
    "comments": ("Notes", "Comments", "comments"),
    "non_conformity": ("SAV", "Non Conformity", "nonConformity"),
}

REPAIR_HEADERS: Dict[str, Sequence[str]] = {
    "type": ("Type Outillage", "Tool Type", "type"),
    "linked_code": ("Code Outillage", "Tool Code", "linkedCode"),
    "operator": ("Conducteur", "Operator", "conducteur"),
    "machine": ("Machine", "machine"),
    "condition": ("État Signalé", "Condition", "etat"),
    "repair_kind": ("Type Réparation", "Repair Kind", "repairKind"),
    "supplier": ("Fournisseur", "Supplier", "supplier"),
    "declaration_date": ("Date Déclaration", "Declaration Date", "declarationDate"),
    "repair_date": ("Date Réparation Effectuée", "Repair Date", "repairDate"),
    "problem_description": ("Problème", "Problem", "problemDescription"),
    "corrective_action": ("Action Corrective", "Corrective Action", "correctiveAction"),
    "status": ("Statut OTG", "Status", "status"),
}


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RowError:
    row: int          # spreadsheet row number, header is row 1
    field: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"row": self.row, "field": self.field, "message": self.message}


@dataclass
class ImportResult:
    records: List[Any] = field(default_factory=list)
    errors: List[RowError] = field(default_factory=list)
    rows_read: int = 0

    @property
    def ok(self) -> bool:
        return not self.errors

    def summary(self) -> Dict[str, Any]:
        return {
            "rows_read": self.rows_read,
            "imported": len(self.records),
            "rejected": len({e.row for e in self.errors}),
            "errors": [e.to_dict() for e in self.errors],
        }


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def read_table(content: bytes, filename: str) -> List[Dict[str, Any]]:
    """
    Decode an uploaded CSV or Excel file into row dicts keyed by header.

    Empty cells become ``None``. Raises ``ValueError("empty file")`` when the
    sheet has no data row.
    """
    if not content:
        raise ValueError("empty file")

    name = (filename or "").lower()
    if name.endswith(".csv"):
        df = pd.read_csv(io.StringIO(content.decode("utf-8-sig")), dtype=str, keep_default_na=False)
    elif name.endswith(".xlsx"):
        df = pd.read_excel(io.BytesIO(content), sheet_name=0)
    else:
        raise ValueError(f"unsupported file type: {filename!r} (expected .csv or .xlsx)")

    df.columns = [str(c).strip() for c in df.columns]
    df = df.dropna(how="all")
    if len(df) == 0:
        raise ValueError("empty file")

    df = df.astype(object).where(pd.notna(df), None)
    rows = df.to_dict(orient="records")
    logger.info(f"Read {len(rows)} rows from {filename}")
    return rows


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def _cell(row: Dict[str, Any], headers: Sequence[str]) -> Any:
    for header in headers:
        value = row.get(header)
        if not _is_blank(value):
            return value
    return None


def _text(value: Any) -> str:
    if _is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        # Numeric cells such as a reference typed as 1024 come back as 1024.0
        return str(int(value))
    return str(value).strip()


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return _text(value).upper() in TRUTHY_FLAGS


def normalize_date(value: Any) -> str:
    """
    Render a spreadsheet date cell as ``YYYY-MM-DD``.

    Accepts ``datetime``/``date``/``pd.Timestamp``, Excel serial numbers,
    ISO strings (a time part is dropped) and ``DD/MM/YYYY``. Blank cells give
    ``""``; any other text is returned stripped, unchanged.
    """
    if _is_blank(value) or value is pd.NaT:
        return ""
    if isinstance(value, (datetime, pd.Timestamp)):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        # Excel serial day number; numpy scalars included
        try:
            return (EXCEL_EPOCH + timedelta(days=int(value))).isoformat()
        except (OverflowError, ValueError):
            # Out of calendar range; left as text so the row is reported
            return str(value)

    text = str(value).strip()
    match = _ISO_PREFIX.fullmatch(text)
    if match:
        return match.group(1)
    match = _FRENCH_DATE.fullmatch(text)
    if match:
        day, month, year = (int(g) for g in match.groups())
        try:
            return date(year, month, day).isoformat()
        except ValueError:
            return text
    return text


def _is_valid_date(value: str) -> bool:
    if not value:
        return True
    if not _ISO_DATE.fullmatch(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def _validation_errors(row_number: int, exc: ValidationError) -> List[RowError]:
    errors = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())) or "row"
        errors.append(RowError(row_number, loc, err.get("msg", "invalid value")))
    return errors


# ---------------------------------------------------------------------------
# Dossiers
# ---------------------------------------------------------------------------

def _dossier_payload(row: Dict[str, Any], config: AppConfig) -> Dict[str, Any]:
    values = {name: _cell(row, headers) for name, headers in DOSSIER_HEADERS.items()}
    created = normalize_date(values["date_creation"])

    payload: Dict[str, Any] = {
        "id": generate_id(),
        "element": _text(values["element"]),
        "client": _text(values["client"]),
        "reference": _text(values["reference"]),
        "machine": _text(values["machine"]) or config.default_machine,
        "code_cliche": _text(values["code_cliche"]),
        "code_forme": _text(values["code_forme"]),
        "supplier_cliche": _text(values["supplier_cliche"]),
        "supplier_forme": _text(values["supplier_forme"]),
        "poses": values["poses"],
        "date_creation": created,
        "date_creation_cliche": created,
        "date_creation_forme": created,
        "is_ordered_cliche": _flag(values["is_ordered_cliche"]),
        "is_ordered_forme": _flag(values["is_ordered_forme"]),
        "comments": _text(values["comments"]),
        "non_conformity": _text(values["non_conformity"]),
    }
    for name in (
        "date_order_cliche", "date_expected_cliche", "date_delivery_cliche",
        "date_order_forme", "date_expected_forme", "date_delivery_forme",
    ):
        payload[name] = normalize_date(values[name])

    custom = config.custom_field_defaults()
    for definition in config.custom_field_definitions:
        value = _cell(row, (definition.label, definition.id))
        if value is not None:
            custom[definition.id] = normalize_date(value) if definition.type == "date" else _text(value)
    payload["custom_fields"] = custom
    return payload


def parse_dossier_rows(rows: List[Dict[str, Any]], config: AppConfig) -> ImportResult:
    """Validate spreadsheet rows as dossiers. Unknown columns are ignored."""
    result = ImportResult(rows_read=len(rows))
    date_fields = [name for name in DOSSIER_HEADERS if name.startswith("date_")]

    for index, row in enumerate(rows):
        row_number = index + 2
        payload = _dossier_payload(row, config)

        bad_dates = [
            RowError(row_number, name, f"unrecognised date {payload[name]!r}")
            for name in date_fields
            if not _is_valid_date(payload[name])
        ]
        if bad_dates:
            result.errors.extend(bad_dates)
            continue
        try:
            result.records.append(InventoryItem.model_validate(payload))
        except ValidationError as exc:
            result.errors.extend(_validation_errors(row_number, exc))

    logger.info(
        f"Dossier import: {len(result.records)} accepted, "
        f"{len({e.row for e in result.errors})} rejected"
    )
    return result


# ---------------------------------------------------------------------------
# Repairs
# ---------------------------------------------------------------------------

def _condition(value: Any) -> Optional[RepairCondition]:
    text = _text(value)
    if not text:
        return RepairCondition.REPARATION
    for condition in RepairCondition:
        if condition.value.lower() == text.lower():
            return condition
    return None


def _repair_status(value: Any) -> RepairStatus:
    text = _text(value).upper()
    if any(marker in text for marker in ("CLÔTURÉ", "CLOTURE", "CLOSED")):
        return RepairStatus.CLOSED
    return RepairStatus.OPEN


def parse_repair_rows(rows: List[Dict[str, Any]], config: AppConfig) -> ImportResult:
    """Validate spreadsheet rows as OTG repair tickets."""
    result = ImportResult(rows_read=len(rows))

    for index, row in enumerate(rows):
        row_number = index + 2
        values = {name: _cell(row, headers) for name, headers in REPAIR_HEADERS.items()}

        condition = _condition(values["condition"])
        if condition is None:
            result.errors.append(
                RowError(row_number, "condition", f"unknown condition {_text(values['condition'])!r}")
            )
            continue

        payload = {
            "id": generate_id(),
            "type": RepairToolType.FORME if "FORME" in _text(values["type"]).upper() else RepairToolType.CLICHE,
            "linked_code": _text(values["linked_code"]),
            "operator": _text(values["operator"]) or UNKNOWN_OPERATOR,
            "machine": _text(values["machine"]) or config.default_machine,
            "condition": condition,
            "repair_kind": RepairKind.EXTERNAL if "EXT" in _text(values["repair_kind"]).upper() else RepairKind.INTERNAL,
            "supplier": _text(values["supplier"]),
            "declaration_date": normalize_date(values["declaration_date"]),
            "repair_date": normalize_date(values["repair_date"]),
            "problem_description": _text(values["problem_description"]),
            "corrective_action": _text(values["corrective_action"]),
            "status": _repair_status(values["status"]),
        }

        bad_dates = [
            RowError(row_number, name, f"unrecognised date {payload[name]!r}")
            for name in ("declaration_date", "repair_date")
            if not _is_valid_date(payload[name])
        ]
        if bad_dates:
            result.errors.extend(bad_dates)
            continue
        try:
            result.records.append(OTGRepair.model_validate(payload))
        except ValidationError as exc:
            result.errors.extend(_validation_errors(row_number, exc))

    logger.info(
        f"Repair import: {len(result.records)} accepted, "
        f"{len({e.row for e in result.errors})} rejected"
    )
    return result
