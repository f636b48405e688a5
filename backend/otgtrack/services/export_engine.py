"""
export_engine.py — Excel exports of the production table and OTG repairs.

Covers:
  - PRODUCTION workbook: one row per dossier, live status column
  - REPARATIONS_OTG workbook: one row per repair ticket
  - Dated export file names
  - DD/MM/YYYY date rendering for display

Headers are the French labels the import stage reads back, so an export can
be edited in Excel and re-imported.
"""

import logging
import os
from typing import Any, Callable, List, Optional, Sequence, Tuple

import xlsxwriter

from otgtrack.models.inventory_schema import InventoryItem
from otgtrack.models.repair_schema import OTGRepair, RepairStatus
from otgtrack.services.status_engine import derive_status, today_iso

logger = logging.getLogger("otgtrack-export")

PRODUCTION_SHEET = "PRODUCTION"
REPAIRS_SHEET = "REPARATIONS_OTG"


def _yes_no(flag: bool) -> str:
    return "OUI" if flag else "NON"


# (header, width, value getter)
Column = Tuple[str, int, Callable[..., Any]]

PRODUCTION_COLUMNS: List[Column] = [
    ("Désignation Élément", 30, lambda i, s: i.element),
    ("Client", 20, lambda i, s: i.client),
    ("Référence", 18, lambda i, s: i.reference),
    ("Machine", 16, lambda i, s: i.machine),
    ("Cliché", 14, lambda i, s: i.code_cliche),
    ("Forme", 14, lambda i, s: i.code_forme),
    ("Fournisseur Cliché", 18, lambda i, s: i.supplier_cliche),
    ("Fournisseur Forme", 18, lambda i, s: i.supplier_forme),
    ("Poses", 8, lambda i, s: i.poses),
    ("Date Création", 14, lambda i, s: i.date_creation),
    ("Cliché Commandé", 10, lambda i, s: _yes_no(i.is_ordered_cliche)),
    ("Date Commande Cliché", 14, lambda i, s: i.date_order_cliche),
    ("Date Prévue Cliché", 14, lambda i, s: i.date_expected_cliche),
    ("Date Réception Cliché", 14, lambda i, s: i.date_delivery_cliche),
    ("Forme Commandée", 10, lambda i, s: _yes_no(i.is_ordered_forme)),
    ("Date Commande Forme", 14, lambda i, s: i.date_order_forme),
    ("Date Prévue Forme", 14, lambda i, s: i.date_expected_forme),
    ("Date Réception Forme", 14, lambda i, s: i.date_delivery_forme),
    ("Notes", 30, lambda i, s: i.comments),
    ("SAV", 30, lambda i, s: i.non_conformity),
    ("Statut Actuel", 14, lambda i, s: s.value),
]

REPAIR_COLUMNS: List[Column] = [
    ("Type Outillage", 14, lambda r: r.type.value),
    ("Code Outillage", 14, lambda r: r.linked_code),
    ("Conducteur", 14, lambda r: r.operator),
    ("Machine", 16, lambda r: r.machine),
    ("État Signalé", 16, lambda r: r.condition.value),
    ("Type Réparation", 16, lambda r: r.repair_kind.value),
    ("Fournisseur", 16, lambda r: r.supplier),
    ("Date Déclaration", 14, lambda r: r.declaration_date),
    ("Date Réparation Effectuée", 14, lambda r: r.repair_date),
    ("Problème", 40, lambda r: r.problem_description),
    ("Action Corrective", 40, lambda r: r.corrective_action),
    ("Statut OTG", 10, lambda r: "OUVERT" if r.status is RepairStatus.OPEN else "CLÔTURÉ"),
]


def format_date(value: Optional[str]) -> str:
    """``2025-01-05`` → ``05/01/2025``; blank → ``-``; anything else unchanged."""
    if not value or not value.strip():
        return "-"
    parts = value.split("-")
    if len(parts) != 3:
        return value
    year, month, day = parts
    return f"{day}/{month}/{year}"


def production_filename(today: Optional[str] = None) -> str:
    return f"Production_Export_{today or today_iso()}.xlsx"


def repairs_filename(today: Optional[str] = None) -> str:
    return f"Reparations_OTG_Export_{today or today_iso()}.xlsx"


def production_rows(items: List[InventoryItem], today: Optional[str] = None) -> List[List[Any]]:
    """Cell values of the PRODUCTION sheet, header row excluded."""
    today = today or today_iso()
    return [
        [getter(item, derive_status(item, today)) for _, _, getter in PRODUCTION_COLUMNS]
        for item in items
    ]


def repair_rows(repairs: List[OTGRepair]) -> List[List[Any]]:
    return [[getter(r) for _, _, getter in REPAIR_COLUMNS] for r in repairs]


def _write_sheet(path: str, sheet: str, columns: Sequence[Column], rows: List[List[Any]]) -> str:
    wb = xlsxwriter.Workbook(path)
    try:
        hdr = wb.add_format({"bold": True, "bg_color": "#1e293b", "font_color": "#FFFFFF",
                             "border": 1, "font_size": 10})
        normal = wb.add_format({"border": 1, "font_size": 9})

        ws = wb.add_worksheet(sheet)
        ws.write_row(0, 0, [header for header, _, _ in columns], hdr)
        for c, (_, width, _) in enumerate(columns):
            ws.set_column(c, c, width)
        for r, row in enumerate(rows, 1):
            ws.write_row(r, 0, row, normal)
        ws.freeze_panes(1, 0)
    finally:
        wb.close()
    return path


def export_production(
    items: List[InventoryItem],
    export_dir: str,
    today: Optional[str] = None,
) -> str:
    """Write the PRODUCTION workbook into ``export_dir``; returns its path."""
    today = today or today_iso()
    os.makedirs(export_dir, exist_ok=True)
    path = os.path.join(export_dir, production_filename(today))
    _write_sheet(path, PRODUCTION_SHEET, PRODUCTION_COLUMNS, production_rows(items, today))
    logger.info(f"Production export written: {path} ({len(items)} dossiers)")
    return path


def export_repairs(
    repairs: List[OTGRepair],
    export_dir: str,
    today: Optional[str] = None,
) -> str:
    """Write the REPARATIONS_OTG workbook into ``export_dir``; returns its path."""
    os.makedirs(export_dir, exist_ok=True)
    path = os.path.join(export_dir, repairs_filename(today))
    _write_sheet(path, REPAIRS_SHEET, REPAIR_COLUMNS, repair_rows(repairs))
    logger.info(f"Repairs export written: {path} ({len(repairs)} tickets)")
    return path
