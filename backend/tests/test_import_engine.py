"""
test_import_engine.py — Unit tests for spreadsheet import of dossiers and repairs.

Tests cover:
  - read_table: CSV and Excel decoding, empty and unsupported files
  - normalize_date: Excel serials, datetime cells, ISO with time, DD/MM/YYYY
  - parse_dossier_rows: header aliases, flags, default machine, custom fields,
    per-row errors for unparseable dates
  - parse_repair_rows: type / kind / status keywords, unknown conditions
  - Export → import compatibility of the PRODUCTION workbook
"""

import io
from datetime import date, datetime

import pandas as pd
import pytest

from otgtrack.models.repair_schema import (
    RepairCondition,
    RepairKind,
    RepairStatus,
    RepairToolType,
)
from otgtrack.models.settings_schema import AppConfig, CustomFieldDefinition
from otgtrack.services.export_engine import export_production
from otgtrack.services.import_engine import (
    UNKNOWN_OPERATOR,
    normalize_date,
    parse_dossier_rows,
    parse_repair_rows,
    read_table,
)

DOSSIER_CSV = (
    "Désignation Élément,Client,Référence,Machine,Cliché,Forme,Fournisseur Cliché,"
    "Poses,Date Création,Cliché Commandé,Date Prévue Cliché,Date Réception Cliché\n"
    "Etui 1kg,Nestlé,N-1,MACARBOX,F00001M,,LTE,2,15/06/2025,OUI,20/06/2025,\n"
    "Sachet,Danone,D-7,,F00002M,F00001MR,,,2025-06-01,non,32/13/2025,\n"
    "Boîte,Lesieur,L-3,DRO,,,,4,,,,\n"
)


def _xlsx_bytes(frame: pd.DataFrame) -> bytes:
    buffer = io.BytesIO()
    frame.to_excel(buffer, index=False, engine="xlsxwriter")
    return buffer.getvalue()


# ===========================================================================
# Class 1: Decoding
# ===========================================================================

class TestReadTable:

    def test_csv_rows_keyed_by_header(self):
        rows = read_table(DOSSIER_CSV.encode("utf-8"), "dossiers.csv")
        assert len(rows) == 3
        assert rows[0]["Client"] == "Nestlé"
        assert rows[0]["Cliché"] == "F00001M"

    def test_csv_with_bom(self):
        rows = read_table(("\ufeff" + DOSSIER_CSV).encode("utf-8"), "dossiers.CSV")
        assert "Désignation Élément" in rows[0]

    def test_xlsx_blank_cells_become_none(self):
        frame = pd.DataFrame({"Client": ["Nestlé", None], "Poses": [2, 3]})
        rows = read_table(_xlsx_bytes(frame), "dossiers.xlsx")
        assert rows[0]["Client"] == "Nestlé"
        assert rows[1]["Client"] is None

    def test_empty_content(self):
        with pytest.raises(ValueError, match="empty file"):
            read_table(b"", "dossiers.csv")

    def test_header_only(self):
        with pytest.raises(ValueError, match="empty file"):
            read_table("Client,Machine\n".encode("utf-8"), "dossiers.csv")

    def test_unsupported_extension(self):
        with pytest.raises(ValueError, match="unsupported"):
            read_table(b"whatever", "dossiers.txt")


# ===========================================================================
# Class 2: Dates
# ===========================================================================

class TestNormalizeDate:

    @pytest.mark.parametrize("value, expected", [
        (None, ""),
        ("   ", ""),
        (45000, "2023-03-15"),
        (45000.75, "2023-03-15"),
        (datetime(2025, 6, 15, 10, 30), "2025-06-15"),
        (pd.Timestamp("2025-06-15 08:00"), "2025-06-15"),
        (date(2025, 1, 5), "2025-01-05"),
        ("2025-06-15T08:00:00", "2025-06-15"),
        ("2025-06-15 08:00:00", "2025-06-15"),
        ("2025-06-15", "2025-06-15"),
        ("5/6/2025", "2025-06-05"),
        ("31/12/2024", "2024-12-31"),
    ])
    def test_recognised_forms(self, value, expected):
        assert normalize_date(value) == expected

    def test_unknown_text_is_kept(self):
        assert normalize_date("  demain ") == "demain"

    def test_impossible_french_date_is_kept(self):
        assert normalize_date("32/13/2025") == "32/13/2025"

    @pytest.mark.parametrize("value", [1e10, float("inf"), -1e6])
    def test_serial_out_of_calendar_is_kept_as_text(self, value):
        assert normalize_date(value) == str(value)


# ===========================================================================
# Class 3: Dossier rows
# ===========================================================================

class TestParseDossierRows:

    @pytest.fixture
    def result(self, default_config):
        rows = read_table(DOSSIER_CSV.encode("utf-8"), "dossiers.csv")
        return parse_dossier_rows(rows, default_config)

    def test_valid_rows_become_items(self, result):
        assert result.rows_read == 3
        assert len(result.records) == 2
        first = result.records[0]
        assert first.code_cliche == "F00001M"
        assert first.poses == 2
        assert first.is_ordered_cliche is True
        assert first.date_creation == first.date_creation_cliche == "2025-06-15"
        assert first.date_expected_cliche == "2025-06-20"
        assert first.supplier_cliche == "LTE"

    def test_bad_date_rejects_the_row(self, result):
        assert not result.ok
        assert [(e.row, e.field) for e in result.errors] == [(3, "date_expected_cliche")]
        assert "32/13/2025" in result.errors[0].message

    def test_blank_values_use_defaults(self, result):
        third = result.records[1]
        assert third.machine == "DRO"
        assert third.poses == 4
        assert third.code_cliche == "" and third.is_ordered_cliche is False

    def test_missing_machine_gets_default(self, default_config):
        rows = [{"Client": "X", "Machine": None}]
        item = parse_dossier_rows(rows, default_config).records[0]
        assert item.machine == default_config.default_machine

    def test_fresh_ids(self, default_config):
        rows = [{"Client": "X"}, {"Client": "X"}]
        records = parse_dossier_rows(rows, default_config).records
        assert records[0].id != records[1].id

    def test_english_aliases(self, default_config):
        rows = [{"Item Designation": "Label", "Stereo (Cliche)": "F00009M", "Cliche Ordered": "yes"}]
        item = parse_dossier_rows(rows, default_config).records[0]
        assert (item.element, item.code_cliche, item.is_ordered_cliche) == ("Label", "F00009M", True)

    def test_numeric_reference_keeps_integer_text(self, default_config):
        item = parse_dossier_rows([{"Référence": 1024.0}], default_config).records[0]
        assert item.reference == "1024"

    def test_custom_fields_by_label_or_id(self):
        config = AppConfig(custom_field_definitions=[
            CustomFieldDefinition(id="custom_laize", label="Laize"),
            CustomFieldDefinition(id="custom_bat", label="Date BAT", type="date"),
            CustomFieldDefinition(id="custom_ink", label="Encre"),
        ])
        rows = [{"Laize": "320", "custom_bat": "01/02/2025"}]
        item = parse_dossier_rows(rows, config).records[0]
        assert item.custom_fields == {"custom_laize": "320", "custom_bat": "2025-02-01", "custom_ink": ""}

    def test_summary(self, result):
        summary = result.summary()
        assert summary["imported"] == 2
        assert summary["rejected"] == 1
        assert summary["errors"][0]["row"] == 3

    def test_infinite_poses_clamp_to_one(self, default_config):
        rows = read_table("Cliché,Poses\nF00001M,inf\nF00002M,1e999\n".encode("utf-8"), "dossiers.csv")
        result = parse_dossier_rows(rows, default_config)
        assert result.ok
        assert [item.poses for item in result.records] == [1, 1]

    def test_huge_serial_date_rejects_the_row(self, default_config):
        rows = [{"Client": "X", "Date Prévue Cliché": 1e10}, {"Client": "Y"}]
        result = parse_dossier_rows(rows, default_config)
        assert [(e.row, e.field) for e in result.errors] == [(2, "date_expected_cliche")]
        assert [item.client for item in result.records] == ["Y"]

    def test_xlsx_dates_and_numbers(self, default_config):
        frame = pd.DataFrame({
            "Client": ["Nestlé"],
            "Cliché": ["F00001M"],
            "Poses": [3],
            "Date Prévue Cliché": [datetime(2025, 7, 1)],
            "Cliché Commandé": ["X"],
        })
        rows = read_table(_xlsx_bytes(frame), "dossiers.xlsx")
        item = parse_dossier_rows(rows, default_config).records[0]
        assert item.poses == 3
        assert item.date_expected_cliche == "2025-07-01"
        assert item.is_ordered_cliche is True


# ===========================================================================
# Class 4: Repair rows
# ===========================================================================

class TestParseRepairRows:

    def test_keywords(self, default_config):
        rows = [{
            "Type Outillage": "B – FORME",
            "Code Outillage": "F00001MR",
            "Conducteur": None,
            "Machine": "DRO",
            "État Signalé": "conception",
            "Type Réparation": "Réparation EXT",
            "Fournisseur": "AMGM",
            "Date Déclaration": "01/06/2025",
            "Statut OTG": "CLÔTURÉ",
        }]
        result = parse_repair_rows(rows, default_config)
        assert result.ok
        repair = result.records[0]
        assert repair.type is RepairToolType.FORME
        assert repair.operator == UNKNOWN_OPERATOR
        assert repair.condition is RepairCondition.CONCEPTION
        assert repair.repair_kind is RepairKind.EXTERNAL
        assert repair.status is RepairStatus.CLOSED
        assert repair.declaration_date == "2025-06-01"

    def test_defaults(self, default_config):
        repair = parse_repair_rows([{"Code Outillage": "F00001M"}], default_config).records[0]
        assert repair.type is RepairToolType.CLICHE
        assert repair.condition is RepairCondition.REPARATION
        assert repair.repair_kind is RepairKind.INTERNAL
        assert repair.status is RepairStatus.OPEN
        assert repair.machine == default_config.default_machine

    def test_ouvert_is_open(self, default_config):
        repair = parse_repair_rows([{"Statut OTG": "OUVERT"}], default_config).records[0]
        assert repair.status is RepairStatus.OPEN

    def test_unknown_condition_rejected(self, default_config):
        rows = [{"État Signalé": "Cassé"}, {"État Signalé": "Réparation"}]
        result = parse_repair_rows(rows, default_config)
        assert len(result.records) == 1
        assert [(e.row, e.field) for e in result.errors] == [(2, "condition")]

    def test_bad_declaration_date_rejected(self, default_config):
        result = parse_repair_rows([{"Date Déclaration": "hier"}], default_config)
        assert not result.records
        assert result.errors[0].field == "declaration_date"


# ===========================================================================
# Class 5: Export compatibility
# ===========================================================================

class TestExportCompatibility:

    def test_production_export_reimports(self, sample_items, default_config, tmp_path, today):
        path = export_production(sample_items, str(tmp_path), today=today)
        with open(path, "rb") as fh:
            rows = read_table(fh.read(), path)

        result = parse_dossier_rows(rows, default_config)
        assert result.ok
        assert [i.code_cliche for i in result.records] == [i.code_cliche for i in sample_items]
        assert [i.is_ordered_cliche for i in result.records] == [i.is_ordered_cliche for i in sample_items]
        assert result.records[1].date_expected_cliche == "2025-06-10"
        assert result.records[1].non_conformity == "Plaque rayée"
