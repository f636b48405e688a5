"""
conftest.py — Shared pytest fixtures for the OTG Track backend test suite.

Engine tests are pure unit tests over in-memory collections. API tests run the
FastAPI app through TestClient against a JsonFileRepository in a temporary
directory, so nothing touches the real data directory.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``otgtrack.*`` imports resolve correctly regardless of where pytest is invoked.
"""

import sys
import os
import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any otgtrack imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


# Fixed "today" used by every date-sensitive test
TODAY = "2025-06-15"


@pytest.fixture(scope="session")
def today():
    return TODAY


# ---------------------------------------------------------------------------
# Model factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_item():
    """
    Factory for InventoryItem. Defaults describe a cliché-only MACARBOX
    dossier that has not been ordered yet; keyword arguments override fields.
    """
    from otgtrack.models.inventory_schema import InventoryItem

    def _make(**overrides):
        fields = {
            "code_cliche": "F00001M",
            "code_forme": "",
            "machine": "MACARBOX",
            "client": "Nestlé",
            "reference": "NEST-24-001",
            "element": "Etui 1kg Choco",
        }
        fields.update(overrides)
        return InventoryItem(**fields)

    return _make


@pytest.fixture
def make_repair():
    """Factory for OTGRepair: an open internal cliché repair on F00001M."""
    from otgtrack.models.repair_schema import OTGRepair

    def _make(**overrides):
        fields = {
            "linked_code": "F00001M",
            "operator": "HILALI",
            "machine": "MACARBOX",
            "declaration_date": TODAY,
            "problem_description": "Cliché décollé",
        }
        fields.update(overrides)
        return OTGRepair(**fields)

    return _make


@pytest.fixture
def sample_items(make_item):
    """
    Five dossiers covering every status as of TODAY:
      d1  cliché ordered, delivered             -> Received
      d2  cliché ordered, expected in the past  -> Delayed
      d3  cliché + forme, only cliché ordered   -> Ordered
      d4  cliché not ordered                    -> Not Ordered
      d5  no tooling at all                     -> Not Ordered
    """
    return [
        make_item(id="d1", code_cliche="F00003M", is_ordered_cliche=True,
                  date_delivery_cliche="2025-06-01", supplier_cliche="LTE"),
        make_item(id="d2", code_cliche="F00002AC", machine="ASAHI CELMACH",
                  is_ordered_cliche=True, date_expected_cliche="2025-06-10",
                  supplier_cliche="LTE", non_conformity="Plaque rayée"),
        make_item(id="d3", code_cliche="F00002M", code_forme="F00001MR",
                  is_ordered_cliche=True, date_expected_cliche="2025-07-01",
                  supplier_cliche="CHIMO", supplier_forme="GRABALFA"),
        make_item(id="d4", code_cliche="F00001M"),
        make_item(id="d5", code_cliche="", machine="DRO"),
    ]


@pytest.fixture
def default_config():
    from otgtrack.models.settings_schema import AppConfig
    return AppConfig()


# ---------------------------------------------------------------------------
# Storage / API fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def data_dir(tmp_path):
    path = tmp_path / "data"
    path.mkdir()
    return str(path)


@pytest.fixture
def json_repository(data_dir):
    from otgtrack.services.repository import JsonFileRepository
    return JsonFileRepository(data_dir)


@pytest.fixture
def client(json_repository, tmp_path, monkeypatch):
    """TestClient over a fresh app whose state lives in a temp directory."""
    from fastapi.testclient import TestClient
    from otgtrack import config
    from otgtrack.main import create_app

    monkeypatch.setattr(config, "EXPORT_DIR", str(tmp_path / "exports"))
    with TestClient(create_app(json_repository)) as test_client:
        yield test_client
