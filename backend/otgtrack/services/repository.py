"""
repository.py — Local persistence of the workshop snapshot.

Covers:
  - Snapshot: dossiers, repair tickets and configuration, loaded and saved together
  - Repository protocol (load / save)
  - JsonFileRepository: three JSON documents in a data directory

Read failures never stop the application: a missing, unreadable or malformed
document is logged and replaced by its default, and a malformed record inside
a readable document is skipped. Write failures propagate to the caller.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol, Type, TypeVar

from pydantic import BaseModel, ValidationError

from otgtrack.models.inventory_schema import InventoryItem
from otgtrack.models.repair_schema import OTGRepair
from otgtrack.models.settings_schema import AppConfig

logger = logging.getLogger("otgtrack-storage")

INVENTORY_FILE = "inventory.json"
REPAIRS_FILE = "repairs.json"
CONFIG_FILE = "config.json"

M = TypeVar("M", bound=BaseModel)


@dataclass
class Snapshot:
    items: List[InventoryItem] = field(default_factory=list)
    repairs: List[OTGRepair] = field(default_factory=list)
    config: AppConfig = field(default_factory=AppConfig)


class Repository(Protocol):
    def load(self) -> Snapshot:
        ...

    def save(self, snapshot: Snapshot) -> None:
        ...


def _dump(model: BaseModel) -> Any:
    return model.model_dump(mode="json", by_alias=True)


class JsonFileRepository:
    """
    Snapshot stored as ``inventory.json``, ``repairs.json`` and
    ``config.json`` under ``data_dir``. Each save rewrites the three files
    atomically (temp file + ``os.replace``).
    """

    def __init__(self, data_dir: str):
        self.data_dir = data_dir

    def _path(self, name: str) -> str:
        return os.path.join(self.data_dir, name)

    # ── Reading ─────────────────────────────────────────────────────────────

    def _read_json(self, name: str) -> Optional[Any]:
        path = self._path(name)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as fh:
                return json.load(fh)
        except (OSError, ValueError) as e:
            logger.error(f"Could not read {path}, using defaults: {e}")
            return None

    def _read_records(self, name: str, model: Type[M]) -> List[M]:
        raw = self._read_json(name)
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.error(f"{name} does not hold a list, using an empty collection")
            return []

        records: List[M] = []
        for index, entry in enumerate(raw):
            try:
                records.append(model.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Skipping malformed record #{index} in {name}: {e.errors()[0]['msg']}")
        return records

    def _read_config(self) -> AppConfig:
        raw = self._read_json(CONFIG_FILE)
        if raw is None:
            return AppConfig()
        try:
            return AppConfig.model_validate(raw)
        except ValidationError as e:
            logger.error(f"Invalid {CONFIG_FILE}, using default settings: {e.errors()[0]['msg']}")
            return AppConfig()

    def load(self) -> Snapshot:
        snapshot = Snapshot(
            items=self._read_records(INVENTORY_FILE, InventoryItem),
            repairs=self._read_records(REPAIRS_FILE, OTGRepair),
            config=self._read_config(),
        )
        logger.info(
            f"Loaded {len(snapshot.items)} dossiers and {len(snapshot.repairs)} repairs "
            f"from {self.data_dir}"
        )
        return snapshot

    # ── Writing ─────────────────────────────────────────────────────────────

    def _write_json(self, name: str, payload: Any) -> None:
        os.makedirs(self.data_dir, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=f".{name}.", dir=self.data_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self._path(name))
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def save(self, snapshot: Snapshot) -> None:
        self._write_json(INVENTORY_FILE, [_dump(i) for i in snapshot.items])
        self._write_json(REPAIRS_FILE, [_dump(r) for r in snapshot.repairs])
        self._write_json(CONFIG_FILE, _dump(snapshot.config))


class InMemoryRepository:
    """Repository that keeps the last saved snapshot in memory."""

    def __init__(self, snapshot: Optional[Snapshot] = None):
        self._snapshot = snapshot or Snapshot()
        self.saves = 0

    def load(self) -> Snapshot:
        return Snapshot(list(self._snapshot.items), list(self._snapshot.repairs), self._snapshot.config)

    def save(self, snapshot: Snapshot) -> None:
        self._snapshot = snapshot
        self.saves += 1
