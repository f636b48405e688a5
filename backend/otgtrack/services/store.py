"""
store.py — In-process state of the running application.

The store owns the current Snapshot and is the only writer of it. Each change
builds a complete new collection, swaps it in under a lock and hands the
snapshot to the repository. The state-changing routes are plain functions,
which FastAPI runs in its threadpool, so the lock keeps two of them from
interleaving a read-modify-write and the file writes stay off the event loop.
"""

import logging
import threading
from typing import Callable, List, Optional

from otgtrack.models.inventory_schema import InventoryItem
from otgtrack.models.repair_schema import OTGRepair
from otgtrack.models.settings_schema import AppConfig
from otgtrack.services.repository import Repository, Snapshot

logger = logging.getLogger("otgtrack-storage")


class InventoryStore:

    def __init__(self, repository: Repository, snapshot: Optional[Snapshot] = None):
        self.repository = repository
        self._snapshot = snapshot if snapshot is not None else repository.load()
        self._lock = threading.RLock()

    # ── Reads ───────────────────────────────────────────────────────────────

    @property
    def items(self) -> List[InventoryItem]:
        return self._snapshot.items

    @property
    def repairs(self) -> List[OTGRepair]:
        return self._snapshot.repairs

    @property
    def config(self) -> AppConfig:
        return self._snapshot.config

    # ── Writes ──────────────────────────────────────────────────────────────

    def _commit(self, snapshot: Snapshot) -> None:
        self.repository.save(snapshot)
        self._snapshot = snapshot

    def update_items(self, change: Callable[[List[InventoryItem]], List[InventoryItem]]) -> List[InventoryItem]:
        """
        Apply ``change`` to the current dossiers and persist the result.

        Exceptions raised by ``change`` leave the store untouched.
        """
        with self._lock:
            items = change(self._snapshot.items)
            self._commit(Snapshot(items, self._snapshot.repairs, self._snapshot.config))
            return items

    def update_repairs(self, change: Callable[[List[OTGRepair]], List[OTGRepair]]) -> List[OTGRepair]:
        with self._lock:
            repairs = change(self._snapshot.repairs)
            self._commit(Snapshot(self._snapshot.items, repairs, self._snapshot.config))
            return repairs

    def update_config(self, change: Callable[[AppConfig], AppConfig]) -> AppConfig:
        with self._lock:
            config = change(self._snapshot.config)
            self._commit(Snapshot(self._snapshot.items, self._snapshot.repairs, config))
            return config

    def replace_items(self, items: List[InventoryItem]) -> None:
        """Swap the whole dossier collection, as a production import does."""
        self.update_items(lambda _: list(items))
        logger.info(f"Dossier collection replaced ({len(items)} dossiers)")

    def replace_repairs(self, repairs: List[OTGRepair]) -> None:
        self.update_repairs(lambda _: list(repairs))

    def replace_config(self, config: AppConfig) -> None:
        self.update_config(lambda _: config)
