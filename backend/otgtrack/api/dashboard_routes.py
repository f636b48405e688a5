"""Dashboard routes — production, repair, supplier and machine indicators."""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from otgtrack.api.deps import get_store
from otgtrack.services.dashboard_engine import DashboardEngine
from otgtrack.services.store import InventoryStore

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


@router.get("/summary")
async def dashboard_summary(
    machine: Optional[str] = None,
    store: InventoryStore = Depends(get_store),
) -> Dict[str, Any]:
    """All dashboard figures; ``machine=all`` or no machine covers every machine."""
    config = store.config
    return DashboardEngine().summary(
        store.items,
        store.repairs,
        machines=config.machines,
        suppliers=config.suppliers,
        machine=machine,
    )
