"""Shared FastAPI dependencies."""
from fastapi import HTTPException, Request

from otgtrack.services.store import InventoryStore


def get_store(request: Request) -> InventoryStore:
    """The application's store, created by the lifespan handler in main.py."""
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Store not initialised")
    return store
