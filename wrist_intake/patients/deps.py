from __future__ import annotations

from fastapi import Request

from wrist_intake.domain.exceptions import StoreUnavailableError
from wrist_intake.patients.store import ClinicalStore


def get_clinical_store(request: Request) -> ClinicalStore:
    """
    Dependency provider for the application's ClinicalStore.

    When the store failed to initialize at startup the application keeps running
    with `clinical_store = None`; every dependent endpoint answers 503 (through the
    StoreUnavailableError handler) instead of silently proceeding.
    """

    store: ClinicalStore | None = getattr(request.app.state, "clinical_store", None)
    if store is None or not store.is_open:
        raise StoreUnavailableError("Clinical store is not open")
    return store
