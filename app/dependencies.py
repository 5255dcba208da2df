"""
FastAPI dependencies that hand explicit store / provider handles to the
service layer.

Tests replace ``get_store`` and ``get_identity_provider`` through
``app.dependency_overrides``; nothing in the services reads a global
handle.
"""
from fastapi import Depends, Request

from app.database import RelationalStore, async_session
from app.identity import IdentityProvider
from app.services.provisioning_service import ProvisioningOrchestrator


def get_store() -> RelationalStore:
    return RelationalStore(async_session)


def get_identity_provider(request: Request) -> IdentityProvider:
    """The provider opened by the application lifespan (see ``main.py``)."""
    return request.app.state.identity_provider


def get_provisioner(
    store: RelationalStore = Depends(get_store),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
) -> ProvisioningOrchestrator:
    return ProvisioningOrchestrator(store, identity_provider)
