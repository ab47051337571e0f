from fastapi import Depends

from ...application.use_cases.catalog import CatalogStore
from ...application.use_cases.identity import IdentityStore
from ...infrastructure.repositories import StateRepository
from ...infrastructure.storage import get_kv_store


def get_repository() -> StateRepository:
    return StateRepository(get_kv_store())


# Admin account and demo catalog are created once, in main.on_startup.

def get_identity_store(repo: StateRepository = Depends(get_repository)) -> IdentityStore:
    return IdentityStore(repo, bootstrap=False)


def get_catalog_store(repo: StateRepository = Depends(get_repository)) -> CatalogStore:
    return CatalogStore(repo, seed=False)
