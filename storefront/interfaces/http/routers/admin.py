from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ....application.use_cases.catalog import CatalogStore
from ....application.use_cases.identity import IdentityStore
from ....domain.entities import Role, SessionUser
from ..authz import require_admin
from ..dependencies import get_catalog_store, get_identity_store
from ..schemas import ConsistencyIssueOut, StatsOut

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/users", response_model=list[SessionUser], dependencies=[Depends(require_admin)])
def list_users(
    role: Optional[Role] = None,
    query: Optional[str] = Query(None, max_length=200),
    identity: IdentityStore = Depends(get_identity_store),
):
    return identity.list_users(role=role, query=query)


@router.delete("/instructors/{email}", status_code=status.HTTP_204_NO_CONTENT)
def remove_instructor(
    email: str,
    admin: SessionUser = Depends(require_admin),
    catalog: CatalogStore = Depends(get_catalog_store),
):
    if admin.email == email:
        raise HTTPException(400, "Cannot remove yourself")
    if not catalog.remove_instructor(email, admin):
        raise HTTPException(404, "instructor not found")


@router.get("/stats", response_model=StatsOut, dependencies=[Depends(require_admin)])
def stats(catalog: CatalogStore = Depends(get_catalog_store)):
    return catalog.dashboard_stats()


@router.get("/consistency", response_model=list[ConsistencyIssueOut], dependencies=[Depends(require_admin)])
def consistency(catalog: CatalogStore = Depends(get_catalog_store)):
    return catalog.check_consistency()
