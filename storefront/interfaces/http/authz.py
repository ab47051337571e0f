from typing import Optional

from fastapi import Depends, HTTPException, status

from ...application.use_cases.identity import IdentityStore
from ...domain.entities import Role, SessionUser
from .dependencies import get_identity_store


def get_optional_user(identity: IdentityStore = Depends(get_identity_store)) -> Optional[SessionUser]:
    return identity.current_user


def get_current_user(user: Optional[SessionUser] = Depends(get_optional_user)) -> SessionUser:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not logged in")
    return user


def require_role(*roles: Role):
    def _require(user: SessionUser = Depends(get_current_user)) -> SessionUser:
        if user.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")
        return user
    return _require


require_admin = require_role(Role.ADMIN)
require_instructor = require_role(Role.INSTRUCTOR, Role.ADMIN)
