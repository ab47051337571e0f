from fastapi import APIRouter, Depends, HTTPException, Request, status

from ....application.use_cases.identity import IdentityStore
from ....config import settings
from ....domain.entities import SessionUser
from ....domain.errors import DuplicateEmailError, InvalidCredentialsError, ValidationError
from ..dependencies import get_identity_store
from ..ratelimit import limiter
from ..schemas import LoginReq, OkResp, RegisterReq

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.get("/health")
def health():
    return {"status": "ok"}


@router.post("/register", response_model=SessionUser, status_code=status.HTTP_201_CREATED)
@limiter.limit(f"{settings.RATE_LIMIT_PER_MINUTE}/minute")
def register(
    request: Request,
    payload: RegisterReq,
    identity: IdentityStore = Depends(get_identity_store),
):
    try:
        return identity.register(payload.name, payload.email, payload.password, payload.role)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors)
    except DuplicateEmailError as e:
        raise HTTPException(status_code=409, detail=e.detail)


@router.post("/login", response_model=SessionUser)
@limiter.limit("10/minute")  # stricter: password guessing
def login(
    request: Request,
    payload: LoginReq,
    identity: IdentityStore = Depends(get_identity_store),
):
    try:
        return identity.login(payload.email, payload.password)
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=401, detail=e.detail)


@router.post("/logout", response_model=OkResp)
def logout(identity: IdentityStore = Depends(get_identity_store)):
    identity.logout()
    return OkResp()


@router.get("/me", response_model=SessionUser)
def me(identity: IdentityStore = Depends(get_identity_store)):
    user = identity.refresh_session()
    if user is None:
        raise HTTPException(status_code=401, detail="Not logged in")
    return user
