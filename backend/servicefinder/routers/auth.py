import logging

from fastapi import APIRouter, Depends, HTTPException

from servicefinder.auth import require_authenticated_user
from servicefinder.http_errors import raise_store_http_error
from servicefinder.models import LoginRequest, LoginResponse, SignupRequest, SignupResponse, UserPublic
from servicefinder.services.database import StoreError
from servicefinder.services.user_store import user_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post("/signup", response_model=SignupResponse, status_code=201)
def signup(payload: SignupRequest):
    try:
        user_id = user_store.register(
            username=payload.username,
            email=payload.email,
            password=payload.password,
            role=payload.role,
        )
    except StoreError as exc:
        raise_store_http_error(exc)
    logger.info("User %s registered", user_id)
    return SignupResponse(user_id=user_id)


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest):
    try:
        user = user_store.authenticate(identifier=payload.email, password=payload.password)
    except StoreError as exc:
        raise_store_http_error(exc)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return LoginResponse(user=user)


@router.get("/auth/me", response_model=UserPublic)
def me(user: UserPublic = Depends(require_authenticated_user)):
    return user
