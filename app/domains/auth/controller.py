"""Authentication API controller."""

import logging

from fastapi import APIRouter, Depends

from app.core.dependencies import get_persistence
from app.domains.auth.service import AuthService
from app.persistence.base import PersistenceAdapter
from app.schemas.user import AuthResponse, LoginRequest, RegisterRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    payload: RegisterRequest,
    persistence: PersistenceAdapter = Depends(get_persistence),
):
    """Create an account and return an access token."""
    result = await AuthService(persistence).register(payload.username, payload.email, payload.password)
    return AuthResponse(message="User registered successfully", **result)


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginRequest,
    persistence: PersistenceAdapter = Depends(get_persistence),
):
    """Exchange email and password for an access token."""
    result = await AuthService(persistence).login(payload.email, payload.password)
    return AuthResponse(message="Login successful", **result)
