from fastapi import APIRouter, Depends, Request
from fitcoach.config import settings
from fitcoach.core.dependencies import get_current_caller, get_identity_service
from fitcoach.core.rate_limit import limiter
from fitcoach.modules.auth.schemas import (
    CallerIdentity, LoginRequest, RegisterRequest, RegisterResponse, TokenResponse
)
from fitcoach.modules.auth.service import IdentityService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, response_model_by_alias=True, status_code=201)
@limiter.limit(settings.auth_rate_limit)
def register(
    request: Request,
    register_data: RegisterRequest,
    service: IdentityService = Depends(get_identity_service)
):
    """Register a new coach or client account"""
    return service.register(register_data)


@router.post("/login", response_model=TokenResponse, response_model_by_alias=True)
@limiter.limit(settings.auth_rate_limit)
def login(
    request: Request,
    login_data: LoginRequest,
    service: IdentityService = Depends(get_identity_service)
):
    """Login and get an access token"""
    return service.login(login_data)


@router.get("/me", response_model=CallerIdentity, response_model_by_alias=True)
def get_me(caller: CallerIdentity = Depends(get_current_caller)):
    """Return the verified caller identity"""
    return caller
