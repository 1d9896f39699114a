"""User authentication controller endpoints."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.dependencies import auth, get_current_user
from app.database import get_db
from app.domains.user.service import AuthTokens, UsageService, UserService
from app.schemas.base import ResponseSchema, dump
from app.schemas.user import (
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UsageResponse,
    UserResponse,
    UserUpdateRequest,
)
from models.user import User

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _token_response(user: User, tokens: AuthTokens) -> dict:
    return dump(
        TokenResponse(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_in=settings.access_token_expire_minutes * 60,
            user=UserResponse.model_validate(user),
        )
    )


@router.post("/register", response_model=ResponseSchema, status_code=status.HTTP_201_CREATED)
async def register(register_data: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Create an account with default quotas and return a token pair."""
    user_service = UserService(db, auth)
    user, tokens = await user_service.register(register_data)

    return ResponseSchema(
        status="success",
        message="User registered successfully",
        data=_token_response(user, tokens),
    )


@router.post("/login", response_model=ResponseSchema)
async def login(login_data: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Exchange email and password for a token pair."""
    user_service = UserService(db, auth)
    user, tokens = await user_service.login(login_data)

    return ResponseSchema(
        status="success",
        message="Login successful",
        data=_token_response(user, tokens),
    )


@router.post("/refresh", response_model=ResponseSchema)
async def refresh(refresh_data: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """Exchange a refresh token for a new token pair; the old one stops working."""
    user_service = UserService(db, auth)
    user, tokens = await user_service.refresh(refresh_data.refresh_token)

    return ResponseSchema(
        status="success",
        message="Token refreshed successfully",
        data=_token_response(user, tokens),
    )


@router.post("/logout", response_model=ResponseSchema)
async def logout(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Revoke the current refresh token."""
    await UserService(db, auth).logout(current_user)

    return ResponseSchema(status="success", message="Logged out successfully")


@router.get("/me", response_model=ResponseSchema)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get current authenticated user information."""
    return ResponseSchema(
        status="success",
        message="User retrieved successfully",
        data=dump(UserResponse.model_validate(current_user)),
    )


@router.patch("/me", response_model=ResponseSchema)
async def update_current_user(
    update_data: UserUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update current user's profile information."""
    user_service = UserService(db, auth)
    user = await user_service.update_user(current_user, update_data)

    return ResponseSchema(
        status="success",
        message="User updated successfully",
        data=dump(UserResponse.model_validate(user)),
    )


@router.get("/usage", response_model=ResponseSchema)
async def get_usage(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Storage and count usage against the user's limits."""
    usage = await UsageService(db).get_usage(current_user.id)

    return ResponseSchema(
        status="success",
        message="Usage retrieved successfully",
        data=dump(UsageResponse.model_validate(usage)),
    )
