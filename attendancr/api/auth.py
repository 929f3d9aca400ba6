import logging
from fastapi import APIRouter, Depends, HTTPException, status, Response, Request
from fastapi.security import OAuth2PasswordBearer
from datetime import datetime, timedelta, timezone
import jwt
from pydantic import ValidationError

from .schemas.auth import (
    AdminLoginRequest, AdminLoginResponse, SessionResponse, StaffLoginResponse,
    StaffPinRequest, StaffResponse, Token, TokenData,
)
from ..models.db_models import Admin
from ..models.redis_models import Session
from ..db.redis_client import RedisClient
from ..db.db_client import AsyncPostgresClient
from ..services.auth_service import AuthService
from ..services.errors import AuthenticationError, ServiceError
from ..tools.security import is_valid_pin
from ..config.config import settings
from .dependencies import get_auth_service, get_db_client, get_redis_client
from .utilities.limiter import limiter

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"]
)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/admin/login")


def create_access_token(data: dict, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


async def get_current_admin(
    token: str = Depends(oauth2_scheme),
    redis_client: RedisClient = Depends(get_redis_client),
    db_client: AsyncPostgresClient = Depends(get_db_client)
) -> Admin:
    """
    Decodes the bearer token and requires a live admin session in Redis.
    Logging out deletes the session, which revokes the token immediately.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        token_data = TokenData.model_validate(payload)
    except (jwt.PyJWTError, ValidationError) as e:
        logger.warning(f"Admin token validation error: {e}")
        raise credentials_exception

    if token_data.admin_id is None:
        logger.warning("Token is valid but carries no 'admin_id'.")
        raise credentials_exception

    session = await redis_client.get_session("admin", token_data.admin_id)
    if session is None:
        logger.warning(f"Admin {token_data.admin_id} presented a token without an active session.")
        raise credentials_exception

    admin = await db_client.get_admin(token_data.admin_id)
    if admin is None:
        logger.warning(f"Admin {token_data.admin_id} has a session but no longer exists.")
        raise credentials_exception
    return admin


@router.post("/staff", response_model=StaffLoginResponse)
@limiter.limit("10/minute")
async def staff_login(
    request: Request,
    pin_request: StaffPinRequest,
    service: AuthService = Depends(get_auth_service),
    redis_client: RedisClient = Depends(get_redis_client)
):
    """Kiosk PIN login. Malformed PINs are rejected before any lookup."""
    if not is_valid_pin(pin_request.pin):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid PIN format")

    try:
        staff = await service.authenticate_staff(pin_request.pin)
    except AuthenticationError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    except ServiceError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    session = Session.create(
        "staff", staff.id, timedelta(seconds=settings.STAFF_SESSION_TTL_SECONDS), subject_name=staff.name
    )
    try:
        await redis_client.save_session(session)
    except Exception:
        logger.error(f"Could not store kiosk session for staff {staff.id}.", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create session")

    return StaffLoginResponse(
        staff=StaffResponse.model_validate(staff),
        session=SessionResponse.model_validate(session),
    )


@router.post("/admin/login", response_model=AdminLoginResponse)
@limiter.limit("10/minute")
async def admin_login(
    request: Request,
    login_request: AdminLoginRequest,
    service: AuthService = Depends(get_auth_service),
    redis_client: RedisClient = Depends(get_redis_client)
):
    try:
        admin = await service.authenticate_admin(login_request.email, login_request.password)
    except AuthenticationError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    except ServiceError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    ttl = timedelta(seconds=settings.ADMIN_SESSION_TTL_SECONDS)
    session = Session.create("admin", admin.id, ttl, subject_name=admin.email)
    try:
        await redis_client.save_session(session)
    except Exception:
        logger.error(f"Could not store admin session for {admin.id}.", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create session")

    access_token = create_access_token({"admin_id": str(admin.id)}, expires_delta=ttl)
    logger.info(f"Admin '{admin.email}' logged in; session valid until {session.expires_at.isoformat()}.")
    return AdminLoginResponse(
        token=Token(access_token=access_token),
        session=SessionResponse.model_validate(session),
    )


@router.post("/admin/logout", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
async def admin_logout(
    request: Request,
    redis_client: RedisClient = Depends(get_redis_client),
    current_admin: Admin = Depends(get_current_admin)
):
    try:
        await redis_client.delete_session("admin", current_admin.id)
    except Exception:
        logger.error(f"Error during logout for admin {current_admin.id}.", exc_info=True)
        raise HTTPException(status_code=500, detail="An error occurred during logout.")
    logger.info(f"Admin '{current_admin.email}' logged out.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
