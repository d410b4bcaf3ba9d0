# ============================================================================
# FILE: app/api/dependencies.py
# Authentication dependencies for dashboard JWT tokens
# ============================================================================
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt
from uuid import UUID

from app.config.settings import settings

# ============================================================================
# Security Schemes
# ============================================================================

# JWT security for staff (owner / professional) authentication
jwt_security = HTTPBearer(
    scheme_name="JWT Bearer Token",
    description="Enter your JWT access token"
)


# ============================================================================
# JWT Token Functions
# ============================================================================

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Tokens are normally issued by the identity service; this mirrors its
    claims for local tooling.

    Args:
        data: Dictionary with claims (should include 'sub' with user_id)
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({
        "exp": expire,
        "iat": datetime.now(timezone.utc),
        "type": "access"
    })

    return jwt.encode(
        to_encode,
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM
    )


def verify_access_token(token: str) -> dict:
    """
    Verify and decode a JWT access token.

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )

        if payload.get("type") != "access":
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token type",
                headers={"WWW-Authenticate": "Bearer"},
            )

        return payload

    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Could not validate credentials: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )


# ============================================================================
# JWT Authentication Dependencies
# ============================================================================

async def get_current_user_id(
        credentials: HTTPAuthorizationCredentials = Depends(jwt_security)
) -> UUID:
    """
    Dependency returning the authenticated user's id from the access token.

    Which establishments the user may act on is decided per request by
    EstablishmentRepository.authorize_staff.

    Raises:
        HTTPException 401: If token is invalid or carries no usable subject
    """
    payload = verify_access_token(credentials.credentials)

    user_id_str: Optional[str] = payload.get("sub")
    if user_id_str is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return UUID(user_id_str)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID in token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def optional_current_user_id(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(
            HTTPBearer(auto_error=False)
        )
) -> Optional[UUID]:
    """
    Optional JWT authentication dependency.

    Lets a logged-in customer attach their identity to a public booking.
    """
    if not credentials:
        return None

    try:
        payload = verify_access_token(credentials.credentials)
        user_id_str = payload.get("sub")
        return UUID(user_id_str) if user_id_str else None
    except (HTTPException, ValueError):
        return None
