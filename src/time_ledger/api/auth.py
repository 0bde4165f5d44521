"""Authentication for the API.

JWT bearer tokens signed with the secret key from configuration. The "sub"
claim is the user id; "name" and "role" are optional profile claims.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Depends, HTTPException, Request, status  # type: ignore[import-untyped]
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer  # type: ignore[import-untyped]
from jose import JWTError, jwt  # type: ignore[import-untyped]

from time_ledger.core.config import ConfigManager
from time_ledger.core.models import User, UserRole

ALGORITHM = "HS256"

security = HTTPBearer(auto_error=False)


def create_access_token(
    data: dict[str, Any], secret_key: str, expires_delta: Optional[timedelta] = None
) -> str:
    """Create a JWT access token.

    Args:
        data: Claims to encode
        secret_key: Secret key for signing
        expires_delta: Lifetime of the token (default 24 hours)

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=24))
    to_encode.update({"exp": expire, "iat": now})

    encoded_jwt: str = jwt.encode(to_encode, secret_key, algorithm=ALGORITHM)
    return encoded_jwt


def verify_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict[str, Any]:
    """Verify the bearer token of a request.

    With authentication disabled, requests act as the configured local user.

    Returns:
        Decoded token payload

    Raises:
        HTTPException: If the token is missing, invalid or expired
    """
    config: ConfigManager = request.app.state.config

    if not config.get("api.authentication.enabled", True):
        return {
            "sub": config.get("user.id"),
            "name": config.get("user.display_name", ""),
            "role": config.get("user.role", UserRole.MEMBER.value),
        }

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    secret_key = config.get("api.authentication.secret_key")
    if not secret_key:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="API secret key not configured",
        )

    try:
        payload: dict[str, Any] = jwt.decode(
            credentials.credentials, secret_key, algorithms=[ALGORITHM]
        )
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication credentials: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has no subject",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload


def user_from_payload(payload: dict[str, Any]) -> User:
    """Build the acting user from token claims."""
    try:
        role = UserRole(payload.get("role") or UserRole.MEMBER.value)
    except ValueError:
        role = UserRole.MEMBER
    return User(id=str(payload["sub"]), display_name=payload.get("name") or "", role=role)


def get_token_expiry_seconds(config: ConfigManager) -> int:
    """Token lifetime in seconds from config."""
    hours: int = config.get("api.authentication.token_expiry_hours", 24)
    return hours * 3600


def create_token_for_user(
    config: ConfigManager,
    user_id: str,
    display_name: Optional[str] = None,
    role: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> dict[str, Any]:
    """Create a complete token response.

    Args:
        config: Configuration manager
        user_id: User the token acts for
        display_name: Optional name claim
        role: Optional role claim
        expires_delta: Token lifetime (default from config)

    Returns:
        Dictionary with access_token, token_type, and expires_in
    """
    secret_key = config.ensure_api_secret_key()

    if expires_delta is None:
        expires_delta = timedelta(seconds=get_token_expiry_seconds(config))

    claims: dict[str, Any] = {"sub": user_id}
    if display_name:
        claims["name"] = display_name
    if role:
        claims["role"] = UserRole(role).value

    access_token = create_access_token(
        data=claims, secret_key=secret_key, expires_delta=expires_delta
    )

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "expires_in": int(expires_delta.total_seconds()),
    }
