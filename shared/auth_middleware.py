import logging
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from shared.config import Settings, get_settings
from shared.supabase_admin import SupabaseAdminClient, SupabaseAdminError

logger = logging.getLogger(__name__)

# Supabase signs access tokens with the project JWT secret
JWT_ALGORITHM = "HS256"
JWT_AUDIENCE = "authenticated"

security = HTTPBearer(auto_error=False)


class TokenData(BaseModel):
    user_id: str
    email: Optional[str] = None
    is_admin: bool = False


def get_identity_client(request: Request) -> SupabaseAdminClient:
    return request.app.state.identity_client


def _is_admin(app_metadata: Optional[dict]) -> bool:
    return (app_metadata or {}).get("role") == "admin"


def verify_token(token: str, secret: Optional[str]) -> TokenData:
    """Verify and decode a Supabase access token"""
    if not secret:
        logger.error("AUTH: SUPABASE_JWT_SECRET is not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication is not configured",
        )

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[JWT_ALGORITHM],
            audience=JWT_AUDIENCE,
        )
    except jwt.ExpiredSignatureError:
        logger.warning("AUTH: Token has expired")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has expired")
    except jwt.InvalidTokenError:
        logger.warning("AUTH: Invalid token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token"
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token: missing user ID"
        )

    return TokenData(
        user_id=user_id,
        email=payload.get("email"),
        is_admin=_is_admin(payload.get("app_metadata")),
    )


async def authenticate(
    token: str, settings: Settings, identity_client: SupabaseAdminClient
) -> TokenData:
    """
    Verify the token locally, then confirm with Supabase Auth that its user
    still exists. Deleted or banned users are rejected even while their
    token is unexpired.
    """
    claims = verify_token(token, settings.supabase_jwt_secret)

    try:
        user = await identity_client.get_user(token)
    except SupabaseAdminError as e:
        logger.error(f"AUTH: Identity lookup failed for user {claims.user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service unavailable",
        )

    if user is None or str(user["id"]) != claims.user_id:
        logger.warning(f"AUTH: Identity provider rejected token for user {claims.user_id}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token"
        )

    return TokenData(
        user_id=claims.user_id,
        email=user.get("email") or claims.email,
        is_admin=_is_admin(user.get("app_metadata")),
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
    identity_client: SupabaseAdminClient = Depends(get_identity_client),
) -> TokenData:
    """FastAPI dependency to get current user from the bearer token"""
    if credentials is None:
        logger.warning("AUTH: No authorization header provided")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return await authenticate(credentials.credentials, settings, identity_client)


async def require_admin(current_user: TokenData = Depends(get_current_user)) -> TokenData:
    """FastAPI dependency that requires admin privileges"""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Admin privileges required"
        )
    return current_user


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
    identity_client: SupabaseAdminClient = Depends(get_identity_client),
) -> Optional[TokenData]:
    """FastAPI dependency to get current user, but don't require authentication"""
    if credentials is None:
        return None

    try:
        return await authenticate(credentials.credentials, settings, identity_client)
    except HTTPException:
        return None
