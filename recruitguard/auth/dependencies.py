"""FastAPI dependencies for resolving the acting user."""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from recruitguard.database.database import get_db
from recruitguard.database.user_repository import UserRepository
from recruitguard.auth.jwt import get_user_id_from_token, token_has_mfa
from recruitguard.models.actor import Actor
from recruitguard.models.audit_event import AuditClient

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Actor:
    """Resolve the acting user from a JWT bearer token.

    Requests without credentials act as the anonymous actor; the deletion core
    denies (and audits) whatever an anonymous actor may not do.

    Raises:
        HTTPException: If a token is present but invalid, or its user no longer exists
    """
    if not credentials:
        return Actor.anonymous()

    user_id = get_user_id_from_token(credentials.credentials)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = UserRepository(db).get(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user.to_actor(auth_method="jwt")


def get_mfa_verified(credentials: HTTPAuthorizationCredentials = Depends(security)) -> bool:
    """Whether the bearer token records a completed second factor."""
    if not credentials:
        return False
    return token_has_mfa(credentials.credentials)


def get_audit_client(request: Request) -> AuditClient:
    """Client context for audit events. The IP comes from the connection only."""
    return AuditClient(
        user_agent=request.headers.get("user-agent") or "unknown",
        ip=request.client.host if request.client else None,
    )
