from fastapi import Depends, HTTPException, Request, status

from src.shortlink.core.config import Settings
from src.shortlink.db.session import get_db
from src.shortlink.services.auth_service import AuthGate


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_auth_gate(request: Request) -> AuthGate:
    return request.app.state.auth_gate


def require_login(request: Request, gate: AuthGate = Depends(get_auth_gate)) -> None:
    """
    Reject callers whose session is not logged in.

    Raises:
        HTTPException: 401 if the session token is missing or invalid
    """
    if not gate.validate(request.session):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Not logged in!"
        )


def require_create_access(request: Request, gate: AuthGate = Depends(get_auth_gate)) -> None:
    """
    Reject callers that may not create links.

    Public mode lets anonymous callers through.

    Raises:
        HTTPException: 401 if not in public mode and not logged in
    """
    if not gate.can_create(request.session):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Not logged in!"
        )
