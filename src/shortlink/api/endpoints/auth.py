from fastapi import APIRouter, Depends, HTTPException, Request, status

from src.shortlink.api.deps import get_auth_gate
from src.shortlink.schemas.auth import AuthResult, LoginRequest
from src.shortlink.services.auth_service import AuthGate

router = APIRouter()


@router.post("/login", response_model=AuthResult)
def login(
    credentials: LoginRequest,
    request: Request,
    gate: AuthGate = Depends(get_auth_gate),
):
    """
    Log in with the server password.

    Succeeds unconditionally when no password is configured.
    """
    if not gate.login(request.session, credentials.password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Wrong password!")
    return AuthResult(success=True, message="Correct password!")


@router.delete("/logout", response_model=AuthResult)
def logout(request: Request, gate: AuthGate = Depends(get_auth_gate)):
    """Drop the session token of the caller."""
    if not gate.logout(request.session):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="You don't seem to be logged in.",
        )
    return AuthResult(success=True, message="Logged out!")
