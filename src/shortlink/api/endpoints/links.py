from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from src.shortlink.api.deps import (
    get_auth_gate,
    get_db,
    get_settings,
    require_create_access,
    require_login,
)
from src.shortlink.core.config import Settings
from src.shortlink.schemas.link import LinkCreate, LinkEdit, LinkRead, LinkResult
from src.shortlink.services.auth_service import AuthGate
from src.shortlink.services.link_service import (
    LinkOutcome,
    OutcomeStatus,
    add_link,
    delete_link,
    edit_link,
    getall,
)

router = APIRouter()

OUTCOME_STATUS_CODES = {
    OutcomeStatus.INVALID: status.HTTP_400_BAD_REQUEST,
    OutcomeStatus.CONFLICT: status.HTTP_409_CONFLICT,
    OutcomeStatus.EXHAUSTED: status.HTTP_409_CONFLICT,
    OutcomeStatus.NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


def raise_for_outcome(outcome: LinkOutcome) -> None:
    if not outcome:
        raise HTTPException(
            status_code=OUTCOME_STATUS_CODES[outcome.status], detail=outcome.message
        )


@router.post(
    "/new",
    response_model=LinkResult,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_create_access)],
)
def create_link(
    link: LinkCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Create a short URL.

    Requires authentication unless public mode is enabled.
    """
    outcome = add_link(db, link, settings)
    raise_for_outcome(outcome)
    return LinkResult(success=True, shortlink=outcome.shortlink, message=outcome.message)


@router.get("/all", response_model=list[LinkRead])
def list_links(
    request: Request,
    db: Session = Depends(get_db),
    gate: AuthGate = Depends(get_auth_gate),
):
    """
    List all short URLs in creation order.

    Requires authentication, even in public mode.
    """
    if not gate.can_list(request.session):
        detail = "Using public mode." if gate.public_mode else "Not logged in!"
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)
    return getall(db)


@router.delete("/del/{shortlink}", response_model=LinkResult, dependencies=[Depends(require_login)])
def remove_link(shortlink: str, db: Session = Depends(get_db)):
    """
    Delete a short URL.

    Requires authentication.
    """
    if not delete_link(db, shortlink):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found!")
    return LinkResult(success=True, shortlink=shortlink, message=f"Deleted {shortlink}")


@router.post("/edit/{shortlink}", response_model=LinkResult, dependencies=[Depends(require_login)])
def update_link(
    shortlink: str,
    link: LinkEdit,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Change the target and/or the name of a short URL.

    Requires authentication.
    """
    outcome = edit_link(db, shortlink, link, settings)
    raise_for_outcome(outcome)
    return LinkResult(success=True, shortlink=outcome.shortlink, message=outcome.message)
