"""
Persistent CRUD over links.

Every mutation is a single statement so the UNIQUE constraint on
``links.shortlink`` and SQLite's write lock arbitrate concurrent requests.
"""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from datetime import datetime, UTC
from typing import List, Optional

from src.shortlink.core.config import logger
from src.shortlink.core.exceptions import LinkConflictError
from src.shortlink.models.link import Link


def insert(db: Session, shortlink: str, longlink: str) -> Link:
    """
    Insert a new link.

    Args:
        db: Database session
        shortlink: Short token for the link
        longlink: Target URL

    Returns:
        Created Link object

    Raises:
        LinkConflictError: If the shortlink already exists
    """
    db_link = Link(shortlink=shortlink, longlink=longlink, hits=0)
    db.add(db_link)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise LinkConflictError(shortlink) from e
    db.refresh(db_link)
    return db_link


def list_all(db: Session) -> List[Link]:
    return db.query(Link).order_by(Link.id.asc()).all()


def find(db: Session, shortlink: str) -> Optional[Link]:
    return db.query(Link).filter(Link.shortlink == shortlink).first()


def delete(db: Session, shortlink: str) -> bool:
    """
    Delete a link by shortlink.

    Returns:
        True if a row was removed, False if not found
    """
    removed = (
        db.query(Link)
        .filter(Link.shortlink == shortlink)
        .delete(synchronize_session=False)
    )
    db.commit()
    return removed > 0


def update(db: Session, old_shortlink: str, new_shortlink: str, new_longlink: str) -> bool:
    """
    Rename and/or retarget a link in place. Hits are left untouched.

    Args:
        db: Database session
        old_shortlink: Current shortlink of the link
        new_shortlink: Shortlink to store, may equal old_shortlink
        new_longlink: Target URL to store

    Returns:
        True if the link was updated, False if old_shortlink does not exist

    Raises:
        LinkConflictError: If new_shortlink belongs to another link
    """
    try:
        updated = (
            db.query(Link)
            .filter(Link.shortlink == old_shortlink)
            .update(
                {
                    Link.shortlink: new_shortlink,
                    Link.longlink: new_longlink,
                    Link.updated_at: datetime.now(UTC),
                },
                synchronize_session=False,
            )
        )
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise LinkConflictError(new_shortlink) from e
    return updated > 0


def record_hit(db: Session, shortlink: str) -> bool:
    """
    Atomically increment the hit counter of a link.

    A link deleted between lookup and increment is logged, not raised.

    Returns:
        True if the counter was incremented, False if the link vanished
    """
    updated = (
        db.query(Link)
        .filter(Link.shortlink == shortlink)
        .update({Link.hits: Link.hits + 1}, synchronize_session=False)
    )
    db.commit()
    if not updated:
        logger.warning(f"Hit for '{shortlink}' dropped, link no longer exists")
        return False
    return True
