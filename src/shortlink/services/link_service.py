from sqlalchemy.orm import Session
from dataclasses import dataclass
from enum import Enum
from pydantic import AnyUrl, TypeAdapter, ValidationError
from typing import Iterable, List, Optional
import re
import secrets
import string

from src.shortlink.core.config import MAX_SHORTLINK_LENGTH, Settings, logger
from src.shortlink.core.exceptions import (
    GenerationExhaustedError,
    LinkConflictError,
    LinkNotFoundError,
    LinkValidationError,
    ShortlinkError,
)
from src.shortlink.db import store
from src.shortlink.schemas.link import LinkCreate, LinkEdit, LinkRead

ALPHABET = string.ascii_letters + string.digits
SHORTLINK_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
URL_ADAPTER = TypeAdapter(AnyUrl)


class OutcomeStatus(str, Enum):
    CREATED = "created"
    OK = "ok"
    INVALID = "invalid"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class LinkOutcome:
    """Result of a mutating link operation. Truthy only on success."""

    status: OutcomeStatus
    message: str
    shortlink: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status in (OutcomeStatus.CREATED, OutcomeStatus.OK)

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def from_error(cls, error: ShortlinkError) -> "LinkOutcome":
        if isinstance(error, LinkConflictError):
            return cls(OutcomeStatus.CONFLICT, "Short URL is already in use!", error.shortlink)
        if isinstance(error, LinkNotFoundError):
            return cls(OutcomeStatus.NOT_FOUND, "Not found!", error.shortlink)
        if isinstance(error, GenerationExhaustedError):
            return cls(OutcomeStatus.EXHAUSTED, str(error))
        return cls(OutcomeStatus.INVALID, str(error))


def generate_shortlink(length: int = 8) -> str:
    """
    Generate a random shortlink of specified length.

    Args:
        length: Length of the shortlink to generate, defaults to 8

    Returns:
        A random string with mixed case letters and digits
    """
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def validate_longlink(longlink: str) -> str:
    """
    Check that a longlink is a URL with at least a scheme and a host.

    Returns:
        The longlink with surrounding whitespace stripped

    Raises:
        LinkValidationError: If the URL is malformed
    """
    longlink = (longlink or "").strip()
    try:
        url = URL_ADAPTER.validate_python(longlink)
    except ValidationError as e:
        reason = e.errors()[0]["msg"]
        raise LinkValidationError(f"Invalid long URL: {reason}") from e
    if not url.host:
        raise LinkValidationError("Invalid long URL: a host is required.")
    # The parsed form may gain a trailing slash, the caller's string is kept.
    return longlink


def validate_shortlink(shortlink: str, reserved: Iterable[str] = ()) -> str:
    """
    Check that a caller-chosen shortlink is usable as a path segment.

    Args:
        shortlink: Requested shortlink
        reserved: Paths owned by the application itself

    Returns:
        The shortlink, unchanged

    Raises:
        LinkValidationError: If the shortlink is empty, too long, contains
            characters outside [A-Za-z0-9_-] or is reserved
    """
    if not shortlink:
        raise LinkValidationError("Short URL must not be empty.")
    if len(shortlink) > MAX_SHORTLINK_LENGTH:
        raise LinkValidationError(
            f"Short URL must be at most {MAX_SHORTLINK_LENGTH} characters long."
        )
    if not SHORTLINK_PATTERN.match(shortlink):
        raise LinkValidationError(
            "Short URL may only contain letters, digits, hyphens and underscores."
        )
    if shortlink in set(reserved):
        raise LinkValidationError(f"Short URL '{shortlink}' is reserved.")
    return shortlink


def insert_generated(
    db: Session, longlink: str, length: int, max_attempts: int, reserved: Iterable[str] = ()
) -> str:
    """
    Insert a link under a freshly generated shortlink, retrying on collision.

    Reserved names count as a failed attempt.

    Raises:
        GenerationExhaustedError: If every attempt collided or was reserved
    """
    for attempt in range(1, max_attempts + 1):
        shortlink = generate_shortlink(length)
        if shortlink in reserved:
            logger.warning(
                f"Generated short URL '{shortlink}' is reserved (attempt {attempt}/{max_attempts})"
            )
            continue
        try:
            store.insert(db, shortlink, longlink)
            return shortlink
        except LinkConflictError:
            logger.warning(
                f"Generated short URL '{shortlink}' collided (attempt {attempt}/{max_attempts})"
            )
    raise GenerationExhaustedError(max_attempts)


def add_link(db: Session, link_in: LinkCreate, settings: Settings) -> LinkOutcome:
    """
    Create a new link, with a caller-chosen or generated shortlink.

    Args:
        db: Database session
        link_in: Requested longlink and optional shortlink
        settings: Generation length, retry bound and reserved paths

    Returns:
        CREATED outcome carrying the shortlink, or an INVALID, CONFLICT or
        EXHAUSTED outcome with the reason. Existing links are never overwritten.
    """
    try:
        longlink = validate_longlink(link_in.longlink)
        if link_in.shortlink is not None:
            shortlink = validate_shortlink(link_in.shortlink, settings.reserved_shortlinks)
            store.insert(db, shortlink, longlink)
        else:
            shortlink = insert_generated(
                db,
                longlink,
                settings.short_code_length,
                settings.max_generation_attempts,
                settings.reserved_shortlinks,
            )
    except ShortlinkError as e:
        logger.info(f"Link creation rejected: {e}")
        return LinkOutcome.from_error(e)

    logger.info(f"Created short URL '{shortlink}' -> {longlink}")
    return LinkOutcome(OutcomeStatus.CREATED, shortlink, shortlink)


def get_longurl(db: Session, shortlink: str) -> Optional[str]:
    """
    Resolve a shortlink to its target without counting a hit.

    Returns:
        The longlink, or None if the shortlink does not exist
    """
    link = store.find(db, shortlink)
    return link.longlink if link else None


def add_hit(db: Session, shortlink: str) -> bool:
    return store.record_hit(db, shortlink)


def delete_link(db: Session, shortlink: str) -> bool:
    deleted = store.delete(db, shortlink)
    if deleted:
        logger.info(f"Deleted short URL '{shortlink}'")
    return deleted


def edit_link(db: Session, shortlink: str, link_in: LinkEdit, settings: Settings) -> LinkOutcome:
    """
    Change the longlink and/or shortlink of an existing link.

    A missing shortlink in link_in keeps the current one. Hits are preserved.

    Returns:
        OK outcome carrying the resulting shortlink, or an INVALID, CONFLICT or
        NOT_FOUND outcome. A failed edit leaves the link unchanged.
    """
    try:
        longlink = validate_longlink(link_in.longlink)
        new_shortlink = shortlink
        if link_in.shortlink is not None and link_in.shortlink != shortlink:
            new_shortlink = validate_shortlink(link_in.shortlink, settings.reserved_shortlinks)
        if not store.update(db, shortlink, new_shortlink, longlink):
            raise LinkNotFoundError(shortlink)
    except ShortlinkError as e:
        logger.info(f"Edit of short URL '{shortlink}' rejected: {e}")
        return LinkOutcome.from_error(e)

    logger.info(f"Edited short URL '{shortlink}' -> '{new_shortlink}' ({longlink})")
    return LinkOutcome(OutcomeStatus.OK, f"Edited {shortlink}", new_shortlink)


def getall(db: Session) -> List[LinkRead]:
    """
    List every link in creation order.

    No authorization is performed here, callers gate access.
    """
    return [LinkRead.model_validate(link) for link in store.list_all(db)]
