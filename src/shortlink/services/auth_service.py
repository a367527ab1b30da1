"""
Session authentication for the management API.

The gate signs tokens with a secret generated once per process, so restarting
the server logs everybody out. Tokens live in the client-side session only;
there is no server-side session table.
"""

from datetime import datetime, timedelta, UTC
from jose import jwt, JWTError
from typing import MutableMapping, Optional
import hmac
import secrets

from src.shortlink.core.config import Settings, logger

SESSION_KEY = "shortlink-auth"
ALGORITHM = "HS256"
TOKEN_SUBJECT = "session-token"


def generate_secret() -> str:
    return secrets.token_urlsafe(32)


class AuthGate:
    """
    Decides whether a caller may create, list, edit or delete links.

    Args:
        secret: Process-lifetime signing secret
        password: Configured login password, or None to let every login succeed
        public_mode: Allow link creation without logging in
        token_max_age: Token lifetime in seconds
    """

    def __init__(
        self,
        secret: str,
        password: Optional[str] = None,
        public_mode: bool = False,
        token_max_age: int = 14 * 24 * 60 * 60,
    ):
        self._secret = secret
        self._password = password
        self.public_mode = public_mode
        self.token_max_age = token_max_age

    @classmethod
    def from_settings(cls, settings: Settings, secret: str) -> "AuthGate":
        return cls(
            secret=secret,
            password=settings.password,
            public_mode=settings.public_mode,
            token_max_age=settings.session_max_age,
        )

    def gen_token(self) -> str:
        """Create a fresh session token signed with the current secret."""
        now = datetime.now(UTC)
        claims = {
            "sub": TOKEN_SUBJECT,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=self.token_max_age)).timestamp()),
            "jti": secrets.token_hex(8),
        }
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def check_token(self, token: Optional[str]) -> bool:
        if not token or not isinstance(token, str):
            return False
        try:
            payload = jwt.decode(token, self._secret, algorithms=[ALGORITHM])
        except JWTError as e:
            logger.debug(f"Rejected session token: {e}")
            return False
        return payload.get("sub") == TOKEN_SUBJECT

    def validate(self, session: Optional[MutableMapping]) -> bool:
        """True iff the session carries a token issued under the current secret."""
        if not session:
            return False
        return self.check_token(session.get(SESSION_KEY))

    def login(self, session: MutableMapping, password: str) -> bool:
        """
        Log a session in.

        With no password configured every attempt succeeds.

        Returns:
            True if a token was stored in the session, False on a wrong password
        """
        if self._password is not None and not hmac.compare_digest(
            (password or "").encode(), self._password.encode()
        ):
            logger.warning("Failed login attempt!")
            return False
        session[SESSION_KEY] = self.gen_token()
        return True

    def logout(self, session: MutableMapping) -> bool:
        """
        Drop the token from the session.

        Returns:
            True if the session was logged in, False otherwise
        """
        return session.pop(SESSION_KEY, None) is not None

    def can_create(self, session: Optional[MutableMapping]) -> bool:
        return self.public_mode or self.validate(session)

    def can_list(self, session: Optional[MutableMapping]) -> bool:
        # Public mode lets visitors add links, never enumerate them.
        return self.validate(session)
