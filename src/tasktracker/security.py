"""Password hashing and signed session tokens."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext

from .errors import TokenExpired, TokenInvalid

logger = logging.getLogger(__name__)


class PasswordHasher:
    """Salted bcrypt hashing with a configurable cost factor."""

    def __init__(self, rounds: int = 10) -> None:
        self.context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        return self.context.hash(password)

    def verify(self, password: str, hashed: str) -> bool:
        return self.context.verify(password, hashed)

    def dummy_verify(self) -> None:
        """Spend the same time as a real check when there is no user to check."""
        self.context.dummy_verify()


@dataclass(frozen=True)
class Identity:
    """Claims carried by a verified session token."""

    id: int
    username: str


class TokenService:
    """Issues and verifies stateless, time-limited JWTs.

    Tokens embed ``{id, username, iat, exp}`` and are signed with a secret
    loaded from configuration. Nothing is stored server side, so a token
    stays valid until it expires.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", lifetime: timedelta = timedelta(hours=24)) -> None:
        self.secret = secret
        self.algorithm = algorithm
        self.lifetime = lifetime

    def issue(self, user_id: int, username: str, now: datetime | None = None) -> str:
        issued = now or datetime.now(timezone.utc)
        payload = {
            "id": user_id,
            "username": username,
            "iat": int(issued.timestamp()),
            "exp": int((issued + self.lifetime).timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Identity:
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as exc:
            logger.info("rejected expired token")
            raise TokenExpired() from exc
        except jwt.PyJWTError as exc:
            logger.info("rejected invalid token: %s", exc.__class__.__name__)
            raise TokenInvalid() from exc

        user_id = payload.get("id")
        username = payload.get("username")
        if not isinstance(user_id, int) or isinstance(user_id, bool) or not username:
            logger.info("rejected token with missing identity claims")
            raise TokenInvalid()
        return Identity(id=user_id, username=username)
