import logging
from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.security import APIKeyHeader
from prometheus_client import Counter

from .errors import InvalidCredentials, NotFound, Unauthorized, ValidationError
from .security import Identity, TokenService
from .users import CredentialStore

logger = logging.getLogger(__name__)

# Raw header; the token is its second word whatever the scheme
security = APIKeyHeader(name="Authorization", auto_error=False)

REGISTRATION_COUNTER = Counter("users_registered_total", "Total users registered")
LOGIN_FAILURE_COUNTER = Counter("login_failures_total", "Total failed login attempts")


@dataclass(frozen=True)
class AuthResult:
    token: str
    user: dict


def _blank(value: str | None) -> bool:
    return value is None or not str(value).strip()


class AuthGateway:
    """Registration, login and token checks on top of the credential store."""

    def __init__(self, store: CredentialStore, tokens: TokenService) -> None:
        self.store = store
        self.tokens = tokens

    async def register(self, username: str | None, email: str | None, password: str | None) -> AuthResult:
        if _blank(username) or _blank(email) or _blank(password):
            raise ValidationError("All fields are required")
        user = await self.store.create_user(username, email, password)
        REGISTRATION_COUNTER.inc()
        return AuthResult(token=self.tokens.issue(user.id, user.username), user=user.summary())

    async def login(self, identifier: str | None, password: str | None) -> AuthResult:
        if _blank(identifier) or _blank(password):
            raise ValidationError("Username and password are required")
        try:
            user = await self.store.find_by_username_or_email(identifier)
        except NotFound:
            await run_in_threadpool(self.store.hasher.dummy_verify)
            LOGIN_FAILURE_COUNTER.inc()
            logger.info("login failed: unknown identifier")
            raise InvalidCredentials()
        if not await self.store.verify_password(user, password):
            LOGIN_FAILURE_COUNTER.inc()
            logger.info("login failed: bad password user=%s", user.id)
            raise InvalidCredentials()
        logger.info("login user=%s", user.id)
        return AuthResult(token=self.tokens.issue(user.id, user.username), user=user.summary())

    def authenticate(self, token: str | None) -> Identity:
        if not token:
            raise Unauthorized()
        return self.tokens.verify(token)


def get_auth_gateway(request: Request) -> AuthGateway:
    return request.app.state.auth_gateway


def bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    parts = authorization.split(" ")
    return parts[1] if len(parts) > 1 else None


def get_current_identity(
    authorization: str | None = Depends(security),
    gateway: AuthGateway = Depends(get_auth_gateway),
) -> Identity:
    token = bearer_token(authorization)
    return gateway.authenticate(token)
