"""Persistence of user identities and password hashes."""

import logging

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .database import Database, utcnow
from .errors import DuplicateIdentity, NotFound, StorageError
from .models import User
from .security import PasswordHasher

logger = logging.getLogger(__name__)


class CredentialStore:
    """Stores users and enforces unique usernames and emails."""

    def __init__(self, database: Database, hasher: PasswordHasher) -> None:
        self.database = database
        self.hasher = hasher

    async def create_user(self, username: str, email: str, password: str) -> User:
        logger.info("create user username=%s", username)
        hashed = await run_in_threadpool(self.hasher.hash, password)
        user = User(username=username, email=email, password=hashed, created_at=utcnow())
        async with self.database.session() as session:
            session.add(user)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                logger.info("duplicate identity username=%s", username)
                raise DuplicateIdentity() from exc
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.exception("failed to create user username=%s", username)
                raise StorageError() from exc
            await session.refresh(user)
        logger.info("created user id=%s username=%s", user.id, username)
        return user

    async def find_by_username_or_email(self, identifier: str) -> User:
        async with self.database.session() as session:
            try:
                result = await session.execute(
                    select(User).where(or_(User.username == identifier, User.email == identifier))
                )
            except SQLAlchemyError as exc:
                logger.exception("user lookup failed")
                raise StorageError() from exc
            user = result.scalars().first()
        if user is None:
            raise NotFound("User not found")
        return user

    async def verify_password(self, user: User, password: str) -> bool:
        return await run_in_threadpool(self.hasher.verify, password, user.password)

    async def count(self) -> int:
        async with self.database.session() as session:
            try:
                result = await session.execute(select(func.count(User.id)))
            except SQLAlchemyError as exc:
                logger.exception("user count failed")
                raise StorageError() from exc
            return result.scalar_one()
