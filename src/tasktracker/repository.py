"""Owner-scoped persistence of task records."""

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .database import Database, utcnow
from .errors import NotFound, StorageError, ValidationError
from .models import Task, TaskPriority, TaskStatus
from .query import Assignments, Criteria

logger = logging.getLogger(__name__)

FILTERABLE_COLUMNS = ("id", "user_id", "status", "priority")
MUTABLE_COLUMNS = ("title", "description", "status", "priority")


@dataclass(frozen=True)
class TaskStats:
    total: int = 0
    completed: int = 0
    in_progress: int = 0
    pending: int = 0
    high_priority: int = 0


async def _handle_storage_error(session: AsyncSession, exc: SQLAlchemyError) -> None:
    """Rollback the session and replace driver errors with a generic one."""
    await session.rollback()
    logger.exception("task storage error", exc_info=exc)
    raise StorageError() from exc


def _owned(owner_id: int, task_id: int) -> Criteria:
    return Criteria(Task, FILTERABLE_COLUMNS).where("id", task_id).where("user_id", owner_id)


class TaskRepository:
    """Task CRUD where every statement carries the ``user_id`` predicate.

    A task owned by someone else behaves exactly like a missing one, so
    lookups, updates and deletes across owners all end in :class:`NotFound`.
    """

    def __init__(self, database: Database) -> None:
        self.database = database

    async def list(
        self,
        owner_id: int,
        filters: Mapping[str, Any] | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Task]:
        filters = filters or {}
        criteria = Criteria(Task, FILTERABLE_COLUMNS).where("user_id", owner_id)
        for column in ("status", "priority"):
            criteria.where_present(column, filters.get(column))

        stmt = (
            select(Task)
            .where(*criteria.render())
            .order_by(Task.created_at.desc(), Task.id.desc())
            .limit(limit)
            .offset(offset)
        )
        async with self.database.session() as session:
            try:
                result = await session.execute(stmt)
            except SQLAlchemyError as exc:
                await _handle_storage_error(session, exc)
            return list(result.scalars().all())

    async def get_by_id(self, owner_id: int, task_id: int) -> Task:
        stmt = select(Task).where(*_owned(owner_id, task_id).render())
        async with self.database.session() as session:
            try:
                result = await session.execute(stmt)
            except SQLAlchemyError as exc:
                await _handle_storage_error(session, exc)
            task = result.scalars().first()
        if task is None:
            raise NotFound("Task not found")
        return task

    async def create(
        self,
        owner_id: int,
        title: str,
        description: str | None = None,
        status: str = TaskStatus.pending.value,
        priority: str = TaskPriority.medium.value,
    ) -> Task:
        if not title or not title.strip():
            raise ValidationError("Title is required")

        now = utcnow()
        task = Task(
            title=title,
            description=description,
            status=status,
            priority=priority,
            user_id=owner_id,
            created_at=now,
            updated_at=now,
        )
        async with self.database.session() as session:
            session.add(task)
            try:
                await session.commit()
            except SQLAlchemyError as exc:
                await _handle_storage_error(session, exc)
            await session.refresh(task)
        logger.info("created task id=%s user=%s", task.id, owner_id)
        return task

    async def update(self, owner_id: int, task_id: int, fields: Mapping[str, Any]) -> Task:
        changes = Assignments(Task, MUTABLE_COLUMNS + ("updated_at",))
        for column in MUTABLE_COLUMNS:
            if column in fields:
                changes.set(column, fields[column])
        if not changes:
            raise ValidationError("No fields to update")
        changes.set("updated_at", utcnow())

        stmt = update(Task).where(*_owned(owner_id, task_id).render()).values(changes.render())
        async with self.database.session() as session:
            try:
                result = await session.execute(stmt)
                await session.commit()
            except SQLAlchemyError as exc:
                await _handle_storage_error(session, exc)
        if result.rowcount == 0:
            raise NotFound("Task not found")
        logger.info("updated task id=%s user=%s fields=%s", task_id, owner_id, sorted(changes.values))
        return await self.get_by_id(owner_id, task_id)

    async def delete(self, owner_id: int, task_id: int) -> None:
        stmt = delete(Task).where(*_owned(owner_id, task_id).render())
        async with self.database.session() as session:
            try:
                result = await session.execute(stmt)
                await session.commit()
            except SQLAlchemyError as exc:
                await _handle_storage_error(session, exc)
        if result.rowcount == 0:
            raise NotFound("Task not found")
        logger.info("deleted task id=%s user=%s", task_id, owner_id)

    async def aggregate_stats(self, owner_id: int) -> TaskStats:
        def count_where(condition):
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        stmt = select(
            func.count(Task.id),
            count_where(Task.status == TaskStatus.completed.value),
            count_where(Task.status == TaskStatus.in_progress.value),
            count_where(Task.status == TaskStatus.pending.value),
            count_where(Task.priority == TaskPriority.high.value),
        ).where(*Criteria(Task, FILTERABLE_COLUMNS).where("user_id", owner_id).render())

        async with self.database.session() as session:
            try:
                result = await session.execute(stmt)
            except SQLAlchemyError as exc:
                await _handle_storage_error(session, exc)
            row = result.one()
        return TaskStats(*(int(value or 0) for value in row))
