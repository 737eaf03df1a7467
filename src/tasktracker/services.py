"""Service layer for task operations on behalf of an authenticated user."""

import logging
from typing import Any, Dict, List, Mapping

from prometheus_client import Counter

from .errors import NotFound, ValidationError
from .models import TaskPriority, TaskStatus
from .repository import TaskRepository, TaskStats

logger = logging.getLogger(__name__)

# Prometheus counters for task lifecycle events
TASK_CREATED_COUNTER = Counter("tasks_created_total", "Total tasks created")
TASK_UPDATED_COUNTER = Counter("tasks_updated_total", "Total tasks updated")
TASK_DELETED_COUNTER = Counter("tasks_deleted_total", "Total tasks deleted")

# SQLite INTEGER is a signed 64-bit value
MAX_SQL_INTEGER = 2**63 - 1


def parse_int(value: Any, default: int, minimum: int = 0, maximum: int | None = None) -> int:
    """Parse a query value as an integer, falling back to ``default``.

    Non-numeric and below-minimum values yield ``default``; values above
    ``maximum`` are capped.
    """
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    if number < minimum:
        return default
    if maximum is not None and number > maximum:
        return maximum
    return number


def parse_task_id(value: Any) -> int:
    """Task ids come from the URL; anything outside the id range cannot match a row."""
    try:
        task_id = int(str(value))
    except ValueError:
        raise NotFound("Task not found") from None
    if not 0 < task_id <= MAX_SQL_INTEGER:
        raise NotFound("Task not found")
    return task_id


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, (TaskStatus, TaskPriority)) else value


class TaskService:
    """Applies defaults and shapes responses over :class:`TaskRepository`."""

    def __init__(self, repository: TaskRepository, default_page_size: int = 50, max_page_size: int = 100) -> None:
        self.repository = repository
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    async def list_tasks(
        self,
        owner_id: int,
        status: str | None = None,
        priority: str | None = None,
        limit: Any = None,
        offset: Any = None,
    ) -> Dict[str, Any]:
        page_size = parse_int(limit, self.default_page_size, minimum=1, maximum=self.max_page_size)
        start = parse_int(offset, 0, maximum=MAX_SQL_INTEGER)
        tasks = await self.repository.list(
            owner_id,
            {"status": status, "priority": priority},
            limit=page_size,
            offset=start,
        )
        items: List[Dict[str, Any]] = [task.to_dict() for task in tasks]
        return {"tasks": items, "total": len(items)}

    async def get_task(self, owner_id: int, task_id: Any) -> Dict[str, Any]:
        task = await self.repository.get_by_id(owner_id, parse_task_id(task_id))
        return task.to_dict()

    async def create_task(
        self,
        owner_id: int,
        title: str | None,
        description: str | None = None,
        status: TaskStatus | str | None = None,
        priority: TaskPriority | str | None = None,
    ) -> Dict[str, Any]:
        logger.info("create task user=%s", owner_id)
        if title is None or not str(title).strip():
            raise ValidationError("Title is required")
        task = await self.repository.create(
            owner_id,
            title,
            description=description,
            status=_enum_value(status) or TaskStatus.pending.value,
            priority=_enum_value(priority) or TaskPriority.medium.value,
        )
        TASK_CREATED_COUNTER.inc()
        return {
            "id": task.id,
            "title": task.title,
            "description": task.description,
            "status": task.status,
            "priority": task.priority,
        }

    async def update_task(self, owner_id: int, task_id: Any, fields: Mapping[str, Any]) -> Dict[str, Any]:
        """Apply a partial update; ``fields`` holds only the keys the caller sent.

        ``description`` may be cleared with ``null`` or ``""``. The other
        fields must carry a real value when present.
        """
        changes: Dict[str, Any] = {}
        if "title" in fields:
            title = fields["title"]
            if title is None or not str(title).strip():
                raise ValidationError("Title cannot be empty")
            changes["title"] = title
        if "description" in fields:
            changes["description"] = fields["description"] or None
        for column in ("status", "priority"):
            if column in fields:
                if fields[column] is None:
                    raise ValidationError(f"{column.capitalize()} cannot be empty")
                changes[column] = _enum_value(fields[column])
        if not changes:
            raise ValidationError("No fields to update")

        task = await self.repository.update(owner_id, parse_task_id(task_id), changes)
        TASK_UPDATED_COUNTER.inc()
        return task.to_dict()

    async def delete_task(self, owner_id: int, task_id: Any) -> None:
        await self.repository.delete(owner_id, parse_task_id(task_id))
        TASK_DELETED_COUNTER.inc()

    async def get_stats(self, owner_id: int) -> Dict[str, int]:
        stats: TaskStats = await self.repository.aggregate_stats(owner_id)
        return {
            "total_tasks": stats.total,
            "completed_tasks": stats.completed,
            "in_progress_tasks": stats.in_progress,
            "pending_tasks": stats.pending,
            "high_priority_tasks": stats.high_priority,
        }
