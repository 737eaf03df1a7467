from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from ..database import Base, utcnow


class TaskStatus(str, Enum):
    pending = "pending"
    in_progress = "in-progress"
    completed = "completed"


class TaskPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class Task(Base):
    """A task record owned by exactly one user."""

    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String, default=TaskStatus.pending.value, nullable=False)
    priority = Column(String, default=TaskPriority.medium.value, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "user_id": self.user_id,
            "created_at": self.created_at.isoformat(timespec="microseconds") if self.created_at else None,
            "updated_at": self.updated_at.isoformat(timespec="microseconds") if self.updated_at else None,
        }
