"""Request bodies accepted by the API.

Required fields are declared optional here on purpose: missing input is
reported by the service layer with the same ``{"error": ...}`` messages
whether a key is absent, null or blank.
"""

from typing import Optional

from pydantic import BaseModel, Field

from .models import TaskPriority, TaskStatus


class RegisterRequest(BaseModel):
    """Request body for registering a new user."""

    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    """Request body for user login; ``username`` may also be an email."""

    username: Optional[str] = None
    password: Optional[str] = None


class TaskCreate(BaseModel):
    """Request body for creating a task."""

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = Field(None, description="Defaults to pending")
    priority: Optional[TaskPriority] = Field(None, description="Defaults to medium")


class TaskUpdate(BaseModel):
    """Partial update; only keys present in the body are applied."""

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
