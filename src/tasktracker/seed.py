"""Sample account and tasks for local development."""

import logging

from .repository import TaskRepository
from .users import CredentialStore

logger = logging.getLogger(__name__)

SAMPLE_USER = {"username": "admin", "email": "admin@example.com", "password": "password123"}

SAMPLE_TASKS = [
    ("Setup Development Environment", "Configure the runtime, web framework and database", "completed", "high"),
    ("Implement Authentication", "Create login and registration system", "in-progress", "high"),
    ("Design API Endpoints", "Define REST API structure", "pending", "medium"),
    ("Create Frontend Components", "Build components for the dashboard UI", "pending", "medium"),
    ("Setup Database", "Configure SQLite database with tables", "completed", "high"),
]


async def seed_sample_data(store: CredentialStore, repository: TaskRepository) -> bool:
    """Insert the sample user and tasks into an empty database.

    Returns ``True`` when data was inserted.
    """
    if await store.count():
        logger.info("skipping sample data: users already present")
        return False

    user = await store.create_user(**SAMPLE_USER)
    for title, description, status, priority in SAMPLE_TASKS:
        await repository.create(user.id, title, description, status, priority)
    logger.info("seeded sample data user=%s tasks=%s", user.id, len(SAMPLE_TASKS))
    return True
