"""Run the API with uvicorn: ``python -m tasktracker``."""

import logging

import uvicorn

from .config import settings

logger = logging.getLogger("tasktracker")

ENDPOINTS = [
    ("POST", "/api/auth/register", "Register new user"),
    ("POST", "/api/auth/login", "User login"),
    ("GET", "/api/tasks", "Get user tasks"),
    ("POST", "/api/tasks", "Create new task"),
    ("PUT", "/api/tasks/{id}", "Update task"),
    ("DELETE", "/api/tasks/{id}", "Delete task"),
    ("GET", "/api/stats", "Get user statistics"),
]


def main() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("server running on http://%s:%s", settings.host, settings.port)
    logger.info("health check: http://%s:%s/api/health", settings.host, settings.port)
    for method, path, summary in ENDPOINTS:
        logger.info("  %s %s - %s", method, path, summary)
    uvicorn.run("tasktracker.api:app", host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
