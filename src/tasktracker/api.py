"""FastAPI application exposing authentication and task endpoints."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Dict

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import AuthGateway, get_auth_gateway, get_current_identity
from .config import Settings, settings
from .database import Database
from .errors import TaskTrackerError
from .repository import TaskRepository
from .schemas import LoginRequest, RegisterRequest, TaskCreate, TaskUpdate
from .security import Identity, PasswordHasher, TokenService
from .seed import seed_sample_data
from .services import TaskService
from .users import CredentialStore

logger = logging.getLogger(__name__)

# Prometheus counter to track API requests by method, endpoint and status code
REQUEST_COUNTER = Counter(
    "api_requests_total",
    "Total API requests",
    ["method", "endpoint", "status"],
)

router = APIRouter(prefix="/api")


def get_task_service(request: Request) -> TaskService:
    return request.app.state.task_service


def _endpoint_label(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", "unmatched")


async def log_requests(request: Request, call_next):
    """Log incoming requests and their outcomes while updating metrics."""
    logger.info("request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
    except Exception:
        REQUEST_COUNTER.labels(
            method=request.method,
            endpoint=_endpoint_label(request),
            status="500",
        ).inc()
        logger.exception("error handling %s %s", request.method, request.url.path)
        raise
    REQUEST_COUNTER.labels(
        method=request.method,
        endpoint=_endpoint_label(request),
        status=str(response.status_code),
    ).inc()
    logger.info(
        "response %s %s status %s",
        request.method,
        request.url.path,
        response.status_code,
    )
    return response


async def handle_service_error(request: Request, exc: TaskTrackerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("service error on %s %s: %r", request.method, request.url.path, exc.__cause__)
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = "Endpoint not found" if exc.status_code == 404 else exc.detail
    return JSONResponse(
        {"error": message},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if not errors:
        return JSONResponse({"error": "Invalid request"}, status_code=400)
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"Invalid value for {field}: {first['msg']}" if field else first["msg"]
    return JSONResponse({"error": message}, status_code=400)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse({"error": "Something went wrong!"}, status_code=500)


@router.get("/health")
async def health(request: Request) -> Dict[str, str]:
    app_settings: Settings = request.app.state.settings
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": app_settings.environment,
        "version": app_settings.version,
    }


@router.get("/metrics")
async def metrics() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


async def register(
    request: Request,
    payload: RegisterRequest | None = None,
    gateway: AuthGateway = Depends(get_auth_gateway),
):
    payload = payload or RegisterRequest()
    result = await gateway.register(payload.username, payload.email, payload.password)
    return {"message": "User created successfully", "token": result.token, "user": result.user}


async def login(
    request: Request,
    payload: LoginRequest | None = None,
    gateway: AuthGateway = Depends(get_auth_gateway),
):
    payload = payload or LoginRequest()
    result = await gateway.login(payload.username, payload.password)
    return {"message": "Login successful", "token": result.token, "user": result.user}


@router.get("/tasks")
async def list_tasks(
    status: str | None = None,
    priority: str | None = None,
    limit: str | None = None,
    offset: str | None = None,
    identity: Identity = Depends(get_current_identity),
    service: TaskService = Depends(get_task_service),
):
    """Return the caller's tasks, newest first."""
    return await service.list_tasks(identity.id, status, priority, limit, offset)


@router.get("/tasks/{task_id}")
async def get_task(
    task_id: str,
    identity: Identity = Depends(get_current_identity),
    service: TaskService = Depends(get_task_service),
):
    return await service.get_task(identity.id, task_id)


@router.post("/tasks", status_code=201)
async def create_task(
    payload: TaskCreate | None = None,
    identity: Identity = Depends(get_current_identity),
    service: TaskService = Depends(get_task_service),
):
    payload = payload or TaskCreate()
    task = await service.create_task(
        identity.id,
        payload.title,
        description=payload.description,
        status=payload.status,
        priority=payload.priority,
    )
    return {"message": "Task created successfully", "task": task}


@router.put("/tasks/{task_id}")
async def update_task(
    task_id: str,
    payload: TaskUpdate | None = None,
    identity: Identity = Depends(get_current_identity),
    service: TaskService = Depends(get_task_service),
):
    fields = payload.model_dump(exclude_unset=True) if payload else {}
    await service.update_task(identity.id, task_id, fields)
    return {"message": "Task updated successfully"}


@router.delete("/tasks/{task_id}")
async def delete_task(
    task_id: str,
    identity: Identity = Depends(get_current_identity),
    service: TaskService = Depends(get_task_service),
):
    await service.delete_task(identity.id, task_id)
    return {"message": "Task deleted successfully"}


@router.get("/stats")
async def get_stats(
    identity: Identity = Depends(get_current_identity),
    service: TaskService = Depends(get_task_service),
):
    """Return aggregate task counts for the caller."""
    return await service.get_stats(identity.id)


def auth_router(limiter: Limiter, rate: str) -> APIRouter:
    """Registration and login, both behind the app's own rate limit."""
    auth = APIRouter(prefix="/api/auth")
    auth.add_api_route("/register", limiter.limit(rate)(register), methods=["POST"], status_code=201)
    auth.add_api_route("/login", limiter.limit(rate)(login), methods=["POST"])
    return auth


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build the application with its storage client and services wired in."""
    app_settings = app_settings or settings

    database = Database(app_settings.database_url, echo=app_settings.database_echo)
    store = CredentialStore(database, PasswordHasher(app_settings.bcrypt_rounds))
    tokens = TokenService(
        app_settings.jwt_secret,
        algorithm=app_settings.jwt_algorithm,
        lifetime=timedelta(minutes=app_settings.access_token_expire_minutes),
    )
    repository = TaskRepository(database)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await database.init_db()
        if app_settings.seed_sample_data:
            await seed_sample_data(store, repository)
        yield
        await database.dispose()

    app = FastAPI(title=app_settings.api_title, version=app_settings.version, lifespan=lifespan)
    app.state.settings = app_settings
    app.state.database = database
    app.state.auth_gateway = AuthGateway(store, tokens)
    app.state.task_service = TaskService(
        repository,
        default_page_size=app_settings.default_page_size,
        max_page_size=app_settings.max_page_size,
    )

    limiter = Limiter(key_func=get_remote_address, enabled=app_settings.rate_limit_enabled)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(TaskTrackerError, handle_service_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(log_requests)
    app.include_router(auth_router(limiter, app_settings.auth_rate_limit))
    app.include_router(router)
    return app


app = create_app()
