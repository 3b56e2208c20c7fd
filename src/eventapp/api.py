"""FastAPI application exposing users, events and event attendance."""

import datetime
import logging
from contextlib import asynccontextmanager
from typing import List

from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from sqlalchemy.exc import SQLAlchemyError

from .auth import get_current_user, get_services
from .config import Settings
from .errors import AppError, AuthError, InternalError, NotFoundError
from .logging_config import setup_logging
from .models.user import User
from .services import Services, build_services

logger = logging.getLogger(__name__)

# Prometheus counter to track API requests by method, endpoint and status code
REQUEST_COUNTER = Counter(
    "api_requests_total",
    "Total API requests",
    ["method", "endpoint", "status"],
)


class RegisterRequest(BaseModel):
    """Request body for registering a new user."""

    email: EmailStr
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=2)


class LoginRequest(BaseModel):
    """Request body for user login."""

    email: EmailStr
    password: str = Field(..., min_length=8)


class TokenResponse(BaseModel):
    token: str


class UserResponse(BaseModel):
    """Public view of a user; the password hash is never part of it."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str


class EventRequest(BaseModel):
    """Request body for creating or replacing an event."""

    name: str = Field(..., min_length=3)
    description: str = Field(..., min_length=10)
    date: datetime.date
    location: str = Field(..., min_length=3)


class EventResponse(EventRequest):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int


class AttendeeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: int
    user_id: int


def _endpoint_label(request: Request) -> str:
    """Route template for the request, e.g. ``/events/{event_id}``."""
    return getattr(request.scope.get("route"), "path", "unmatched")


def _register_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log incoming requests and their outcomes while updating metrics."""
        logger.info("request %s %s", request.method, request.url.path)
        try:
            response = await call_next(request)
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
        except Exception:
            REQUEST_COUNTER.labels(
                method=request.method,
                endpoint=_endpoint_label(request),
                status="500",
            ).inc()
            logger.exception("error handling %s %s", request.method, request.url.path)
            raise


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if isinstance(exc, InternalError):
            logger.error(
                "%s in %s %s", type(exc).__name__, request.method, request.url.path, exc_info=exc
            )
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
        return JSONResponse(
            status_code=exc.status_code, content={"detail": exc.message}, headers=headers
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        # submitted values are left out so passwords never echo back
        errors = [
            {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Invalid input", "errors": errors},
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error(
            "database error in %s %s", request.method, request.url.path, exc_info=exc
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Database error"},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled exception in %s %s", request.method, request.url.path, exc_info=exc
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )


def _register_routes(app: FastAPI) -> None:
    @app.post("/auth/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
    def register(payload: RegisterRequest, services: Services = Depends(get_services)):
        return services.credentials.register(payload.email, payload.name, payload.password)

    @app.post("/auth/login", response_model=TokenResponse)
    def login(payload: LoginRequest, services: Services = Depends(get_services)):
        user = services.credentials.authenticate(payload.email, payload.password)
        return TokenResponse(token=services.tokens.issue(user.id))

    @app.get("/auth/me", response_model=UserResponse)
    def me(current_user: User = Depends(get_current_user)):
        """Return the user the bearer token belongs to."""
        return current_user

    @app.get(
        "/users/{user_id}",
        response_model=UserResponse,
        dependencies=[Depends(get_current_user)],
    )
    def get_user(user_id: int, services: Services = Depends(get_services)):
        user = services.credentials.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    @app.post("/events", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
    def create_event(
        payload: EventRequest,
        current_user: User = Depends(get_current_user),
        services: Services = Depends(get_services),
    ):
        """Create an event owned by the caller."""
        return services.events.create(owner_id=current_user.id, **payload.model_dump())

    @app.get("/events", response_model=List[EventResponse])
    def list_events(services: Services = Depends(get_services)):
        return services.events.list()

    @app.get("/events/{event_id}", response_model=EventResponse)
    def get_event(event_id: int, services: Services = Depends(get_services)):
        return services.events.require(event_id)

    @app.put("/events/{event_id}", response_model=EventResponse)
    def update_event(
        event_id: int,
        payload: EventRequest,
        current_user: User = Depends(get_current_user),
        services: Services = Depends(get_services),
    ):
        event = services.events.require(event_id)
        services.policy.authorize(current_user, event)
        return services.events.update(event_id, **payload.model_dump())

    @app.delete("/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_event(
        event_id: int,
        current_user: User = Depends(get_current_user),
        services: Services = Depends(get_services),
    ):
        event = services.events.require(event_id)
        services.policy.authorize(current_user, event)
        services.events.delete(event_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.post(
        "/events/{event_id}/attendees/{user_id}",
        response_model=AttendeeResponse,
        status_code=status.HTTP_201_CREATED,
    )
    def add_attendee(
        event_id: int,
        user_id: int,
        current_user: User = Depends(get_current_user),
        services: Services = Depends(get_services),
    ):
        event = services.events.require(event_id)
        services.policy.authorize(current_user, event)
        return services.attendance.add_attendee(event_id, user_id)

    @app.get("/events/{event_id}/attendees", response_model=List[UserResponse])
    def list_event_attendees(event_id: int, services: Services = Depends(get_services)):
        return services.attendance.list_attendees_for_event(event_id)

    @app.delete(
        "/events/{event_id}/attendees/{user_id}",
        status_code=status.HTTP_204_NO_CONTENT,
    )
    def remove_attendee(
        event_id: int,
        user_id: int,
        current_user: User = Depends(get_current_user),
        services: Services = Depends(get_services),
    ):
        event = services.events.get(event_id)
        if event is not None:
            services.policy.authorize(current_user, event)
            services.attendance.remove_attendee(user_id, event_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.get("/attendees/{user_id}/events", response_model=List[EventResponse])
    def list_user_events(user_id: int, services: Services = Depends(get_services)):
        return services.attendance.list_events_for_user(user_id)

    @app.get("/metrics", include_in_schema=False)
    def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application and its components from one settings object."""
    settings = settings or Settings()
    setup_logging(settings.log_level)
    services = build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        services.db.init_db()
        logger.info("database ready at %s", services.db.engine.url.render_as_string(hide_password=True))
        yield
        services.db.dispose()

    app = FastAPI(title=settings.api_title, lifespan=lifespan)
    app.state.services = services

    _register_middleware(app)
    _register_exception_handlers(app)
    _register_routes(app)
    return app


app = create_app()
