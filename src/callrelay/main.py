import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta

import structlog
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from callrelay.api.router import api_router
from callrelay.auth.codes import AuthCodeIssuer
from callrelay.auth.registration import RegistrationService
from callrelay.auth.tokens import TokenService
from callrelay.config import Settings, get_settings
from callrelay.errors import RelayError
from callrelay.notifications.push import NotificationDispatcher
from callrelay.notifications.vapid import public_key_from_private
from callrelay.storage.store import JsonFileStore

logger = structlog.get_logger()

load_dotenv()


def _configure_logging(level: str) -> None:
    """Filter structlog output at the configured level."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
        ),
    )


def _check_vapid_pair(settings: Settings) -> None:
    """Warn when the configured public key does not match the private key."""
    try:
        derived = public_key_from_private(settings.vapid_private_key)
    except Exception as e:
        logger.warning("vapid_private_key_unreadable", error=str(e))
        return
    if derived != settings.vapid_public_key:
        logger.warning("vapid_key_mismatch")


def build_services(app: FastAPI, settings: Settings) -> None:
    """Construct the relay services and attach them to app.state."""
    store = JsonFileStore(settings.data_path)
    tokens = TokenService(
        login_password=settings.login_password,
        access_secret=settings.jwt_secret,
        refresh_secret=settings.refresh_token_secret,
        access_ttl=timedelta(minutes=settings.access_token_ttl_minutes),
        caller_ttl=timedelta(minutes=settings.caller_token_ttl_minutes),
        refresh_ttl=timedelta(days=settings.refresh_token_ttl_days),
    )
    app.state.store = store
    app.state.tokens = tokens
    app.state.auth_codes = AuthCodeIssuer(
        store,
        validity=timedelta(minutes=settings.auth_code_ttl_minutes),
    )
    app.state.registrations = RegistrationService(store, tokens)
    app.state.dispatcher = NotificationDispatcher(
        store,
        vapid_private_key=settings.vapid_private_key,
        vapid_claims=settings.vapid_claims,
        client_url=settings.client_url,
        default_title=settings.default_title,
        default_body=settings.default_body,
    )
    app.state.vapid_public_key = settings.vapid_public_key


@asynccontextmanager
async def lifespan(
    app: FastAPI,
) -> AsyncGenerator[None]:
    settings = get_settings()
    _configure_logging(settings.log_level)
    logger.info("starting_up", version=settings.app_version)

    build_services(app, settings)
    _check_vapid_pair(settings)
    logger.info(
        "push_notifications_enabled",
        vapid_public_key=settings.vapid_public_key,
        data_path=str(settings.data_path),
    )

    yield

    logger.info("shutting_down")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
    )


def _validation_message(exc: RequestValidationError) -> str:
    fields = sorted(
        {str(err["loc"][-1]) for err in exc.errors() if err.get("loc")}
    )
    if not fields:
        return "Invalid request body"
    return f"Missing or invalid fields: {', '.join(fields)}"


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure as ``{success: false, error}``."""

    @app.exception_handler(StarletteHTTPException)
    async def _http_exc_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail or "HTTP error"))

    @app.exception_handler(RelayError)
    async def _relay_exc_handler(request: Request, exc: RelayError) -> JSONResponse:
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def _validation_handler(
        request: Request, exc: RequestValidationError
    ) -> Response:
        # Unusable credential bodies count as a missing credential.
        path = request.url.path
        if path == "/refresh-token":
            return Response(status_code=401)
        if path == "/login":
            return _error(401, "Invalid password")
        return _error(400, _validation_message(exc))

    @app.exception_handler(Exception)
    async def _generic_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled_error", path=request.url.path)
        return _error(500, "Internal server error")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or get_settings()
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.client_url],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    register_exception_handlers(application)
    application.include_router(api_router)
    return application


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "callrelay.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )
