import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request

from api.shared.entities import registry
from api.shared.exceptions import AgriChatException
from api.shared.rate_limit import client_address
from api.shared.response import ResponseModel
from core.logging import configure_logging
from core.settings import Settings, get_settings
from di.container import ApplicationContainer as DependencyContainer

logger = logging.getLogger("agrichat")


class CustomFastAPI(FastAPI):
    container: DependencyContainer
    settings: Settings


def _envelope(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ResponseModel.fail(error).model_dump(exclude_none=True),
    )


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Validation error"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid value")
    # pydantic prefixes messages raised from validators
    message = message.removeprefix("Value error, ")
    return f"{location}: {message}" if location else message


@asynccontextmanager
async def lifespan(_app: CustomFastAPI):
    logger.info("Starting application initialization...")
    start_time = time.time()

    try:
        db_resource = _app.container.infrastructure.database()
        await db_resource.init()
        if _app.settings.DATABASE.CREATE_TABLES:
            await db_resource.create_tables(registry.metadata)
            logger.info("Database tables ensured")
        health = await db_resource.health_check()
        if health["status"] != "healthy":
            logger.warning("Database not reachable at startup: %s", health.get("error"))
        logger.info(f"Application startup completed in {time.time() - start_time:.2f}s")
    except Exception as e:
        logger.exception(f"Failed to initialize application: {str(e)}")
        raise

    yield

    try:
        db_resource = _app.container.infrastructure.database()
        if db_resource:
            await db_resource.shutdown()
        logger.info("Application shutdown complete")
    except Exception:
        logger.exception("Error during shutdown")


def _register_exception_handlers(_app: CustomFastAPI) -> None:
    @_app.exception_handler(AgriChatException)
    async def agrichat_exception_handler(request: Request, exc: AgriChatException):
        if exc.status_code >= 500:
            logger.error("%s on %s %s: %s", exc.error_code, request.method, request.url.path, exc.message)
        response = _envelope(exc.status_code, exc.message)
        retry_after = exc.details.get("retry_after")
        if retry_after is not None:
            response.headers["Retry-After"] = str(retry_after)
        return response

    @_app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _envelope(400, _first_validation_message(exc))

    @_app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            return _envelope(exc.status_code, "Endpoint not found")
        return _envelope(exc.status_code, str(exc.detail))

    @_app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        if _app.settings.APP.is_production:
            return _envelope(500, "Internal server error")
        return _envelope(500, str(exc) or exc.__class__.__name__)


def create_fastapi_app(settings: Optional[Settings] = None) -> CustomFastAPI:
    settings = settings or get_settings()
    configure_logging(settings.APP.LOG_LEVEL, json_logs=settings.APP.JSON_LOGS)

    _app = CustomFastAPI(
        title="AgriChat API",
        description="Conversation and message persistence for the AgriChat assistant",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    _app.settings = settings

    # Initialize dependency container
    _app.container = DependencyContainer()
    _app.container.infrastructure.config.from_dict(settings.model_dump(mode="json"))
    _app.container.init_resources()

    _app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @_app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            logger.info(
                "%s %s from %s -> %d (%.1fms)",
                request.method,
                request.url.path,
                client_address(request),
                status_code,
                (time.perf_counter() - started) * 1000,
            )

    _register_exception_handlers(_app)

    # Conversations first so /conversations/search/{query} wins over nested message routes
    from api.features.conversations.router import router as conversations_router
    from api.features.health.router import router as health_router
    from api.features.messages.router import router as messages_router
    from api.features.stats.router import router as stats_router

    prefix = settings.APP.API_PREFIX
    _app.include_router(
        conversations_router, prefix=f"{prefix}/conversations", tags=["Conversations"]
    )
    _app.include_router(messages_router, prefix=prefix, tags=["Messages"])
    _app.include_router(stats_router, prefix=prefix, tags=["Stats"])
    _app.include_router(health_router, prefix=prefix, tags=["Health"])
    _app.include_router(health_router, include_in_schema=False)

    return _app


app = create_fastapi_app()
