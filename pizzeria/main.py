import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pizzeria.core.cache import cache_manager
from pizzeria.core.config import get_settings
from pizzeria.core.db import Database
from pizzeria.core.logging import configure_logging
from pizzeria.core.middleware import RequestContextMiddleware
from pizzeria.routers import get_api_router
from pizzeria.services.bootstrap import ensure_default_admin
from pizzeria.services.exceptions import ExternalServiceError, ServiceError


def create_app(database: Database | None = None) -> FastAPI:
    settings = get_settings()
    configure_logging()

    logger = logging.getLogger("pizzeria.errors")

    app = FastAPI(title=settings.PROJECT_NAME)
    app.state.database = database or Database(settings.DATABASE_URL)

    origins = settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(RequestContextMiddleware)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(
            "Validation error on %s %s detail=%s",
            request.method,
            request.url.path,
            exc.errors(),
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"error": "Invalid request", "details": jsonable_errors(exc)},
        )

    @app.exception_handler(ServiceError)
    async def service_exception_handler(request: Request, exc: ServiceError):
        status_code = exc.status_code
        if isinstance(exc, ExternalServiceError) and exc.upstream_status:
            status_code = exc.upstream_status
        log = logger.error if status_code >= 500 else logger.info
        log("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
        return JSONResponse(status_code=status_code, content={"error": exc.message, "details": exc.details})

    app.include_router(get_api_router(), prefix=settings.API_PREFIX)

    @app.on_event("startup")
    def startup_event():
        cache_manager.init_backend()
        ensure_default_admin(app.state.database)

    @app.on_event("shutdown")
    def shutdown_event():
        app.state.database.dispose()

    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


app = create_app()
