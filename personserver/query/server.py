from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from personres.errors import ErrorCategory, ResolutionError
from personres.logging import setup_logging

from .mention_loader import load_mentions_at_startup
from .routers import stakeholders_api, suggestions_api
from .schemas import ErrorBody, ErrorResponse
from .settings import get_resolution_config
from .storage_factory import close_storage, create_storage

logger = setup_logging()

STATUS_BY_CATEGORY = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.CONFLICT: 409,
    ErrorCategory.CANCELLED: 503,
    ErrorCategory.INTERNAL: 500,
}


def error_response(status_code: int, code: str, message: str, details: dict | None = None) -> JSONResponse:
    body = ErrorResponse(error=ErrorBody(code=code, message=message, details=details or {}))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def resolution_error_handler(request: Request, exc: ResolutionError) -> JSONResponse:
    status_code = STATUS_BY_CATEGORY.get(exc.category, 500)
    if status_code >= 500:
        logger.error({"message": "Request failed", "path": request.url.path, "error": exc.to_dict()})
        # Storage internals stay in the log.
        details = {} if exc.category is ErrorCategory.INTERNAL else exc.context
    else:
        details = exc.context
    return error_response(status_code, exc.category.value, exc.message, details)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]
    return error_response(400, ErrorCategory.VALIDATION.value, "Invalid request", {"errors": errors})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception({"message": "Unhandled error", "path": request.url.path, "error": str(exc)})
    return error_response(500, ErrorCategory.INTERNAL.value, "Internal server error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Initializes storage on startup, loads the mention feed if configured, and closes on shutdown.
    """
    storage = create_storage()
    try:
        load_mentions_at_startup(storage, get_resolution_config().suggestions)
    finally:
        storage.close()
    yield
    close_storage()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Person Identity Resolution API",
        description="Clusters person mentions from program documents and resolves them into stakeholders.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_exception_handler(ResolutionError, resolution_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Suggestion routes share the /stakeholders prefix, so they go before /stakeholders/{stakeholder_id}.
    app.include_router(suggestions_api.router)
    app.include_router(stakeholders_api.router)

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint to verify that the server is running.
        """
        return {"status": "ok"}

    return app


app = create_app()
