import logging
from importlib.metadata import version as pkg_version

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from inkforge.api import decks_router, health_router
from inkforge.config import settings
from inkforge.models.failure import InvalidRequestError, KnownError, create_unknown_failure

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    version=pkg_version("inkforge"),
    debug=settings.debug,
)

app.include_router(decks_router)
app.include_router(health_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(KnownError)
async def known_error_handler(_request: Request, exc: KnownError) -> JSONResponse:
    """Known failures become the known-failure envelope with their own status."""
    logger.info(
        "request_failed",
        extra={
            "kind": exc.kind.value,
            "status_code": exc.status_code,
            "error_message": exc.message,
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(mode="json"),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are invalid input, reported in the same envelope."""
    error = InvalidRequestError("The request body is malformed.", detail=str(exc.errors()))
    return JSONResponse(
        status_code=error.status_code,
        content=error.to_response().model_dump(mode="json"),
    )


@app.exception_handler(Exception)
async def unknown_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Anything else becomes the fixed unknown-failure envelope."""
    logger.exception("request_failed_unexpectedly", extra={"error_type": type(exc).__name__})
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=create_unknown_failure(exc).model_dump(mode="json"),
    )
