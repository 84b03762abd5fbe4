from fastapi.middleware.cors import CORSMiddleware
from docvault.config.settings import get_config_manager
from docvault.logging.setup import setup_logging, get_logger
from docvault.core.api.errors import error_response, file_store_error_response
from docvault.core.api.router_files import router as files_router
from docvault.core.api.router_files import legacy_router as uploads_router
from docvault.core.storage.file import FileManager, FileStoreError
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi import FastAPI, Request
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
import time


# Use basic logging before config is loaded
_basic_logger = logging.getLogger(__name__)

# Configure application config and logging at module level
_config_manager = get_config_manager()
try:
    _config_manager.load()
    _basic_logger.info("Configuration loaded successfully")
except Exception as e:
    _basic_logger.error(f"Failed to load configuration: {e}")
    raise

setup_logging(_config_manager.logging_config)

logger = get_logger(__name__)
logger.debug("Loaded main.py")

_started_at = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    config_manager = get_config_manager()
    app.state.config_manager = config_manager
    app.state.file_manager = FileManager.from_config(config_manager)

    logger.info(
        f"Application startup complete: upload_dir={config_manager.upload_dir}, "
        f"environment={config_manager.environment}")

    yield

    # Shutdown
    logger.info("Application shutdown complete")


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_config_manager.settings.api.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization",
                   _config_manager.settings.api.identity_header],
)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    return response


@app.get("/api/health")
def health():
    """Health check."""
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": get_config_manager().environment,
        "uptime": time.monotonic() - _started_at,
    }


@app.exception_handler(FileStoreError)
async def file_store_exception_handler(request: Request, exc: FileStoreError):
    status_code, body = file_store_error_response(exc)
    if status_code >= 500:
        logger.error(
            f"{exc.kind.value} on {request.method} {request.url.path}: {exc}")
    else:
        logger.warning(
            f"{exc.kind.value} on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError):
    for error in exc.errors():
        logger.error(f"Validation error: {error}, request: {request.url.path}")
    return JSONResponse(
        status_code=422,
        content=error_response(
            "Invalid input received. Please check your request and try again.",
            code="REQUEST_VALIDATION_ERROR")
    )


app.include_router(files_router, prefix=_config_manager.files_prefix)
app.include_router(uploads_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=_config_manager.api_host,
                port=_config_manager.api_port)
