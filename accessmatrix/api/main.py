from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from accessmatrix import __version__
from accessmatrix.api.middleware.audit import AuditMiddleware
from accessmatrix.api.routers import catalog, features, members, settings as settings_router
from accessmatrix.api.schemas.common import ErrorItem, ErrorResponse
from accessmatrix.common.logger import setup_logger
from accessmatrix.core.config import get_settings
from accessmatrix.core.errors import (
    AccessControlError,
    ServiceUnavailable,
    StaleVersion,
    StoreUnavailable,
    UnknownMember,
    ValidationFailed,
)

settings = get_settings()

logger = setup_logger(
    level=settings.log_level,
    log_dir=settings.log_dir,
    file_logging=settings.file_logging,
)

app = FastAPI(
    title=settings.app_name,
    description="Role-based feature and setting access for households",
    version=__version__,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Audit middleware - logs all mutating requests
app.add_middleware(AuditMiddleware)

# Include routers
app.include_router(catalog.router, prefix="/api")
app.include_router(features.router, prefix="/api")
app.include_router(settings_router.router, prefix="/api")
app.include_router(members.router, prefix="/api")


def _error(status_code: int, payload: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=payload.model_dump(exclude_none=True))


@app.exception_handler(ValidationFailed)
async def validation_failed_handler(request: Request, exc: ValidationFailed):
    # A request that only names unknown members is a lookup miss, not a bad request
    if exc.errors and all(isinstance(e, UnknownMember) for e in exc.errors):
        status_code = 404
    else:
        status_code = 422
    return _error(status_code, ErrorResponse(
        error="Validation failed",
        detail=exc.message,
        code=exc.code,
        errors=[ErrorItem(**e.to_dict()) for e in exc.errors],
    ))


@app.exception_handler(StaleVersion)
async def stale_version_handler(request: Request, exc: StaleVersion):
    return _error(409, ErrorResponse(
        error="Conflict",
        detail=exc.message,
        code=exc.code,
        current_version=exc.current_version,
    ))


@app.exception_handler(ServiceUnavailable)
@app.exception_handler(StoreUnavailable)
async def service_unavailable_handler(request: Request, exc: AccessControlError):
    return _error(503, ErrorResponse(error="Service unavailable", detail=exc.message, code=exc.code))


@app.exception_handler(AccessControlError)
async def access_control_error_handler(request: Request, exc: AccessControlError):
    return _error(400, ErrorResponse(
        error="Bad request",
        detail=exc.message,
        code=exc.code,
        errors=[ErrorItem(**exc.to_dict())],
    ))


@app.get("/health")
async def health_check():
    return {"status": "healthy", "version": __version__}


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": __version__,
        "docs": "/docs" if settings.debug else None,
    }
