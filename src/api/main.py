"""FastAPI application entry point.

Creates and configures the Compilo compliance REST API with
authentication, compliance error mapping and OpenAPI documentation.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from src.api.database import get_db
from src.api.routers import recipients, reports, transfers
from src.api.schemas import (
    DatabaseComponentHealth,
    ErrorResponse,
    HealthResponse,
    TokenRequest,
    TokenResponse,
    ValidationIssueSchema,
)
from src.api.services.jwt_service import JWTService, get_jwt_service
from src.compliance.errors import (
    ConflictOnDeleteError,
    HierarchyIntegrityError,
    HierarchyValidationError,
    NotFoundError,
    OrganizationConfigurationError,
    TransferValidationError,
)
from src.database.connection import close_database, get_database, init_database
from src.database.repositories.organization import OrganizationRepository
from src.monitoring.middleware import PrometheusMiddleware, mount_metrics
from src.settings import settings
from src.utils.logger import configure_audit_logging

logger = logging.getLogger(__name__)

# =============================================================================
# LIFESPAN
# =============================================================================


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Configures audit logging and checks the database on startup,
    releases the connection pool on shutdown.

    Args:
        _app: FastAPI application instance.

    Yields:
        None after startup tasks complete.
    """
    configure_audit_logging()
    if not init_database():
        logger.warning("Starting without a reachable database")
    yield
    close_database()


# =============================================================================
# APPLICATION FACTORY
# =============================================================================


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI instance.
    """
    app = FastAPI(
        title=settings.api.title,
        version=settings.api.version,
        description="GDPR recipient hierarchy and cross-border transfer risk API",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )
    _configure_cors(app)
    app.add_middleware(PrometheusMiddleware)
    mount_metrics(app)
    _register_exception_handlers(app)
    _register_routers(app)
    return app


def _configure_cors(app: FastAPI) -> None:
    """Configure CORS middleware.

    Args:
        app: FastAPI application instance.
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
    )


def _register_routers(app: FastAPI) -> None:
    """Register API routers.

    Reports come before recipients so their static paths win over
    ``/recipients/{recipient_id}``.

    Args:
        app: FastAPI application instance.
    """
    app.include_router(reports.router, prefix="/api/v1")
    app.include_router(recipients.router, prefix="/api/v1")
    app.include_router(transfers.router, prefix="/api/v1")


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================


def _error_response(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def _issues(issues: list) -> list[ValidationIssueSchema]:
    return [ValidationIssueSchema.model_validate(issue) for issue in issues]


async def _handle_not_found(_request: Request, exc: NotFoundError) -> JSONResponse:
    return _error_response(status.HTTP_404_NOT_FOUND, ErrorResponse(detail=str(exc)))


async def _handle_hierarchy_validation(_request: Request, exc: HierarchyValidationError) -> JSONResponse:
    body = ErrorResponse(
        detail=str(exc),
        errors=_issues(exc.result.errors),
        warnings=_issues(exc.result.warnings),
    )
    return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, body)


async def _handle_transfer_validation(_request: Request, exc: TransferValidationError) -> JSONResponse:
    issue = ValidationIssueSchema(
        field="transfer_mechanism_id",
        rule="transfer_mechanism_required",
        message=str(exc),
    )
    return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, ErrorResponse(detail=str(exc), errors=[issue]))


async def _handle_configuration(_request: Request, exc: OrganizationConfigurationError) -> JSONResponse:
    return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, ErrorResponse(detail=str(exc)))


async def _handle_conflict(_request: Request, exc: ConflictOnDeleteError) -> JSONResponse:
    body = ErrorResponse(detail=str(exc), reasons=list(exc.reasons))
    return _error_response(status.HTTP_409_CONFLICT, body)


async def _handle_integrity(request: Request, exc: HierarchyIntegrityError) -> JSONResponse:
    logger.error("Hierarchy integrity failure on %s %s", request.method, request.url.path, exc_info=exc)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorResponse(detail="Internal server error"),
    )


def _register_exception_handlers(app: FastAPI) -> None:
    """Map compliance exceptions to HTTP responses.

    Args:
        app: FastAPI application instance.
    """
    app.add_exception_handler(NotFoundError, _handle_not_found)
    app.add_exception_handler(HierarchyValidationError, _handle_hierarchy_validation)
    app.add_exception_handler(TransferValidationError, _handle_transfer_validation)
    app.add_exception_handler(OrganizationConfigurationError, _handle_configuration)
    app.add_exception_handler(ConflictOnDeleteError, _handle_conflict)
    app.add_exception_handler(HierarchyIntegrityError, _handle_integrity)


# =============================================================================
# ROOT ENDPOINTS
# =============================================================================

app = create_app()


@app.get(
    "/api/v1/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="Health check",
    description="Verify API is running and the database answers.",
)
def health_check() -> HealthResponse:
    """Health check endpoint (no authentication required).

    Returns:
        API health status with database connectivity.
    """
    connected = get_database().check_connection()
    return HealthResponse(
        status="healthy" if connected else "degraded",
        version=settings.api.version,
        database=DatabaseComponentHealth(connected=connected),
    )


@app.post(
    "/api/v1/auth/token",
    response_model=TokenResponse,
    tags=["Authentication"],
    summary="Get access token",
    description="Authenticate a demo user and receive a JWT bound to its organization.",
)
def login(
    request: TokenRequest,
    jwt_service: Annotated[JWTService, Depends(get_jwt_service)],
    db: Annotated[Session, Depends(get_db)],
) -> TokenResponse:
    """Authenticate user and return JWT token.

    Args:
        request: Login credentials.
        jwt_service: JWT service for token generation.
        db: Database session used to resolve the organization.

    Returns:
        JWT access token.

    Raises:
        HTTPException: 401 if credentials or organization are invalid.
    """
    user = settings.security.demo_users.get(request.username)
    organization = None
    if user is not None and user.password == request.password:
        organization = OrganizationRepository(db).get_by_slug(user.organization_slug)
        if organization is None:
            logger.warning(
                "Demo user %s refers to unknown organization %s",
                user.username,
                user.organization_slug,
            )
    if organization is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = jwt_service.create_token(subject=request.username, organization_id=organization.id)
    return TokenResponse(
        access_token=token,
        expires_in=jwt_service.expire_seconds,
        organization_id=organization.id,
    )


# =============================================================================
# CLI ENTRY POINT
# =============================================================================


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.api.main:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.api.reload,
    )
