"""Authentication dependencies for FastAPI.

Validates the Bearer JWT and exposes the caller's identity and
organization to endpoints.
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from src.api.database import get_db
from src.api.services.jwt_service import (
    InvalidTokenError,
    JWTService,
    TokenExpiredError,
    TokenPayload,
    get_jwt_service,
)
from src.database.repositories.organization import OrganizationRepository

# =============================================================================
# SECURITY SCHEME
# =============================================================================

security_scheme = HTTPBearer(
    scheme_name="JWT",
    description="Enter JWT token obtained from /api/v1/auth/token",
    auto_error=True,
)


# =============================================================================
# DEPENDENCIES
# =============================================================================


def get_current_user(
    credentials: Annotated[
        HTTPAuthorizationCredentials,
        Depends(security_scheme),
    ],
    jwt_service: Annotated[JWTService, Depends(get_jwt_service)],
) -> TokenPayload:
    """Extract and validate current user from JWT token.

    Args:
        credentials: Bearer token from Authorization header.
        jwt_service: JWT service for token validation.

    Returns:
        Decoded token payload with user and organization.

    Raises:
        HTTPException: 401 if token is invalid or expired.
    """
    try:
        return jwt_service.decode_token(credentials.credentials)
    except TokenExpiredError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None


CurrentUser = Annotated[TokenPayload, Depends(get_current_user)]


def get_current_organization_id(
    user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
) -> UUID:
    """Organization the caller acts for.

    A token outliving its organization is rejected like an invalid one.

    Raises:
        HTTPException: 401 if the organization no longer exists.
    """
    if not OrganizationRepository(db).exists(user.organization_id):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown organization",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user.organization_id


CurrentOrganizationId = Annotated[UUID, Depends(get_current_organization_id)]
