"""
Authentication Module

Resolves the calling professor from a JWT bearer token. The professor's
id is the only identity the services need: every professor-scoped
operation checks ownership against it.

SECURITY NOTE:
- Development mode is opt-in: it requires PYTHON_ENV=development and a
  configured DEV_PROFESSOR_ID
- In development mode the fixed test tokens resolve to that one professor;
  no other identity can be claimed without a signed token
"""

import logging
import os
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from research_engine.core.config import Settings, settings
from research_engine.core.security import decode_token

logger = logging.getLogger(__name__)

security = HTTPBearer(
    auto_error=True,
    description="JWT Bearer token for professor authentication",
)

_DEV_TOKENS = ("dev-token", "test-token")


@dataclass
class CurrentProfessor:
    """
    An authenticated professor, populated from JWT claims.

    Attributes:
        id: Professor's unique identifier
        email: Professor's email address (optional claim)
    """

    id: UUID
    email: str | None = None

    def __str__(self) -> str:
        return f"CurrentProfessor(id={self.id}, email={self.email})"


def _is_dev_mode_safe(config: Settings) -> bool:
    env_var = os.getenv("PYTHON_ENV", "").lower()
    return (
        config.is_development
        and not config.is_production
        and env_var not in ("production", "staging")
    )


def dev_professor(config: Settings) -> CurrentProfessor | None:
    """
    Return the professor behind the development tokens, if enabled.

    Development tokens are only honoured when the environment is
    development and DEV_PROFESSOR_ID is set.
    """
    if not _is_dev_mode_safe(config) or config.dev_professor_id is None:
        return None

    logger.warning(
        "SECURITY: Development auth mode is ENABLED. This MUST NOT be used in production!"
    )
    return CurrentProfessor(id=config.dev_professor_id, email="dev-professor@research.test")


_DEV_PROFESSOR = dev_professor(settings)


def _unauthorized(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def resolve_professor(token: str) -> CurrentProfessor:
    """
    Validate a bearer token and extract the professor identity.

    Raises:
        HTTPException 401: If the token is invalid, expired or lacks claims
    """
    if _DEV_PROFESSOR is not None and token in _DEV_TOKENS:
        logger.debug("Development mode: using test token")
        return _DEV_PROFESSOR

    payload = decode_token(token)
    if payload is None:
        logger.warning("Invalid or expired JWT token")
        raise _unauthorized("INVALID_TOKEN", "Invalid or expired authentication token.")

    if payload.get("type", "access") != "access":
        raise _unauthorized("INVALID_TOKEN_TYPE", "This endpoint requires an access token.")

    try:
        professor_id = UUID(payload["sub"])
    except (KeyError, ValueError, TypeError) as e:
        logger.warning(f"Invalid token claims: {e}")
        raise _unauthorized(
            "INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims."
        ) from e

    return CurrentProfessor(id=professor_id, email=payload.get("email"))


async def get_current_professor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentProfessor:
    """
    FastAPI dependency returning the authenticated professor.

    Usage:
        @router.get("/projects/mine")
        async def mine(professor: CurrentProfessor = Depends(get_current_professor)):
            ...
    """
    professor = resolve_professor(credentials.credentials)
    logger.debug(f"Authenticated professor: {professor.id}")
    return professor


__all__ = [
    "CurrentProfessor",
    "dev_professor",
    "get_current_professor",
    "resolve_professor",
]
