"""Shared API dependencies for credential-based authentication."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from siwe_gate.core.errors import CredentialError
from siwe_gate.services.credentials import CredentialIssuer, SessionClaims, get_credential_issuer

logger = logging.getLogger(__name__)

# HTTP Bearer scheme; missing headers are reported as 401 below.
bearer_scheme = HTTPBearer(auto_error=False)


def get_credential_issuer_dep() -> CredentialIssuer:
    return get_credential_issuer()


CredentialIssuerDep = Annotated[CredentialIssuer, Depends(get_credential_issuer_dep)]


def _unauthenticated() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_session(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    issuer: CredentialIssuerDep,
) -> SessionClaims:
    """Decode the bearer credential; any failure means unauthenticated.

    Args:
        credentials: HTTP Bearer token credentials
        issuer: Credential issuer used to validate the token

    Returns:
        Claims asserted by the credential

    Raises:
        HTTPException: 401 if the header is missing or the credential is invalid
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise _unauthenticated()
    try:
        return issuer.decode(credentials.credentials)
    except CredentialError as err:
        logger.info("Rejected session credential: %s", err.kind)
        raise _unauthenticated() from err


# Type alias for current session dependency
CurrentSessionDep = Annotated[SessionClaims, Depends(get_current_session)]
