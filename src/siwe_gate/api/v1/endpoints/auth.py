"""Authentication endpoints for the SIWE Gate API."""

from __future__ import annotations

import logging
from typing import Annotated, NoReturn

from fastapi import APIRouter, Depends, HTTPException, status

from siwe_gate.api.v1.dependencies import CurrentSessionDep
from siwe_gate.core.errors import AuthError, InternalFault
from siwe_gate.schemas.auth import (
    ChallengeRequest,
    ChallengeResponse,
    ErrorDetail,
    SessionResponse,
    VerifyRequest,
    VerifyResponse,
)
from siwe_gate.services.auth import AuthenticationService, get_auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])

_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorDetail, "description": "Rejected input"},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorDetail, "description": "Internal fault"},
}


def get_auth_service_dep() -> AuthenticationService:
    return get_auth_service()


AuthServiceDep = Annotated[AuthenticationService, Depends(get_auth_service_dep)]


def _raise_http(err: AuthError) -> NoReturn:
    if err.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("Internal fault during authentication: %s", err)
    raise HTTPException(status_code=err.status_code, detail=err.to_detail()) from err


@router.post(
    "/challenge",
    summary="Issue a Sign-In with Ethereum challenge",
    response_model=ChallengeResponse,
    responses=_ERROR_RESPONSES,
)
def issue_challenge(payload: ChallengeRequest, service: AuthServiceDep) -> ChallengeResponse:
    """Allocate a single-use nonce and return the message the wallet must sign."""
    try:
        challenge = service.issue_challenge(payload.address)
    except AuthError as err:
        _raise_http(err)
    except Exception as err:
        logger.exception("Unexpected failure while issuing a challenge")
        _raise_http(InternalFault(str(err)))

    return ChallengeResponse(
        message=challenge.message,
        nonce=challenge.nonce,
        expires_at=challenge.expires_at,
    )


@router.post(
    "/verify",
    summary="Verify a signed challenge and issue a session credential",
    response_model=VerifyResponse,
    responses=_ERROR_RESPONSES,
)
def verify_challenge(payload: VerifyRequest, service: AuthServiceDep) -> VerifyResponse:
    """Exchange a signed challenge for a bearer credential; each nonce works once."""
    try:
        result = service.sign_in(payload.message, payload.signature, payload.address)
    except AuthError as err:
        _raise_http(err)
    except Exception as err:
        logger.exception("Unexpected failure while verifying a challenge")
        _raise_http(InternalFault(str(err)))

    return VerifyResponse(
        credential=result.credential.token,
        address=result.identity.address,
        token_type="bearer",
        expires_at=result.credential.expires_at,
    )


@router.get(
    "/me",
    summary="Describe the session behind the presented credential",
    response_model=SessionResponse,
)
def read_session(session: CurrentSessionDep) -> SessionResponse:
    return SessionResponse(
        address=session.address,
        issued_at=session.issued_at,
        expires_at=session.expires_at,
    )
