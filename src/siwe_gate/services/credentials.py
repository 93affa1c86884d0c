"""Session credential issuance and decoding."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from jose.exceptions import JOSEError

from siwe_gate.core.errors import (
    CredentialExpired,
    CredentialMalformed,
    CredentialSignatureInvalid,
    InternalFault,
    InvalidAddress,
)
from siwe_gate.core.settings import settings
from siwe_gate.db.time import Clock, utcnow
from siwe_gate.services.challenge import normalize_address

logger = logging.getLogger(__name__)

# Expiry is checked against the injected clock, not the library's wall clock.
_DECODE_OPTIONS = {
    "verify_exp": False,
    "verify_iat": False,
    "verify_nbf": False,
    "verify_aud": False,
    "verify_sub": False,
}


@dataclass(frozen=True)
class IssuedCredential:
    """Bearer token plus the claims it carries."""

    token: str
    address: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class SessionClaims:
    """Identity asserted by a decoded credential."""

    address: str
    issued_at: datetime
    expires_at: datetime


class CredentialIssuer:
    """Mints and decodes time-bounded JWT session credentials."""

    def __init__(
        self,
        secret_key: str,
        *,
        algorithm: str = "HS256",
        ttl_seconds: int = 86_400,
        issuer: str | None = None,
        clock: Clock | None = None,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("Credential TTL must be positive")
        self._secret_key = secret_key
        self._algorithm = algorithm
        self.ttl = timedelta(seconds=ttl_seconds)
        self._issuer = issuer
        self._clock = clock or utcnow

    def issue(self, address: str) -> IssuedCredential:
        """Create a credential for an already verified ``address``."""
        if not self._secret_key:
            raise InternalFault("Credential signing key is not configured")
        normalized = normalize_address(address)
        # JWT timestamps carry whole seconds.
        issued_at = self._clock().astimezone(UTC).replace(microsecond=0)
        expires_at = issued_at + self.ttl
        claims: dict[str, Any] = {
            "sub": normalized,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        if self._issuer:
            claims["iss"] = self._issuer
        try:
            token: str = jwt.encode(claims, self._secret_key, algorithm=self._algorithm)
        except JOSEError as err:
            logger.error("Failed to sign session credential: %s", err)
            raise InternalFault("Credential signing failed") from err
        return IssuedCredential(
            token=token,
            address=normalized,
            issued_at=issued_at,
            expires_at=expires_at,
        )

    def decode(self, token: str) -> SessionClaims:
        """Validate ``token`` and return the identity it asserts.

        Raises:
            CredentialMalformed: Not a JWT, or claims missing or ill-typed.
            CredentialSignatureInvalid: Wrong key or algorithm.
            CredentialExpired: ``exp`` is at or before the current time.
        """
        if not token:
            raise CredentialMalformed("Credential is empty")
        try:
            jwt.get_unverified_header(token)
            jwt.get_unverified_claims(token)
        except JWTError as err:
            raise CredentialMalformed("Credential is not a valid token") from err

        try:
            claims = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options=_DECODE_OPTIONS,
            )
        except JWTError as err:
            raise CredentialSignatureInvalid("Credential signature is invalid") from err

        subject = claims.get("sub")
        issued = claims.get("iat")
        expires = claims.get("exp")
        if not isinstance(subject, str):
            raise CredentialMalformed("Credential has no subject")
        if not _is_timestamp(issued) or not _is_timestamp(expires):
            raise CredentialMalformed("Credential timestamps are missing or invalid")
        try:
            address = normalize_address(subject)
        except InvalidAddress as err:
            raise CredentialMalformed("Credential subject is not an address") from err

        try:
            issued_at = datetime.fromtimestamp(issued, UTC)
            expires_at = datetime.fromtimestamp(expires, UTC)
        except (OverflowError, OSError, ValueError) as err:
            raise CredentialMalformed("Credential timestamps are out of range") from err

        if self._clock() >= expires_at:
            raise CredentialExpired("Credential has expired")
        return SessionClaims(address=address, issued_at=issued_at, expires_at=expires_at)


def _is_timestamp(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def get_credential_issuer() -> CredentialIssuer:
    """Return an issuer configured from application settings."""
    return CredentialIssuer(
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
        ttl_seconds=settings.access_token_expire_seconds,
        issuer=settings.siwe_domain,
    )
