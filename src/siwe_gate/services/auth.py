"""Challenge issuance and sign-in orchestration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from siwe_gate.db.time import Clock, utcnow
from siwe_gate.services.challenge import ChallengeConfig, normalize_address
from siwe_gate.services.credentials import (
    CredentialIssuer,
    IssuedCredential,
    get_credential_issuer,
)
from siwe_gate.services.nonce_store import NonceStore, get_nonce_store
from siwe_gate.services.verifier import SignatureVerifier, VerifiedIdentity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedChallenge:
    message: str
    nonce: str
    expires_at: datetime


@dataclass(frozen=True)
class SignInResult:
    identity: VerifiedIdentity
    credential: IssuedCredential


class AuthenticationService:
    """Ties the nonce store, message builder, verifier and issuer together."""

    def __init__(
        self,
        nonce_store: NonceStore,
        credential_issuer: CredentialIssuer,
        config: ChallengeConfig,
        clock: Clock | None = None,
    ) -> None:
        self._store = nonce_store
        self._issuer = credential_issuer
        self._config = config
        self._clock = clock or utcnow
        self._verifier = SignatureVerifier(nonce_store, config, clock=self._clock)

    def issue_challenge(self, address: str) -> IssuedChallenge:
        """Allocate a nonce for ``address`` and render the message to sign.

        The address is validated first so malformed input never allocates a nonce.
        """
        normalized = normalize_address(address)
        record = self._store.issue(normalized)
        challenge = self._config.build(
            normalized,
            record.value,
            issued_at=record.issued_at,
            ttl=self._store.ttl,
        )
        return IssuedChallenge(
            message=challenge.prepare(),
            nonce=record.value,
            expires_at=challenge.expiration_time,
        )

    def sign_in(
        self,
        message: str,
        signature: str,
        claimed_address: str | None = None,
    ) -> SignInResult:
        """Verify a signed challenge and mint a session credential."""
        identity = self._verifier.verify(message, signature, claimed_address)
        credential = self._issuer.issue(identity.address)
        logger.info("Issued session credential for %s…", identity.address[:10])
        return SignInResult(identity=identity, credential=credential)


def get_auth_service() -> AuthenticationService:
    """Return a service bound to the process-wide nonce store."""
    return AuthenticationService(
        get_nonce_store(),
        get_credential_issuer(),
        ChallengeConfig.from_settings(),
    )
