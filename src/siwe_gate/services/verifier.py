"""Verification of signed challenge messages."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from siwe_gate.core.errors import (
    ExpiredChallenge,
    InvalidNonce,
    MalformedMessage,
    SignatureMismatch,
)
from siwe_gate.core.security import addresses_match, recover_address
from siwe_gate.db.time import Clock, utcnow
from siwe_gate.services.challenge import ChallengeConfig, normalize_address, parse_challenge
from siwe_gate.services.nonce_store import NonceState, NonceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedIdentity:
    """Address proven by a consumed challenge."""

    address: str
    issued_at: datetime
    nonce: str


class SignatureVerifier:
    """Checks a ``(message, signature)`` pair and consumes its nonce.

    The checks run in a fixed order: structure, stateless expiry, signer
    recovery, then the nonce store. A message is only accepted if it is the
    exact challenge issued for its nonce. Only the last step mutates state,
    and it does so through a single compare-and-swap, so one nonce can never
    back two successful verifications.
    """

    def __init__(
        self,
        nonce_store: NonceStore,
        config: ChallengeConfig,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._store = nonce_store
        self._config = config
        self._clock = clock or utcnow

    def verify(
        self,
        message: str,
        signature: str,
        claimed_address: str | None = None,
    ) -> VerifiedIdentity:
        """Verify ``signature`` over ``message`` and consume the embedded nonce.

        Args:
            message: Challenge text exactly as the wallet signed it.
            signature: Hex-encoded 65-byte EIP-191 signature.
            claimed_address: Optional address the caller says it controls.

        Returns:
            The verified lowercased address and the issuance time recorded
            for the nonce.

        Raises:
            MalformedMessage: The message does not parse, names another domain,
                or differs from the challenge issued for its nonce.
            InvalidAddress: ``claimed_address`` is malformed.
            ExpiredChallenge: The message or its nonce has expired.
            SignatureMismatch: The signature was not produced by the message address.
            InvalidNonce: The nonce is unknown, consumed, or bound to another address.
        """
        parsed = parse_challenge(message)
        if parsed.domain != self._config.domain:
            logger.warning("Rejected challenge for foreign domain %r", parsed.domain)
            raise MalformedMessage("Message was issued for a different domain")

        claimed = normalize_address(claimed_address) if claimed_address is not None else None
        nonce_tag = parsed.nonce[:8]

        if parsed.is_expired(self._clock()):
            logger.info("Rejected expired challenge (nonce %s…)", nonce_tag)
            raise ExpiredChallenge("Challenge has expired")

        try:
            recovered = recover_address(message, signature)
        except ValueError as err:
            logger.info("Signature could not be recovered (nonce %s…): %s", nonce_tag, err)
            raise SignatureMismatch("Signature could not be verified") from err

        if not addresses_match(recovered, parsed.address):
            logger.warning("Recovered signer does not match message address (nonce %s…)", nonce_tag)
            raise SignatureMismatch("Signature does not match message address")
        if claimed is not None and not addresses_match(recovered, claimed):
            logger.warning("Recovered signer does not match claimed address (nonce %s…)", nonce_tag)
            raise SignatureMismatch("Signature does not match claimed address")

        lookup = self._store.validate(parsed.nonce)
        if lookup.state is NonceState.NOT_FOUND:
            logger.warning("Nonce %s… not found", nonce_tag)
            raise InvalidNonce("Invalid or already used nonce")
        if lookup.state is NonceState.CONSUMED:
            logger.warning("Nonce %s… already consumed; replay rejected", nonce_tag)
            raise InvalidNonce("Invalid or already used nonce")
        if lookup.state is NonceState.EXPIRED:
            logger.info("Nonce %s… expired in store", nonce_tag)
            raise ExpiredChallenge("Challenge has expired")

        record = lookup.record
        if record is None or record.address != parsed.normalized_address:
            logger.warning("Nonce %s… was issued for a different address", nonce_tag)
            raise InvalidNonce("Invalid or already used nonce")

        issued = self._config.build(
            record.address,
            record.value,
            issued_at=record.issued_at,
            ttl=record.expires_at - record.issued_at,
        )
        if issued.prepare() != message:
            logger.warning("Message for nonce %s… differs from the issued challenge", nonce_tag)
            raise MalformedMessage("Message does not match the issued challenge")

        if not self._store.consume(parsed.nonce):
            logger.warning("Nonce %s… lost a concurrent consume; treated as replay", nonce_tag)
            raise InvalidNonce("Invalid or already used nonce")

        logger.info("Verified %s… with nonce %s…", parsed.normalized_address[:10], nonce_tag)
        return VerifiedIdentity(
            address=parsed.normalized_address,
            issued_at=record.issued_at,
            nonce=parsed.nonce,
        )
