"""Canonical EIP-4361 challenge messages.

Rendering and parsing go through :class:`siwe.SiweMessage`. ``build_challenge``
is pure: identical inputs render identical text, byte for byte.
``parse_challenge`` accepts only text that re-renders to itself, so the
message a client returns can be cross-checked against the challenge that was
issued for its nonce.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum

from eth_utils import is_hex_address, to_checksum_address
from siwe import SiweMessage

from siwe_gate.core.errors import InvalidAddress, MalformedMessage
from siwe_gate.core.settings import settings

MIN_NONCE_LENGTH = 8


def normalize_address(address: str) -> str:
    """Return the lowercased form of a ``0x``-prefixed 20-byte hex address.

    Raises:
        InvalidAddress: For empty input or the wrong length or charset.
    """
    if not isinstance(address, str):
        raise InvalidAddress("Address must be a string")
    cleaned = address.strip()
    if not cleaned:
        raise InvalidAddress("Address is required")
    if not cleaned.startswith("0x") or not is_hex_address(cleaned):
        raise InvalidAddress("Address must be 0x followed by 40 hex characters")
    return cleaned.lower()


def is_valid_nonce(nonce: str) -> bool:
    return len(nonce) >= MIN_NONCE_LENGTH and nonce.isascii() and nonce.isalnum()


def truncate_to_millis(value: datetime) -> datetime:
    value = value.astimezone(UTC)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def format_timestamp(value: datetime) -> str:
    """Render an ISO-8601 UTC timestamp with millisecond precision."""
    value = value.astimezone(UTC)
    return value.strftime("%Y-%m-%dT%H:%M:%S") + f".{value.microsecond // 1000:03d}Z"


def parse_timestamp(field: str, raw: object) -> datetime:
    """Read a timestamp field back, requiring the form ``format_timestamp`` emits."""
    if isinstance(raw, datetime):
        value = raw
    else:
        try:
            value = datetime.fromisoformat(str(raw))
        except ValueError as err:
            raise MalformedMessage(f"Invalid {field} timestamp") from err
        if value.tzinfo is None or format_timestamp(value) != str(raw):
            raise MalformedMessage(f"Invalid {field} timestamp")
    if value.tzinfo is None:
        raise MalformedMessage(f"Invalid {field} timestamp")
    return value.astimezone(UTC)


@dataclass(frozen=True)
class ChallengeMessage:
    """Structured fields of a Sign-In with Ethereum message."""

    domain: str
    address: str
    statement: str
    uri: str
    version: str
    chain_id: int
    nonce: str
    issued_at: datetime
    expiration_time: datetime

    @property
    def normalized_address(self) -> str:
        return self.address.lower()

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expiration_time

    def to_siwe(self) -> SiweMessage:
        return SiweMessage(
            domain=self.domain,
            address=self.address,
            statement=self.statement or None,
            uri=self.uri,
            version=self.version,
            chain_id=self.chain_id,
            nonce=self.nonce,
            issued_at=format_timestamp(self.issued_at),
            expiration_time=format_timestamp(self.expiration_time),
        )

    def prepare(self) -> str:
        """Render the canonical text the wallet signs."""
        return self.to_siwe().prepare_message()


@dataclass(frozen=True)
class ChallengeConfig:
    """Server-controlled fields embedded in every challenge message."""

    domain: str
    uri: str
    chain_id: int
    statement: str = ""
    version: str = "1"

    @classmethod
    def from_settings(cls) -> ChallengeConfig:
        return cls(
            domain=settings.siwe_domain,
            uri=settings.siwe_uri,
            chain_id=settings.siwe_chain_id,
            statement=settings.siwe_statement,
            version=settings.siwe_version,
        )

    def build(
        self,
        address: str,
        nonce: str,
        *,
        issued_at: datetime,
        ttl: timedelta,
    ) -> ChallengeMessage:
        return build_challenge(
            address,
            nonce,
            domain=self.domain,
            uri=self.uri,
            ttl=ttl,
            issued_at=issued_at,
            chain_id=self.chain_id,
            statement=self.statement,
            version=self.version,
        )


def build_challenge(
    address: str,
    nonce: str,
    *,
    domain: str,
    uri: str,
    ttl: timedelta,
    issued_at: datetime,
    chain_id: int,
    statement: str = "",
    version: str = "1",
) -> ChallengeMessage:
    """Build a challenge message; ``expiration_time`` is ``issued_at + ttl``.

    Raises:
        InvalidAddress: If ``address`` is malformed.
        ValueError: If another field could not survive a render/parse round trip.
    """
    normalized = normalize_address(address)
    if not domain or any(ch.isspace() for ch in domain):
        raise ValueError("Domain must be a non-empty token without whitespace")
    if "\n" in statement or "\r" in statement:
        raise ValueError("Statement must be a single line")
    if not is_valid_nonce(nonce):
        raise ValueError("Nonce must be at least 8 alphanumeric characters")
    if ttl <= timedelta(0):
        raise ValueError("TTL must be positive")
    issued = truncate_to_millis(issued_at)
    message = ChallengeMessage(
        domain=domain,
        address=to_checksum_address(normalized),
        statement=statement,
        uri=uri,
        version=version,
        chain_id=int(chain_id),
        nonce=nonce,
        issued_at=issued,
        expiration_time=truncate_to_millis(issued + ttl),
    )
    try:
        message.to_siwe()
    except ValueError as err:
        raise ValueError(f"Challenge fields are not valid EIP-4361: {err}") from err
    return message


def parse_challenge(text: str) -> ChallengeMessage:
    """Parse the canonical text produced by :meth:`ChallengeMessage.prepare`.

    Raises:
        MalformedMessage: If the text does not parse, carries fields this
            service never issues, or is not the canonical rendering of its
            own fields.
    """
    if not isinstance(text, str) or not text:
        raise MalformedMessage("Message is empty")
    try:
        parsed = SiweMessage.from_message(message=text, abnf=False)
    except (ValueError, TypeError) as err:
        raise MalformedMessage("Message is not a valid EIP-4361 message") from err

    if parsed.expiration_time is None:
        raise MalformedMessage("Missing Expiration Time field")
    if not is_valid_nonce(parsed.nonce):
        raise MalformedMessage("Nonce must be at least 8 alphanumeric characters")
    address = str(parsed.address)
    if to_checksum_address(address) != address:
        raise MalformedMessage("Address is not EIP-55 checksummed")

    version = parsed.version
    message = ChallengeMessage(
        domain=parsed.domain,
        address=address,
        statement=parsed.statement or "",
        uri=str(parsed.uri),
        version=str(version.value if isinstance(version, Enum) else version),
        chain_id=int(parsed.chain_id),
        nonce=parsed.nonce,
        issued_at=parse_timestamp("Issued At", parsed.issued_at),
        expiration_time=parse_timestamp("Expiration Time", parsed.expiration_time),
    )
    try:
        canonical = message.prepare()
    except ValueError as err:
        raise MalformedMessage("Message fields are not valid") from err
    if canonical != text:
        raise MalformedMessage("Message is not in canonical form")
    return message
