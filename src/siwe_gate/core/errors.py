"""Error taxonomy for the challenge/response flow.

Every error carries a stable machine-readable ``kind`` and the HTTP status the
API layer reports it with. Client-driven failures are 4xx; storage and signing
faults are ``InternalFault`` and never expose their detail to callers.
"""

from __future__ import annotations

from typing import ClassVar


class AuthError(Exception):
    """Base class for authentication failures."""

    kind: ClassVar[str] = "AuthError"
    status_code: ClassVar[int] = 400

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.kind)

    @property
    def public_message(self) -> str | None:
        """Message safe to return to the client."""
        return str(self)

    def to_detail(self) -> dict[str, str]:
        detail = {"kind": self.kind}
        message = self.public_message
        if message is not None:
            detail["message"] = message
        return detail


class InvalidAddress(AuthError):
    kind = "InvalidAddress"


class MalformedMessage(AuthError):
    kind = "MalformedMessage"


class ExpiredChallenge(AuthError):
    kind = "ExpiredChallenge"


class InvalidNonce(AuthError):
    """Nonce unknown or already used; the two cases are not told apart."""

    kind = "InvalidNonce"


class SignatureMismatch(AuthError):
    kind = "SignatureMismatch"


class InternalFault(AuthError):
    """Storage or signing-key failure."""

    kind = "InternalFault"
    status_code = 500

    @property
    def public_message(self) -> str | None:
        return None


class CredentialError(AuthError):
    """Base class for session credential decode failures."""

    kind = "CredentialError"
    status_code = 401


class CredentialMalformed(CredentialError):
    kind = "Malformed"


class CredentialExpired(CredentialError):
    kind = "Expired"


class CredentialSignatureInvalid(CredentialError):
    kind = "SignatureInvalid"
