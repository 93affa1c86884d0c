"""Authentication-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class ChallengeRequest(BaseModel):
    """Request to obtain a sign-in challenge."""

    address: str = Field(..., description="0x-prefixed 20-byte hex address")


class ChallengeResponse(BaseModel):
    """Challenge the client must sign with personal_sign."""

    message: str = Field(..., description="Canonical EIP-4361 message text")
    nonce: str = Field(..., description="Single-use nonce embedded in the message")
    expires_at: datetime = Field(..., description="When the challenge stops being accepted")


class VerifyRequest(BaseModel):
    """Signed challenge submitted for verification."""

    message: str = Field(..., description="Challenge text exactly as signed")
    signature: str = Field(..., description="Hex-encoded 65-byte signature")
    address: str | None = Field(None, description="Optional address the client claims")


class VerifyResponse(BaseModel):
    """Session credential returned after a successful verification."""

    credential: str = Field(..., description="JWT session credential")
    address: str = Field(..., description="Verified lowercased address")
    token_type: str = Field("bearer", description="Token type (always 'bearer')")
    expires_at: datetime = Field(..., description="Credential expiry")


class SessionResponse(BaseModel):
    """Identity asserted by the presented credential."""

    address: str
    issued_at: datetime
    expires_at: datetime


class ErrorDetail(BaseModel):
    """Machine-readable error payload returned under ``detail``."""

    kind: str = Field(..., description="Stable error kind")
    message: str | None = Field(None, description="Human-readable explanation")
