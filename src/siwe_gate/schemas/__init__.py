"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .auth import (
    ChallengeRequest,
    ChallengeResponse,
    ErrorDetail,
    SessionResponse,
    VerifyRequest,
    VerifyResponse,
)

__all__ = [
    "ChallengeRequest", "ChallengeResponse",
    "ErrorDetail",
    "SessionResponse",
    "VerifyRequest", "VerifyResponse",
]
