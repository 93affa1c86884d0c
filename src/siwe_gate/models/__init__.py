"""SQLAlchemy models for SIWE Gate."""

from .nonce import AuthNonce

__all__ = ["AuthNonce"]
