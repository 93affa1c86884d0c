# src/siwe_gate/services/__init__.py
"""Business logic services for SIWE Gate."""

from .auth import AuthenticationService
from .credentials import CredentialIssuer
from .nonce_store import InMemoryNonceStore, NonceStore, SqlNonceStore
from .sweeper import NonceSweepWorker
from .verifier import SignatureVerifier

__all__ = [
    "AuthenticationService",
    "CredentialIssuer",
    "InMemoryNonceStore", "NonceStore", "SqlNonceStore",
    "NonceSweepWorker",
    "SignatureVerifier",
]
