# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-session-credentials")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("NONCE_SWEEP_ENABLED", "false")

from siwe_gate.api.v1 import dependencies
from siwe_gate.api.v1.endpoints import auth as auth_endpoints
from siwe_gate.db.session import Base
from siwe_gate.main import app as fastapi_app
from siwe_gate.services.auth import AuthenticationService
from siwe_gate.services.challenge import ChallengeConfig
from siwe_gate.services.credentials import CredentialIssuer
from siwe_gate.services.nonce_store import InMemoryNonceStore, SqlNonceStore
from siwe_gate.services.verifier import SignatureVerifier

TEST_DOMAIN = "app.example.org"
TEST_URI = "https://app.example.org/login"
TEST_CHAIN_ID = 11155111
TEST_STATEMENT = "Sign in to the example app."
TEST_SECRET = "unit-test-signing-secret"
NONCE_TTL_SECONDS = 600
CREDENTIAL_TTL_SECONDS = 24 * 60 * 60

# Fixed private keys keep addresses stable across runs.
PRIMARY_KEY = "0x" + "4c" * 32
SECONDARY_KEY = "0x" + "7a" * 32


class FrozenClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


def sign_text(account: LocalAccount, message: str) -> str:
    """Return a 0x-prefixed personal_sign signature over ``message``."""
    signed = account.sign_message(encode_defunct(text=message))
    return "0x" + bytes(signed.signature).hex()


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 3, 14, 12, 0, 0, 123456, tzinfo=UTC))


@pytest.fixture()
def wallet() -> LocalAccount:
    return Account.from_key(PRIMARY_KEY)


@pytest.fixture()
def other_wallet() -> LocalAccount:
    return Account.from_key(SECONDARY_KEY)


@pytest.fixture()
def signer() -> Callable[[LocalAccount, str], str]:
    return sign_text


@pytest.fixture()
def nonce_store(clock: FrozenClock) -> InMemoryNonceStore:
    return InMemoryNonceStore(NONCE_TTL_SECONDS, clock=clock)


@pytest.fixture()
def engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def sql_nonce_store(engine: Engine, clock: FrozenClock) -> SqlNonceStore:
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    return SqlNonceStore(factory, NONCE_TTL_SECONDS, clock=clock)


@pytest.fixture()
def challenge_config() -> ChallengeConfig:
    return ChallengeConfig(
        domain=TEST_DOMAIN,
        uri=TEST_URI,
        chain_id=TEST_CHAIN_ID,
        statement=TEST_STATEMENT,
    )


@pytest.fixture()
def credential_issuer(clock: FrozenClock) -> CredentialIssuer:
    return CredentialIssuer(
        TEST_SECRET,
        ttl_seconds=CREDENTIAL_TTL_SECONDS,
        issuer=TEST_DOMAIN,
        clock=clock,
    )


@pytest.fixture()
def verifier(
    nonce_store: InMemoryNonceStore,
    challenge_config: ChallengeConfig,
    clock: FrozenClock,
) -> SignatureVerifier:
    return SignatureVerifier(nonce_store, challenge_config, clock=clock)


@pytest.fixture()
def auth_service(
    nonce_store: InMemoryNonceStore,
    credential_issuer: CredentialIssuer,
    challenge_config: ChallengeConfig,
    clock: FrozenClock,
) -> AuthenticationService:
    return AuthenticationService(nonce_store, credential_issuer, challenge_config, clock=clock)


@pytest.fixture()
def app(
    auth_service: AuthenticationService,
    credential_issuer: CredentialIssuer,
) -> Iterator[FastAPI]:
    fastapi_app.dependency_overrides[auth_endpoints.get_auth_service_dep] = lambda: auth_service
    fastapi_app.dependency_overrides[dependencies.get_credential_issuer_dep] = (
        lambda: credential_issuer
    )
    try:
        yield fastapi_app
    finally:
        fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client
