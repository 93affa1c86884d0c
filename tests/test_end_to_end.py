# tests/test_end_to_end.py
"""Challenge, sign, verify and decode through the service layer."""

from __future__ import annotations

import pytest

from siwe_gate.core.errors import ExpiredChallenge, InvalidNonce
from tests.conftest import sign_text


def test_full_sign_in_flow(auth_service, credential_issuer, wallet, clock) -> None:
    challenge = auth_service.issue_challenge(wallet.address)
    signature = sign_text(wallet, challenge.message)

    clock.advance(30)
    result = auth_service.sign_in(challenge.message, signature)

    assert result.identity.address == wallet.address.lower()
    assert credential_issuer.decode(result.credential.token).address == wallet.address.lower()

    with pytest.raises(InvalidNonce):
        auth_service.sign_in(challenge.message, signature)

    second = auth_service.issue_challenge(wallet.address)
    second_signature = sign_text(wallet, second.message)
    clock.advance(700)
    with pytest.raises(ExpiredChallenge):
        auth_service.sign_in(second.message, second_signature)


def test_independent_addresses_do_not_interfere(auth_service, wallet, other_wallet) -> None:
    first = auth_service.issue_challenge(wallet.address)
    second = auth_service.issue_challenge(other_wallet.address)

    other_result = auth_service.sign_in(second.message, sign_text(other_wallet, second.message))
    result = auth_service.sign_in(first.message, sign_text(wallet, first.message))

    assert other_result.identity.address == other_wallet.address.lower()
    assert result.identity.address == wallet.address.lower()


def test_earlier_challenge_stays_valid_after_new_one(auth_service, wallet) -> None:
    earlier = auth_service.issue_challenge(wallet.address)
    later = auth_service.issue_challenge(wallet.address)

    assert auth_service.sign_in(earlier.message, sign_text(wallet, earlier.message))
    assert auth_service.sign_in(later.message, sign_text(wallet, later.message))


def test_sql_backed_flow(sql_nonce_store, credential_issuer, challenge_config, wallet, clock) -> None:
    from siwe_gate.services.auth import AuthenticationService

    service = AuthenticationService(sql_nonce_store, credential_issuer, challenge_config, clock=clock)
    challenge = service.issue_challenge(wallet.address)
    signature = sign_text(wallet, challenge.message)

    assert service.sign_in(challenge.message, signature).identity.address == wallet.address.lower()
    with pytest.raises(InvalidNonce):
        service.sign_in(challenge.message, signature)
