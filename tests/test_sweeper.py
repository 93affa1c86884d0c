# tests/test_sweeper.py
"""Tests for the background nonce sweep worker."""

from __future__ import annotations

import asyncio

import pytest

from siwe_gate.core.errors import InternalFault
from siwe_gate.services.nonce_store import InMemoryNonceStore, NonceState
from siwe_gate.services.sweeper import NonceSweepWorker

ADDRESS = "0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed"


@pytest.mark.asyncio
async def test_sweep_once_removes_expired(nonce_store: InMemoryNonceStore, clock) -> None:
    stale = nonce_store.issue(ADDRESS)
    clock.advance(600)
    fresh = nonce_store.issue(ADDRESS)
    worker = NonceSweepWorker(nonce_store, interval_seconds=60)

    assert await worker.sweep_once() == 1
    assert nonce_store.validate(stale.value).state is NonceState.NOT_FOUND
    assert nonce_store.validate(fresh.value).is_live


@pytest.mark.asyncio
async def test_worker_runs_until_stopped(nonce_store: InMemoryNonceStore, clock) -> None:
    nonce_store.issue(ADDRESS)
    clock.advance(601)
    worker = NonceSweepWorker(nonce_store, interval_seconds=0.05)

    await worker.start()
    assert worker.running
    for _ in range(50):
        if len(nonce_store) == 0:
            break
        await asyncio.sleep(0.02)
    await worker.stop()

    assert len(nonce_store) == 0
    assert not worker.running


@pytest.mark.asyncio
async def test_worker_survives_store_faults(clock) -> None:
    class FlakyStore(InMemoryNonceStore):
        calls = 0

        def sweep(self) -> int:
            FlakyStore.calls += 1
            raise InternalFault("database unavailable")

    worker = NonceSweepWorker(FlakyStore(600, clock=clock), interval_seconds=0.01)
    await worker.start()
    for _ in range(50):
        if FlakyStore.calls >= 2:
            break
        await asyncio.sleep(0.01)
    await worker.stop()

    assert FlakyStore.calls >= 2


@pytest.mark.asyncio
async def test_stop_without_start_is_noop(nonce_store: InMemoryNonceStore) -> None:
    worker = NonceSweepWorker(nonce_store, interval_seconds=1)
    await worker.stop()
    assert not worker.running
