"""System and transparency endpoints for the SIWE Gate API."""

from __future__ import annotations

from fastapi import APIRouter

from siwe_gate.core.settings import settings

router = APIRouter(prefix="/system", tags=["system", "transparency"])


@router.get("/config")
async def get_public_config() -> dict[str, object]:
    """Return a sanitized snapshot of public runtime configuration.

    Excludes secrets and connection strings; clients can use it to check the
    domain, chain and lifetimes they will see in challenges.
    """
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
            "debug": settings.debug,
        },
        "siwe": {
            "domain": settings.siwe_domain,
            "uri": settings.siwe_uri,
            "statement": settings.siwe_statement,
            "version": settings.siwe_version,
            "chain_id": settings.siwe_chain_id,
        },
        "nonce": {
            "backend": settings.nonce_backend,
            "ttl_seconds": settings.nonce_ttl_seconds,
            "sweep_enabled": settings.nonce_sweep_enabled,
            "sweep_interval_seconds": settings.nonce_sweep_interval_seconds,
        },
        "credential": {
            "jwt_algorithm": settings.jwt_algorithm,
            "access_token_expire_minutes": settings.access_token_expire_minutes,
        },
    }
