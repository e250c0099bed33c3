"""Redis client for agreement-creation idempotency keys.

A create request may carry an idempotency key. The key is claimed with
SET NX before the deposit is taken, so of two overlapping requests only one
proceeds. Once the agreement is committed the claim is replaced by its id;
if the create fails the claim is released.

Usage:
    from escrow_ledger.infrastructure.redis_client import get_redis, close_redis

    redis = get_redis()
    await redis.set("key", "value", ex=3600)
"""

from __future__ import annotations

import redis.asyncio as aioredis

from escrow_ledger.config import get_settings
from escrow_ledger.logging_config import get_logger

logger = get_logger(__name__)

_redis_client: aioredis.Redis | None = None

_IDEMPOTENCY_PREFIX = "escrow:idempotency:"


async def init_redis() -> aioredis.Redis:
    """Initialize and return the Redis client. Called during app startup."""
    global _redis_client
    settings = get_settings()
    client = aioredis.from_url(settings.redis_url, decode_responses=True)
    # Verify connectivity before publishing the client
    await client.ping()
    _redis_client = client
    logger.info("redis.connected", url=settings.redis_url)
    return _redis_client


def get_redis() -> aioredis.Redis:
    """Return the Redis client singleton. Must call init_redis() first."""
    if _redis_client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis_client


def is_redis_ready() -> bool:
    return _redis_client is not None


async def close_redis() -> None:
    """Close the Redis connection. Called during app shutdown."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        logger.info("redis.disconnected")
        _redis_client = None


# --- Idempotency Helpers ---

_PENDING = "pending"


def _idempotency_key(key: str) -> str:
    return f"{_IDEMPOTENCY_PREFIX}{key}"


async def claim_idempotency_key(key: str) -> bool:
    """Atomically claim a key for a create in progress.

    Returns False if the key is already claimed or already maps to an agreement.
    """
    settings = get_settings()
    redis = get_redis()
    claimed = await redis.set(
        _idempotency_key(key),
        _PENDING,
        nx=True,
        ex=settings.redis_idempotency_ttl_seconds,
    )
    return bool(claimed)


async def release_idempotency_key(key: str) -> None:
    """Drop a claim whose create failed, so the request can be retried."""
    redis = get_redis()
    await redis.delete(_idempotency_key(key))


async def remember_idempotent_agreement(key: str, agreement_id: int) -> None:
    """Replace a claim with the id of the committed agreement."""
    settings = get_settings()
    redis = get_redis()
    await redis.set(
        _idempotency_key(key),
        str(agreement_id),
        ex=settings.redis_idempotency_ttl_seconds,
    )
