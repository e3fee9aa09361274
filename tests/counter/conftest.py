from __future__ import annotations

import os
import uuid
from collections.abc import Iterator

import pytest
from redis import Redis

DEFAULT_TEST_REDIS_URL = "redis://127.0.0.1:6379/0"


@pytest.fixture(scope="session")
def redis_url() -> str:
    """
    Redis connection URL for counter tests.

    Set TABLEGATE_TEST_REDIS_URL to point at a disposable Redis.
    """
    return os.environ.get("TABLEGATE_TEST_REDIS_URL", DEFAULT_TEST_REDIS_URL)


@pytest.fixture(scope="session")
def redis_client(redis_url: str) -> Iterator[Redis]:
    """
    Session-scoped Redis client. Tests that need it are skipped when no
    server is reachable.
    """
    client = Redis.from_url(redis_url, decode_responses=False, socket_connect_timeout=1)
    try:
        client.ping()
    except Exception as exc:  # pragma: no cover
        client.close()
        pytest.skip(f"Redis not reachable at {redis_url!r}: {exc}")

    yield client
    client.close()


@pytest.fixture
def redis_prefix(redis_client: Redis, request: pytest.FixtureRequest) -> Iterator[str]:
    prefix = f"tablegate_test:{request.node.name[:30]}:{uuid.uuid4().hex[:10]}"

    yield prefix

    for key in redis_client.scan_iter(match=f"{prefix}:*"):
        redis_client.delete(key)
