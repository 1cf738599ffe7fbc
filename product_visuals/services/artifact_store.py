# product_visuals/services/artifact_store.py
import base64
from abc import ABC, abstractmethod

import orjson
import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from product_visuals.data.settings import settings
from product_visuals.errors import ArtifactStorageError

logger = structlog.get_logger(__name__)

KEY_PREFIX = "artifact:"


def artifact_key(job_id: str, index: int, kind: str) -> str:
    return f"{job_id}_{index}_{kind}"


def encode_key(key: str) -> str:
    return base64.urlsafe_b64encode(key.encode("ascii")).decode("ascii")


def decode_key(encoded: str) -> str:
    """Raises ValueError for anything that is not a url-safe base64 ascii key."""
    try:
        return base64.urlsafe_b64decode(encoded.encode("ascii")).decode("ascii")
    except (TypeError, UnicodeError) as e:
        raise ValueError(f"Invalid artifact id: {encoded}") from e


def artifact_url(key: str, base_url: str | None = None) -> str:
    base = (base_url or str(settings.web.base_url)).rstrip("/")
    return f"{base}/artifacts/{encode_key(key)}"


class ArtifactStore(ABC):
    """Stores generated images and hands back a reference clients can fetch."""

    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: str) -> str:
        """Stores the image and returns its artifact reference (a URL)."""

    @abstractmethod
    async def get(self, key: str) -> tuple[bytes, str] | tuple[None, None]:
        ...


class RedisArtifactStore(ArtifactStore):
    """Images are kept in Redis as base64 JSON and served by GET /artifacts/{id}."""

    def __init__(self, redis: Redis, ttl_s: int | None = None, base_url: str | None = None) -> None:
        self.redis = redis
        self.ttl_s = ttl_s or settings.generation.artifact_ttl_s
        self.base_url = base_url

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        payload = orjson.dumps({
            "content_type": content_type,
            "data": base64.b64encode(data).decode("ascii"),
        })
        try:
            await self.redis.set(KEY_PREFIX + key, payload, ex=self.ttl_s)
        except RedisError as e:
            raise ArtifactStorageError(f"Could not store artifact {key}: {e}") from e
        logger.debug("Artifact cached in Redis", key=key, size=len(data))
        return artifact_url(key, self.base_url)

    async def get(self, key: str) -> tuple[bytes, str] | tuple[None, None]:
        cached = await self.redis.get(KEY_PREFIX + key)
        if not cached:
            logger.warning("Requested artifact not in Redis", key=key)
            return None, None
        try:
            payload = orjson.loads(cached)
            return base64.b64decode(payload["data"]), payload["content_type"]
        except (orjson.JSONDecodeError, KeyError, TypeError, ValueError):
            logger.exception("Could not decode artifact payload from Redis", key=key)
            return None, None


class InMemoryArtifactStore(ArtifactStore):
    def __init__(self, base_url: str = "http://testserver") -> None:
        self.base_url = base_url
        self.items: dict[str, tuple[bytes, str]] = {}

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        self.items[key] = (data, content_type)
        return artifact_url(key, self.base_url)

    async def get(self, key: str) -> tuple[bytes, str] | tuple[None, None]:
        return self.items.get(key, (None, None))
