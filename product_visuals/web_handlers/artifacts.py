# product_visuals/web_handlers/artifacts.py
from typing import TYPE_CHECKING

import structlog
from aiohttp import web

from product_visuals.services.artifact_store import decode_key

if TYPE_CHECKING:
    from product_visuals.services.artifact_store import ArtifactStore

logger = structlog.get_logger(__name__)


async def serve_artifact(req: web.Request) -> web.Response:
    """
    Serve a generated image from the artifact store.

    Raises:
        web.HTTPBadRequest: If the id is not valid url-safe base64.
        web.HTTPNotFound: If the artifact is unknown or expired.
    """
    encoded_id = req.match_info.get("encoded_id")
    if not encoded_id:
        raise web.HTTPBadRequest(reason="ID is missing")

    try:
        key = decode_key(encoded_id)
    except ValueError:
        logger.warning("Failed to decode artifact id", encoded_id=encoded_id)
        raise web.HTTPBadRequest(reason="Invalid ID format") from None

    store: ArtifactStore = req.app["artifact_store"]
    data, content_type = await store.get(key)
    if data is None:
        raise web.HTTPNotFound(reason="Artifact not found")

    return web.Response(
        body=data,
        content_type=content_type or "application/octet-stream",
        headers={"Cache-Control": "public, max-age=86400"},
    )


routes = [
    web.get("/artifacts/{encoded_id}", serve_artifact),
]
