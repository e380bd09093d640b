"""
Live updates API - server-sent events over store subscriptions

GET /api/live/{collection} streams the whole collection as `data: <json>`
events: one immediately, then one after every write below it. Idle streams
get a `: keepalive` comment every HUB_LIVE_KEEPALIVE_SECONDS. The store
subscription is released when the client disconnects.
"""

import asyncio
import json
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from config import config, get_logger
from database.hub import Hub
from database.repositories_async.posts import SUBSCRIBER_COUNT_PATH
from database.repositories_async.wyr import hide_results
from database.store import DocumentStore
from exceptions import NotFoundError
from server.dependencies import get_hub
from server.metrics import metrics

logger = get_logger(__name__).bind(component="live")

router = APIRouter(prefix="/api/live", tags=["live"])

# Public collections only; users, credentials and vote records stay private
LIVE_COLLECTIONS = {
    "questions": "questions",
    "answers": "answers",
    "polls": "polls",
    "ideas": "ideas",
    "wyr_questions": "wyr_questions",
    "admin_posts": "admin_posts",
    "subscriber_count": SUBSCRIBER_COUNT_PATH,
}

# Streams are anonymous, so per-document fields only voters may see are dropped
LIVE_REDACTIONS = {
    "wyr_questions": hide_results,
}


def redact_snapshot(collection: str, snapshot: Any) -> Any:
    redact = LIVE_REDACTIONS.get(collection)
    if redact is None or not isinstance(snapshot, dict):
        return snapshot
    return {
        doc_id: redact(doc) if isinstance(doc, dict) else doc
        for doc_id, doc in snapshot.items()
    }


def format_event(collection: str, snapshot: Any) -> str:
    payload = json.dumps({"collection": collection, "data": snapshot}, ensure_ascii=False)
    return f"data: {payload}\n\n"


async def live_events(
    store: DocumentStore,
    collection: str,
    path: str,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    keepalive_seconds: float = config.LIVE_KEEPALIVE_SECONDS,
) -> AsyncIterator[str]:
    """Yield SSE frames for every snapshot of path until the client leaves."""
    metrics.live_subscriptions.labels(collection=collection).inc()
    logger.info("live stream opened", collection=collection)
    try:
        async with store.subscribe(path) as subscription:
            while True:
                if is_disconnected is not None and await is_disconnected():
                    break
                try:
                    snapshot = await subscription.next(timeout=keepalive_seconds)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                yield format_event(collection, redact_snapshot(collection, snapshot))
    finally:
        metrics.live_subscriptions.labels(collection=collection).dec()
        logger.info("live stream closed", collection=collection)


@router.get("/{collection}")
async def stream_collection(collection: str, request: Request, hub: Hub = Depends(get_hub)):
    path = LIVE_COLLECTIONS.get(collection)
    if path is None:
        raise NotFoundError("Unknown live collection", kind="collection", item_id=collection)

    return StreamingResponse(
        live_events(hub.store, collection, path, request.is_disconnected),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
