"""
Monitoring and health check API routes
"""

from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from config import config, get_logger
from database.hub import Hub
from exceptions import HubError
from server.dependencies import get_hub
from server.metrics import get_metrics_text, metrics

logger = get_logger(__name__)

VERSION = "1.0.0"

router = APIRouter()


@router.get("/")
async def root():
    """API status and info"""
    return {
        "service": "topicless hub API",
        "status": "running",
        "version": VERSION,
        "description": "Questions, polls, daily ideas and would-you-rather debates",
        "endpoints": {
            "auth": "POST /api/auth/register, POST /api/auth/login, GET /api/auth/me",
            "questions": "GET/POST /api/questions, /api/questions/{id}/answers",
            "polls": "GET/POST /api/polls, POST /api/polls/{id}/vote",
            "ideas": "GET/POST /api/ideas, GET /api/ideas/leaderboard, GET /api/ideas/random",
            "wyr": "GET/POST /api/wyr, POST /api/wyr/{id}/vote, /api/wyr/{id}/comments",
            "blog": "GET /api/blog/posts, GET /api/blog/subscriber-count",
            "account": "GET /api/account/content",
            "live": "GET /api/live/{collection} - server-sent events",
            "health": "GET /api/health - Health check with detailed status",
            "metrics": "GET /metrics - Prometheus metrics",
        },
    }


@router.get("/api/health")
async def health_check(hub: Hub = Depends(get_hub)):
    """Health check endpoint"""
    health_status: Dict[str, Any] = {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "version": VERSION,
        "checks": {},
    }

    try:
        await hub.health_check()
        health_status["checks"]["store"] = {
            "status": "healthy",
            "backend": hub.store.backend,
            "live_subscriptions": hub.store.subscription_count(),
        }
    except HubError as e:
        metrics.record_error("store", e)
        logger.error("health check failed", error=str(e))
        health_status["checks"]["store"] = {"status": "unhealthy", "error": e.message}
        health_status["status"] = "unhealthy"

    # Configuration check
    health_status["checks"]["configuration"] = {
        "status": "healthy" if config.JWT_SECRET else "degraded",
        "is_development": config.is_development(),
        "auth_enabled": bool(config.JWT_SECRET),
    }
    if not config.JWT_SECRET and health_status["status"] == "healthy":
        health_status["status"] = "degraded"

    return health_status


@router.get("/metrics")
async def prometheus_metrics():
    """Prometheus metrics endpoint

    Returns metrics in Prometheus text format for scraping.
    """
    return Response(content=get_metrics_text(), media_type="text/plain")
