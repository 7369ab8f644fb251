"""
Health Checks
=============
Store connectivity check for readiness probes.
"""

import time
from typing import Optional

import structlog
from pydantic import BaseModel

logger = structlog.get_logger(__name__)


class ComponentHealth(BaseModel):
    status: str
    latency_ms: Optional[float] = None
    error: Optional[str] = None


async def check_store(store) -> ComponentHealth:
    """Check key-value store connectivity and latency."""
    try:
        start = time.time()
        reachable = await store.ping()
        latency = (time.time() - start) * 1000
        if not reachable:
            return ComponentHealth(status="disconnected", latency_ms=round(latency, 2))
        return ComponentHealth(status="connected", latency_ms=round(latency, 2))
    except Exception as e:
        logger.error("Store health check failed", error=str(e))
        return ComponentHealth(status="error", error=str(e))
