"""
MongoDB bridge package and diagnostics app factory.

Exposes the bridge facade and builds a FastAPI application that a host
management console can query for connection info, help records, and
per-collection document counts. The lifespan hook releases the bridge's
client on shutdown.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, APIRouter

from mongodb_bridge.bridge import MongodbBridge
from mongodb_bridge.config import BridgeConfig
from mongodb_bridge.errors import BridgeError, DocumentIdEmptyError, DocumentIdsNotListError

__all__ = [
    "BridgeConfig",
    "BridgeError",
    "DocumentIdEmptyError",
    "DocumentIdsNotListError",
    "MongodbBridge",
    "create_app",
]

logger = logging.getLogger("mongodb_bridge.app")


def _create_lifespan(bridge: MongodbBridge):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Bridge ready (tracking_code=%s, enabled=%s)", bridge.get_tracking_code(), bridge.enabled)
        yield
        bridge.close()
        logger.info("Closed bridge client")

    return lifespan


def _create_router(bridge: MongodbBridge) -> APIRouter:
    router = APIRouter(prefix="/api/bridge", tags=["bridge"])

    @router.get("/info")
    async def info():
        return bridge.get_service_info()

    @router.get("/help")
    async def service_help():
        return bridge.get_service_help()

    @router.get("/summary")
    async def summary():
        result = await bridge.get_document_summary()
        logger.info("Summary for %d collections", len(result["count"]))
        return result

    return router


def create_app(
    config: Optional[BridgeConfig] = None,
    bridge: Optional[MongodbBridge] = None,
) -> FastAPI:
    """
    Build the diagnostics app around a bridge (created from config when not given).
    """
    bridge = bridge or MongodbBridge(config or BridgeConfig.from_env())

    app = FastAPI(
        title="MongoDB Bridge",
        version="0.1.0",
        lifespan=_create_lifespan(bridge),
    )
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    app.state.bridge = bridge

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    if bridge.enabled:
        app.include_router(_create_router(bridge))
    else:
        logger.warning("Bridge disabled; diagnostics routes not mounted")

    return app
