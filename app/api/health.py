from __future__ import annotations

import logging
from typing import List, Dict, Any
from fastapi import APIRouter, Request

from app.core import config

logger = logging.getLogger("mememind.api.health")
router = APIRouter()


@router.get("/ping")
def ping():
    logger.info("GET /health/ping")
    return {
        "ok": True,
        "model": config.MODEL,
        # never the key itself
        "upstreamConfigured": config.upstream_api_key() is not None,
    }


@router.get("/routes")
def list_routes(request: Request):
    """
    Introspect all registered routes to verify there are no collisions.
    """
    app = request.app
    out: List[Dict[str, Any]] = []
    for r in app.routes:
        path = getattr(r, "path", None)
        methods = getattr(r, "methods", None)
        name = getattr(r, "name", None)
        if path and methods:
            out.append({"path": path, "methods": sorted(list(methods)), "name": name})
    out.sort(key=lambda x: (x["path"], ",".join(x["methods"])))
    logger.info("GET /health/routes count=%d", len(out))
    return {"ok": True, "routes": out}
