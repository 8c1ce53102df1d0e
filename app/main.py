from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging
import os

from app.api import conversations, health, relay, share
from app.auth import routes as auth_routes
from app.core.config import CORS_ORIGINS, RELAY_PREFIX, RELAY_URL_PATH
from app.core.db import create_all
from app.middleware.cors import PathExemptCORSMiddleware
from app.middleware.request_logger import RequestLoggerMiddleware
from app.services.errors import PersistenceError

# ---- Logging config ---------------------------------------------------------
LOG_LEVEL = os.getenv("MEMEMIND_LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s:%(lineno)d - %(message)s",
)
logger = logging.getLogger("mememind.main")
logger.info("Starting MemeMind backend with LOG_LEVEL=%s", LOG_LEVEL)

# ---- FastAPI app ------------------------------------------------------------
app = FastAPI(title="MemeMind Backend")
app.add_middleware(RequestLoggerMiddleware)

# ---- CORS -------------------------------------------------------------------
# The relay answers CORS itself; this covers the REST API.
app.add_middleware(
    PathExemptCORSMiddleware,
    exempt_paths=[RELAY_URL_PATH],
    allow_origins=CORS_ORIGINS,
    allow_credentials="*" not in CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---- Routers ----------------------------------------------------------------
# Streaming relay to the AI gateway
app.include_router(relay.router,         prefix=RELAY_PREFIX, tags=["Relay"])
# Accounts
app.include_router(auth_routes.router)                    # /api/auth/*
# Conversations + messages (owner only) and public share links
app.include_router(conversations.router)                  # /api/conversations/*
app.include_router(share.router)                          # /api/share/*
# Health + introspection
app.include_router(health.router,        prefix="/health", tags=["Health"])

logger.info("Routers registered.")


@app.exception_handler(PersistenceError)
async def _persistence_error(request: Request, exc: PersistenceError):
    logger.error("persistence error on %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse({"detail": exc.message}, status_code=exc.status_code)


# ---- Startup ----------------------------------------------------------------
@app.on_event("startup")
def _startup() -> None:
    # Auto-create tables (safe to run repeatedly)
    create_all()
    logger.info("Startup completed.")
