import os

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
ROOT_DIR = os.path.dirname(os.path.dirname(BASE_DIR))

# ---- AI gateway (upstream completion API) ----
# The credential is looked up on every relay call, not at import time.
UPSTREAM_API_KEY_ENV = "LOVABLE_API_KEY"
GATEWAY_URL = os.getenv("MEMEMIND_GATEWAY_URL", "https://ai.gateway.lovable.dev/v1/chat/completions")
MODEL = "google/gemini-2.5-flash"

CONNECT_TIMEOUT = float(os.getenv("MEMEMIND_CONNECT_TIMEOUT", "10"))  # seconds
POOL_MAXSIZE = int(os.getenv("MEMEMIND_POOL_MAXSIZE", "20"))

# ---- Relay endpoint ----
RELAY_PREFIX = "/functions/v1"
RELAY_PATH = "/mememind-chat"
RELAY_URL_PATH = RELAY_PREFIX + RELAY_PATH
RELAY_URL = os.getenv("MEMEMIND_RELAY_URL", f"http://127.0.0.1:8000{RELAY_URL_PATH}")

# ---- Frontend ----
PUBLIC_ORIGIN = os.getenv("MEMEMIND_PUBLIC_ORIGIN", "http://localhost:8080").rstrip("/")
CORS_ORIGINS = [o.strip() for o in os.getenv("MEMEMIND_CORS_ORIGINS", "*").split(",") if o.strip()]

# ---- Conversations ----
DEFAULT_TITLE = "New Chat"
TITLE_MAX_CHARS = 30


def upstream_api_key() -> str | None:
    return os.getenv(UPSTREAM_API_KEY_ENV) or None
