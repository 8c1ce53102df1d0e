from __future__ import annotations

import logging
from typing import Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter

from app.core import config
from app.core.prompts import system_message
from app.services.errors import ConfigurationError, upstream_error_for_status

logger = logging.getLogger("mememind.upstream")

_session: Optional[requests.Session] = None


def _get_session() -> requests.Session:
    global _session
    if _session is None:
        s = requests.Session()
        # no retries: rate limits and gateway errors go straight back to the caller
        adapter = HTTPAdapter(max_retries=0, pool_maxsize=config.POOL_MAXSIZE)
        s.mount("https://", adapter)
        s.mount("http://", adapter)
        _session = s
    return _session


def _headers(api_key: str) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }


def build_payload(messages: List[dict]) -> Dict:
    """Fixed model + persona prompt in front of the caller's history."""
    return {
        "model": config.MODEL,
        "messages": [system_message(), *messages],
        "stream": True,
    }


def open_stream(messages: List[dict]) -> requests.Response:
    """
    POST the conversation to the AI gateway and return the still-open
    streaming response. The caller owns the response and must close it.

    Raises ConfigurationError when the credential is missing and an
    UpstreamError subclass for any non-2xx answer.
    """
    api_key = config.upstream_api_key()
    if not api_key:
        logger.error("%s is not configured", config.UPSTREAM_API_KEY_ENV)
        raise ConfigurationError(f"{config.UPSTREAM_API_KEY_ENV} is not configured")

    logger.info("Sending request to AI gateway with %d messages", len(messages))

    s = _get_session()
    resp = s.post(
        config.GATEWAY_URL,
        headers=_headers(api_key),
        json=build_payload(messages),
        stream=True,
        # no read timeout: the stream lives as long as the gateway keeps it open
        timeout=(config.CONNECT_TIMEOUT, None),
    )

    if not 200 <= resp.status_code < 300:
        try:
            error_text = resp.text[:300]
        finally:
            resp.close()
        logger.error("AI gateway error: %s %s", resp.status_code, error_text)
        raise upstream_error_for_status(resp.status_code)

    logger.info("Streaming response from AI gateway")
    return resp
