from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional

import requests

from app.core import config
from app.services.errors import relay_error_for_status

logger = logging.getLogger("mememind.relay_client")


class RelayStream:
    """An open relay response. Iterate `chunks()` once, then close (or use `with`)."""

    def __init__(self, resp: requests.Response):
        self._resp = resp
        self.closed = False

    def chunks(self) -> Iterator[bytes]:
        try:
            for chunk in self._resp.iter_content(chunk_size=None):
                if chunk:
                    yield chunk
        finally:
            self.close()

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._resp.close()

    def __enter__(self) -> "RelayStream":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class RelayClient:
    """Calls the relay endpoint the way the browser client does."""

    def __init__(
        self,
        url: str = config.RELAY_URL,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.api_key = api_key
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        h = {"Content-Type": "application/json"}
        if self.api_key:
            h["Authorization"] = f"Bearer {self.api_key}"
        return h

    def open(self, messages: List[dict]) -> RelayStream:
        """
        Start a relay call. Raises RelayError (with the user-facing text for
        429/402/other) on a non-2xx answer, before any body is consumed.
        """
        resp = self.session.post(
            self.url,
            headers=self._headers(),
            json={"messages": messages},
            stream=True,
            timeout=(config.CONNECT_TIMEOUT, None),
        )
        if not 200 <= resp.status_code < 300:
            resp.close()
            logger.warning("relay answered %s", resp.status_code)
            raise relay_error_for_status(resp.status_code)
        return RelayStream(resp)
