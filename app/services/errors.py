# app/services/errors.py
"""
Error taxonomy shared by the relay, the stream decoder, the store and the
chat session controller. Every error carries the HTTP status it maps to and a
message that is safe to show to the caller.
"""
from __future__ import annotations

from typing import Optional


class MemeMindError(Exception):
    status_code: int = 500
    default_message: str = "Unknown error"

    def __init__(self, message: Optional[str] = None, *, status_code: Optional[int] = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ConfigurationError(MemeMindError):
    """Relay misconfiguration (missing upstream credential)."""


# ---- Upstream (AI gateway) answers, as translated by the relay ----
class UpstreamError(MemeMindError):
    default_message = "AI gateway error"


class UpstreamRateLimited(UpstreamError):
    status_code = 429
    default_message = "Rate limits exceeded, please try again later."


class UpstreamQuotaExceeded(UpstreamError):
    status_code = 402
    default_message = "Payment required, please add funds to your AI gateway workspace."


class UpstreamGatewayError(UpstreamError):
    status_code = 500


def upstream_error_for_status(status: int) -> UpstreamError:
    if status == 429:
        return UpstreamRateLimited()
    if status == 402:
        return UpstreamQuotaExceeded()
    return UpstreamGatewayError()


# ---- Relay answers, as seen by the chat client ----
class RelayError(MemeMindError):
    default_message = "Failed to get AI response"


_RELAY_MESSAGES = {
    429: "Rate limit exceeded. Please try again later.",
    402: "AI credits depleted. Please try again later.",
}


def relay_error_for_status(status: int) -> RelayError:
    return RelayError(_RELAY_MESSAGES.get(status), status_code=status)


# ---- Decoding / persistence / auth / turn control ----
class TruncatedStreamError(MemeMindError):
    """Stream ended with undecodable frames and without a [DONE] marker."""

    default_message = "The response stream was cut off"

    def __init__(self, tail: str = "", message: Optional[str] = None):
        self.tail = tail
        super().__init__(message)


class PersistenceError(MemeMindError):
    default_message = "Storage error"


class AuthError(MemeMindError):
    status_code = 401
    default_message = "Invalid login credentials"


class TurnRejected(MemeMindError):
    status_code = 409
    default_message = "Message rejected"
