"""Relay error types."""

from __future__ import annotations


class RelayError(Exception):
    """Base class for relay failures."""

    status_code = 500


class ConfigError(RelayError):
    """Raised when the inbound secret or the Feishu webhook URL is missing."""

    status_code = 500


class AuthError(RelayError):
    """Raised when the GitHub signature is missing or does not match."""

    status_code = 401


class DecodeError(RelayError):
    """Raised when the webhook body cannot be decoded into an envelope."""

    status_code = 400


class DeliveryError(RelayError):
    """Raised when Feishu rejects or fails a notification."""

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"Feishu webhook failed: {status_code} {body}".rstrip())
        self.status_code = status_code
        self.body = body
