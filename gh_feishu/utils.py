"""the beautiful world start from here."""

from __future__ import annotations

import base64
import hashlib
import hmac
from typing import AbstractSet

SIGNATURE_PREFIX = "sha256="
COMMENT_EXCERPT_LIMIT = 200
ELLIPSIS = "..."


def gh_signature(secret: str, body: bytes) -> str:
    """Return the ``X-Hub-Signature-256`` value GitHub sends for ``body``."""
    mac = hmac.new(secret.encode(), msg=body, digestmod=hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + mac


def gh_verify(secret: str, body: bytes, signature_header: str | None) -> bool:
    """
    Verify GitHub webhook HMAC signature (X-Hub-Signature-256).

    The digest is computed over the raw request body, so this must run before
    the body is parsed. Comparison is constant time once lengths match.

    Returns
    -------
    bool
        True if valid, False otherwise (including a missing header or secret).
    """
    if not secret or not signature_header:
        return False
    expected = gh_signature(secret, body).encode()
    provided = signature_header.encode("utf-8", "replace")
    if len(provided) != len(expected):
        return False
    return hmac.compare_digest(provided, expected)


def feishu_sign(timestamp: str | int, secret: str) -> str:
    """
    Feishu custom bot signature.

    ``base64(HMAC-SHA256(key=secret, msg="{timestamp}\\n{secret}"))``.
    Unrelated to :func:`gh_verify`: different message and base64, not hex.
    """
    string_to_sign = f"{timestamp}\n{secret}"
    mac = hmac.new(
        secret.encode(), msg=string_to_sign.encode(), digestmod=hashlib.sha256
    ).digest()
    return base64.b64encode(mac).decode()


def repo_allowed(repo_full_name: str, allow_list: AbstractSet[str]) -> bool:
    """Empty allow-list means every repository is allowed."""
    return not allow_list or repo_full_name in allow_list


def truncate(text: str | None, limit: int = COMMENT_EXCERPT_LIMIT) -> str:
    t = text or ""
    if len(t) > limit:
        return t[:limit] + ELLIPSIS
    return t
