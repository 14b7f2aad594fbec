"""Process configuration, resolved once at startup."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3000
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Recipient:
    """Feishu user a GitHub login is mentioned as."""

    recipient_id: str
    recipient_name: str = ""


@dataclass(frozen=True)
class Settings:
    """App Settings"""

    github_webhook_secret: str = ""
    feishu_webhook_url: str = ""
    feishu_sign_secret: str = ""
    allowed_repos: frozenset[str] = frozenset()
    identities: Mapping[str, Recipient] = field(
        default_factory=lambda: MappingProxyType({})
    )
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    log_level: str = "INFO"

    @property
    def is_configured(self) -> bool:
        return bool(self.github_webhook_secret and self.feishu_webhook_url)


def parse_csv(value: str | None) -> frozenset[str]:
    return frozenset(s.strip() for s in (value or "").split(",") if s.strip())


def _parse_recipient(login: str, raw: Any) -> Recipient | None:
    if isinstance(raw, str) and raw.strip():
        return Recipient(recipient_id=raw.strip(), recipient_name=login)
    if isinstance(raw, Mapping):
        rid = raw.get("id") or raw.get("open_id") or raw.get("user_id")
        if isinstance(rid, str) and rid.strip():
            name = raw.get("name")
            return Recipient(
                recipient_id=rid.strip(),
                recipient_name=name if isinstance(name, str) and name else login,
            )
    return None


def parse_identity_map(value: str | None) -> Mapping[str, Recipient]:
    """
    Parse the GitHub login → Feishu user mapping.

    Accepted shapes
    ---------------
    ``{"octocat": "ou_123"}`` or
    ``{"octocat": {"id": "ou_123", "name": "Octo Cat"}}``

    Malformed JSON degrades to an empty mapping; malformed entries are skipped.
    """
    if not value or not value.strip():
        return MappingProxyType({})
    try:
        data = json.loads(value)
    except json.JSONDecodeError as exc:
        logger.warning("FEISHU_USER_MAP is not valid JSON, ignoring it: %s", exc)
        return MappingProxyType({})
    if not isinstance(data, dict):
        logger.warning("FEISHU_USER_MAP must be a JSON object, ignoring it")
        return MappingProxyType({})

    identities: dict[str, Recipient] = {}
    for login, raw in data.items():
        recipient = _parse_recipient(str(login), raw)
        if recipient is None:
            logger.warning("Skipping malformed FEISHU_USER_MAP entry for %r", login)
            continue
        identities[str(login)] = recipient
    return MappingProxyType(identities)


def _parse_port(value: str | None) -> int:
    try:
        port = int(value or DEFAULT_PORT)
    except (TypeError, ValueError):
        logger.warning("Invalid PORT %r, falling back to %d", value, DEFAULT_PORT)
        return DEFAULT_PORT
    return port if 0 < port < 65536 else DEFAULT_PORT


def _parse_log_level(value: str | None) -> str:
    level = (value or "INFO").strip().upper()
    return level if level in LOG_LEVELS else "INFO"


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """
    Build :class:`Settings` from the environment (``.env`` included).

    Pass ``env`` to read from an explicit mapping instead of ``os.environ``.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    return Settings(
        github_webhook_secret=env.get("GITHUB_WEBHOOK_SECRET", ""),
        feishu_webhook_url=env.get("FEISHU_WEBHOOK_URL", ""),
        feishu_sign_secret=env.get("FEISHU_SIGN_SECRET", ""),
        allowed_repos=parse_csv(env.get("ALLOWED_REPOS")),
        identities=parse_identity_map(env.get("FEISHU_USER_MAP")),
        host=env.get("HOST", "0.0.0.0"),
        port=_parse_port(env.get("PORT")),
        log_level=_parse_log_level(env.get("LOG_LEVEL")),
    )
