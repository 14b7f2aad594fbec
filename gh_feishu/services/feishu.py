"""Yet another feishu services"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import httpx

from gh_feishu.errors import DeliveryError
from gh_feishu.schemas import (
    Link,
    Mention,
    NotificationJob,
    PlainText,
    RenderedMessage,
    RichPost,
    Segment,
    Text,
)
from gh_feishu.utils import feishu_sign

logger = logging.getLogger(__name__)

POST_LOCALE = "zh_cn"

JSONDict = dict[str, Any]


def _segment(segment: Segment) -> JSONDict:
    if isinstance(segment, Link):
        return {"tag": "a", "text": segment.label, "href": segment.url}
    if isinstance(segment, Mention):
        return {
            "tag": "at",
            "user_id": segment.recipient_id,
            "user_name": segment.recipient_name,
        }
    return {"tag": "text", "text": segment.text}


def build_payload(message: RenderedMessage) -> JSONDict:
    """
    Feishu custom bot body for ``message``.

    Each rich segment becomes its own paragraph.
    """
    if isinstance(message, PlainText):
        return {"msg_type": "text", "content": {"text": message.body}}
    if isinstance(message, RichPost):
        return {
            "msg_type": "post",
            "content": {
                "post": {
                    POST_LOCALE: {
                        "title": message.title,
                        "content": [[_segment(s)] for s in message.segments],
                    }
                }
            },
        }
    raise TypeError(f"Unsupported message type: {type(message).__name__}")


def sign_payload(payload: JSONDict, secret: str, *, now: Optional[float] = None) -> JSONDict:
    ts = str(int(time.time() if now is None else now))
    signed = dict(payload)
    signed["timestamp"] = ts
    signed["sign"] = feishu_sign(ts, secret)
    return signed


async def send_message(
    webhook_url: str,
    message: RenderedMessage,
    sign_secret: Optional[str] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> JSONDict:
    """
    POST ``message`` to the Feishu webhook.

    Raises
    ------
    DeliveryError
        Non-2xx status, or a 2xx reply whose JSON ``code`` is non-zero.
    """
    payload = build_payload(message)
    if sign_secret:
        payload = sign_payload(payload, sign_secret)

    async with httpx.AsyncClient(transport=transport) as client:
        resp = await client.post(
            webhook_url,
            json=payload,
            headers={"Content-Type": "application/json"},
        )
    if resp.status_code < 200 or resp.status_code >= 300:
        raise DeliveryError(resp.status_code, resp.text)

    try:
        data = resp.json()
    except ValueError:
        return {}
    if isinstance(data, dict) and data.get("code", 0) not in (0, None):
        raise DeliveryError(resp.status_code, resp.text)
    return data if isinstance(data, dict) else {}


async def deliver(
    job: NotificationJob,
    webhook_url: str,
    sign_secret: Optional[str] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> None:
    """
    Detached delivery of one job.

    Runs after the inbound response has been sent; outcomes go to the log
    only.
    """
    try:
        await send_message(webhook_url, job.message, sign_secret, transport=transport)
    except DeliveryError as exc:
        logger.error(
            "Feishu send failed for %s in %s (delivery %s): %s",
            job.label,
            job.repository_full_name,
            job.delivery_id or "-",
            exc,
        )
    except Exception:
        logger.exception(
            "Feishu send crashed for %s in %s (delivery %s)",
            job.label,
            job.repository_full_name,
            job.delivery_id or "-",
        )
    else:
        logger.info(
            "Feishu notified for %s in %s (delivery %s)",
            job.label,
            job.repository_full_name,
            job.delivery_id or "-",
        )
