"""Decoding, routing and rendering of GitHub webhook events."""

from __future__ import annotations

import json
from typing import Any, Callable, Mapping, Optional, Sequence

from gh_feishu.config import Recipient
from gh_feishu.errors import DecodeError
from gh_feishu.schemas import (
    Comment,
    Envelope,
    Issue,
    Link,
    Mention,
    NotificationJob,
    PlainText,
    RenderedMessage,
    RichPost,
    Segment,
    Text,
)
from gh_feishu.utils import truncate

UNKNOWN = "unknown"

Identities = Mapping[str, Recipient]
Handler = Callable[[Envelope, Identities], RenderedMessage]


def _dig(data: Any, path: Sequence[str]) -> Any:
    current = data
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
        if current is None:
            return None
    return current


def _str_or_none(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (Mapping, list)):
        return None
    text = str(value)
    return text or None


def _text(value: Any) -> str:
    return _str_or_none(value) or ""


# =============================================================================
# Decoding
# =============================================================================
def _issue_number(value: Any) -> int | str | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return _str_or_none(value)


def _issue(data: Any) -> Optional[Issue]:
    if not isinstance(data, Mapping):
        return None
    return Issue(
        number=_issue_number(data.get("number")),
        title=_text(data.get("title")),
        url=_text(data.get("html_url")),
        opener_login=_str_or_none(_dig(data, ("user", "login"))),
    )


def _comment(data: Any) -> Optional[Comment]:
    if not isinstance(data, Mapping):
        return None
    body = data.get("body")
    return Comment(
        author_login=_str_or_none(_dig(data, ("user", "login"))),
        body=body if isinstance(body, str) else None,
        url=_text(data.get("html_url")),
    )


def decode_event(
    raw_body: bytes,
    *,
    event_type: str | None = None,
    delivery_id: str | None = None,
    signature: str | None = None,
) -> Envelope:
    """
    Parse a verified webhook body into an :class:`Envelope`.

    Odd scalar fields are kept as text (a non-numeric issue number renders
    as given) rather than rejecting the whole event.

    Raises
    ------
    DecodeError
        Body is not UTF-8 JSON or is not a JSON object.
    """
    try:
        payload = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DecodeError(f"Bad JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise DecodeError("Bad JSON: expected an object")

    return Envelope(
        event_type=event_type or "",
        action=_text(payload.get("action")),
        repository_full_name=_text(_dig(payload, ("repository", "full_name"))),
        delivery_id=delivery_id or "",
        signature=signature,
        sender_login=_str_or_none(_dig(payload, ("sender", "login"))),
        issue=_issue(payload.get("issue")),
        comment=_comment(payload.get("comment")),
        raw_body=raw_body,
    )


# =============================================================================
# Rendering
# =============================================================================
def _number(issue: Issue) -> str:
    return str(issue.number) if issue.number is not None else "?"


def render_issue_closed(envelope: Envelope, identities: Identities) -> RichPost:
    """
    Rich post for a closed issue.

    The opener is mentioned only when their login has a Feishu mapping.
    """
    issue = envelope.issue or Issue()
    segments: list[Segment] = [
        Text(f"Issue #{_number(issue)} closed"),
        Text(issue.title),
        Link("view details", issue.url),
        Text(f"by {envelope.sender_login or UNKNOWN}"),
    ]
    recipient = identities.get(issue.opener_login) if issue.opener_login else None
    if recipient is not None:
        segments.append(Mention(recipient.recipient_id, recipient.recipient_name))
    return RichPost(title=f"✅ [{envelope.repository_full_name}]", segments=tuple(segments))


def render_issue_comment(envelope: Envelope, identities: Identities) -> PlainText:
    issue = envelope.issue or Issue()
    comment = envelope.comment or Comment()
    body = truncate(comment.body)
    return PlainText(
        f"💬 [{envelope.repository_full_name}] Issue #{_number(issue)} new comment\n"
        f"{issue.title}\n"
        f"{comment.author_login or UNKNOWN}: {body}\n"
        f"{comment.url}"
    )


# =============================================================================
# Routing
# =============================================================================
ROUTES: dict[tuple[str, str], Handler] = {
    ("issues", "closed"): render_issue_closed,
    ("issue_comment", "created"): render_issue_comment,
}


def route(
    event_type: str,
    action: str,
    envelope: Envelope,
    identities: Identities | None = None,
) -> NotificationJob | None:
    """
    Select the handler for ``(event_type, action)`` and render its message.

    Returns ``None`` for pairs without a handler; the caller acknowledges
    those without sending anything.
    """
    handler = ROUTES.get((event_type, action))
    if handler is None:
        return None
    message = handler(envelope, identities or {})
    return NotificationJob(
        message=message,
        event_type=event_type,
        action=action,
        repository_full_name=envelope.repository_full_name,
        delivery_id=envelope.delivery_id,
    )
