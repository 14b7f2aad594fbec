"""Event envelope and rendered message schemas."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict


class Issue(BaseModel):
    """Issue fields consumed from ``issues`` / ``issue_comment`` payloads."""

    model_config = ConfigDict(frozen=True)

    number: Optional[Union[int, str]] = None
    title: str = ""
    url: str = ""
    opener_login: Optional[str] = None


class Comment(BaseModel):
    model_config = ConfigDict(frozen=True)

    author_login: Optional[str] = None
    body: Optional[str] = None
    url: str = ""


class Envelope(BaseModel):
    """
    One decoded GitHub webhook delivery.

    Only the fields the relay consumes are kept; ``raw_body`` is the exact
    byte string ``signature`` was verified against. ``event_type``,
    ``delivery_id`` and ``signature`` come from the request headers.
    """

    model_config = ConfigDict(frozen=True)

    event_type: str = ""
    action: str = ""
    repository_full_name: str = ""
    delivery_id: str = ""
    signature: Optional[str] = None
    sender_login: Optional[str] = None
    issue: Optional[Issue] = None
    comment: Optional[Comment] = None
    raw_body: bytes = b""


@dataclass(frozen=True)
class Text:
    text: str


@dataclass(frozen=True)
class Link:
    label: str
    url: str


@dataclass(frozen=True)
class Mention:
    recipient_id: str
    recipient_name: str = ""


Segment = Union[Text, Link, Mention]


@dataclass(frozen=True)
class PlainText:
    body: str


@dataclass(frozen=True)
class RichPost:
    title: str
    segments: tuple[Segment, ...] = ()


RenderedMessage = Union[PlainText, RichPost]


@dataclass(frozen=True)
class NotificationJob:
    """A rendered message waiting to be sent, tagged for logging."""

    message: RenderedMessage
    event_type: str
    action: str
    repository_full_name: str
    delivery_id: str = ""

    @property
    def label(self) -> str:
        return f"{self.event_type}.{self.action}"
