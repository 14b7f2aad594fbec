"""
Pytest configuration and shared fixtures.
"""

import json
from types import MappingProxyType

import httpx
import pytest
from fastapi.testclient import TestClient

from gh_feishu.app import create_app
from gh_feishu.config import Recipient, Settings
from gh_feishu.utils import gh_signature

WEBHOOK_SECRET = "test-webhook-secret"
FEISHU_URL = "https://open.feishu.test/open-apis/bot/v2/hook/abc"


class FeishuRecorder:
    """Stand-in for the Feishu webhook; records every POST it receives."""

    def __init__(self, status_code=200, reply=None):
        self.status_code = status_code
        self.reply = reply if reply is not None else {"code": 0, "msg": "success"}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.reply)

    @property
    def payloads(self):
        return [json.loads(r.content) for r in self.requests]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def make_settings(**overrides) -> Settings:
    values = {
        "github_webhook_secret": WEBHOOK_SECRET,
        "feishu_webhook_url": FEISHU_URL,
        "allowed_repos": frozenset({"octo/widgets"}),
        "identities": MappingProxyType(
            {"alice": Recipient(recipient_id="ou_alice", recipient_name="Alice")}
        ),
    }
    values.update(overrides)
    return Settings(**values)


def signed_headers(body: bytes, event: str, secret: str = WEBHOOK_SECRET) -> dict:
    return {
        "X-Hub-Signature-256": gh_signature(secret, body),
        "X-GitHub-Event": event,
        "X-GitHub-Delivery": "72d3162e-cc78-11e3-81ab-4c9367dc0958",
        "Content-Type": "application/json",
    }


@pytest.fixture
def issue_closed_payload():
    """Sample GitHub webhook payload for an issues.closed event."""
    return {
        "action": "closed",
        "issue": {
            "number": 7,
            "title": "Widgets fall over",
            "html_url": "https://github.com/octo/widgets/issues/7",
            "user": {"login": "alice"},
        },
        "repository": {"full_name": "octo/widgets"},
        "sender": {"login": "bob"},
    }


@pytest.fixture
def issue_comment_payload():
    """Sample GitHub webhook payload for an issue_comment.created event."""
    return {
        "action": "created",
        "issue": {
            "number": 7,
            "title": "Widgets fall over",
            "html_url": "https://github.com/octo/widgets/issues/7",
            "user": {"login": "alice"},
        },
        "comment": {
            "body": "Reproduced on main.",
            "html_url": "https://github.com/octo/widgets/issues/7#issuecomment-1",
            "user": {"login": "carol"},
        },
        "repository": {"full_name": "octo/widgets"},
        "sender": {"login": "carol"},
    }


@pytest.fixture
def feishu():
    return FeishuRecorder()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def client(settings, feishu):
    """
    Provide a test client wired to a recording Feishu transport.

    Background tasks finish before TestClient returns, so outbound calls are
    visible on ``feishu`` right after each request.
    """
    return TestClient(create_app(settings, transport=feishu.transport()))
