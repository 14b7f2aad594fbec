"""
Tests for the Feishu notifier.
"""

import asyncio
import logging

import httpx
import pytest

from conftest import FEISHU_URL, FeishuRecorder
from gh_feishu.errors import DeliveryError
from gh_feishu.schemas import Link, Mention, NotificationJob, PlainText, RichPost, Text
from gh_feishu.services.feishu import build_payload, deliver, send_message, sign_payload
from gh_feishu.utils import feishu_sign

POST = RichPost(
    title="✅ [octo/widgets]",
    segments=(
        Text("Issue #7 closed"),
        Link("view details", "https://github.com/octo/widgets/issues/7"),
        Mention("ou_alice", "Alice"),
    ),
)


class TestBuildPayload:
    def test_plain_text(self):
        assert build_payload(PlainText("hi")) == {
            "msg_type": "text",
            "content": {"text": "hi"},
        }

    def test_rich_post(self):
        payload = build_payload(POST)
        assert payload["msg_type"] == "post"
        post = payload["content"]["post"]["zh_cn"]
        assert post["title"] == "✅ [octo/widgets]"
        assert post["content"] == [
            [{"tag": "text", "text": "Issue #7 closed"}],
            [{"tag": "a", "text": "view details", "href": "https://github.com/octo/widgets/issues/7"}],
            [{"tag": "at", "user_id": "ou_alice", "user_name": "Alice"}],
        ]

    def test_unknown_message_type(self):
        with pytest.raises(TypeError):
            build_payload("not a message")


def test_sign_payload_adds_timestamp_and_sign():
    signed = sign_payload({"msg_type": "text"}, "s3cret", now=1700000000.9)
    assert signed["timestamp"] == "1700000000"
    assert signed["sign"] == feishu_sign("1700000000", "s3cret")
    assert signed["msg_type"] == "text"


class TestSendMessage:
    def test_posts_json_unsigned(self):
        feishu = FeishuRecorder()
        asyncio.run(send_message(FEISHU_URL, PlainText("hi"), transport=feishu.transport()))

        assert len(feishu.requests) == 1
        request = feishu.requests[0]
        assert request.method == "POST"
        assert str(request.url) == FEISHU_URL
        assert request.headers["content-type"] == "application/json"
        assert feishu.payloads[0] == {"msg_type": "text", "content": {"text": "hi"}}

    def test_signed_payload(self):
        feishu = FeishuRecorder()
        asyncio.run(
            send_message(FEISHU_URL, PlainText("hi"), "s3cret", transport=feishu.transport())
        )
        payload = feishu.payloads[0]
        assert payload["sign"] == feishu_sign(payload["timestamp"], "s3cret")

    def test_http_error_raises_delivery_error(self):
        feishu = FeishuRecorder(status_code=500, reply={"error": "boom"})
        with pytest.raises(DeliveryError) as excinfo:
            asyncio.run(send_message(FEISHU_URL, PlainText("hi"), transport=feishu.transport()))
        assert excinfo.value.status_code == 500
        assert "boom" in excinfo.value.body

    def test_nonzero_code_raises_delivery_error(self):
        feishu = FeishuRecorder(reply={"code": 19021, "msg": "sign match fail"})
        with pytest.raises(DeliveryError) as excinfo:
            asyncio.run(send_message(FEISHU_URL, PlainText("hi"), transport=feishu.transport()))
        assert excinfo.value.status_code == 200
        assert "19021" in excinfo.value.body


class TestDeliver:
    JOB = NotificationJob(
        message=PlainText("hi"),
        event_type="issue_comment",
        action="created",
        repository_full_name="octo/widgets",
        delivery_id="d-9",
    )

    def test_success_is_logged(self, caplog):
        feishu = FeishuRecorder()
        with caplog.at_level(logging.INFO, logger="gh_feishu.services.feishu"):
            asyncio.run(deliver(self.JOB, FEISHU_URL, transport=feishu.transport()))
        assert len(feishu.requests) == 1
        assert "Feishu notified" in caplog.text

    def test_failure_is_logged_not_raised(self, caplog):
        feishu = FeishuRecorder(status_code=403, reply={"msg": "nope"})
        asyncio.run(deliver(self.JOB, FEISHU_URL, transport=feishu.transport()))
        assert "Feishu send failed" in caplog.text
        assert "d-9" in caplog.text

    def test_transport_crash_is_logged_not_raised(self, caplog):
        def refuse(request):
            raise httpx.ConnectError("down", request=request)

        asyncio.run(deliver(self.JOB, FEISHU_URL, transport=httpx.MockTransport(refuse)))

        assert "Feishu send crashed" in caplog.text
        assert "d-9" in caplog.text
        assert "ConnectError" in caplog.text
