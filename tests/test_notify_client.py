import asyncio
import json

import httpx
import pytest

from khe_api.errors import DeliveryError
from khe_api.notify_client import mail_client, push_client, templates
from khe_api.notify_client.push_client import PushClient, build_message


def test_build_message_targets_topic():
    assert build_message("/tickets", "create", {"_id": "t1"}) == {
        "to": "/topics/tickets",
        "data": {"action": "create", "document": {"_id": "t1"}},
    }
    assert build_message("tickets", "delete", {})["to"] == "/topics/tickets"


def test_mock_push_does_no_io():
    assert asyncio.run(PushClient("/tickets").send("create", {"_id": "t1"})) is None


def test_gcm_push_posts_topic_message(monkeypatch):
    monkeypatch.setattr(push_client, "PUSH_PROVIDER", "gcm")
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.headers["Authorization"], json.loads(request.content)))
        return httpx.Response(200, json={"message_id": 42})

    client = PushClient("/tickets", transport=httpx.MockTransport(handler))
    result = asyncio.run(client.send("update", {"_id": "t1"}))

    assert result == {"message_id": 42}
    assert seen[0][0].startswith("key=")
    assert seen[0][1]["to"] == "/topics/tickets"
    assert seen[0][1]["data"]["action"] == "update"


def test_gcm_http_error_becomes_delivery_error(monkeypatch):
    monkeypatch.setattr(push_client, "PUSH_PROVIDER", "gcm")
    client = PushClient("/tickets", transport=httpx.MockTransport(lambda r: httpx.Response(401, text="bad key")))

    with pytest.raises(DeliveryError):
        asyncio.run(client.send("create", {}))


def test_http_mail_posts_message(monkeypatch):
    monkeypatch.setattr(mail_client, "MAIL_PROVIDER", "http")
    monkeypatch.setattr(mail_client, "MAIL_API_URL", "https://mail.example/send")
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((str(request.url), json.loads(request.content)))
        return httpx.Response(202, json={"queued": True})

    subject, body = templates.DENIED
    asyncio.run(mail_client.MailClient(transport=httpx.MockTransport(handler)).send(subject, body, ["a@kent.edu"]))

    url, payload = seen[0]
    assert url == "https://mail.example/send"
    assert payload["to"] == ["a@kent.edu"]
    assert payload["subject"] == "KHE Status: Denied"


def test_mail_quietly_swallows_delivery_errors(monkeypatch):
    async def boom(self, subject, body, recipients):
        raise DeliveryError("down")

    monkeypatch.setattr(mail_client.MailClient, "send", boom)
    asyncio.run(mail_client.mail_quietly("s", "b", ["a@kent.edu"]))


def test_templates_by_status():
    assert templates.for_status("approved") == templates.APPROVED
    assert templates.for_status("pending") is None
    assert templates.for_status(None) is None
