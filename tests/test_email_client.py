import json

import httpx
import pytest

from app.integrations.email_client import EmailClient, EmailError
from app.services.emails import INVITE_EMAIL_KIND, UPGRADE_EMAIL_KIND, make_email_handlers


def _recording_transport(status_code=200):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code, json={"id": "em_1"})

    return httpx.MockTransport(handler), requests


@pytest.mark.asyncio
async def test_send_posts_to_email_api():
    transport, requests = _recording_transport()
    client = EmailClient("https://mail.test/", "key_1", sender="Partners <p@x.test>", transport=transport)

    sent = await client.send(to="a@x.test", subject="Hi", text="Body", reply_to="r@x.test")

    assert sent is True
    [req] = requests
    assert str(req.url) == "https://mail.test/emails"
    assert req.headers["authorization"] == "Bearer key_1"
    assert json.loads(req.content) == {
        "from": "Partners <p@x.test>",
        "to": ["a@x.test"],
        "subject": "Hi",
        "text": "Body",
        "reply_to": "r@x.test",
    }


@pytest.mark.asyncio
async def test_unconfigured_client_skips(caplog):
    transport, requests = _recording_transport()
    client = EmailClient("", "", transport=transport)

    assert await client.send(to="a@x.test", subject="Hi", text="Body") is False
    assert requests == []
    assert "Email not configured" in caplog.text


@pytest.mark.asyncio
async def test_api_error_raises():
    transport, _ = _recording_transport(status_code=500)
    client = EmailClient("https://mail.test", "key_1", transport=transport)

    with pytest.raises(EmailError):
        await client.send(to="a@x.test", subject="Hi", text="Body")


@pytest.mark.asyncio
async def test_handlers_render_upgrade_and_invite():
    transport, requests = _recording_transport()
    handlers = make_email_handlers(EmailClient("https://mail.test", "key_1", transport=transport))

    await handlers[UPGRADE_EMAIL_KIND]({"email": "a@x.test", "name": "Alice", "plan": "Pro"}, None)
    await handlers[INVITE_EMAIL_KIND](
        {"email": "b@x.test", "role": "member", "workspace_id": "ws_1", "workspace_name": "Acme"}, None
    )

    subjects = [json.loads(r.content)["subject"] for r in requests]
    assert subjects == ["Thank you for upgrading to Pro!", "You've been invited to join Acme"]
    assert "Hi Alice," in json.loads(requests[0].content)["text"]
