"""
Hafez Quraan Backend — SendGrid Dispatcher Tests
==================================================

What:  Tests for SendGridDispatcher against httpx.MockTransport (no network).

What we test:
    ✅ Request shape: bearer key, recipient, sender, subject, code in HTML body
    ✅ Missing API key fails without a request
    ✅ Dispatcher readiness comes from Settings.mail_configured
    ✅ 401/403 is reported as an authorization failure
    ✅ Other error statuses carry SendGrid's message
    ✅ Transport errors become UpstreamServiceError
    ✅ The code is HTML-escaped in the email body
"""

import json

import httpx
import pytest

from hafez_api.config import Settings
from hafez_api.exceptions import UpstreamServiceError
from hafez_api.services.mail_service import OTP_SUBJECT, SendGridDispatcher, render_otp_email


def make_dispatcher(handler, api_key: str = "SG.test-key") -> SendGridDispatcher:
    settings = Settings(database_url="sqlite+aiosqlite://", sendgrid_api_key=api_key)
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SendGridDispatcher(settings, client=client)


class TestSendGridDispatcher:

    @pytest.mark.asyncio
    async def test_successful_send(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["request"] = request
            return httpx.Response(202)

        dispatcher = make_dispatcher(handler)
        await dispatcher.send_otp("user@example.com", "482913")

        request = captured["request"]
        assert request.method == "POST"
        assert str(request.url) == "https://api.sendgrid.com/v3/mail/send"
        assert request.headers["Authorization"] == "Bearer SG.test-key"

        body = json.loads(request.content)
        assert body["personalizations"] == [{"to": [{"email": "user@example.com"}]}]
        assert body["from"] == {"email": "info@hafezquraan.com", "name": "Hafez Quraan"}
        assert body["subject"] == OTP_SUBJECT
        assert body["content"][0]["type"] == "text/html"
        assert "482913" in body["content"][0]["value"]
        await dispatcher.client.aclose()

    @pytest.mark.asyncio
    async def test_missing_api_key_sends_nothing(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(202)

        dispatcher = make_dispatcher(handler, api_key="  ")
        with pytest.raises(UpstreamServiceError, match="Email service is not configured"):
            await dispatcher.send_otp("user@example.com", "123456")
        assert calls == []
        await dispatcher.client.aclose()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_rejected_key(self, status):
        dispatcher = make_dispatcher(
            lambda request: httpx.Response(status, json={"errors": [{"message": "denied"}]})
        )
        with pytest.raises(UpstreamServiceError) as exc_info:
            await dispatcher.send_otp("user@example.com", "123456")
        assert exc_info.value.authorization_failed is True
        assert exc_info.value.status_code == status
        await dispatcher.client.aclose()

    @pytest.mark.asyncio
    async def test_provider_error_message_passed_through(self):
        dispatcher = make_dispatcher(
            lambda request: httpx.Response(
                400,
                json={"errors": [{"message": "The from address does not match a verified Sender Identity."}]},
            )
        )
        with pytest.raises(UpstreamServiceError) as exc_info:
            await dispatcher.send_otp("user@example.com", "123456")
        assert exc_info.value.authorization_failed is False
        assert exc_info.value.message == (
            "Failed to send email: The from address does not match a verified Sender Identity."
        )
        await dispatcher.client.aclose()

    @pytest.mark.asyncio
    async def test_non_json_error_body(self):
        dispatcher = make_dispatcher(lambda request: httpx.Response(502, text="Bad Gateway"))
        with pytest.raises(UpstreamServiceError, match="HTTP 502"):
            await dispatcher.send_otp("user@example.com", "123456")
        await dispatcher.client.aclose()

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        dispatcher = make_dispatcher(handler)
        with pytest.raises(UpstreamServiceError, match="connection refused"):
            await dispatcher.send_otp("user@example.com", "123456")
        await dispatcher.client.aclose()

    @pytest.mark.asyncio
    async def test_close_leaves_injected_client_open(self):
        dispatcher = make_dispatcher(lambda request: httpx.Response(202))
        await dispatcher.close()
        assert dispatcher.client.is_closed is False
        await dispatcher.client.aclose()

    @pytest.mark.asyncio
    async def test_close_releases_owned_client(self):
        dispatcher = SendGridDispatcher(Settings(database_url="sqlite+aiosqlite://"))
        await dispatcher.close()
        assert dispatcher.client.is_closed is True


class TestMailConfigured:

    @pytest.mark.parametrize("api_key, expected", [("SG.key", True), ("", False), ("   ", False)])
    def test_dispatcher_follows_settings(self, api_key, expected):
        settings = Settings(database_url="sqlite+aiosqlite://", sendgrid_api_key=api_key)
        assert settings.mail_configured is expected
        dispatcher = SendGridDispatcher(settings, client=httpx.AsyncClient())
        assert dispatcher.configured is expected


class TestRenderOtpEmail:

    def test_code_is_escaped(self):
        rendered = render_otp_email("<b>1</b>")
        assert "<b>1</b>" not in rendered
        assert "&lt;b&gt;1&lt;/b&gt;" in rendered

    def test_mentions_expiry(self):
        assert "expires in 5 minutes" in render_otp_email("123456")
