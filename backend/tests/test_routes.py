"""
Hafez Quraan Backend — HTTP Endpoint Tests
============================================

What:  End-to-end tests through create_app() with the lifespan running
       against a per-test SQLite database; the mail dispatcher is a fake.

What we test:
    ✅ Liveness endpoints
    ✅ Success and failure envelopes ({success, message} / {success, error})
    ✅ camelCase wire format both ways
    ✅ send-otp validation and provider failures
    ✅ over-long fields and non-code OTP values get the 400 envelope
    ✅ save → load round trip, unknown user defaults
    ✅ log-activity → analytics
    ✅ CORS allow-list and request id header
"""

from datetime import datetime, timezone

import pytest

from hafez_api.exceptions import UpstreamServiceError


class TestHealth:

    @pytest.mark.asyncio
    async def test_root(self, test_client):
        response = await test_client.get("/")
        assert response.status_code == 200
        assert response.json() == {"status": "OK", "message": "Hafez Quraan API is running"}

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "OK"
        assert "timestamp" in data
        assert data["uptime"] >= 0

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get("/", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"


class TestSendOtp:

    @pytest.mark.asyncio
    async def test_success(self, test_client, fake_mailer):
        response = await test_client.post("/send-otp", json={"email": "u@x.com", "otp": "123456"})
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "OTP sent successfully"}
        assert fake_mailer.sent == [("u@x.com", "123456")]

    @pytest.mark.asyncio
    async def test_numeric_otp_accepted(self, test_client, fake_mailer):
        response = await test_client.post("/send-otp", json={"email": "u@x.com", "otp": 654321})
        assert response.status_code == 200
        assert fake_mailer.sent == [("u@x.com", "654321")]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [{}, {"email": "u@x.com"}, {"otp": "123456"}, {"email": "", "otp": "123456"}],
    )
    async def test_missing_fields(self, test_client, fake_mailer, body):
        response = await test_client.post("/send-otp", json=body)
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Email and OTP are required"}
        assert fake_mailer.sent == []

    @pytest.mark.asyncio
    async def test_malformed_email(self, test_client, fake_mailer):
        response = await test_client.post("/send-otp", json={"email": "not-an-email", "otp": "1"})
        assert response.status_code == 400
        assert response.json()["success"] is False
        assert fake_mailer.sent == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("otp", [True, False, 12.5, ["1"]])
    async def test_non_code_otp_rejected(self, test_client, fake_mailer, otp):
        response = await test_client.post("/send-otp", json={"email": "u@x.com", "otp": otp})
        assert response.status_code == 400
        assert response.json()["success"] is False
        assert fake_mailer.sent == []

    @pytest.mark.asyncio
    async def test_provider_failure(self, test_client, fake_mailer):
        fake_mailer.error = UpstreamServiceError(
            message="Failed to send email: the email provider rejected the API key",
            authorization_failed=True,
            status_code=401,
        )
        response = await test_client.post("/send-otp", json={"email": "u@x.com", "otp": "123456"})
        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "error": "Failed to send email: the email provider rejected the API key",
        }


class TestProgressEndpoints:

    @pytest.mark.asyncio
    async def test_save_then_load(self, test_client):
        body = {
            "email": "hafez@example.com",
            "memorized": ["1:1", "2:255"],
            "reviewed": ["2:255"],
            "bookmarked": ["36:1"],
            "recited": [3, 1],
            "language": "ar",
            "reciter": "ar.minshawi",
            "lastViewMode": "juz",
            "lastVerseIndex": 17,
        }
        response = await test_client.post("/save-progress", json=body)
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Progress saved successfully"}

        response = await test_client.get("/load-progress/hafez@example.com")
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert set(data["memorized"]) == {"1:1", "2:255"}
        assert data["reviewed"] == ["2:255"]
        assert data["bookmarked"] == ["36:1"]
        assert data["recited"] == [1, 3]
        assert data["language"] == "ar"
        assert data["reciter"] == "ar.minshawi"
        assert data["lastViewMode"] == "juz"
        assert data["lastVerseIndex"] == 17

    @pytest.mark.asyncio
    async def test_load_unknown_user(self, test_client):
        response = await test_client.get("/load-progress/nobody@example.com")
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "memorized": [],
            "reviewed": [],
            "bookmarked": [],
            "recited": [],
            "language": "en",
            "reciter": "ar.alafasy",
            "lastViewMode": "surah",
            "lastVerseIndex": 0,
        }

    @pytest.mark.asyncio
    async def test_save_without_email(self, test_client):
        response = await test_client.post("/save-progress", json={"memorized": ["1:1"]})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Email is required"}

    @pytest.mark.asyncio
    async def test_save_with_duplicates(self, test_client):
        response = await test_client.post(
            "/save-progress", json={"email": "a@x.com", "recited": [4, 4]}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Duplicate entries in 'recited': 4"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides, field",
        [
            ({"language": "x" * 11}, "language"),
            ({"reciter": "r" * 101}, "reciter"),
            ({"lastViewMode": "m" * 21}, "lastViewMode"),
            ({"memorized": ["1" * 21]}, "memorized"),
        ],
    )
    async def test_over_long_values_rejected(self, test_client, overrides, field):
        response = await test_client.post("/save-progress", json={"email": "a@x.com", **overrides})
        assert response.status_code == 400
        assert response.json()["error"].startswith(field)

        loaded = await test_client.get("/load-progress/a@x.com")
        assert loaded.json()["language"] == "en"

    @pytest.mark.asyncio
    async def test_wrong_body_type_is_400_envelope(self, test_client):
        response = await test_client.post(
            "/save-progress", json={"email": "a@x.com", "recited": ["not-a-page"]}
        )
        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["error"].startswith("recited")


class TestActivityEndpoints:

    @pytest.mark.asyncio
    async def test_log_activity_then_analytics(self, test_client):
        before = datetime.now(timezone.utc)
        response = await test_client.post(
            "/log-activity",
            json={"email": "a@x.com", "activityType": "verse_memorized", "metadata": {"verse": "1:1"}},
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Activity logged successfully"}

        response = await test_client.get("/analytics", params={"timeframe": "today"})
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["totalUsers"] == 1
        assert data["activeToday"] == 1
        assert data["activeWeek"] == 1
        assert data["recentActivity"][0]["email"] == "a@x.com"
        assert data["recentActivity"][0]["activityType"] == "verse_memorized"
        assert data["recentActivity"][0]["metadata"] == {"verse": "1:1"}
        assert data["userProgress"][0]["email"] == "a@x.com"
        last_active = datetime.fromisoformat(data["userProgress"][0]["lastActive"].replace("Z", "+00:00"))
        assert last_active >= before

    @pytest.mark.asyncio
    async def test_log_activity_requires_type(self, test_client):
        response = await test_client.post("/log-activity", json={"email": "a@x.com"})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Activity type is required"}

    @pytest.mark.asyncio
    async def test_analytics_limit_out_of_range(self, test_client):
        response = await test_client.get("/analytics", params={"limit": 0})
        assert response.status_code == 400
        assert response.json()["success"] is False


class TestCors:

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "origin", ["https://hafezquraan.com", "http://localhost:3000", "https://someone.github.io"]
    )
    async def test_allowed_origins(self, test_client, origin):
        response = await test_client.get("/", headers={"Origin": origin})
        assert response.headers["access-control-allow-origin"] == origin

    @pytest.mark.asyncio
    async def test_unknown_origin(self, test_client):
        response = await test_client.get("/", headers={"Origin": "https://evil.example"})
        assert "access-control-allow-origin" not in response.headers

    @pytest.mark.asyncio
    async def test_preflight_rejects_other_methods(self, test_client):
        response = await test_client.options(
            "/save-progress",
            headers={
                "Origin": "https://hafezquraan.com",
                "Access-Control-Request-Method": "DELETE",
            },
        )
        assert response.status_code == 400
