import hashlib
import hmac
import json
import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch
from urllib.parse import quote

import jwt
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
from app.core.settings import settings
from app.models.payment import Payment
from app.models.subscription import Subscription
from app.services.razorpay import sign_payment
from main import app


AUTH_SECRET = "test-auth-secret"
KEY_SECRET = "test-key-secret"
WEBHOOK_SECRET = "test-webhook-secret"


def _token(sub: str, email: str, *, admin: bool = False) -> str:
    claims = {
        "sub": sub,
        "email": email,
        "name": sub.title(),
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    if admin:
        claims["isAdmin"] = True
    return jwt.encode(claims, AUTH_SECRET, algorithm="HS256")


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine(
            "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
        )
        Base.metadata.create_all(bind=self.engine)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

        def override_get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db

        self._saved = {
            name: getattr(settings, name)
            for name in ("auth_secret", "razorpay_key_id", "razorpay_key_secret", "razorpay_webhook_secret", "admin_emails")
        }
        settings.auth_secret = AUTH_SECRET
        settings.razorpay_key_id = "rzp_test_key"
        settings.razorpay_key_secret = KEY_SECRET
        settings.razorpay_webhook_secret = WEBHOOK_SECRET
        settings.admin_emails = set()

        self.client = TestClient(app)
        self.user = _auth(_token("user-1", "user@example.com"))
        self.admin = _auth(_token("admin-1", "admin@example.com", admin=True))

    def tearDown(self):
        app.dependency_overrides.clear()
        for name, value in self._saved.items():
            setattr(settings, name, value)
        Base.metadata.drop_all(bind=self.engine)
        self.engine.dispose()

    def _grant(self, plan_type: str, email: str = "user@example.com"):
        return self.client.post(
            "/api/admin/grant-access", json={"email": email, "planType": plan_type}, headers=self.admin
        )


class TestAuthAndErrors(ApiTestCase):
    def test_health(self):
        self.assertEqual(self.client.get("/health").json(), {"status": "healthy"})

    def test_missing_token(self):
        resp = self.client.get("/api/subscription")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {"success": False, "error": "Unauthorized"})

    def test_expired_token(self):
        token = jwt.encode(
            {"sub": "user-1", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)}, AUTH_SECRET, algorithm="HS256"
        )
        resp = self.client.get("/api/subscription", headers=_auth(token))
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["error"], "Session expired")

    def test_admin_required(self):
        resp = self.client.post(
            "/api/admin/grant-access", json={"email": "x@example.com", "planType": "SIX_MONTH"}, headers=self.user
        )
        self.assertEqual(resp.status_code, 403)
        self.assertFalse(resp.json()["success"])

    def test_validation_lists_fields(self):
        resp = self.client.post("/api/razorpay/payments", json={}, headers=self.user)
        self.assertEqual(resp.status_code, 400)
        body = resp.json()
        self.assertEqual(body["error"], "Invalid or missing fields")
        self.assertIn("amount", body["details"]["fields"])
        self.assertIn("planType", body["details"]["fields"])

    def test_unexpected_error_is_generic(self):
        client = TestClient(app, raise_server_exceptions=False)
        with patch("app.api.endpoints.subscription.list_user_subscriptions", side_effect=RuntimeError("boom")):
            resp = client.get("/api/subscription", headers=self.user)
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"success": False, "error": "Internal server error"})

    def test_public_config(self):
        body = self.client.get("/api/public-config").json()
        self.assertEqual(body["razorpayKeyId"], "rzp_test_key")
        self.assertEqual(body["razorpayMode"], "test")


class TestSubscriptionEndpoints(ApiTestCase):
    def test_no_plan(self):
        body = self.client.get("/api/subscription", headers=self.user).json()
        self.assertEqual(body["subscriptions"], [])
        self.assertFalse(body["access"]["hasEffectivePlan"])
        self.assertEqual(body["access"]["dashboardView"], "upgrade")

    def test_free_subscription(self):
        resp = self.client.post("/api/subscription/free", json={}, headers=self.user)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["message"], "Free subscription created successfully")
        self.assertTrue(resp.json()["subscription"]["isFree"])

        again = self.client.post("/api/subscription/free", json={}, headers=self.user)
        self.assertEqual(again.json()["message"], "Free subscription already exists")

        access = self.client.get("/api/subscription/access", headers=self.user).json()
        self.assertEqual(access["planType"], "FOUR_DAY")
        self.assertTrue(access["shouldShowFourDayPlan"])
        self.assertEqual(access["dashboardView"], "four_day_welcome")

        progress = self.client.get("/api/subscription/four-day", headers=self.user)
        self.assertEqual(progress.status_code, 200)
        self.assertEqual(len(progress.json()["schedule"]), 4)

    def test_free_subscription_for_someone_else(self):
        resp = self.client.post("/api/subscription/free", json={"email": "other@example.com"}, headers=self.user)
        self.assertEqual(resp.status_code, 403)

    def test_four_day_progress_without_plan(self):
        self.assertEqual(self.client.get("/api/subscription/four-day", headers=self.user).status_code, 404)

    def test_admin_grant_access(self):
        self.client.get("/api/subscription", headers=self.user)
        resp = self._grant("SIX_MONTH")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["subscription"]["type"], "SIX_MONTH")

        self.assertEqual(self._grant("SIX_MONTH").status_code, 409)
        self.assertEqual(self._grant("FOREVER").status_code, 400)
        self.assertEqual(self._grant("SIX_MONTH", email="nobody@example.com").status_code, 404)

        access = self.client.get("/api/subscription/access", headers=self.user).json()
        self.assertTrue(access["isPremiumUnlocked"])

        users = self.client.get("/api/admin/users", headers=self.admin).json()
        plans = {u["email"]: u["planType"] for u in users}
        self.assertEqual(plans["user@example.com"], "SIX_MONTH")


class TestRazorpayEndpoints(ApiTestCase):
    ORDER = {"id": "order_abc", "amount": 69900, "currency": "INR", "receipt": "r"}

    def _create_order(self):
        with patch("app.api.endpoints.razorpay.create_order", return_value=dict(self.ORDER)) as mocked:
            resp = self.client.post("/api/razorpay/payments", json={"amount": 699, "planType": "SIX_MONTH"}, headers=self.user)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(mocked.call_args.kwargs["amount"], 699.0)
        return resp.json()

    def test_create_order(self):
        body = self._create_order()
        self.assertEqual(body["key"], "rzp_test_key")
        self.assertEqual(body["order"]["id"], "order_abc")
        with self.SessionLocal() as db:
            payment = db.query(Payment).filter(Payment.razorpay_order_id == "order_abc").one()
            self.assertEqual(payment.status, "created")
            self.assertEqual(payment.user_id, "user-1")

    def test_invalid_plan(self):
        resp = self.client.post("/api/razorpay/payments", json={"amount": 699, "planType": "WEEKLY"}, headers=self.user)
        self.assertEqual(resp.status_code, 400)

    def test_missing_configuration(self):
        settings.razorpay_key_secret = None
        resp = self.client.post("/api/razorpay/payments", json={"amount": 699, "planType": "SIX_MONTH"}, headers=self.user)
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["error"], "Payment configuration error")

    def test_verify_grants_access(self):
        self._create_order()
        payload = {
            "razorpay_order_id": "order_abc",
            "razorpay_payment_id": "pay_abc",
            "razorpay_signature": sign_payment("order_abc", "pay_abc", KEY_SECRET),
            "planType": "SIX_MONTH",
        }
        resp = self.client.post("/api/razorpay/payments/verify", json=payload)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"success": True})

        # a repeated callback is accepted without a second grant
        self.assertEqual(self.client.post("/api/razorpay/payments/verify", json=payload).status_code, 200)
        with self.SessionLocal() as db:
            self.assertEqual(db.query(Subscription).count(), 1)

        access = self.client.get("/api/subscription/access", headers=self.user).json()
        self.assertEqual(access["planType"], "SIX_MONTH")

        payments = self.client.get("/api/razorpay/payments/user-payments", headers=self.user).json()["payments"]
        self.assertEqual(len(payments), 1)
        self.assertEqual(payments[0]["status"], "captured")

    def test_verify_rejects_tampered_signature(self):
        self._create_order()
        resp = self.client.post(
            "/api/razorpay/payments/verify",
            json={"razorpay_order_id": "order_abc", "razorpay_payment_id": "pay_abc", "razorpay_signature": "0" * 64},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"success": False, "error": "Payment verification failed"})
        with self.SessionLocal() as db:
            self.assertEqual(db.query(Subscription).count(), 0)

    def test_verify_unknown_order(self):
        resp = self.client.post(
            "/api/razorpay/payments/verify",
            json={
                "razorpay_order_id": "order_zzz",
                "razorpay_payment_id": "pay_zzz",
                "razorpay_signature": sign_payment("order_zzz", "pay_zzz", KEY_SECRET),
            },
        )
        self.assertEqual(resp.status_code, 404)

    def _webhook(self, event: dict, secret: str = WEBHOOK_SECRET):
        raw = json.dumps(event).encode("utf-8")
        sig = hmac.new(secret.encode("utf-8"), raw, hashlib.sha256).hexdigest()
        return self.client.post(
            "/api/razorpay/webhooks/razorpay",
            content=raw,
            headers={"Content-Type": "application/json", "x-razorpay-signature": sig},
        )

    def test_webhook_captures_payment(self):
        self._create_order()
        event = {
            "event": "payment.captured",
            "payload": {"payment": {"entity": {"id": "pay_hook", "order_id": "order_abc"}}},
        }
        resp = self._webhook(event)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"received": True, "outcome": "captured"})
        self.assertEqual(self._webhook(event).json()["outcome"], "captured")
        with self.SessionLocal() as db:
            self.assertEqual(db.query(Subscription).count(), 1)

    def test_webhook_bad_signature(self):
        resp = self._webhook({"event": "payment.captured"}, secret="wrong")
        self.assertEqual(resp.status_code, 401)


class TestWebinarEndpoints(ApiTestCase):
    def _create_webinar(self, **overrides):
        payload = {
            "webinarName": "Host",
            "webinarTitle": "Morning Session",
            "webinarDate": "2026-01-01T00:00:00",
            "webinarTime": "10:00",
            "duration": {"hours": 1, "minutes": 0, "seconds": 0},
            "isPaid": True,
            "paidAmount": 500,
            "videoUrl": "https://cdn.example.com/session.mp4",
        }
        payload.update(overrides)
        resp = self.client.post("/api/webinar", json=payload, headers=self.admin)
        self.assertEqual(resp.status_code, 200)
        return resp.json()["newWebinar"]

    def test_create_requires_admin(self):
        resp = self.client.post(
            "/api/webinar",
            json={"webinarTitle": "x", "webinarDate": "2026-01-01T00:00:00", "webinarTime": "10:00"},
            headers=self.user,
        )
        self.assertEqual(resp.status_code, 403)

    def test_bad_time(self):
        resp = self.client.post(
            "/api/webinar",
            json={"webinarTitle": "x", "webinarDate": "2026-01-01T00:00:00", "webinarTime": "99:00"},
            headers=self.admin,
        )
        self.assertEqual(resp.status_code, 400)

    def test_list_hides_media(self):
        self._create_webinar()
        webinars = self.client.get("/api/webinar").json()["webinars"]
        self.assertEqual(len(webinars), 1)
        self.assertNotIn("videoUrl", webinars[0])

    def test_discount_updates(self):
        webinar = self._create_webinar()
        url = f"/api/webinar/{webinar['id']}/discount"
        body = self.client.put(url, json={"discountPercentage": 20}, headers=self.admin).json()["webinar"]
        self.assertEqual(body["discountAmount"], 100.0)
        self.assertEqual(body["finalPrice"], 400.0)

        body = self.client.put(url, json={"discountAmount": 150}, headers=self.admin).json()["webinar"]
        self.assertEqual(body["discountPercentage"], 20.0)
        self.assertEqual(body["finalPrice"], 350.0)

        self.assertEqual(self.client.put(url, json={}, headers=self.admin).status_code, 400)
        self.assertEqual(self.client.put(url, json={"discountPercentage": 101}, headers=self.admin).status_code, 400)

    def test_update_and_status(self):
        webinar = self._create_webinar()
        resp = self.client.put(f"/api/webinar/{webinar['id']}", json={"webinarTitle": "Evening"}, headers=self.admin)
        self.assertEqual(resp.json()["updatedWebinar"]["webinarTitle"], "Evening")

        resp = self.client.put("/api/webinar/status", json={"webinarId": webinar["id"], "status": "live"}, headers=self.admin)
        self.assertEqual(resp.json()["updatedCount"], 1)

        resp = self.client.put("/api/webinar/status", json={"webinarId": webinar["id"], "status": " "}, headers=self.admin)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["details"], {"fields": ["status"]})
        self.assertEqual(self.client.get(f"/api/webinar/{webinar['id']}").json()["webinar"]["status"], "live")

    def test_delete(self):
        webinar = self._create_webinar()
        self.assertEqual(self.client.delete(f"/api/webinar/{webinar['id']}", headers=self.admin).status_code, 200)
        self.assertEqual(self.client.get(f"/api/webinar/{webinar['id']}").status_code, 404)

    def test_paid_webinar_access(self):
        webinar = self._create_webinar()
        url = f"/api/webinar/{webinar['id']}/access"
        body = self.client.get(url, headers=self.user).json()
        self.assertFalse(body["isAccessible"])
        self.assertFalse(body["isLocked"])
        self.assertIsNone(body["videoUrl"])

        self._grant("SIX_MONTH")
        body = self.client.get(url, headers=self.user).json()
        self.assertTrue(body["isAccessible"])
        self.assertEqual(body["videoUrl"], "https://cdn.example.com/session.mp4")

    def test_future_webinar_is_locked(self):
        future = (datetime.now(timezone.utc) + timedelta(days=3)).strftime("%Y-%m-%dT00:00:00")
        webinar = self._create_webinar(webinarDate=future, isPaid=False, paidAmount=None)
        body = self.client.get(f"/api/webinar/{webinar['id']}/access", headers=self.user).json()
        self.assertEqual(body["phase"], "NOT_STARTED")
        self.assertTrue(body["isAccessible"])
        self.assertTrue(body["isLocked"])
        self.assertIsNone(body["videoUrl"])
        self.assertGreaterEqual(body["timeLeft"]["days"], 1)

    def test_start_time_uses_the_utc_instant_of_the_date(self):
        webinar = self._create_webinar(webinarDate="2030-10-19T18:30:00Z", webinarTime="10:00", isPaid=False, paidAmount=None)
        body = self.client.get(f"/api/webinar/{webinar['id']}/access", headers=self.user).json()
        self.assertEqual(body["startTime"], "2030-10-20T04:30:00+00:00")
        self.assertTrue(body["isLocked"])

    def test_countdown_stream_for_started_webinar(self):
        webinar = self._create_webinar()
        resp = self.client.get(f"/api/webinar/{webinar['id']}/countdown")
        self.assertEqual(resp.status_code, 200)
        self.assertIn("event: unlocked", resp.text)


class TestContentEndpoints(ApiTestCase):
    PDF = b"%PDF-1.4 test book"

    def _create_ebook(self, is_free: bool):
        resp = self.client.post(
            "/api/ebooks",
            data={"title": "Guide", "description": "d", "isFree": "true" if is_free else "false"},
            files={"file": ("guide.pdf", self.PDF, "application/pdf")},
            headers=self.admin,
        )
        self.assertEqual(resp.status_code, 200)
        return resp.json()["ebook"]

    def test_premium_ebook_download_is_gated(self):
        ebook = self._create_ebook(is_free=False)
        url = f"/api/ebooks/{ebook['id']}/download"

        resp = self.client.get(url, headers=self.user)
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["error"], "An active subscription is required")

        self.client.post("/api/subscription/free", json={}, headers=self.user)
        self.assertEqual(self.client.get(url, headers=self.user).status_code, 403)

        self._grant("SIX_MONTH")
        resp = self.client.get(url, headers=self.user)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.content, self.PDF)
        self.assertEqual(self.client.get(f"/api/ebooks/{ebook['id']}").json()["ebook"]["downloads"], 1)

    def test_free_ebook_listing(self):
        self._create_ebook(is_free=True)
        self._create_ebook(is_free=False)
        anonymous = self.client.get("/api/ebooks").json()["ebooks"]
        self.assertEqual(sorted(e["isAccessible"] for e in anonymous), [False, True])

    def test_videos(self):
        created = self.client.post(
            "/api/videos", json={"title": "Day 2", "url": "https://cdn.example.com/d2.mp4", "day": 2}, headers=self.admin
        )
        self.assertEqual(created.status_code, 200)
        video_id = created.json()["video"]["id"]

        listed = self.client.get("/api/videos", headers=self.user).json()["videos"]
        self.assertFalse(listed[0]["isAccessible"])
        self.assertIsNone(listed[0]["url"])
        self.assertEqual(self.client.get(f"/api/videos/{video_id}", headers=self.user).status_code, 403)

        self._grant("SIX_MONTH")
        resp = self.client.get(f"/api/videos/{video_id}", headers=self.user)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["video"]["url"], "https://cdn.example.com/d2.mp4")
        self.assertEqual(resp.json()["video"]["views"], 1)

        self.assertEqual(self.client.delete(f"/api/videos/{video_id}", headers=self.admin).status_code, 200)
        self.assertEqual(self.client.get(f"/api/videos/{video_id}", headers=self.user).status_code, 404)

    def test_download_name_survives_non_latin_titles(self):
        for title, fallback in (("श्री सूक्तम्", "ebook.pdf"), ('The "Daily" Guide', "The Daily Guide.pdf")):
            ebook = self._create_ebook(is_free=True)
            self.client.put(f"/api/ebooks/{ebook['id']}", json={"title": title}, headers=self.admin)
            resp = self.client.get(f"/api/ebooks/{ebook['id']}/download", headers=self.user)
            self.assertEqual(resp.status_code, 200)
            disposition = resp.headers["content-disposition"]
            self.assertIn(f'filename="{fallback}"', disposition)
            self.assertIn("filename*=UTF-8''" + quote(f"{title}.pdf", safe=""), disposition)
            self.assertEqual(self.client.get(f"/api/ebooks/{ebook['id']}").json()["ebook"]["downloads"], 1)

    def test_broken_file_does_not_count_a_download(self):
        ebook = self._create_ebook(is_free=True)
        self.client.put(
            f"/api/ebooks/{ebook['id']}", json={"fileUrl": "data:application/pdf;base64,!!!"}, headers=self.admin
        )
        resp = self.client.get(f"/api/ebooks/{ebook['id']}/download", headers=self.user)
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["error"], "Failed to download ebook")
        self.assertEqual(self.client.get(f"/api/ebooks/{ebook['id']}").json()["ebook"]["downloads"], 0)

    def test_four_day_videos_follow_the_day_schedule(self):
        def create(title, day, is_free):
            resp = self.client.post(
                "/api/videos",
                json={"title": title, "url": f"https://cdn.example.com/{day}.mp4", "day": day, "isFree": is_free},
                headers=self.admin,
            )
            return resp.json()["video"]["id"]

        day_one = create("Day 1", 1, False)
        day_four = create("Day 4", 4, True)

        self.client.get("/api/subscription", headers=self.user)
        self.assertEqual(self._grant("FOUR_DAY").status_code, 200)

        resp = self.client.get(f"/api/videos/{day_one}", headers=self.user)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["video"]["url"], "https://cdn.example.com/1.mp4")

        resp = self.client.get(f"/api/videos/{day_four}", headers=self.user)
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["error"], "Day 4 content is not unlocked yet")

        listed = {v["id"]: v for v in self.client.get("/api/videos", headers=self.user).json()["videos"]}
        self.assertTrue(listed[day_one]["isAccessible"])
        self.assertFalse(listed[day_four]["isAccessible"])
        self.assertIsNone(listed[day_four]["url"])


if __name__ == "__main__":
    unittest.main()
