import hashlib
import hmac
import json
import os
import tempfile
import unittest

# Settings are read once at import; every test module sets the same defaults.
os.environ.setdefault("DATABASE_PATH", os.path.join(tempfile.mkdtemp(prefix="ats-optimizer-tests-"), "ats.db"))
os.environ.setdefault("RATE_LIMIT_ENABLED", "0")
os.environ.setdefault("BILLING_WEBHOOK_SECRET", "test-webhook-secret")
os.environ.setdefault("ADMIN_EMAILS", "admin@example.com")
os.environ.setdefault("LEMONSQUEEZY_VARIANT_ONE_TIME", "1001")
os.environ.setdefault("LEMONSQUEEZY_VARIANT_BASIC", "1002")
os.environ.setdefault("LEMONSQUEEZY_VARIANT_PRO", "1003")

from fastapi.testclient import TestClient

from ats_optimizer.core.config import settings
from ats_optimizer.main import app
from ats_optimizer.storage import clear_store
from ats_optimizer.storage.db import query_one

RESUME = (
    "email: a@b.com\n"
    "Skills: Python, React\n"
    "Experience: increased sales by 20%\n" + " ".join(["blah"] * 340)
)

PROFILE_CONTENT = (
    "I bring 8 years of experience shipping products as a software engineer. "
    "Let's connect to talk about new roles and teams."
)


class ApiTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)

    def setUp(self):
        clear_store()
        self.admin_key = self._register("admin@example.com")["api_key"]

    def _register(self, email: str) -> dict:
        response = self.client.post(
            "/v1/auth/register",
            json={"email": email, "first_name": "Test", "last_name": "User"},
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def _headers(self, api_key: str) -> dict:
        return {"X-API-Key": api_key}

    def _user_with_plan(self, email: str, plan: str) -> tuple[str, str]:
        body = self._register(email)
        user_id = body["user"]["id"]
        self._set_plan(user_id, plan)
        return user_id, body["api_key"]

    def _set_plan(self, user_id: str, plan: str):
        response = self.client.patch(
            f"/v1/admin/users/{user_id}/plan",
            json={"plan": plan, "plan_status": "active"},
            headers=self._headers(self.admin_key),
        )
        self.assertEqual(response.status_code, 200, response.text)

    def _upload_resume(self, api_key: str, text: str = RESUME, file_name: str = "cv.txt"):
        return self.client.post(
            "/v1/resume/analyze",
            files={"file": (file_name, text.encode("utf-8"), "text/plain")},
            headers=self._headers(api_key),
        )


class AccountApiTests(ApiTestCase):
    def test_health(self):
        response = self.client.get("/v1/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")

    def test_register_and_account(self):
        body = self._register("Someone@Example.com")
        self.assertTrue(body["api_key"].startswith("ats_"))
        self.assertNotIn("api_key", body["user"])
        self.assertEqual(body["user"]["email"], "someone@example.com")
        self.assertEqual(body["user"]["plan"], "free")

        response = self.client.get("/v1/account", headers=self._headers(body["api_key"]))
        self.assertEqual(response.status_code, 200)
        permissions = response.json()["permissions"]
        self.assertFalse(permissions["resume_scan"])
        self.assertFalse(permissions["api_access"])

    def test_duplicate_registration(self):
        self._register("dup@example.com")
        response = self.client.post(
            "/v1/auth/register",
            json={"email": "dup@example.com", "first_name": "Test", "last_name": "User"},
        )
        self.assertEqual(response.status_code, 400)

    def test_missing_or_unknown_key(self):
        self.assertEqual(self.client.get("/v1/account").status_code, 401)
        self.assertEqual(self.client.get("/v1/account", headers=self._headers("ats_nope")).status_code, 401)

    def test_api_key_rotation(self):
        old_key = self._register("rotate@example.com")["api_key"]
        response = self.client.post("/v1/account/api-key", headers=self._headers(old_key))
        self.assertEqual(response.status_code, 200)
        new_key = response.json()["api_key"]
        self.assertNotEqual(old_key, new_key)
        self.assertEqual(self.client.get("/v1/account", headers=self._headers(old_key)).status_code, 401)
        self.assertEqual(self.client.get("/v1/account", headers=self._headers(new_key)).status_code, 200)


class ResumeApiTests(ApiTestCase):
    def test_free_plan_cannot_scan(self):
        api_key = self._register("free@example.com")["api_key"]
        response = self._upload_resume(api_key)
        self.assertEqual(response.status_code, 403)
        detail = response.json()["detail"]
        self.assertEqual(detail["plan"], "free")
        self.assertEqual(detail["usage"]["resume_scans"], 0)

    def test_scan_flow_for_basic_plan(self):
        _, api_key = self._user_with_plan("basic@example.com", "basic")

        response = self._upload_resume(api_key)
        self.assertEqual(response.status_code, 200, response.text)
        body = response.json()
        self.assertEqual(body["composite_score"], 44)
        self.assertFalse(body["locked"])
        self.assertEqual(body["analysis"]["keywords"]["found"], ["python", "react"])
        analysis_id = body["analysis_id"]

        account = self.client.get("/v1/account", headers=self._headers(api_key)).json()
        self.assertEqual(account["user"]["usage"]["resume_scans"], 1)
        self.assertEqual(account["user"]["usage"]["profile_scans"], 0)

        stored = self.client.get(f"/v1/resume/analyses/{analysis_id}", headers=self._headers(api_key))
        self.assertEqual(stored.status_code, 200)
        self.assertEqual(stored.json()["status"], "completed")
        self.assertEqual(stored.json()["composite_score"], 44)

        history = self.client.get("/v1/resume/history", headers=self._headers(api_key)).json()
        self.assertEqual(history["pagination"]["total"], 1)
        self.assertEqual(history["analyses"][0]["id"], analysis_id)

        optimized = self.client.post(f"/v1/resume/optimize/{analysis_id}", headers=self._headers(api_key))
        self.assertEqual(optimized.status_code, 200)
        self.assertIn("Additional Technical Skills:", optimized.json()["optimized_content"])

        exported = self.client.post(
            f"/v1/resume/export/{analysis_id}",
            json={"use_optimized": True},
            headers=self._headers(api_key),
        )
        self.assertEqual(exported.status_code, 200)
        self.assertIn("attachment", exported.headers["content-disposition"])
        self.assertIn("Additional Technical Skills:", exported.text)

        # Comparison is a pro feature.
        compared = self.client.get(f"/v1/resume/compare/{analysis_id}", headers=self._headers(api_key))
        self.assertEqual(compared.status_code, 403)

    def test_basic_plan_stops_after_five_scans(self):
        _, api_key = self._user_with_plan("limit@example.com", "basic")
        for _ in range(5):
            self.assertEqual(self._upload_resume(api_key).status_code, 200)
        response = self._upload_resume(api_key)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["detail"]["usage"]["resume_scans"], 5)

    def test_pro_compare_after_optimize(self):
        _, api_key = self._user_with_plan("pro@example.com", "pro")
        analysis_id = self._upload_resume(api_key).json()["analysis_id"]

        before_optimize = self.client.get(f"/v1/resume/compare/{analysis_id}", headers=self._headers(api_key))
        self.assertEqual(before_optimize.status_code, 400)

        self.client.post(f"/v1/resume/optimize/{analysis_id}", headers=self._headers(api_key))
        compared = self.client.get(f"/v1/resume/compare/{analysis_id}", headers=self._headers(api_key))
        self.assertEqual(compared.status_code, 200)
        body = compared.json()
        self.assertGreaterEqual(body["after_score"], body["before_score"])

    def test_unreadable_upload_does_not_consume_a_scan(self):
        _, api_key = self._user_with_plan("blank@example.com", "one-time")
        response = self._upload_resume(api_key, text="   \n  ")
        self.assertEqual(response.status_code, 400)

        history = self.client.get("/v1/resume/history", headers=self._headers(api_key)).json()
        self.assertEqual(history["analyses"][0]["status"], "failed")
        account = self.client.get("/v1/account", headers=self._headers(api_key)).json()
        self.assertEqual(account["user"]["usage"]["resume_scans"], 0)

    def test_unsupported_file_type(self):
        _, api_key = self._user_with_plan("type@example.com", "basic")
        response = self.client.post(
            "/v1/resume/analyze",
            files={"file": ("cv.png", b"\x89PNG", "image/png")},
            headers=self._headers(api_key),
        )
        self.assertEqual(response.status_code, 400)

    def test_free_view_is_redacted(self):
        user_id, api_key = self._user_with_plan("downgrade@example.com", "basic")
        analysis_id = self._upload_resume(api_key).json()["analysis_id"]
        self._set_plan(user_id, "free")

        body = self.client.get(f"/v1/resume/analyses/{analysis_id}", headers=self._headers(api_key)).json()
        self.assertTrue(body["locked"])
        self.assertIn("message", body)
        self.assertLessEqual(len(body["suggestions"]), 2)
        self.assertLessEqual(len(body["analysis"]["keywords"]["missing"]), 3)

    def test_other_users_analysis_is_not_found(self):
        _, owner_key = self._user_with_plan("owner@example.com", "basic")
        analysis_id = self._upload_resume(owner_key).json()["analysis_id"]
        _, other_key = self._user_with_plan("other@example.com", "basic")

        response = self.client.get(f"/v1/resume/analyses/{analysis_id}", headers=self._headers(other_key))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(
            self.client.get("/v1/resume/analyses/missing", headers=self._headers(owner_key)).status_code,
            404,
        )


class ProfileApiTests(ApiTestCase):
    def test_content_scan_and_report(self):
        _, api_key = self._user_with_plan("profile@example.com", "pro")
        response = self.client.post(
            "/v1/profile/analyze-content",
            json={"content": PROFILE_CONTENT, "headline": "Hello mate"},
            headers=self._headers(api_key),
        )
        self.assertEqual(response.status_code, 200, response.text)
        body = response.json()
        self.assertEqual(body["analysis"]["headline"]["score"], 0)
        analysis_id = body["analysis_id"]

        optimized = self.client.post(f"/v1/profile/optimize/{analysis_id}", headers=self._headers(api_key))
        self.assertEqual(optimized.status_code, 200)
        self.assertTrue(optimized.json()["optimized_content"]["headline"].startswith("Full-Stack Developer"))

        compared = self.client.get(f"/v1/profile/compare/{analysis_id}", headers=self._headers(api_key))
        self.assertEqual(compared.status_code, 200)

        report = self.client.get("/v1/profile/report", headers=self._headers(api_key))
        self.assertEqual(report.status_code, 200)
        report_body = report.json()
        self.assertEqual(report_body["analysis_id"], analysis_id)
        self.assertFalse(report_body["locked"])
        self.assertIn("optimization", report_body["scores"])
        self.assertIsNotNone(report_body["score_improvements"])
        self.assertIn("<h2>LinkedIn Profile Analysis Report</h2>", report_body["exportable"]["summary"])

    def test_url_scan_uses_public_profile(self):
        _, api_key = self._user_with_plan("url@example.com", "one-time")
        response = self.client.post(
            "/v1/profile/analyze",
            json={"profile_url": "https://www.linkedin.com/in/someone"},
            headers=self._headers(api_key),
        )
        self.assertEqual(response.status_code, 200, response.text)

        # One-time allows a single profile scan.
        again = self.client.post(
            "/v1/profile/analyze",
            json={"profile_url": "https://www.linkedin.com/in/someone"},
            headers=self._headers(api_key),
        )
        self.assertEqual(again.status_code, 403)

    def test_invalid_profile_url(self):
        _, api_key = self._user_with_plan("badurl@example.com", "basic")
        response = self.client.post(
            "/v1/profile/analyze",
            json={"profile_url": "not a url"},
            headers=self._headers(api_key),
        )
        self.assertEqual(response.status_code, 400)

    def test_short_content_is_rejected(self):
        _, api_key = self._user_with_plan("short@example.com", "basic")
        response = self.client.post(
            "/v1/profile/analyze-content",
            json={"content": "too short"},
            headers=self._headers(api_key),
        )
        self.assertEqual(response.status_code, 422)

    def test_report_without_analysis(self):
        api_key = self._register("noreport@example.com")["api_key"]
        self.assertEqual(self.client.get("/v1/profile/report", headers=self._headers(api_key)).status_code, 404)

    def test_free_report_is_redacted(self):
        user_id, api_key = self._user_with_plan("freereport@example.com", "basic")
        self.client.post(
            "/v1/profile/analyze-content",
            json={"content": PROFILE_CONTENT, "headline": "Hello mate"},
            headers=self._headers(api_key),
        )
        self._set_plan(user_id, "free")

        report = self.client.get("/v1/profile/report", headers=self._headers(api_key)).json()
        self.assertTrue(report["locked"])
        self.assertLessEqual(len(report["suggestions"]), 2)
        self.assertLessEqual(len(report["improvement_tips"]), 1)


class BillingApiTests(ApiTestCase):
    def _post_webhook(self, payload: dict, secret: str | None = None):
        body = json.dumps(payload).encode("utf-8")
        key = (secret or settings.billing_webhook_secret).encode("utf-8")
        signature = hmac.new(key, body, hashlib.sha256).hexdigest()
        return self.client.post(
            "/v1/billing/webhook",
            content=body,
            headers={"X-Signature": signature, "Content-Type": "application/json"},
        )

    def _subscription_created(self, email: str) -> dict:
        return {
            "meta": {"event_name": "subscription_created"},
            "data": {
                "id": "sub_42",
                "attributes": {
                    "user_email": email,
                    "customer_id": 9,
                    "variant_id": 1003,
                    "status": "active",
                    "renews_at": "2099-01-01T00:00:00Z",
                },
            },
        }

    def test_bad_signature_is_rejected(self):
        self._register("payer@example.com")
        response = self._post_webhook(self._subscription_created("payer@example.com"), secret="wrong")
        self.assertEqual(response.status_code, 400)

    def test_subscription_webhook_upgrades_account(self):
        api_key = self._register("payer@example.com")["api_key"]
        response = self._post_webhook(self._subscription_created("payer@example.com"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"received": True})

        account = self.client.get("/v1/account", headers=self._headers(api_key)).json()
        self.assertEqual(account["user"]["plan"], "pro")
        self.assertTrue(account["permissions"]["api_access"])

        # Redelivery is acknowledged and changes nothing.
        self.assertEqual(self._post_webhook(self._subscription_created("payer@example.com")).status_code, 200)

        cancelled = self.client.post("/v1/billing/cancel-subscription", headers=self._headers(api_key))
        self.assertEqual(cancelled.status_code, 200)
        account = self.client.get("/v1/account", headers=self._headers(api_key)).json()
        self.assertEqual(account["user"]["plan_status"], "cancelled")
        self.assertEqual(account["user"]["plan"], "pro")

    def test_resumed_webhook_reactivates_plan(self):
        api_key = self._register("resumer@example.com")["api_key"]
        self._post_webhook(self._subscription_created("resumer@example.com"))
        self._post_webhook({"meta": {"event_name": "subscription_cancelled"}, "data": {"id": "sub_42", "attributes": {}}})

        resumed = {
            "meta": {"event_name": "subscription_resumed"},
            "data": {"id": "sub_42", "attributes": {"status": "active", "renews_at": "2099-06-01T00:00:00Z"}},
        }
        for _ in range(2):
            self.assertEqual(self._post_webhook(resumed).status_code, 200)

        account = self.client.get("/v1/account", headers=self._headers(api_key)).json()
        self.assertEqual(account["user"]["plan"], "pro")
        self.assertEqual(account["user"]["plan_status"], "active")
        self.assertTrue(account["permissions"]["resume_scan"])

    def test_unknown_events_are_acknowledged(self):
        response = self._post_webhook({"meta": {"event_name": "license_key_created"}, "data": {"id": "1"}})
        self.assertEqual(response.status_code, 200)

    def test_cancel_without_subscription(self):
        api_key = self._register("nosub@example.com")["api_key"]
        response = self.client.post("/v1/billing/cancel-subscription", headers=self._headers(api_key))
        self.assertEqual(response.status_code, 400)

    def test_payment_history(self):
        api_key = self._register("history@example.com")["api_key"]
        response = self.client.get("/v1/billing/history", headers=self._headers(api_key))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["payments"], [])


class AdminApiTests(ApiTestCase):
    def test_admin_only(self):
        api_key = self._register("plain@example.com")["api_key"]
        self.assertEqual(self.client.get("/v1/admin/dashboard", headers=self._headers(api_key)).status_code, 403)

    def test_dashboard_and_users(self):
        self._register("listed@example.com")
        dashboard = self.client.get("/v1/admin/dashboard", headers=self._headers(self.admin_key))
        self.assertEqual(dashboard.status_code, 200)

        users = self.client.get(
            "/v1/admin/users",
            params={"search": "listed"},
            headers=self._headers(self.admin_key),
        ).json()
        self.assertEqual(users["pagination"]["total"], 1)
        self.assertEqual(users["users"][0]["email"], "listed@example.com")

    def test_override_resets_usage(self):
        user_id, api_key = self._user_with_plan("override@example.com", "basic")
        self._upload_resume(api_key)
        self._set_plan(user_id, "pro")

        detail = self.client.get(f"/v1/admin/users/{user_id}", headers=self._headers(self.admin_key))
        self.assertEqual(detail.status_code, 200)
        self.assertEqual(detail.json()["user"]["plan"], "pro")
        self.assertEqual(detail.json()["user"]["usage"]["resume_scans"], 0)

    def test_unknown_user(self):
        response = self.client.patch(
            "/v1/admin/users/missing/plan",
            json={"plan": "pro"},
            headers=self._headers(self.admin_key),
        )
        self.assertEqual(response.status_code, 404)

    def test_csv_export(self):
        self._register("csv@example.com")
        response = self.client.get("/v1/admin/export/users", headers=self._headers(self.admin_key))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["content-type"].startswith("text/csv"))
        lines = response.text.strip().splitlines()
        self.assertEqual(lines[0], '"Email","First Name","Last Name","Plan","Plan Status","Created At"')
        self.assertEqual(len(lines), 3)

        self.assertEqual(
            self.client.get("/v1/admin/export/invoices", headers=self._headers(self.admin_key)).status_code,
            400,
        )


class DeveloperApiTests(ApiTestCase):
    def test_requires_pro_plan(self):
        _, api_key = self._user_with_plan("dev-basic@example.com", "basic")
        response = self.client.get("/v1/developer/user", headers=self._headers(api_key))
        self.assertEqual(response.status_code, 403)

        charged = query_one("SELECT COUNT(1) FROM developer_rate_limit_events")[0]
        self.assertEqual(charged, 0)

    def test_pro_plan_text_analysis(self):
        _, api_key = self._user_with_plan("dev-pro@example.com", "pro")
        self.assertEqual(self.client.get("/v1/developer/docs", headers=self._headers(api_key)).status_code, 200)

        response = self.client.post(
            "/v1/developer/resume/analyze-text",
            json={"text": RESUME},
            headers=self._headers(api_key),
        )
        self.assertEqual(response.status_code, 200, response.text)
        analysis_id = response.json()["data"]["analysis_id"]

        stored = self.client.get(f"/v1/developer/resume/analyses/{analysis_id}", headers=self._headers(api_key))
        self.assertEqual(stored.status_code, 200)
        self.assertNotIn("source_text", stored.json()["data"])

        listing = self.client.get("/v1/developer/resume/analyses", headers=self._headers(api_key)).json()
        self.assertEqual(listing["pagination"]["total"], 1)

    def test_text_below_minimum_length(self):
        _, api_key = self._user_with_plan("dev-short@example.com", "pro")
        response = self.client.post(
            "/v1/developer/resume/analyze-text",
            json={"text": "too short"},
            headers=self._headers(api_key),
        )
        self.assertEqual(response.status_code, 422)


if __name__ == "__main__":
    unittest.main()
