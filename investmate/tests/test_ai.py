import unittest
from unittest import mock

import requests

from investmate.matchmaking import FALLBACK_NOTE
from investmate.tests.testing_utils import AI_URL, ApiTestCase


def ai_response(payload, status_code=200):
    response = mock.Mock(status_code=status_code, ok=status_code < 400)
    response.json.return_value = payload
    return response


class AiRoutesTestCase(ApiTestCase):
    ai_url = AI_URL

    def setUp(self):
        super().setUp()
        patcher = mock.patch("investmate.ai_client.requests.post")
        self.post = patcher.start()
        self.addCleanup(patcher.stop)

        self.startup_user = self.register(
            "startup",
            "founder@example.com",
            name="Ada",
            startupName="PayFast",
            industry="FinTech",
            stage="Seed",
        )
        self.investor_user = self.register(
            "investor",
            "vc@example.com",
            name="Grace",
            preferredSectors=["FinTech"],
        )
        self.startup = self.login("founder@example.com")
        self.investor = self.login("vc@example.com")


class CoachingTests(AiRoutesTestCase):
    def test_startup_coaching_from_ai(self):
        self.post.return_value = ai_response({"greeting": "Hi", "tips": []})

        response = self.startup.post("/api/ai/coach/startup")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {"success": True, "coaching": {"greeting": "Hi", "tips": []}},
        )

        url = self.post.call_args.args[0]
        self.assertEqual(url, f"{AI_URL}/startup-coach")
        body = self.post.call_args.kwargs["json"]
        self.assertEqual(body["startupData"]["startupName"], "PayFast")

    def test_fenced_raw_answer_is_parsed(self):
        self.post.return_value = ai_response(
            {"raw": '```json\n{"summary": "Keep going"}\n```'}
        )

        response = self.investor.post("/api/ai/coach/investor")
        self.assertEqual(response.json()["coaching"], {"summary": "Keep going"})

    def test_coaching_falls_back_when_ai_is_down(self):
        self.post.side_effect = requests.ConnectionError("refused")

        response = self.investor.post("/api/ai/coach/investor")
        self.assertEqual(response.status_code, 200)
        coaching = response.json()["coaching"]
        self.assertEqual(coaching["greeting"], "Welcome back, Grace!")
        self.assertIn("FinTech", coaching["summary"])

    def test_coaching_falls_back_on_error_status(self):
        self.post.return_value = ai_response({"error": "boom"}, status_code=500)

        response = self.startup.post("/api/ai/coach/startup")
        self.assertEqual(response.status_code, 200)
        self.assertIn("tips", response.json()["coaching"])

    def test_coaching_is_role_gated(self):
        response = self.startup.post("/api/ai/coach/investor")
        self.assertEqual(response.status_code, 403)
        self.post.assert_not_called()

        response = self.client.post("/api/ai/coach/startup")
        self.assertEqual(response.status_code, 401)


class MatchmakingTests(AiRoutesTestCase):
    def test_investor_matches_are_enriched(self):
        self.post.return_value = ai_response(
            {"value": [{"userId": self.startup_user, "explanation": "Strong fit"}]}
        )

        response = self.investor.post("/api/ai/matchmaking/investor")
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertTrue(payload["success"])
        self.assertNotIn("note", payload)
        match = payload["matches"][0]
        self.assertEqual(match["type"], "startup")
        self.assertEqual(match["name"], "PayFast")
        self.assertEqual(match["aiReason"], "Strong fit")
        self.assertEqual(match["matchIndex"], 1)

    def test_startup_matches_resolve_investors(self):
        self.post.return_value = ai_response(
            {"matches": [{"user_id": self.investor_user}, {"userId": "unknown"}]}
        )

        payload = self.startup.post("/api/ai/matchmaking/startup").json()
        self.assertNotIn("note", payload)
        first, second = payload["matches"]
        self.assertEqual(first["type"], "investor")
        self.assertEqual(first["name"], "Grace")
        self.assertEqual(first["aiReason"], "AI matched as potential investor")
        self.assertTrue(second["notFound"])
        self.assertEqual(second["name"], "Partner 2")
        self.assertEqual(second["rawData"], {"userId": "unknown"})

    def test_unresolved_matches_fall_back_to_database(self):
        self.post.return_value = ai_response(
            [{"userId": "ghost", "explanation": "Invented"}]
        )

        payload = self.startup.post("/api/ai/matchmaking/startup").json()
        self.assertEqual(payload["note"], FALLBACK_NOTE)
        self.assertEqual(len(payload["matches"]), 1)
        match = payload["matches"][0]
        self.assertEqual(match["name"], "Grace")
        self.assertEqual(match["aiReason"], "Invented")

    def test_ai_failure_falls_back_to_database(self):
        self.post.side_effect = requests.Timeout("slow")

        payload = self.investor.post("/api/ai/matchmaking/investor").json()
        self.assertTrue(payload["success"])
        self.assertEqual(payload["note"], FALLBACK_NOTE)
        match = payload["matches"][0]
        self.assertEqual(match["name"], "PayFast")
        self.assertEqual(match["aiReason"], "Startup building in FinTech at the Seed stage")

    def test_fallback_widens_when_no_sector_matches(self):
        self.register(
            "investor",
            "bio@example.com",
            name="Bio Investor",
            preferredSectors=["BioTech"],
        )
        self.post.return_value = ai_response({"value": []})

        payload = self.login("bio@example.com").post("/api/ai/matchmaking/investor").json()
        self.assertEqual(payload["note"], FALLBACK_NOTE)
        self.assertEqual([m["name"] for m in payload["matches"]], ["PayFast"])

    def test_fallback_is_capped(self):
        for i in range(7):
            self.register("investor", f"vc{i}@example.com", sectors="FinTech, AI")
        self.post.return_value = ai_response({"value": []})

        payload = self.startup.post("/api/ai/matchmaking/startup").json()
        self.assertEqual(len(payload["matches"]), 5)
        self.assertEqual([m["matchIndex"] for m in payload["matches"]], [1, 2, 3, 4, 5])

    def test_missing_profile(self):
        self.client.cookies.set("startup_token", self.token_for("nobody", "startup"))

        response = self.client.post("/api/ai/matchmaking/startup")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "Startup profile not found")


class UnconfiguredAiTests(ApiTestCase):
    def test_matchmaking_without_ai_service(self):
        self.register("startup", "founder@example.com", startupName="PayFast")
        investor = self.signed_in("investor", "vc@example.com")

        with mock.patch("investmate.ai_client.requests.post") as post:
            response = investor.post("/api/ai/matchmaking/investor")
        post.assert_not_called()

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["note"], FALLBACK_NOTE)
        self.assertEqual(payload["matches"][0]["name"], "PayFast")


class NonTextProfileFieldTests(ApiTestCase):
    def test_numeric_industry_still_matches(self):
        startup = self.signed_in("startup", "founder@example.com", startupName="PayFast")
        self.register("investor", "vc@example.com", name="Grace", sectors=["2024 fund"])
        response = startup.patch("/api/startup/profile", json={"industry": 2024})
        self.assertEqual(response.status_code, 200)

        response = startup.post("/api/ai/matchmaking/startup")
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["note"], FALLBACK_NOTE)
        self.assertEqual(payload["matches"][0]["name"], "Grace")

        response = startup.post("/api/ai/coach/startup")
        self.assertEqual(response.status_code, 200)

    def test_scalar_sectors_still_coach_and_match(self):
        self.register("startup", "founder@example.com", startupName="PayFast", industry="5")
        investor = self.signed_in("investor", "vc@example.com", name="Grace")
        response = investor.patch("/api/investor/profile", json={"preferredSectors": 5})
        self.assertEqual(response.status_code, 200)

        response = investor.post("/api/ai/coach/investor")
        self.assertEqual(response.status_code, 200)
        self.assertIn("5", response.json()["coaching"]["summary"])

        response = investor.post("/api/ai/matchmaking/investor")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["matches"][0]["name"], "PayFast")


if __name__ == "__main__":
    unittest.main()
