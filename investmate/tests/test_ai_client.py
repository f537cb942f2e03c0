import unittest
from unittest import mock

import requests

from investmate.ai_client import (
    STARTUP_COACH,
    AiClient,
    normalize_matches,
    parse_ai_response,
)


class ParseAiResponseTests(unittest.TestCase):
    def test_value_list_is_unwrapped(self):
        self.assertEqual(parse_ai_response({"value": [1, 2]}), [1, 2])

    def test_fenced_raw_json(self):
        data = {"raw": 'Here you go:\n```json\n[{"userId": "u1"}]\n```'}
        self.assertEqual(parse_ai_response(data), [{"userId": "u1"}])

    def test_plain_raw_json(self):
        self.assertEqual(parse_ai_response({"raw": '{"a": 1}'}), {"a": 1})

    def test_unparseable_raw_is_returned_unchanged(self):
        data = {"raw": "not json at all"}
        self.assertEqual(parse_ai_response(data), data)

    def test_other_shapes_pass_through(self):
        self.assertEqual(parse_ai_response({"tips": []}), {"tips": []})
        self.assertIsNone(parse_ai_response(None))


class NormalizeMatchesTests(unittest.TestCase):
    def test_wrapper_keys(self):
        for key in ("matches", "results", "data"):
            with self.subTest(key=key):
                self.assertEqual(normalize_matches({key: [{"userId": "u"}]}), [{"userId": "u"}])

    def test_unusable_answers_become_empty(self):
        for answer in (None, "text", {"error": "nope"}, {"raw": "???"}):
            with self.subTest(answer=answer):
                self.assertEqual(normalize_matches(answer), [])


class AiClientTests(unittest.TestCase):
    def test_unconfigured_client_skips_the_call(self):
        client = AiClient(None)
        self.assertFalse(client.configured)
        with mock.patch("investmate.ai_client.requests.post") as post:
            self.assertIsNone(client.call(STARTUP_COACH, {}))
        post.assert_not_called()

    @mock.patch("investmate.ai_client.requests.post")
    def test_posts_to_operation_url(self, post):
        post.return_value = mock.Mock(ok=True, status_code=200)
        post.return_value.json.return_value = {"ok": True}
        client = AiClient("http://ai.test/", timeout=5)

        self.assertEqual(client.call(STARTUP_COACH, {"startupData": {}}), {"ok": True})
        post.assert_called_once_with(
            "http://ai.test/startup-coach", json={"startupData": {}}, timeout=5
        )

    @mock.patch("investmate.ai_client.requests.post")
    def test_failures_return_none(self, post):
        client = AiClient("http://ai.test")

        post.side_effect = requests.ConnectionError("down")
        self.assertIsNone(client.call(STARTUP_COACH, {}))

        post.side_effect = None
        post.return_value = mock.Mock(ok=False, status_code=502)
        self.assertIsNone(client.call(STARTUP_COACH, {}))

        post.return_value = mock.Mock(ok=True, status_code=200)
        post.return_value.json.side_effect = ValueError("no json")
        self.assertIsNone(client.call(STARTUP_COACH, {}))


if __name__ == "__main__":
    unittest.main()
