import unittest
from unittest import mock

import web_app


class TestManualTrigger(unittest.TestCase):
    def setUp(self):
        self.pipeline = mock.Mock()
        web_app.app.config['TESTING'] = True
        web_app.app.config['DISPATCH_PIPELINE'] = self.pipeline
        self.client = web_app.app.test_client()

    def tearDown(self):
        web_app.app.config['DISPATCH_PIPELINE'] = None

    @mock.patch("web_app.dispatch_batch_async")
    def test_post_returns_202_and_dispatches(self, dispatch):
        resp = self.client.post("/")
        self.assertEqual(resp.status_code, 202)
        self.assertEqual(resp.get_data(as_text=True), "News processing batch triggered successfully.")
        dispatch.assert_called_once_with(self.pipeline)

    @mock.patch("web_app.dispatch_batch_async")
    def test_get_also_triggers(self, dispatch):
        self.assertEqual(self.client.get("/").status_code, 202)
        dispatch.assert_called_once()

    @mock.patch("web_app.dispatch_batch_async")
    @mock.patch("web_app.Config.from_env", side_effect=ValueError("GEMINI_API_KEY is required"))
    def test_configuration_error_does_not_dispatch(self, from_env, dispatch):
        web_app.app.config['DISPATCH_PIPELINE'] = None
        resp = self.client.post("/")
        self.assertEqual(resp.status_code, 500)
        dispatch.assert_not_called()

    def test_health(self):
        resp = self.client.get("/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["status"], "healthy")


if __name__ == "__main__":
    unittest.main()
