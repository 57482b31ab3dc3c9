import unittest
from unittest import mock

import requests

from dhakadispatch.errors import ModelError
from dhakadispatch.llm.gemini import GeminiClient


def _response(status_code=200, payload=None, text=""):
    resp = mock.Mock()
    resp.ok = 200 <= status_code < 300
    resp.status_code = status_code
    resp.text = text
    resp.json.return_value = payload
    return resp


@mock.patch("dhakadispatch.llm.gemini.requests.post")
class TestGeminiClient(unittest.TestCase):
    def setUp(self):
        self.client = GeminiClient(api_key="secret")

    def test_generate_text_returns_trimmed_reply(self, post):
        post.return_value = _response(payload={
            "candidates": [{"content": {"parts": [{"text": "  IRRELEVANT\n"}]}}]
        })
        self.assertEqual(self.client.generate_text("prompt"), "IRRELEVANT")

        url = post.call_args.args[0]
        self.assertTrue(url.endswith("/models/gemini-2.5-flash:generateContent"))
        self.assertEqual(post.call_args.kwargs["headers"]["x-goog-api-key"], "secret")
        self.assertEqual(post.call_args.kwargs["json"]["contents"][0]["parts"][0]["text"], "prompt")

    def test_generate_text_without_candidates_is_empty(self, post):
        post.return_value = _response(payload={"candidates": []})
        self.assertEqual(self.client.generate_text("prompt"), "")

    def test_generate_images_parses_predictions(self, post):
        post.return_value = _response(payload={
            "predictions": [{"bytesBase64Encoded": "QUJD", "mimeType": "image/png"}, {"other": 1}]
        })
        images = self.client.generate_images("a port", number_of_images=1, aspect_ratio="4:3")

        self.assertEqual(len(images), 1)
        self.assertEqual(images[0].image_bytes, "QUJD")
        body = post.call_args.kwargs["json"]
        self.assertEqual(body["parameters"]["sampleCount"], 1)
        self.assertEqual(body["parameters"]["aspectRatio"], "4:3")
        self.assertTrue(post.call_args.args[0].endswith("/models/imagen-3.0-generate-002:predict"))

    def test_no_predictions_is_an_empty_list(self, post):
        post.return_value = _response(payload={})
        self.assertEqual(self.client.generate_images("a port"), [])

    def test_http_error_raises(self, post):
        post.return_value = _response(status_code=429, text="quota")
        with self.assertRaisesRegex(ModelError, "429"):
            self.client.generate_text("prompt")

    def test_transport_error_raises(self, post):
        post.side_effect = requests.exceptions.ConnectionError("down")
        with self.assertRaises(ModelError):
            self.client.generate_images("a port")


if __name__ == "__main__":
    unittest.main()
