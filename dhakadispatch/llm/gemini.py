"""Gemini REST client: text generation and Imagen image generation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

import requests

from dhakadispatch.errors import ModelError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratedImage:
    image_bytes: str  # base64
    mime_type: str = "image/png"


def _extract_text(payload: Dict[str, Any]) -> str:
    try:
        parts = payload["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict)).strip()


def _extract_images(payload: Dict[str, Any], default_mime: str) -> List[GeneratedImage]:
    out: List[GeneratedImage] = []
    for pred in payload.get("predictions") or []:
        if not isinstance(pred, dict):
            continue
        data = pred.get("bytesBase64Encoded")
        if data:
            out.append(GeneratedImage(image_bytes=data, mime_type=pred.get("mimeType") or default_mime))
    return out


@dataclass(frozen=True)
class GeminiClient:
    api_key: str
    text_model: str = "gemini-2.5-flash"
    image_model: str = "imagen-3.0-generate-002"
    api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    timeout: int = 60

    def _post(self, model: str, method: str, body: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.api_base}/models/{model}:{method}"
        try:
            resp = requests.post(
                url,
                headers={"x-goog-api-key": self.api_key, "Content-Type": "application/json"},
                json=body,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise ModelError(f"Gemini {method} call failed: {e}") from e
        if not resp.ok:
            raise ModelError(f"Gemini {method} call failed: {resp.status_code} {resp.text[:500]}")
        try:
            return resp.json() or {}
        except ValueError as e:
            raise ModelError(f"Gemini {method} returned non-JSON body") from e

    def generate_text(self, prompt: str) -> str:
        """Single-prompt completion; returns the reply text trimmed."""
        logger.info(f"Requesting completion from {self.text_model} (prompt {len(prompt)} chars)")
        data = self._post(
            self.text_model,
            "generateContent",
            {"contents": [{"role": "user", "parts": [{"text": prompt}]}]},
        )
        return _extract_text(data)

    def generate_images(
        self,
        prompt: str,
        *,
        number_of_images: int = 1,
        aspect_ratio: str = "4:3",
        mime_type: str = "image/png",
    ) -> List[GeneratedImage]:
        """Imagen generation. An empty list is a valid (non-error) outcome."""
        logger.info(f"Generating image with {self.image_model}...")
        data = self._post(
            self.image_model,
            "predict",
            {
                "instances": [{"prompt": prompt}],
                "parameters": {
                    "sampleCount": number_of_images,
                    "aspectRatio": aspect_ratio,
                    "outputOptions": {"mimeType": mime_type},
                },
            },
        )
        return _extract_images(data, mime_type)
