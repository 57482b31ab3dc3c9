"""Hand-off of a finished post to the downstream automation webhook."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

import requests

from dhakadispatch.contracts.selection import SelectionResult
from dhakadispatch.errors import PublishError
from dhakadispatch.ingestion.article_types import Article
from dhakadispatch.logsink import SUCCESS

logger = logging.getLogger(__name__)

QUEUE_STATUS = "Queue"


def build_payload(selection: SelectionResult, image_url: str, article: Article) -> Dict[str, Any]:
    return {
        "headline": selection.headline,
        "imageUrl": image_url,
        "summary": selection.caption,
        "sourceLink": article.link,
        "status": QUEUE_STATUS,
    }


@dataclass(frozen=True)
class WebhookPublisher:
    url: str
    auth_token: str
    timeout: int = 30

    def send(self, selection: SelectionResult, image_url: str, article: Article) -> None:
        payload = build_payload(selection, image_url, article)
        logger.info("Sending data to Make.com webhook...")
        try:
            resp = requests.post(
                self.url,
                headers={"Content-Type": "application/json", "x-make-apikey": self.auth_token},
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise PublishError(f"Webhook delivery failed: {e}") from e
        if not resp.ok:
            raise PublishError("Webhook delivery failed", resp.status_code, resp.text[:500])
        logger.log(
            SUCCESS,
            f"Successfully sent to Make.com: {selection.headline}",
            extra={"context": {"headline": selection.headline, "imageUrl": image_url}},
        )
