"""Batch orchestration: one attempt per category, strictly in order.

Per category: fetch candidates -> select -> resolve image -> compose ->
upload -> webhook. Skips (nothing to do) and failures (any raised error) are
both recorded and the loop moves on; nothing escapes `run_batch`.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, FrozenSet, Iterator, List, Optional, Sequence, Set

from dhakadispatch.composition.assets import CompositionAssets, load_assets
from dhakadispatch.composition.render import compose_final_image
from dhakadispatch.config import NEWS_CATEGORIES, Config
from dhakadispatch.contracts.selection import EditorialRules, select_article
from dhakadispatch.imaging.resolver import resolve_main_image
from dhakadispatch.ingestion.aggregator import collect_candidates
from dhakadispatch.ingestion.article_types import Category
from dhakadispatch.ingestion.newsdata import NewsDataClient
from dhakadispatch.llm.gemini import GeminiClient
from dhakadispatch.logsink import SUCCESS
from dhakadispatch.publishing.cloudinary import CloudinaryUploader
from dhakadispatch.publishing.webhook import WebhookPublisher

logger = logging.getLogger(__name__)

PUBLISHED = "published"
SKIPPED = "skipped"
FAILED = "failed"


class UsedLinkSet:
    """Links chosen so far in one batch. Only grows; owned by a single run."""

    def __init__(self):
        self._links: Set[str] = set()

    def add(self, link: str) -> None:
        self._links.add(link)

    def snapshot(self) -> FrozenSet[str]:
        return frozenset(self._links)

    def __contains__(self, link: object) -> bool:
        return link in self._links

    def __len__(self) -> int:
        return len(self._links)

    def __iter__(self) -> Iterator[str]:
        return iter(self._links)


@dataclass(frozen=True)
class CategoryOutcome:
    category: str
    status: str
    reason: str = ""
    link: Optional[str] = None
    image_url: Optional[str] = None


@dataclass
class BatchReport:
    outcomes: List[CategoryOutcome] = field(default_factory=list)
    duration: float = 0.0

    def _with(self, status: str) -> List[CategoryOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def published(self) -> List[CategoryOutcome]:
        return self._with(PUBLISHED)

    @property
    def skipped(self) -> List[CategoryOutcome]:
        return self._with(SKIPPED)

    @property
    def failed(self) -> List[CategoryOutcome]:
        return self._with(FAILED)

    def summary(self) -> str:
        return (
            f"{len(self.published)} published, {len(self.skipped)} skipped, "
            f"{len(self.failed)} failed in {self.duration:.1f}s"
        )


class DispatchPipeline:
    """Runs the per-category pipeline with injected collaborators."""

    def __init__(
        self,
        *,
        source,
        model,
        uploader,
        publisher,
        assets_loader: Callable[[], CompositionAssets],
        rules: Optional[EditorialRules] = None,
        brand_text: str = "Dhaka Dispatch",
        categories: Sequence[Category] = NEWS_CATEGORIES,
        timeout: int = 30,
    ):
        self.source = source
        self.model = model
        self.uploader = uploader
        self.publisher = publisher
        self.assets_loader = assets_loader
        self.rules = rules or EditorialRules()
        self.brand_text = brand_text
        self.categories = list(categories)
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: Config) -> "DispatchPipeline":
        timeout = config.request_timeout
        return cls(
            source=NewsDataClient(
                api_key=config.newsdata_api_key,
                country=config.news_country,
                language=config.news_language,
                page_size=config.news_page_size,
                timeout=timeout,
            ),
            model=GeminiClient(
                api_key=config.gemini_api_key,
                text_model=config.gemini_text_model,
                image_model=config.gemini_image_model,
                timeout=max(timeout, 60),
            ),
            uploader=CloudinaryUploader(
                cloud_name=config.cloudinary_cloud_name,
                api_key=config.cloudinary_api_key,
                upload_preset=config.cloudinary_upload_preset,
                timeout=max(timeout, 60),
            ),
            publisher=WebhookPublisher(
                url=config.make_webhook_url,
                auth_token=config.make_webhook_auth_token,
                timeout=timeout,
            ),
            assets_loader=partial(
                load_assets,
                font_bold_url=config.font_bold_url,
                font_brand_url=config.font_brand_url,
                overlay_url=config.overlay_image_url,
                logo_url=config.logo_url,
                timeout=timeout,
            ),
            rules=EditorialRules(region=config.relevance_region, rule=config.relevance_rule),
            brand_text=config.brand_text,
            timeout=timeout,
        )

    def process_category(self, category: Category, used_links: UsedLinkSet) -> CategoryOutcome:
        """Run one category end to end. Errors propagate to the caller."""
        context = {"category": category.name}
        logger.info(f"Processing category: {category.name}", extra={"context": context})

        candidates = collect_candidates(
            category, used_links.snapshot(), self.source, categories=self.categories
        )
        if not candidates:
            logger.warning(f"No new articles for {category.name}. Skipping.", extra={"context": context})
            return CategoryOutcome(category.name, SKIPPED, "no candidates")

        selection = select_article(candidates, self.model, self.rules)
        if selection is None:
            logger.warning(
                f"No relevant article found for {category.name}. Skipping.", extra={"context": context}
            )
            return CategoryOutcome(category.name, SKIPPED, "no relevant article")

        article = selection.article_from(candidates)
        used_links.add(article.link)
        logger.info(
            f"Selected article {selection.chosen_index}: {article.title}",
            extra={"context": dict(context, link=article.link)},
        )

        main_image = resolve_main_image(article, selection.image_prompt, self.model, timeout=self.timeout)
        if not main_image:
            logger.warning(
                f"No image available for {category.name}. Skipping.",
                extra={"context": dict(context, link=article.link)},
            )
            return CategoryOutcome(category.name, SKIPPED, "no image available", link=article.link)

        logger.info("Composing final image...", extra={"context": context})
        assets = self.assets_loader()
        final_image = compose_final_image(
            selection.headline,
            selection.highlight_phrases,
            main_image,
            assets,
            brand_text=self.brand_text,
        )

        image_url = self.uploader.upload(final_image)
        self.publisher.send(selection, image_url, article)
        logger.log(
            SUCCESS,
            f"Finished processing {category.name}",
            extra={"context": dict(context, link=article.link, imageUrl=image_url)},
        )
        return CategoryOutcome(category.name, PUBLISHED, link=article.link, image_url=image_url)

    def run_batch(self) -> BatchReport:
        started = time.time()
        used_links = UsedLinkSet()
        report = BatchReport()
        logger.info("=" * 60)
        logger.info("News processing batch started")
        for category in self.categories:
            try:
                outcome = self.process_category(category, used_links)
            except Exception as e:
                logger.error(
                    f"Error processing category {category.name}: {e}",
                    exc_info=True,
                    extra={"context": {"category": category.name}},
                )
                outcome = CategoryOutcome(category.name, FAILED, str(e))
            report.outcomes.append(outcome)
        report.duration = time.time() - started
        logger.info(f"News processing batch finished: {report.summary()}")
        logger.info("=" * 60)
        return report


def _run_safely(pipeline: DispatchPipeline) -> None:
    try:
        pipeline.run_batch()
    except Exception as e:
        logger.error(f"Batch run aborted: {e}", exc_info=True)


def dispatch_batch_async(pipeline: DispatchPipeline) -> threading.Thread:
    """Start one batch on a daemon thread and return without waiting."""
    thread = threading.Thread(target=_run_safely, args=(pipeline,), name="dispatch-batch", daemon=True)
    thread.start()
    return thread
