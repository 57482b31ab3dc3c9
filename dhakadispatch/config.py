"""Runtime configuration loaded from the environment (.env supported)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlparse

from dhakadispatch.ingestion.article_types import Category

logger = logging.getLogger(__name__)


# Fixed processing order. "top" is synthetic: it aggregates the other four.
NEWS_CATEGORIES: List[Category] = [
    Category(name="Trending", source_key="top"),
    Category(name="Politics", source_key="politics"),
    Category(name="Crime", source_key="crime"),
    Category(name="Entertainment", source_key="entertainment"),
    Category(name="Business/Corporate", source_key="business"),
]

AGGREGATE_SOURCE_KEY = "top"

DEFAULT_LOGO_URL = "https://res.cloudinary.com/dy80ftu9k/image/upload/v1753507647/scs_cqidjz.png"
DEFAULT_OVERLAY_IMAGE_URL = "https://res.cloudinary.com/dy80ftu9k/image/upload/v1753644798/Untitled-1_hxkjvt.png"
DEFAULT_FONT_BOLD_URL = "https://cdn.jsdelivr.net/fontsource/fonts/poppins@latest/latin-700-normal.ttf"
DEFAULT_FONT_BRAND_URL = "https://cdn.jsdelivr.net/fontsource/fonts/inter@latest/latin-600-normal.ttf"


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Config:
    """Pipeline configuration with validation"""
    gemini_api_key: str
    newsdata_api_key: str

    # Image hosting
    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_upload_preset: str = ""

    # Downstream webhook
    make_webhook_url: str = ""
    make_webhook_auth_token: str = ""

    # Log sink (optional)
    log_webhook_url: str = ""

    # Branding / composition resources
    brand_text: str = "Dhaka Dispatch"
    logo_url: str = DEFAULT_LOGO_URL
    overlay_image_url: str = DEFAULT_OVERLAY_IMAGE_URL
    font_bold_url: str = DEFAULT_FONT_BOLD_URL
    font_brand_url: str = DEFAULT_FONT_BRAND_URL

    # News source filters
    news_country: str = "bd"
    news_language: str = "en"
    news_page_size: int = 10

    # Editorial relevance rule
    relevance_region: str = "Bangladesh"
    relevance_rule: str = ""

    # Models
    gemini_text_model: str = "gemini-2.5-flash"
    gemini_image_model: str = "imagen-3.0-generate-002"

    # Runtime
    request_timeout: int = 30
    schedule_minute: str = ":00"
    web_port: int = 8787
    webhook_logging_enabled: bool = True

    @classmethod
    def from_env(cls, validate: bool = True) -> "Config":
        """Load configuration from environment variables"""
        config = cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            newsdata_api_key=os.getenv("NEWSDATA_API_KEY", ""),

            cloudinary_cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME", ""),
            cloudinary_api_key=os.getenv("CLOUDINARY_API_KEY", ""),
            cloudinary_upload_preset=os.getenv("CLOUDINARY_UPLOAD_PRESET", ""),

            make_webhook_url=os.getenv("MAKE_WEBHOOK_URL", ""),
            make_webhook_auth_token=os.getenv("MAKE_WEBHOOK_AUTH_TOKEN", ""),

            log_webhook_url=os.getenv("LOG_WEBHOOK_URL", ""),

            brand_text=os.getenv("BRAND_TEXT", "Dhaka Dispatch"),
            logo_url=os.getenv("LOGO_URL", DEFAULT_LOGO_URL),
            overlay_image_url=os.getenv("OVERLAY_IMAGE_URL", DEFAULT_OVERLAY_IMAGE_URL),
            font_bold_url=os.getenv("FONT_BOLD_URL", DEFAULT_FONT_BOLD_URL),
            font_brand_url=os.getenv("FONT_BRAND_URL", DEFAULT_FONT_BRAND_URL),

            news_country=os.getenv("NEWS_COUNTRY", "bd"),
            news_language=os.getenv("NEWS_LANGUAGE", "en"),
            news_page_size=int(os.getenv("NEWS_PAGE_SIZE", "10")),

            relevance_region=os.getenv("RELEVANCE_REGION", "Bangladesh"),
            relevance_rule=os.getenv("RELEVANCE_RULE", ""),

            gemini_text_model=os.getenv("GEMINI_TEXT_MODEL", "gemini-2.5-flash"),
            gemini_image_model=os.getenv("GEMINI_IMAGE_MODEL", "imagen-3.0-generate-002"),

            request_timeout=int(os.getenv("REQUEST_TIMEOUT", "30")),
            schedule_minute=os.getenv("SCHEDULE_MINUTE", ":00"),
            web_port=int(os.getenv("WEB_PORT", "8787")),
            webhook_logging_enabled=_env_bool("WEBHOOK_LOGGING_ENABLED", True),
        )
        if validate:
            config._validate()
        return config

    def _validate(self):
        """Validate configuration values"""
        errors = []

        required = {
            "GEMINI_API_KEY": self.gemini_api_key,
            "NEWSDATA_API_KEY": self.newsdata_api_key,
            "CLOUDINARY_CLOUD_NAME": self.cloudinary_cloud_name,
            "CLOUDINARY_API_KEY": self.cloudinary_api_key,
            "CLOUDINARY_UPLOAD_PRESET": self.cloudinary_upload_preset,
            "MAKE_WEBHOOK_URL": self.make_webhook_url,
            "MAKE_WEBHOOK_AUTH_TOKEN": self.make_webhook_auth_token,
        }
        for name, value in required.items():
            if not value:
                errors.append(f"{name} is required")

        urls = {
            "MAKE_WEBHOOK_URL": self.make_webhook_url,
            "LOG_WEBHOOK_URL": self.log_webhook_url,
            "LOGO_URL": self.logo_url,
            "OVERLAY_IMAGE_URL": self.overlay_image_url,
            "FONT_BOLD_URL": self.font_bold_url,
            "FONT_BRAND_URL": self.font_brand_url,
        }
        for name, value in urls.items():
            if value and urlparse(value).scheme not in ("http", "https"):
                errors.append(f"{name} must be an http(s) URL")

        if not 1 <= self.news_page_size <= 10:
            errors.append("NEWS_PAGE_SIZE should be between 1 and 10")

        if self.request_timeout < 5 or self.request_timeout > 300:
            errors.append("REQUEST_TIMEOUT should be between 5 and 300 seconds")

        if not self.relevance_region and not self.relevance_rule:
            errors.append("Either RELEVANCE_REGION or RELEVANCE_RULE must be set")

        if errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {error}" for error in errors)
            raise ValueError(error_msg)

        logger.info("Configuration validated successfully")

    @property
    def log_sink_url(self) -> Optional[str]:
        if self.webhook_logging_enabled and self.log_webhook_url:
            return self.log_webhook_url
        return None
