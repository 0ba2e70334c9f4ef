"""
Runtime settings for the normalization pipeline.
Read once from the environment (and an optional .env file) at import time.
"""

import os
from dataclasses import dataclass
from typing import Tuple

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

POST_PROMOTION_ANALYTICS_PROVIDER = '56f9cf99-3727-4f2f-bf1c-58dc532ebaf5'


@dataclass(frozen=True)
class Settings:
    """Static pipeline settings."""
    competitor_entity_ids: Tuple[str, ...]
    max_series_span_days: int
    default_provider_id: str
    log_level: str


def load_settings() -> Settings:
    """
    Build settings from environment variables.

    Environment:
        MI_COMPETITOR_ENTITY_IDS: Comma-separated entity ids that denote
            competitor (peer benchmark) data
        MI_MAX_SERIES_SPAN_DAYS: Span above which a time series is flagged
        MI_DEFAULT_PROVIDER_ID: Analytics provider used by the CLI
        MI_LOG_LEVEL: Logging level for the CLI

    Returns:
        Frozen Settings instance
    """
    raw_ids = os.getenv('MI_COMPETITOR_ENTITY_IDS', 'competition,competitor,comp')
    competitor_ids = tuple(
        part.strip().lower() for part in raw_ids.split(',') if part.strip()
    )

    return Settings(
        competitor_entity_ids=competitor_ids,
        max_series_span_days=int(os.getenv('MI_MAX_SERIES_SPAN_DAYS', '730')),
        default_provider_id=os.getenv('MI_DEFAULT_PROVIDER_ID', POST_PROMOTION_ANALYTICS_PROVIDER),
        log_level=os.getenv('MI_LOG_LEVEL', 'WARNING').upper(),
    )


settings = load_settings()
