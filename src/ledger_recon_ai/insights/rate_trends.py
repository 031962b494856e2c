"""Rate trend summaries, outliers and predictions for one product."""

from decimal import Decimal
from typing import Sequence
import logging

from pydantic import BaseModel, Field

from ..llm.backend import GenerationBackend
from ..llm.prompts import summarize_trends_prompt
from ..models.rates import RateRecord
from ..utils.exceptions import InsightError
from .base import request_structured

logger = logging.getLogger(__name__)


class RateOutlier(BaseModel):
    date: str
    rate: Decimal = Field(allow_inf_nan=False)
    reason: str


class RateTrendSummary(BaseModel):
    summary: str
    outliers: list[RateOutlier] = Field(default_factory=list)
    prediction: str


class RateTrendSummarizer:
    """Asks the model to summarize a product's rate history."""

    def __init__(self, backend: GenerationBackend):
        self.backend = backend

    async def summarize(self, product: str, history: Sequence[RateRecord]) -> RateTrendSummary:
        if not history:
            raise InsightError(f"No rate history recorded for '{product}'")

        # Oldest first reads naturally as a trend
        ordered = sorted(history, key=lambda r: r.bill_date)
        logger.info(f"Summarizing rate trends for '{product}' over {len(ordered)} rate(s)")
        return await request_structured(
            self.backend, summarize_trends_prompt(product, ordered), RateTrendSummary
        )
