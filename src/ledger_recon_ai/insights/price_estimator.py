"""Next-price estimation from a product's recorded rate history."""

from decimal import Decimal
from typing import Sequence
import logging

from pydantic import BaseModel, ConfigDict, Field

from ..llm.backend import GenerationBackend
from ..llm.prompts import estimate_price_prompt
from ..models.rates import RateRecord
from ..utils.exceptions import InsightError
from .base import request_structured

logger = logging.getLogger(__name__)


class PriceEstimate(BaseModel):
    """Estimated next final price (GST included) and the model's reasoning."""

    model_config = ConfigDict(populate_by_name=True)

    estimated_price: Decimal = Field(alias="estimatedPrice", allow_inf_nan=False)
    reasoning: str


class PriceEstimator:
    """Asks the model for the next final price of one product."""

    def __init__(self, backend: GenerationBackend):
        self.backend = backend

    async def estimate(self, product: str, history: Sequence[RateRecord]) -> PriceEstimate:
        """
        Estimate the next final price for a product.

        Args:
            product: Product name
            history: Recorded rates for the product

        Returns:
            Validated price estimate

        Raises:
            InsightError: If there is no history or the reply is unusable
        """
        if not history:
            raise InsightError(f"No rate history recorded for '{product}'")

        ordered = sorted(history, key=lambda r: r.bill_date, reverse=True)
        logger.info(f"Estimating next price for '{product}' from {len(ordered)} rate(s)")
        return await request_structured(
            self.backend, estimate_price_prompt(product, ordered), PriceEstimate
        )
