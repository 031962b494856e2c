"""Model-backed insights over recorded purchase rates."""

from .price_estimator import PriceEstimate, PriceEstimator
from .rate_trends import RateOutlier, RateTrendSummary, RateTrendSummarizer

__all__ = [
    "PriceEstimate",
    "PriceEstimator",
    "RateOutlier",
    "RateTrendSummary",
    "RateTrendSummarizer",
]
