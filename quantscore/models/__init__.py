"""
Data Models Package.
"""

from quantscore.models.price import PricePoint, PriceSeries
from quantscore.models.estimates import (
    EstimatePoint,
    EstimateRecord,
    ShortInterestPoint,
    ShortInterestRecord,
    OptionsFlowRecord,
)

__all__ = [
    # Price
    "PricePoint",
    "PriceSeries",

    # Estimates and positioning
    "EstimatePoint",
    "EstimateRecord",
    "ShortInterestPoint",
    "ShortInterestRecord",
    "OptionsFlowRecord",
]
