"""Read-only query selectors."""

from procure_kernel.selectors.base import BaseSelector
from procure_kernel.selectors.matching_settings_selector import MatchingSettingsSelector
from procure_kernel.selectors.three_way_match_selector import (
    POReceiptInputs,
    ThreeWayMatchSelector,
)

__all__ = [
    "BaseSelector",
    "MatchingSettingsSelector",
    "POReceiptInputs",
    "ThreeWayMatchSelector",
]
