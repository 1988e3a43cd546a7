"""
Matching Configuration Schema.

Defines the structure and defaults for three-way matching settings.
Actual values come from the ``matching_settings`` table or a YAML file at
runtime; the defaults below are the values a fresh installation starts with.
"""

from dataclasses import asdict, dataclass, fields
from decimal import Decimal
from typing import Any, Self

from procure_kernel.exceptions import ConfigurationError, ValidationError
from procure_kernel.logging_config import get_logger
from procure_kernel.utils.numeric import to_non_negative_decimal, to_positive_decimal

logger = get_logger("config.schema")

_TOLERANCE_FIELDS = (
    "price_tolerance_percentage",
    "quantity_tolerance_percentage",
    "tax_tolerance_percentage",
)

_FLAG_FIELDS = (
    "strict_matching_mode",
    "allow_over_receipt",
    "require_grn_for_invoice",
    "auto_approve_matched",
)

_TRUE_WORDS = frozenset({"true", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "no", "off"})


def _to_flag(field: str, value: Any) -> bool:
    """
    Accept a bool, or one of a fixed set of words in any case.

    Raises:
        ValidationError: for anything else, including numbers.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise ValidationError(field, value, "expected true/false, yes/no or on/off")


@dataclass(frozen=True)
class MatchingSettings:
    """
    Configuration schema for three-way matching.

    Passed explicitly into every evaluation; nothing reads it from global
    state.  Override at instantiation with company-specific values:

        settings = MatchingSettings(
            total_tolerance_percentage=Decimal("5"),
            auto_approve_matched=True,
        )

    Percentages are percentage points: ``2`` means 2%.

    ``strict_matching_mode`` is carried for display and future line-level
    matching; classification does not consult it.
    """

    price_tolerance_percentage: Decimal = Decimal("2.00")
    quantity_tolerance_percentage: Decimal = Decimal("0.00")
    tax_tolerance_percentage: Decimal = Decimal("1.00")
    total_tolerance_percentage: Decimal = Decimal("2.00")

    strict_matching_mode: bool = False
    allow_over_receipt: bool = False
    require_grn_for_invoice: bool = True
    auto_approve_matched: bool = False

    def __post_init__(self):
        for name in _TOLERANCE_FIELDS:
            object.__setattr__(
                self, name, to_non_negative_decimal(name, getattr(self, name))
            )
        object.__setattr__(
            self,
            "total_tolerance_percentage",
            to_positive_decimal(
                "total_tolerance_percentage", self.total_tolerance_percentage
            ),
        )
        for name in _FLAG_FIELDS:
            object.__setattr__(self, name, _to_flag(name, getattr(self, name)))

        logger.debug(
            "matching_settings_initialized",
            extra={
                "total_tolerance_percentage": str(self.total_tolerance_percentage),
                "price_tolerance_percentage": str(self.price_tolerance_percentage),
                "strict_matching_mode": self.strict_matching_mode,
                "auto_approve_matched": self.auto_approve_matched,
            },
        )

    @property
    def mode_label(self) -> str:
        return "Strict" if self.strict_matching_mode else "Flexible"

    @classmethod
    def with_defaults(cls) -> Self:
        """Create settings with the installation defaults."""
        logger.info("matching_settings_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any], source: str | None = None) -> Self:
        """
        Create settings from a dictionary (database row, YAML document).

        Unknown keys are rejected so that a typo in a settings file does not
        silently fall back to a default tolerance.

        Raises:
            ConfigurationError: on unknown keys.
            ValidationError: on invalid tolerance values or flags.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(source, f"unknown settings keys: {unknown}")
        logger.info(
            "matching_settings_loading_from_dict",
            extra={"keys": sorted(data.keys()), "source": source},
        )
        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
