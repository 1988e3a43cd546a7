"""Read-only access to the persisted matching settings row."""

from typing import Any

from sqlalchemy import select

from procure_kernel.models.matching_settings import MatchingSettingsModel
from procure_kernel.selectors.base import BaseSelector


class MatchingSettingsSelector(BaseSelector):
    """Returns the current settings row as a plain dict."""

    def get_current(self) -> dict[str, Any] | None:
        """
        The oldest settings row, or None when none has been saved.

        Raises:
            DataFetchError: on any database error.
        """
        stmt = (
            select(MatchingSettingsModel)
            .order_by(MatchingSettingsModel.created_at, MatchingSettingsModel.id)
            .limit(1)
        )
        row = self._fetch(
            "matching_settings",
            lambda: self.session.execute(stmt).scalars().first(),
        )
        return row.to_dict() if row is not None else None
