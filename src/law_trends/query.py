from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, model_validator

from law_trends.preprocess.time import DateWindow, Granularity, Window

Metric = Literal["news", "social"]


class ViewQuery(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    domains: tuple[str, ...] | None = None
    granularity: Granularity = "daily"
    start_date: date | None = None
    end_date: date | None = None
    metric: Metric = "news"

    @model_validator(mode="after")
    def _check_bounds(self) -> ViewQuery:
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self

    def date_window(self) -> DateWindow:
        return DateWindow(start=self.start_date, end=self.end_date)

    def window(self) -> Window:
        """Range filter window in the key format of ``granularity``, or None when unbounded."""
        dates = self.date_window()
        if not dates.is_bounded:
            return None
        if self.granularity == "daily":
            return dates
        return dates.to_bucket_window(self.granularity)
