"""Pydantic schemas for analytics summaries."""

from pydantic import BaseModel, Field


class DateClicks(BaseModel):
    """Clicks on one UTC calendar day."""

    date: str = Field(description="Day in YYYY-MM-DD form")
    clicks: int


class DeviceClicks(BaseModel):
    """Clicks from one device category."""

    name: str
    value: int


class CountryClicks(BaseModel):
    """Clicks from a single country."""

    country: str
    clicks: int
    percentage: float = Field(description="Percentage of total clicks")


class ReferrerClicks(BaseModel):
    """Clicks from a single referrer."""

    referrer: str
    clicks: int
    percentage: float = Field(description="Percentage of total clicks")


class AnalyticsSummary(BaseModel):
    """Summary statistics for a link.

    Device, country and referrer breakdowns are ordered by descending
    click count, so the first entry is always the top one.
    """

    link_id: str
    total_clicks: int = Field(description="Total number of clicks")
    clicks_by_date: list[DateClicks] = Field(default_factory=list)
    clicks_by_device: list[DeviceClicks] = Field(default_factory=list)
    clicks_by_country: list[CountryClicks] = Field(default_factory=list)
    clicks_by_referrer: list[ReferrerClicks] = Field(default_factory=list)

    @property
    def top_country(self) -> str | None:
        """Country with the most clicks."""
        return self.clicks_by_country[0].country if self.clicks_by_country else None

    @property
    def top_referrer(self) -> str | None:
        """Referrer with the most clicks."""
        return self.clicks_by_referrer[0].referrer if self.clicks_by_referrer else None
