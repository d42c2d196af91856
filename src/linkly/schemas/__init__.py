"""Pydantic schemas."""

from linkly.schemas.analytics import (
    AnalyticsSummary,
    CountryClicks,
    DateClicks,
    DeviceClicks,
    ReferrerClicks,
)
from linkly.schemas.click import ClickDetails, ClickEvent, DeviceType
from linkly.schemas.link import Link, LinkCreate, LinkListResponse, LinkUpdate

__all__ = [
    "AnalyticsSummary",
    "CountryClicks",
    "DateClicks",
    "DeviceClicks",
    "ReferrerClicks",
    "ClickDetails",
    "ClickEvent",
    "DeviceType",
    "Link",
    "LinkCreate",
    "LinkListResponse",
    "LinkUpdate",
]
