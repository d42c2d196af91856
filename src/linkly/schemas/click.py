"""Click event schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DeviceType(str, Enum):
    """Device category of a visitor."""

    DESKTOP = "Desktop"
    MOBILE = "Mobile"
    TABLET = "Tablet"
    OTHER = "Other"


class ClickEvent(BaseModel):
    """A single visit to a short link.

    Click events are append-only and never change once recorded.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    link_id: str = Field(description="Identifier of the visited link")
    timestamp: datetime = Field(description="When the click occurred (UTC)")
    country: str
    city: str
    device: DeviceType
    referrer: str
    user_agent: str


class ClickDetails(BaseModel):
    """Request metadata for a click.

    Any field left as None is filled in by the aggregator's click source.
    """

    country: str | None = None
    city: str | None = None
    device: DeviceType | None = None
    referrer: str | None = None
    user_agent: str | None = None
