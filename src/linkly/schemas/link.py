"""Link Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from linkly.core.clock import as_utc, utc_now


class Link(BaseModel):
    """A stored short link.

    Links are immutable values; the store swaps in an updated copy when
    a link is enabled or disabled. Timestamps are always aware UTC.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Opaque unique identifier")
    original_url: str = Field(description="The URL to redirect to")
    alias: str = Field(description="Short code the link resolves from")
    created_at: datetime
    expires_at: datetime | None = Field(default=None, description="Optional expiration time")
    active: bool = True
    owner: str = Field(description="Principal that created the link")

    @field_validator("created_at", "expires_at")
    @classmethod
    def _normalize_utc(cls, value: datetime | None) -> datetime | None:
        # Naive values are taken to be UTC
        return as_utc(value)

    def __repr__(self) -> str:
        return f"<Link {self.alias} -> {self.original_url[:50]}>"

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check if the link has expired at ``now`` (defaults to the current time)."""
        if self.expires_at is None:
            return False
        return self.expires_at < as_utc(now or utc_now())


class LinkCreate(BaseModel):
    """Schema for creating a new link."""

    original_url: str = Field(description="The URL to shorten")
    alias: str | None = Field(default=None, max_length=64, description="Optional custom alias")
    expires_at: datetime | None = Field(default=None, description="Optional expiration time")


class LinkUpdate(BaseModel):
    """Schema for updating a link."""

    active: bool | None = None


class LinkListResponse(BaseModel):
    """Schema for the link list response."""

    items: list[Link]
    total: int
