"""Feed-related Pydantic schemas."""
from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FeedStatus(str, enum.Enum):
    """Health of a feed, derived from its fail record on every read."""

    OK = "ok"
    FAILED = "failed"


class FeedFilter(BaseModel):
    """Equality filters applied to feed queries. Unset fields do not filter."""

    id: str | None = None
    guild: str | None = None
    url: str | None = None
    channel: str | None = None


class FeedWebhookUpdate(BaseModel):
    """Webhook pointer update. An empty id removes the webhook entirely."""

    id: str | None = None
    name: str | None = None
    avatar: str | None = None


class FeedUpdate(BaseModel):
    text: str | None = None
    webhook: FeedWebhookUpdate | None = None


class DetailedFeed(BaseModel):
    """Feed annotated with its derived status and refresh interval."""

    id: str
    title: str
    url: str
    guild: str
    channel: str
    text: str | None = None
    webhook: dict[str, Any] | None = None
    format_tables: bool = False
    img_links_existence: bool = True
    img_previews: bool = True
    added_at: datetime
    status: FeedStatus = FeedStatus.OK
    fail_reason: str | None = None
    refresh_rate_seconds: int = Field(..., gt=0)

    model_config = ConfigDict(from_attributes=True)
