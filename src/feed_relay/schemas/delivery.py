"""Delivery outcome variants reported by the delivery pipeline.

Error details exist only on the ``Failed`` and ``Rejected`` variants.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from feed_relay.models.delivery_record import ArticleDeliveryStatus


@dataclass(frozen=True)
class Sent:
    status: ClassVar[ArticleDeliveryStatus] = ArticleDeliveryStatus.SENT


@dataclass(frozen=True)
class Failed:
    """Delivery attempt that errored on our side or at Discord."""

    status: ClassVar[ArticleDeliveryStatus] = ArticleDeliveryStatus.FAILED

    error_code: str
    internal_message: str


@dataclass(frozen=True)
class Rejected:
    """Delivery attempt that Discord refused, e.g. for an invalid payload."""

    status: ClassVar[ArticleDeliveryStatus] = ArticleDeliveryStatus.REJECTED

    error_code: str
    internal_message: str


@dataclass(frozen=True)
class PendingDelivery:
    status: ClassVar[ArticleDeliveryStatus] = ArticleDeliveryStatus.PENDING_DELIVERY


@dataclass(frozen=True)
class FilteredOut:
    status: ClassVar[ArticleDeliveryStatus] = ArticleDeliveryStatus.FILTERED_OUT


ArticleDeliveryOutcome = Sent | Failed | Rejected | PendingDelivery | FilteredOut
