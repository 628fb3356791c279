from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field


class BillingEventKind(str, Enum):
    """Provider event names this service understands."""

    ORDER_CREATED = "order_created"
    SUBSCRIPTION_CREATED = "subscription_created"
    SUBSCRIPTION_UPDATED = "subscription_updated"
    SUBSCRIPTION_CANCELLED = "subscription_cancelled"
    SUBSCRIPTION_RESUMED = "subscription_resumed"
    SUBSCRIPTION_EXPIRED = "subscription_expired"
    PAYMENT_SUCCEEDED = "subscription_payment_success"
    PAYMENT_FAILED = "subscription_payment_failed"


class _BillingEvent(BaseModel):
    object_id: str = Field(min_length=1)
    raw: dict[str, Any] = Field(default_factory=dict, repr=False)

    @property
    def event_key(self) -> str:
        return f"{self.kind.value}:{self.object_id}"  # type: ignore[attr-defined]


class OrderCreated(_BillingEvent):
    kind: Literal[BillingEventKind.ORDER_CREATED] = BillingEventKind.ORDER_CREATED
    user_email: str
    customer_id: str
    variant_id: str
    product_name: str = ""
    variant_name: str = ""
    amount: int = 0
    currency: str = "USD"


class SubscriptionCreated(_BillingEvent):
    kind: Literal[BillingEventKind.SUBSCRIPTION_CREATED] = BillingEventKind.SUBSCRIPTION_CREATED
    user_email: str
    customer_id: str
    variant_id: str
    status: str
    renews_at: datetime | None = None
    created_at: datetime | None = None


class SubscriptionUpdated(_BillingEvent):
    kind: Literal[BillingEventKind.SUBSCRIPTION_UPDATED] = BillingEventKind.SUBSCRIPTION_UPDATED
    status: str
    renews_at: datetime | None = None


class SubscriptionResumed(_BillingEvent):
    kind: Literal[BillingEventKind.SUBSCRIPTION_RESUMED] = BillingEventKind.SUBSCRIPTION_RESUMED
    status: str = "active"
    renews_at: datetime | None = None


class SubscriptionCancelled(_BillingEvent):
    kind: Literal[BillingEventKind.SUBSCRIPTION_CANCELLED] = BillingEventKind.SUBSCRIPTION_CANCELLED


class SubscriptionExpired(_BillingEvent):
    kind: Literal[BillingEventKind.SUBSCRIPTION_EXPIRED] = BillingEventKind.SUBSCRIPTION_EXPIRED


class PaymentSucceeded(_BillingEvent):
    kind: Literal[BillingEventKind.PAYMENT_SUCCEEDED] = BillingEventKind.PAYMENT_SUCCEEDED
    subscription_id: str


class PaymentFailed(_BillingEvent):
    kind: Literal[BillingEventKind.PAYMENT_FAILED] = BillingEventKind.PAYMENT_FAILED
    subscription_id: str


BillingEvent = Annotated[
    Union[
        OrderCreated,
        SubscriptionCreated,
        SubscriptionUpdated,
        SubscriptionResumed,
        SubscriptionCancelled,
        SubscriptionExpired,
        PaymentSucceeded,
        PaymentFailed,
    ],
    Field(discriminator="kind"),
]
