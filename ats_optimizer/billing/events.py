from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from ats_optimizer.schemas.billing import BillingEvent, BillingEventKind

logger = logging.getLogger(__name__)

_EVENT_ADAPTER: TypeAdapter[BillingEvent] = TypeAdapter(BillingEvent)


def verify_signature(raw_body: bytes, signature: str | None, secret: str | None) -> bool:
    """Check the hex HMAC-SHA256 of the raw request body against the provider header."""
    if not secret or not signature:
        return False
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(digest, signature.strip().lower())


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _flatten(kind: BillingEventKind, object_id: str, attributes: dict[str, Any]) -> dict[str, Any]:
    fields: dict[str, Any] = {"kind": kind, "object_id": object_id}

    if kind == BillingEventKind.ORDER_CREATED:
        item = attributes.get("first_order_item") or {}
        fields.update(
            user_email=_text(attributes.get("user_email")),
            customer_id=_text(attributes.get("customer_id")),
            variant_id=_text(item.get("variant_id")),
            product_name=_text(item.get("product_name")) or "",
            variant_name=_text(item.get("variant_name")) or "",
            amount=attributes.get("total") or 0,
            currency=_text(attributes.get("currency")) or "USD",
        )
    elif kind == BillingEventKind.SUBSCRIPTION_CREATED:
        fields.update(
            user_email=_text(attributes.get("user_email")),
            customer_id=_text(attributes.get("customer_id")),
            variant_id=_text(attributes.get("variant_id")),
            status=_text(attributes.get("status")),
            renews_at=attributes.get("renews_at"),
            created_at=attributes.get("created_at"),
        )
    elif kind in (BillingEventKind.SUBSCRIPTION_UPDATED, BillingEventKind.SUBSCRIPTION_RESUMED):
        fields.update(renews_at=attributes.get("renews_at"))
        status = _text(attributes.get("status"))
        if status:
            fields["status"] = status
    elif kind in (BillingEventKind.PAYMENT_SUCCEEDED, BillingEventKind.PAYMENT_FAILED):
        fields.update(subscription_id=_text(attributes.get("subscription_id")))

    return {key: value for key, value in fields.items() if value is not None}


def parse_billing_event(payload: dict[str, Any]) -> BillingEvent | None:
    """Turn a provider webhook payload into a typed event.

    Unknown event names and payloads missing required fields yield None; the
    caller acknowledges those without acting on them.
    """
    meta = payload.get("meta") if isinstance(payload, dict) else None
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(meta, dict) or not isinstance(data, dict):
        logger.warning("billing_event_malformed reason=missing_envelope")
        return None

    event_name = str(meta.get("event_name") or "")
    try:
        kind = BillingEventKind(event_name)
    except ValueError:
        logger.info("billing_event_ignored reason=unknown_event event=%s", event_name or "-")
        return None

    object_id = _text(data.get("id"))
    attributes = data.get("attributes")
    if not object_id or not isinstance(attributes, dict):
        logger.warning("billing_event_malformed reason=missing_data event=%s", event_name)
        return None

    try:
        event = _EVENT_ADAPTER.validate_python({**_flatten(kind, object_id, attributes), "raw": payload})
    except ValidationError as exc:
        logger.warning(
            "billing_event_malformed reason=invalid_fields event=%s errors=%s",
            event_name,
            exc.error_count(),
        )
        return None
    return event
