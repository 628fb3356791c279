from .events import parse_billing_event, verify_signature
from .gate import can_perform, denial_message, is_plan_expired, user_can_perform
from .reconciler import ReconcileOutcome, apply_billing_event, map_provider_status, plan_for_variant

__all__ = [
    "can_perform",
    "user_can_perform",
    "is_plan_expired",
    "denial_message",
    "verify_signature",
    "parse_billing_event",
    "apply_billing_event",
    "ReconcileOutcome",
    "map_provider_status",
    "plan_for_variant",
]
