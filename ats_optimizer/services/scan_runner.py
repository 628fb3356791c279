from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from ats_optimizer.billing.gate import denial_message
from ats_optimizer.core.config.scoring import get_scoring_config
from ats_optimizer.integrations.email import send_upsell_email
from ats_optimizer.schemas.account import Action, Plan, UserAccount
from ats_optimizer.schemas.analysis import AnalysisStatus, DocumentKind, ProfileAnalysis, ResumeAnalysis
from ats_optimizer.storage import analyses as analysis_store
from ats_optimizer.storage import users as user_store

from .errors import GateDenied

logger = logging.getLogger(__name__)

AnalysisT = TypeVar("AnalysisT", ResumeAnalysis, ProfileAnalysis)

_SCAN_ACTIONS = {
    DocumentKind.RESUME: Action.RESUME_SCAN,
    DocumentKind.PROFILE: Action.PROFILE_SCAN,
}


def run_scan(user: UserAccount, pending: AnalysisT, score: Callable[[AnalysisT], AnalysisT]) -> AnalysisT:
    """Persist ``pending``, score it, then consume one scan from the user's allowance.

    The counter is only incremented after scoring succeeded. When another
    request used up the allowance in the meantime the analysis is kept as
    failed and GateDenied is raised.
    """
    analysis_store.create_analysis(pending)
    started = time.perf_counter()
    try:
        scored = score(pending)
    except Exception:
        analysis_store.mark_failed(pending)
        logger.exception("scan_failed analysis_id=%s kind=%s", pending.id, pending.kind.value)
        raise

    limit = get_scoring_config().plans.scan_limit(user.plan)
    if not user_store.consume_scan(user.id, pending.kind, limit):
        analysis_store.mark_failed(scored)
        current = user_store.get_user(user.id) or user
        action = _SCAN_ACTIONS[pending.kind]
        logger.info("scan_allowance_lost analysis_id=%s user_id=%s", pending.id, user.id)
        raise GateDenied(denial_message(current, action), plan=current.plan, usage=current.usage)

    completed = scored.model_copy(
        update={
            "status": AnalysisStatus.COMPLETED,
            "processing_ms": int((time.perf_counter() - started) * 1000),
        }
    )
    analysis_store.save_analysis(completed)
    logger.info(
        "scan_completed analysis_id=%s kind=%s score=%s processing_ms=%s",
        completed.id,
        completed.kind.value,
        completed.composite_score,
        completed.processing_ms,
    )

    if user.plan == Plan.FREE:
        send_upsell_email(
            recipient=user.email,
            first_name=user.first_name,
            score=completed.composite_score,
            analysis_id=completed.id,
        )
    return completed
