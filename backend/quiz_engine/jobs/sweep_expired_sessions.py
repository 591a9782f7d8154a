"""Expired session sweep job.

Auto-submits every in-progress session whose deadline has passed but that nobody
has opened since. Safe to run concurrently with live traffic and with another
sweep: each session is finalized through the guarded status write, so a session
is scored at most once whoever gets there first.
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from quiz_engine.common.clock import Clock, utcnow
from quiz_engine.services.session_engine import QuizSessionService

logger = logging.getLogger(__name__)

JOB_KEY = "sweep_expired_sessions"


def run_sweep(
    db: Session,
    scheduled_for: datetime | None = None,
    clock: Clock = utcnow,
) -> dict[str, Any]:
    """
    Run one sweep pass.

    Args:
        db: Database session
        scheduled_for: Scheduled execution time (logged only)
        clock: Source of "now" for the overdue cutoff

    Returns:
        Statistics dictionary
    """
    started_at = clock()
    logger.info(
        f"Starting {JOB_KEY}",
        extra={"scheduled_for": scheduled_for.isoformat() if scheduled_for else None},
    )

    outcomes = QuizSessionService(db, clock=clock).sweep_expired()
    already_finalized = sum(1 for outcome in outcomes if outcome.already_finalized)
    stats = {
        "status": "succeeded",
        "finalized": len(outcomes) - already_finalized,
        "already_finalized": already_finalized,
        "session_ids": [outcome.session_id for outcome in outcomes],
        "started_at": started_at.isoformat(),
    }

    logger.info(
        f"Completed {JOB_KEY}: finalized={stats['finalized']}, "
        f"already_finalized={stats['already_finalized']}"
    )
    return stats
