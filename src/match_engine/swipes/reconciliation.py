"""Periodic match reconciliation sweep.

The swipe recorder serializes both directions of a pair inside one process.
Swipes for the same pair handled by different processes can still race past
each other's reciprocal check, so this sweep compares the swipe table with
the match table and repairs any drift.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog
from sqlalchemy.ext.asyncio import async_sessionmaker

from match_engine.persistence.repository import (
    fetch_active_match_pairs,
    fetch_reciprocal_like_pairs,
    set_match_state,
    utcnow,
)

logger = structlog.get_logger()


@dataclass
class ReconciliationResult:
    """Pairs the sweep changed, canonically ordered."""

    created: list[tuple[str, str]] = field(default_factory=list)
    deactivated: list[tuple[str, str]] = field(default_factory=list)

    @property
    def changed(self) -> int:
        return len(self.created) + len(self.deactivated)


async def reconcile_matches(session_factory: async_sessionmaker) -> ReconciliationResult:
    """Bring the match table in line with current reciprocal likes.

    Creates (or re-activates) a match for every pair that likes each other
    without an active match, and deactivates active matches whose
    reciprocity no longer holds.  All changes happen in one transaction.
    """
    result = ReconciliationResult()
    now = utcnow()

    async with session_factory() as session, session.begin():
        mutual = await fetch_reciprocal_like_pairs(session)
        active = await fetch_active_match_pairs(session)

        for user_a, user_b in sorted(mutual - active):
            await set_match_state(session, user_a, user_b, True, now)
            result.created.append((user_a, user_b))

        for user_a, user_b in sorted(active - mutual):
            await set_match_state(session, user_a, user_b, False, now)
            result.deactivated.append((user_a, user_b))

    if result.changed:
        logger.warning(
            "match_reconciliation_repaired",
            created=len(result.created),
            deactivated=len(result.deactivated),
        )
    else:
        logger.info("match_reconciliation_clean", mutual_pairs=len(mutual))
    return result
