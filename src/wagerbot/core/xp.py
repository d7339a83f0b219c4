"""Economy XP: a small reward for every settled wager, capped per day."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, date, datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from wagerbot.core.errors import LedgerError
from wagerbot.db.engine import get_session
from wagerbot.db.repository import Repository

logger = logging.getLogger(__name__)

XP_BASE = 5
XP_BET_STEP = 50
XP_BET_BONUS_CAP = 25
XP_DAILY_CAP = 1200

_OUTCOME_FACTORS = {"win": 1.5, "loss": 0.5}


def calculate_economy_xp(bet: int, outcome: str | None) -> int:
    """XP for one wager. Wins earn more than losses; pushes count as neutral."""
    base = XP_BASE + min(XP_BET_BONUS_CAP, max(0, bet) // XP_BET_STEP)
    factor = _OUTCOME_FACTORS.get(outcome or "", 1.0)
    return max(1, round(base * factor))


class XpTracker:
    """Awards XP and remembers how much each user earned today.

    The per-day tally lives in memory; the running total is persisted in the
    ``levels`` table.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        daily_cap: int = XP_DAILY_CAP,
        today: Callable[[], date] | None = None,
    ) -> None:
        self.engine = engine
        self.daily_cap = daily_cap
        self._today = today or (lambda: datetime.now(UTC).date())
        self._awarded: dict[tuple[str, str], tuple[date, int]] = {}
        self._day: date | None = None

    def awarded_today(self, guild_id: str, user_id: str) -> int:
        day, amount = self._awarded.get((guild_id, user_id), (None, 0))
        return amount if day == self._today() else 0

    async def award(self, guild_id: str, user_id: str, bet: int, outcome: str | None) -> int:
        """Grant XP for one wager and return the amount actually granted."""
        today = self._today()
        earned = self.awarded_today(guild_id, user_id)
        amount = min(calculate_economy_xp(bet, outcome), self.daily_cap - earned)
        if amount <= 0:
            return 0

        try:
            async with get_session(self.engine) as session:
                total = await Repository(session).add_xp(guild_id, user_id, amount)
        except SQLAlchemyError as exc:
            raise LedgerError(str(exc)) from exc

        if today != self._day:
            # Tallies from earlier days no longer count against the cap.
            self._awarded.clear()
            self._day = today
        self._awarded[(guild_id, user_id)] = (today, earned + amount)
        logger.debug("xp_awarded guild=%s user=%s amount=%d total=%d", guild_id, user_id, amount, total)
        return amount
