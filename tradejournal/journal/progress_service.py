"""
Progress Service — the only place the pure engines meet the store.

refresh_progress() replays full history; submit_checkin() applies one
check-in as a delta. Both save the whole progress document.
"""

from __future__ import annotations
import random
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from tradejournal.journal.calendar_view import DaySummary, week_overview
from tradejournal.journal.models import RuleAnswer, Trade, UserProgress, parse_day
from tradejournal.journal.motivation import (
    Nudge, checkin_streak_message, motivational_message, recent_behavior, smart_nudges,
)
from tradejournal.journal.rule_adherence import CheckInScore, build_checkin, score_rule_checkin
from tradejournal.journal.rule_preferences import RulePreferences
from tradejournal.journal.store import JournalStore
from tradejournal.journal.trading_stats import TradingStats, compute_trading_stats
from tradejournal.journal.xp_engine import (
    check_for_new_titles, level_from_total_xp, recompute_user_progress,
)
from tradejournal.utils.exceptions import (
    CheckInAlreadyRecordedError, InvalidCheckInError, ProgressNotFoundError,
)
from tradejournal.utils.logger import get_logger

logger = get_logger(__name__)


def _today() -> str:
    return datetime.now().date().isoformat()


def _day(value: Optional[str] = None) -> str:
    if not value:
        return _today()
    return parse_day(value).isoformat()


class ProgressService:
    def __init__(self, store: JournalStore, rng: Optional[random.Random] = None):
        self.store = store
        self._rng = rng

    def get_progress(self, user_id: str) -> UserProgress:
        progress = self.store.get_progress(user_id)
        if progress is None:
            raise ProgressNotFoundError(user_id)
        return progress

    # ── Full recompute ──────────────────────────────────────────

    def refresh_progress(self, user_id: str, today: Optional[str] = None) -> UserProgress:
        today = _day(today)
        prior = self.get_progress(user_id)
        trades = self.store.list_trades(user_id)
        activities = self.store.list_activities(user_id)
        checkins = self.store.list_checkins(user_id)

        progress = recompute_user_progress(trades, activities, prior, checkins)
        self.store.save_progress(progress, expected_updated_at=prior.updated_at)

        new_titles = [t for t in progress.titles_unlocked if t not in prior.titles_unlocked]
        logger.info(
            "progress_recomputed",
            user_id=user_id,
            xp=progress.xp,
            level=progress.level,
            streak=progress.streak,
            new_titles=new_titles,
            today=today,
        )
        return progress

    # ── Rule check-in ───────────────────────────────────────────

    def answers_for(self, user_id: str, followed: Sequence[bool]) -> List[RuleAnswer]:
        preferences = self.store.get_rule_preferences(user_id)
        if preferences is None or not preferences.custom_rules:
            raise InvalidCheckInError("No trading rules configured")
        return preferences.answers_from(list(followed))

    def submit_checkin(self, user_id: str, answers: Sequence[RuleAnswer],
                       honesty_confirmed: bool, date: Optional[str] = None) -> Dict[str, Any]:
        """
        Score and record one check-in, then apply its XP and streak to the
        stored progress. A second check-in for the same day is rejected
        before anything is written.
        """
        date = _day(date)
        prior = self.get_progress(user_id)
        if self.store.get_checkin(user_id, date) is not None:
            raise CheckInAlreadyRecordedError(user_id, date)

        score = score_rule_checkin(answers, honesty_confirmed, prior.streak)
        progress = self._apply_checkin(prior, score, date)
        self.store.record_checkin_with_progress(
            build_checkin(user_id, date, honesty_confirmed, score), progress,
            expected_updated_at=prior.updated_at)

        logger.info(
            "checkin_recorded",
            user_id=user_id,
            date=date,
            tier=score.tier,
            xp_awarded=score.xp_awarded,
            streak=score.new_streak,
        )
        return {
            "score": score,
            "progress": progress,
            "message": checkin_streak_message(score, prior.streak, honesty_confirmed),
        }

    @staticmethod
    def _apply_checkin(prior: UserProgress, score: CheckInScore, date: str) -> UserProgress:
        log = dict(prior.daily_xp_log)
        if score.xp_awarded:
            log[date] = log.get(date, 0) + score.xp_awarded
        xp = prior.xp + score.xp_awarded
        info = level_from_total_xp(xp)
        titles = list(prior.titles_unlocked)
        titles.extend(check_for_new_titles(score.new_streak, xp, info.level, titles))
        return UserProgress(
            user_id=prior.user_id,
            xp=xp,
            level=info.level,
            xp_to_next_level=info.xp_to_next_level,
            streak=score.new_streak,
            longest_streak=max(prior.longest_streak, score.new_streak),
            daily_xp_log=log,
            titles_unlocked=titles,
            last_activity_date=prior.last_activity_date,
            last_rule_log_date=date,
            updated_at=prior.updated_at,
        )

    # ── Read models ─────────────────────────────────────────────

    def get_stats(self, user_id: str) -> TradingStats:
        return compute_trading_stats(self.store.list_trades(user_id))

    def today_summary(self, user_id: str, today: Optional[str] = None) -> Dict[str, Any]:
        today = _day(today)
        progress = self.get_progress(user_id)
        trades = self.store.list_trades(user_id)
        activities = self.store.list_activities(user_id)

        todays = [t for t in trades if t.touches(today)]
        closed_pnl = sum(t.pnl or 0 for t in todays if t.is_closed)
        today_xp = progress.today_xp(today)
        behavior = recent_behavior(trades, activities, today)
        return {
            "date": today,
            "trades_count": len(todays),
            "closed_pnl": closed_pnl,
            "has_journal": any(t.has_notes for t in todays),
            "today_xp": today_xp,
            "streak": progress.streak,
            "level": progress.level,
            "checked_in": self.store.get_checkin(user_id, today) is not None,
            "message": motivational_message(progress.streak, today_xp, behavior, self._rng),
        }

    def week(self, user_id: str, any_day: Optional[str] = None) -> List[DaySummary]:
        any_day = _day(any_day)
        progress = self.get_progress(user_id)
        return week_overview(self.store.list_trades(user_id), progress.daily_xp_log, any_day)

    def trades_on(self, user_id: str, day: Optional[str] = None) -> List[Trade]:
        day = _day(day)
        return [t for t in self.store.list_trades(user_id) if t.touches(day)]

    def nudges(self, user_id: str, today: Optional[str] = None) -> List[Nudge]:
        return smart_nudges(self.store.list_trades(user_id), _day(today))

    def rule_preferences(self, user_id: str) -> RulePreferences:
        return self.store.get_rule_preferences(user_id) or RulePreferences()
