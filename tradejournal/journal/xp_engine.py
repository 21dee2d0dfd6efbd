"""
XP / Leveling Engine — daily XP ledger, levels, streaks, titles
===============================================================

Replays a user's full trade + activity history into:
  - a daily XP log (date → XP earned that day)
  - cumulative XP and the level bracket it falls into
  - the current qualifying-day streak and the longest streak ever seen
  - newly unlocked titles

Everything here is pure. Progress is rebuilt from scratch on every call so
edited or deleted trades can never leave stale XP behind.
"""

from __future__ import annotations
import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from tradejournal.journal.models import Activity, RuleCheckIn, Trade, UserProgress
from tradejournal.journal.xp_rules import TITLES, XP_RULES, activity_xp
from tradejournal.utils.exceptions import ProgressNotFoundError, ValidationError


@dataclass(frozen=True)
class LevelInfo:
    level: int
    xp_to_next_level: int
    xp_into_level: int      # XP consumed inside the current level


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# LEVELS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def xp_for_level(level: int) -> int:
    """XP needed to clear `level`. Strictly increasing in level."""
    return XP_RULES.xp_per_level * level


def level_from_total_xp(total_xp: float) -> LevelInfo:
    if total_xp is None or not math.isfinite(total_xp) or total_xp < 0:
        raise ValidationError(f"Total XP must be a finite non-negative number, got {total_xp!r}")
    remaining = total_xp
    level = 1
    needed = xp_for_level(level)
    while remaining >= needed:
        remaining -= needed
        level += 1
        needed = xp_for_level(level)
    return LevelInfo(level=level, xp_to_next_level=needed - remaining, xp_into_level=remaining)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# DAILY XP & STREAK QUALIFICATION
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def compute_daily_xp(trades: Iterable[Trade], activities: Iterable[Activity], date: str) -> int:
    day_trades = [t for t in trades if t.touches(date)]
    day_activities = [a for a in activities if a.date == date]
    return _day_xp(day_trades, day_activities)


def qualifies_for_streak(trades: Iterable[Trade], activities: Iterable[Activity], date: str) -> bool:
    day_trades = [t for t in trades if t.touches(date)]
    day_activities = [a for a in activities if a.date == date]
    return _day_qualifies(day_trades, day_activities)


def _day_qualifies(day_trades: Sequence[Trade], day_activities: Sequence[Activity]) -> bool:
    if not day_trades and not day_activities:
        return False
    if day_trades:
        # A loss with no journal entry is a silent loss and breaks the day.
        if any(t.is_loss and not t.has_notes for t in day_trades):
            return False
        if not any(t.has_notes for t in day_trades):
            return False
    return True


def _day_xp(day_trades: Sequence[Trade], day_activities: Sequence[Activity]) -> int:
    xp = 0
    for t in day_trades:
        xp += XP_RULES.trade_logged
        if t.has_notes:
            xp += XP_RULES.emotion_tagged
            xp += XP_RULES.journal_written
            if t.is_loss:
                xp += XP_RULES.loss_journaled_with_emotion

    if day_trades and _day_qualifies(day_trades, day_activities):
        xp += XP_RULES.rules_followed_all_day

    for a in day_activities:
        xp += activity_xp(a.activity_type)
    return xp


def _index_by_date(trades: Iterable[Trade],
                   activities: Iterable[Activity]) -> Tuple[Dict[str, List[Trade]], Dict[str, List[Activity]]]:
    by_date_trades: Dict[str, List[Trade]] = defaultdict(list)
    by_date_activities: Dict[str, List[Activity]] = defaultdict(list)
    for t in trades:
        # A same-day trade touches its date once.
        for d in {t.entry_date, t.exit_date}:
            if d:
                by_date_trades[d].append(t)
    for a in activities:
        if a.date:
            by_date_activities[a.date].append(a)
    return by_date_trades, by_date_activities


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# LEDGER, STREAKS, TITLES
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def build_daily_xp_log(trades: Iterable[Trade], activities: Iterable[Activity],
                       checkins: Iterable[RuleCheckIn] = ()) -> Dict[str, int]:
    """XP for every date with a trade or activity, plus check-in awards by date."""
    by_trades, by_activities = _index_by_date(trades, activities)
    log: Dict[str, int] = {}
    for date in sorted(set(by_trades) | set(by_activities)):
        log[date] = _day_xp(by_trades.get(date, []), by_activities.get(date, []))
    for c in checkins:
        if c.date and c.xp_awarded:
            log[c.date] = log.get(c.date, 0) + int(c.xp_awarded)
    return log


def current_streak(trades: Iterable[Trade], activities: Iterable[Activity]) -> int:
    """Qualifying days counted back from the most recent known date."""
    by_trades, by_activities = _index_by_date(trades, activities)
    streak = 0
    for date in sorted(set(by_trades) | set(by_activities), reverse=True):
        if not _day_qualifies(by_trades.get(date, []), by_activities.get(date, [])):
            break
        streak += 1
    return streak


def check_for_new_titles(streak: int, total_xp: int, level: int,
                         existing_titles: Iterable[str]) -> List[str]:
    existing = set(existing_titles)
    return [title for title, unlocked in TITLES
            if unlocked(streak, total_xp, level) and title not in existing]


def recompute_user_progress(trades: Sequence[Trade], activities: Sequence[Activity],
                            prior_progress: Optional[UserProgress],
                            checkins: Sequence[RuleCheckIn] = ()) -> UserProgress:
    """
    Rebuild progress from full history. `prior_progress` supplies only the
    values that must never go backwards: longest streak and unlocked titles.
    """
    if prior_progress is None:
        raise ProgressNotFoundError("")

    log = build_daily_xp_log(trades, activities, checkins)
    total_xp = sum(log.values())
    info = level_from_total_xp(total_xp)
    # check-in-only dates are in the log but not in the streak walk
    streak = current_streak(trades, activities)

    titles = list(prior_progress.titles_unlocked)
    titles.extend(check_for_new_titles(streak, total_xp, info.level, titles))

    return UserProgress(
        user_id=prior_progress.user_id,
        xp=total_xp,
        level=info.level,
        xp_to_next_level=info.xp_to_next_level,
        streak=streak,
        longest_streak=max(prior_progress.longest_streak, streak),
        daily_xp_log=log,
        titles_unlocked=titles,
        last_activity_date=max(log) if log else prior_progress.last_activity_date,
        last_rule_log_date=prior_progress.last_rule_log_date,
        updated_at=prior_progress.updated_at,
    )
