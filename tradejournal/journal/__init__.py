"""
Trade Journal Core — statistics, XP progression, rule adherence
===============================================================

Three pure engines over a user's journal history:
  Statistics     — P&L, drawdown, streaks and rollups for the dashboard
  XP / Leveling  — daily XP ledger, levels, qualifying-day streak, titles
  Rule Adherence — scores the end-of-session rules check-in

Architecture:
  models.py           — Trade, Activity, UserProgress, RuleCheckIn dataclasses
  xp_rules.py         — every XP value and title threshold, in one place
  trading_stats.py    — statistics engine
  xp_engine.py        — XP / leveling engine
  rule_adherence.py   — check-in scoring
  store.py            — SQLite document store
  progress_service.py — load → compute → save around the pure engines
"""

from tradejournal.journal.models import (
    Trade,
    TradeDirection,
    TradeStatus,
    Activity,
    ActivityType,
    UserProgress,
    RuleAnswer,
    RuleCheckIn,
)
from tradejournal.journal.xp_rules import XP_RULES, ACTIVITY_XP, RULE_TIER_XP, TITLES, xp_table
from tradejournal.journal.trading_stats import TradingStats, compute_trading_stats
from tradejournal.journal.xp_engine import (
    LevelInfo,
    compute_daily_xp,
    qualifies_for_streak,
    level_from_total_xp,
    recompute_user_progress,
)
from tradejournal.journal.rule_adherence import CheckInScore, score_rule_checkin
from tradejournal.journal.rule_preferences import RulePreferences
from tradejournal.journal.store import JournalStore
from tradejournal.journal.progress_service import ProgressService

__all__ = [
    "Trade",
    "TradeDirection",
    "TradeStatus",
    "Activity",
    "ActivityType",
    "UserProgress",
    "RuleAnswer",
    "RuleCheckIn",
    "XP_RULES",
    "ACTIVITY_XP",
    "RULE_TIER_XP",
    "TITLES",
    "xp_table",
    "TradingStats",
    "compute_trading_stats",
    "LevelInfo",
    "compute_daily_xp",
    "qualifies_for_streak",
    "level_from_total_xp",
    "recompute_user_progress",
    "CheckInScore",
    "score_rule_checkin",
    "RulePreferences",
    "JournalStore",
    "ProgressService",
]
