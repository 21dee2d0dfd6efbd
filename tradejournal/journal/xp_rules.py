"""
XP tables shared by every reader: the XP engine, the check-in scorer,
and the previews served to the client. Nothing else may hard-code an XP value.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

from tradejournal.journal.models import ActivityType


@dataclass(frozen=True)
class XPRules:
    # ── Trading activity ──
    trade_logged: int = 10
    emotion_tagged: int = 10
    journal_written: int = 10
    loss_journaled_with_emotion: int = 20
    rules_followed_all_day: int = 25

    # ── Learning & analysis ──
    backtest_session: int = 40
    reengineer_trade: int = 25
    post_trade_analysis: int = 20

    # ── Rule adherence check-in ──
    all_rules_followed: int = 25
    three_or_more_rules_followed: int = 10
    honesty_bonus: int = 5
    rules_followed_threshold: int = 3

    # ── Levels ──
    xp_per_level: int = 1000


XP_RULES = XPRules()

ACTIVITY_XP: Dict[str, int] = {
    ActivityType.BACKTEST.value: XP_RULES.backtest_session,
    ActivityType.REENGINEER.value: XP_RULES.reengineer_trade,
    ActivityType.POST_TRADE_REVIEW.value: XP_RULES.post_trade_analysis,
}

# Check-in tiers in priority order; the first matching tier wins.
RULE_TIER_XP: Dict[str, int] = {
    "all_rules_followed": XP_RULES.all_rules_followed,
    "three_or_more_followed": XP_RULES.three_or_more_rules_followed,
    "honesty_bonus": XP_RULES.honesty_bonus,
    "none": 0,
}

# (title, predicate(streak, total_xp, level)), evaluated in this order.
TITLES: Tuple[Tuple[str, Callable[[int, int, int], bool]], ...] = (
    ("First Steps", lambda streak, xp, level: xp >= 100),
    ("Clarity Seeker", lambda streak, xp, level: streak >= 7),
    ("Steady Hand", lambda streak, xp, level: streak >= 30),
    ("Rule Follower", lambda streak, xp, level: streak >= 14),
    ("Growth Mindset", lambda streak, xp, level: xp >= 1000),
    ("Level Master", lambda streak, xp, level: level >= 5),
    ("Consistency King", lambda streak, xp, level: streak >= 60),
    ("XP Crusher", lambda streak, xp, level: xp >= 5000),
)


def activity_xp(activity_type: str) -> int:
    return ACTIVITY_XP.get(activity_type, 0)


def xp_table() -> Dict[str, Dict[str, int]]:
    """Read-only view of every XP value, for client previews."""
    return {
        "trade": {
            "trade_logged": XP_RULES.trade_logged,
            "emotion_tagged": XP_RULES.emotion_tagged,
            "journal_written": XP_RULES.journal_written,
            "loss_journaled_with_emotion": XP_RULES.loss_journaled_with_emotion,
            "rules_followed_all_day": XP_RULES.rules_followed_all_day,
        },
        "activity": dict(ACTIVITY_XP),
        "rule_checkin": dict(RULE_TIER_XP),
        "level": {"xp_per_level": XP_RULES.xp_per_level},
    }
