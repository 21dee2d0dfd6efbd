"""
Motivational copy and smart nudges derived from recent journal behaviour.
"""

from __future__ import annotations
import random
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from tradejournal.journal.models import Activity, ActivityType, Trade, parse_day
from tradejournal.journal.rule_adherence import CheckInScore
from tradejournal.journal.trading_stats import parse_date

GENERAL_MESSAGES = (
    "Losses happen. Showing up anyway is what separates pros.",
    "You're not just trading, you're evolving.",
    "Today's progress sets up tomorrow's profits.",
    "Every journal entry is an investment in your future success.",
    "Discipline in the small things builds edge in the big moments.",
)


@dataclass(frozen=True)
class RecentBehavior:
    has_journaled_loss: bool = False
    prevented_tilt: bool = False
    backtested: bool = False
    reengineered: bool = False


@dataclass(frozen=True)
class Nudge:
    id: str
    kind: str       # info / success / warning / motivational
    title: str
    message: str

    def to_dict(self) -> dict:
        return asdict(self)


def _previous_day(day: str) -> str:
    return (parse_day(day) - timedelta(days=1)).isoformat()


def recent_behavior(trades: Sequence[Trade], activities: Sequence[Activity], today: str) -> RecentBehavior:
    """Behaviour over today and yesterday."""
    days = {today, _previous_day(today)}
    recent_trades = [t for t in trades if t.entry_date in days or t.exit_date in days]
    recent_activities = [a for a in activities if a.date in days]
    return RecentBehavior(
        has_journaled_loss=any(t.is_loss and t.has_notes for t in recent_trades),
        # TODO: detect skipped revenge trades once trade intents are journaled
        prevented_tilt=False,
        backtested=any(a.activity_type == ActivityType.BACKTEST.value for a in recent_activities),
        reengineered=any(a.activity_type == ActivityType.REENGINEER.value for a in recent_activities),
    )


def candidate_messages(streak: int, today_xp: int, behavior: RecentBehavior) -> List[str]:
    messages = []
    if streak >= 7:
        messages.append(f"{streak} days of clarity. You're leveling up as a trader.")
    elif streak >= 3:
        messages.append(f"{streak} days strong! Consistency is building your edge.")

    if behavior.has_journaled_loss:
        messages.append("You journaled a red day. That's what real growth looks like.")
    if behavior.prevented_tilt:
        messages.append("Skipped the revenge trade? That's discipline in action.")
    if behavior.backtested:
        messages.append("Backtesting shows you're building a foundation, not just chasing entries.")
    if behavior.reengineered:
        messages.append("Reworking your trade ideas? That's how you evolve.")

    messages.extend(GENERAL_MESSAGES)

    if today_xp >= 50:
        messages.append("Crushing your daily targets! This momentum is building something special.")
    if today_xp >= 30:
        messages.append("Solid progress today! Your consistency is your competitive advantage.")
    return messages


def motivational_message(streak: int, today_xp: int, behavior: RecentBehavior,
                         rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(candidate_messages(streak, today_xp, behavior))


def checkin_streak_message(score: CheckInScore, prior_streak: int, honesty_confirmed: bool) -> str:
    if score.tier == "all_rules_followed":
        return f"Perfect discipline! Streak: {score.new_streak} days"
    if score.rules_followed:
        return f"Good effort! Streak maintained: {prior_streak} days"
    if honesty_confirmed:
        return "Honesty counts! Working on improvement."
    return "Streak reset. Tomorrow is a fresh start!"


def smart_nudges(trades: Sequence[Trade], today: str) -> List[Nudge]:
    nudges = []
    yesterday = _previous_day(today)

    if not any(t.touches(today) for t in trades):
        nudges.append(Nudge(
            "no-trades-today", "info", "Ready to trade?",
            "You haven't added a trade today yet. Paste one in when you're ready!"))

    unjournaled = [t for t in trades if t.touches(yesterday) and not t.has_notes]
    if unjournaled:
        subject = "trades are" if len(unjournaled) > 1 else "trade is"
        nudges.append(Nudge(
            "missing-journal", "warning", "Journal incomplete",
            f"Yesterday's {subject} missing journal entries. Reflection helps improve performance!"))

    recent = sorted(
        (t for t in trades if t.is_closed),
        key=lambda t: parse_date(t.close_date) or datetime.min,
        reverse=True,
    )[:3]
    winners = [t for t in recent if (t.pnl or 0) > 0]
    if len(winners) >= 2:
        nudges.append(Nudge(
            "winning-streak", "success", "Great momentum!",
            f"You're on a roll with {len(winners)} recent winners. Keep following your strategy!"))

    if len(recent) >= 3:
        detailed = [t for t in recent if t.notes and len(t.notes.strip()) > 20]
        if len(detailed) >= 2:
            nudges.append(Nudge(
                "good-habits", "motivational", "Building great habits!",
                "You've been consistent with your trade documentation. "
                "This discipline will pay off long-term."))
    return nudges
