"""
Trading rule preferences collected during onboarding.

customRules is the list scored by the end-of-session check-in; the other
fields drive reminders and trade-confirmation prompts.
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional

from tradejournal.journal.models import RuleAnswer, document_kwargs
from tradejournal.utils.exceptions import InvalidCheckInError

SESSION_TIME_RANGES: Dict[str, Dict[str, str]] = {
    "london": {"start": "02:00", "end": "11:00", "timezone": "EST"},
    "newyork": {"start": "08:00", "end": "17:00", "timezone": "EST"},
    "asia": {"start": "19:00", "end": "04:00", "timezone": "EST"},
    "custom": {"start": "custom", "end": "custom", "timezone": "EST"},
}

BEHAVIOR_AFTER_LOSS_MESSAGES: Dict[str, str] = {
    "stop": "You should stop trading for today after this loss.",
    "break": "Take a 15-30 minute break to reset your mindset.",
    "continue": "Continue trading but stay focused on your strategy.",
    "prompt": "What would you like to do after this loss?",
}

JOURNAL_REMINDERS: Dict[str, Optional[str]] = {
    "daily": "Remember to review your journal entries from today",
    "weekly": "Schedule your weekly journal review",
    "monthly": "Schedule your monthly journal review",
    "never": None,
}


@dataclass
class RulePreferences:
    max_trades_per_day: int = 3
    stop_after_win: bool = False
    behavior_after_loss: str = "break"          # stop / break / continue / prompt
    session: str = "newyork"                    # london / newyork / asia / custom
    requires_confirmation: bool = False
    uses_checklist: bool = False
    journal_review_frequency: str = "daily"     # daily / weekly / monthly / never
    daily_reminders_enabled: bool = True
    follow_up_style: str = "summary"            # summary / checklist / manual
    wants_suggested_rules: bool = False
    custom_rules: List[str] = field(default_factory=list)

    def blank_answers(self) -> List[RuleAnswer]:
        return [RuleAnswer(rule=r) for r in self.custom_rules]

    def answers_from(self, followed: List[bool]) -> List[RuleAnswer]:
        """Pair answers positionally with the configured rules."""
        if len(followed) != len(self.custom_rules):
            raise InvalidCheckInError(
                f"Expected {len(self.custom_rules)} answers, got {len(followed)}")
        return [RuleAnswer(rule=r, followed=f) for r, f in zip(self.custom_rules, followed)]

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "RulePreferences":
        return cls(**document_kwargs(cls, d))


def has_completed_rule_setup(preferences: Optional[RulePreferences]) -> bool:
    return preferences is not None


def session_time_range(session: str) -> Dict[str, str]:
    return SESSION_TIME_RANGES.get(session, SESSION_TIME_RANGES["newyork"])


def behavior_after_loss_message(behavior: str) -> str:
    return BEHAVIOR_AFTER_LOSS_MESSAGES.get(behavior, "Follow your predetermined plan.")


def should_show_trade_confirmation(preferences: RulePreferences, today_trade_count: int) -> Dict:
    if preferences.requires_confirmation:
        return {"show": True, "reason": "Trade confirmation is required per your rules"}
    if today_trade_count >= preferences.max_trades_per_day:
        return {"show": True,
                "reason": f"You've reached your daily limit of {preferences.max_trades_per_day} trades"}
    return {"show": False}


def journal_reminder(frequency: str) -> Optional[str]:
    return JOURNAL_REMINDERS.get(frequency)
