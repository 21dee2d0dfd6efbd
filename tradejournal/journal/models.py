"""
Journal Data Models — trades, activities, progress, rule check-ins
==================================================================

Trade          — one position, open or closed, with its journal notes
Activity       — a logged non-trade learning session (backtest, review ...)
UserProgress   — cached gamification state, one document per user
RuleCheckIn    — end-of-session rule adherence report, one per user per day

All models are dataclasses with to_dict()/from_dict() for JSON document storage.
from_dict() also accepts the camelCase keys written by the web client.
Dates are "YYYY-MM-DD" strings, timestamps are ISO-8601 strings.
"""

from __future__ import annotations
import re
import uuid
from dataclasses import dataclass, field, asdict
from datetime import date as date_cls, datetime
from enum import Enum
from typing import Optional, Dict, List

from tradejournal.utils.exceptions import ValidationError


# ── Enums ────────────────────────────────────────────────────

class TradeDirection(str, Enum):
    LONG = "long"
    SHORT = "short"


class TradeStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class ActivityType(str, Enum):
    BACKTEST = "backtest"
    REENGINEER = "reengineer"
    POST_TRADE_REVIEW = "postTradeReview"


_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(key: str) -> str:
    return _CAMEL_RE.sub("_", key).lower()


def document_kwargs(cls, d: dict, aliases: Optional[Dict[str, str]] = None) -> dict:
    """Normalise a stored document to dataclass kwargs, dropping unknown keys."""
    aliases = aliases or {}
    out = {}
    for key, value in d.items():
        name = aliases.get(key, key)
        if name not in cls.__dataclass_fields__:
            name = _snake(name)
        if name in cls.__dataclass_fields__:
            out[name] = value
    return out


def _new_id() -> str:
    return str(uuid.uuid4())[:16]


def _now() -> str:
    return datetime.now().isoformat()


def has_text(value: Optional[str]) -> bool:
    return bool(value and str(value).strip())


_DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_day(value: str) -> date_cls:
    """Parse a calendar day written as YYYY-MM-DD; anything else is a ValidationError."""
    if not isinstance(value, str) or not _DAY_RE.match(value.strip()):
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD")
    try:
        return date_cls.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD") from None


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TRADE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass
class Trade:
    """
    One trade. The stored pnl is the source of truth: it may come from the
    venue with fees baked in, so it is never recomputed from prices.
    """
    # ── Identity ──
    id: str = field(default_factory=_new_id)
    user_id: str = ""
    symbol: str = ""
    company: str = ""
    direction: str = TradeDirection.LONG.value   # TradeDirection value
    strategy: str = ""

    # ── Position ──
    quantity: float = 0
    entry_price: float = 0.0
    exit_price: Optional[float] = None
    entry_date: str = ""
    exit_date: Optional[str] = None

    # ── Outcome ──
    pnl: Optional[float] = None
    status: str = TradeStatus.OPEN.value          # TradeStatus value

    # ── Journal ──
    notes: str = ""
    screenshot: Optional[str] = None              # embedded image payload (data URL)

    # ── Risk ──
    risk_amount: Optional[float] = None
    risk_reward_ratio: Optional[float] = None

    created_at: str = field(default_factory=_now)
    last_modified: str = ""

    @property
    def is_closed(self) -> bool:
        return self.status == TradeStatus.CLOSED.value

    @property
    def has_notes(self) -> bool:
        return has_text(self.notes)

    @property
    def is_loss(self) -> bool:
        return self.pnl is not None and self.pnl < 0

    @property
    def close_date(self) -> str:
        return self.exit_date or self.entry_date

    def touches(self, date: str) -> bool:
        return self.entry_date == date or self.exit_date == date

    def validate(self):
        if not has_text(self.symbol):
            raise ValidationError("Trade symbol is required")
        if self.direction not in (TradeDirection.LONG.value, TradeDirection.SHORT.value):
            raise ValidationError(f"Unknown trade direction: {self.direction}")
        if self.status not in (TradeStatus.OPEN.value, TradeStatus.CLOSED.value):
            raise ValidationError(f"Unknown trade status: {self.status}")
        if not self.quantity or self.quantity <= 0:
            raise ValidationError("Trade quantity must be positive")
        if not self.entry_price or self.entry_price <= 0:
            raise ValidationError("Entry price must be positive")
        if not has_text(self.entry_date):
            raise ValidationError("Entry date is required")
        if (self.exit_price is None) != (self.pnl is None):
            raise ValidationError("Exit price and P&L must be set together")
        if self.is_closed and self.pnl is None:
            raise ValidationError("A closed trade needs exit price and P&L")

    def close_trade(self, exit_price: float, pnl: float, exit_date: str = ""):
        """Mark trade as closed with the venue-reported P&L."""
        self.exit_price = exit_price
        self.pnl = pnl
        self.exit_date = exit_date or datetime.now().date().isoformat()
        self.status = TradeStatus.CLOSED.value
        self.validate()

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "Trade":
        return cls(**document_kwargs(cls, d, {"type": "direction"}))


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ACTIVITY
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass
class Activity:
    """A logged learning session; its XP comes from the shared activity table."""
    id: str = field(default_factory=_new_id)
    user_id: str = ""
    activity_type: str = ActivityType.BACKTEST.value   # ActivityType value
    date: str = ""
    notes: str = ""
    created_at: str = field(default_factory=_now)
    updated_at: str = ""

    def validate(self):
        if self.activity_type not in {t.value for t in ActivityType}:
            raise ValidationError(f"Unknown activity type: {self.activity_type}")
        if not has_text(self.date):
            raise ValidationError("Activity date is required")
        if not has_text(self.notes):
            raise ValidationError("Activity notes are required")

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "Activity":
        return cls(**document_kwargs(cls, d, {"type": "activity_type"}))


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# USER PROGRESS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass
class UserProgress:
    """
    Derived gamification state. xp always equals sum(daily_xp_log.values());
    level and xp_to_next_level are a pure function of xp.
    """
    user_id: str = ""
    xp: int = 0
    level: int = 1
    xp_to_next_level: int = 1000
    streak: int = 0
    longest_streak: int = 0
    daily_xp_log: Dict[str, int] = field(default_factory=dict)
    titles_unlocked: List[str] = field(default_factory=list)
    last_activity_date: Optional[str] = None
    last_rule_log_date: Optional[str] = None
    updated_at: str = ""

    def today_xp(self, date: str) -> int:
        return self.daily_xp_log.get(date, 0)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "UserProgress":
        kwargs = document_kwargs(cls, d, {"dailyXPLog": "daily_xp_log", "xpToNextLevel": "xp_to_next_level"})
        progress = cls(**kwargs)
        progress.daily_xp_log = {k: int(v) for k, v in (progress.daily_xp_log or {}).items()
                                 if isinstance(v, (int, float))}
        progress.titles_unlocked = list(progress.titles_unlocked or [])
        return progress


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# RULE ADHERENCE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass
class RuleAnswer:
    """One configured rule and the user's answer (None = not answered yet)."""
    rule: str
    followed: Optional[bool] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "RuleAnswer":
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})


@dataclass
class RuleCheckIn:
    """End-of-session check-in. Written once per (user, date), never edited."""
    user_id: str = ""
    date: str = ""
    rules_followed: List[str] = field(default_factory=list)
    rules_broken: List[str] = field(default_factory=list)
    honesty_confirmed: bool = False
    xp_awarded: int = 0
    timestamp: str = field(default_factory=_now)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "RuleCheckIn":
        return cls(**document_kwargs(cls, d))
