"""Day and week summaries for the calendar views."""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from datetime import timedelta
from typing import Dict, List, Sequence

from tradejournal.journal.models import Trade, parse_day


@dataclass
class DaySummary:
    date: str
    trades: int = 0
    closed_pnl: float = 0.0
    wins: int = 0
    losses: int = 0
    journaled: bool = False
    xp: int = 0
    trade_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def day_summary(trades: Sequence[Trade], day: str, daily_xp_log: Dict[str, int] = None) -> DaySummary:
    day_trades = [t for t in trades if t.touches(day)]
    closed = [t for t in day_trades if t.is_closed]
    return DaySummary(
        date=day,
        trades=len(day_trades),
        closed_pnl=sum(t.pnl or 0 for t in closed),
        wins=sum(1 for t in closed if (t.pnl or 0) > 0),
        losses=sum(1 for t in closed if (t.pnl or 0) < 0),
        journaled=any(t.has_notes for t in day_trades),
        xp=(daily_xp_log or {}).get(day, 0),
        trade_ids=[t.id for t in day_trades],
    )


def week_overview(trades: Sequence[Trade], daily_xp_log: Dict[str, int], any_day: str) -> List[DaySummary]:
    """Monday-to-Sunday summaries for the week containing `any_day`."""
    anchor = parse_day(any_day)
    monday = anchor - timedelta(days=anchor.weekday())
    return [day_summary(trades, (monday + timedelta(days=i)).isoformat(), daily_xp_log)
            for i in range(7)]
