"""Per-trade risk metrics shown on the trade detail view."""

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Optional

from tradejournal.journal.models import Trade, TradeDirection
from tradejournal.journal.trading_stats import parse_date

ESTIMATED_STOP_PCT = 0.02       # stop distance assumed when no risk amount was recorded
DEFAULT_POINT_VALUE = 25.0      # per-point value assumed for futures without a P&L


@dataclass
class TradeMetrics:
    risk_amount: Optional[float] = None
    risk_is_estimated: bool = False
    risk_percentage: Optional[float] = None
    points_gained_lost: Optional[float] = None
    r_multiple: Optional[float] = None
    return_on_risk: Optional[float] = None
    max_reward: Optional[float] = None
    risk_reward_ratio: Optional[float] = None
    duration_days: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)


def compute_trade_metrics(trade: Trade, account_size: float = 10000.0) -> TradeMetrics:
    m = TradeMetrics()

    if trade.risk_amount:
        m.risk_amount = trade.risk_amount
    elif trade.entry_price and trade.exit_price:
        stop_distance = trade.entry_price * ESTIMATED_STOP_PCT
        move = abs(trade.exit_price - trade.entry_price)
        point_value = abs(trade.pnl / move) if trade.pnl and move else DEFAULT_POINT_VALUE
        m.risk_amount = stop_distance * point_value * trade.quantity
        m.risk_is_estimated = True

    if trade.risk_reward_ratio:
        m.risk_reward_ratio = trade.risk_reward_ratio

    if trade.entry_price and trade.exit_price:
        if trade.direction == TradeDirection.LONG.value:
            points = trade.exit_price - trade.entry_price
        else:
            points = trade.entry_price - trade.exit_price
        m.points_gained_lost = points

        if m.risk_amount and m.risk_amount > 0 and trade.pnl is not None:
            m.r_multiple = trade.pnl / m.risk_amount
            m.return_on_risk = m.r_multiple * 100

        if m.risk_amount and account_size:
            m.risk_percentage = m.risk_amount / account_size * 100

        if trade.pnl is not None and points != 0:
            point_value = abs(trade.pnl / points)
            m.max_reward = abs(points) * point_value * trade.quantity

        if not m.risk_reward_ratio and m.risk_amount and m.max_reward:
            m.risk_reward_ratio = m.max_reward / m.risk_amount

    entry = parse_date(trade.entry_date)
    exit_ = parse_date(trade.exit_date)
    if entry and exit_:
        m.duration_days = round((exit_ - entry).total_seconds() / 86400)

    return m
