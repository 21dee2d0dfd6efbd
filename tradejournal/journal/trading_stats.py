"""
Trading Statistics Engine — P&L, drawdown, ratios, streaks, rollups
===================================================================

Reduces a user's trades into one immutable performance report:
  - Core P&L: total, win rate, profit factor, averages, extremes
  - Risk: equity curve, max / current drawdown, Sharpe-like ratio, expectancy
  - Streaks: signed current streak, longest winning and losing runs
  - Time: average hold time, best / worst trading day
  - Rollups: per strategy, per symbol, per month

Only closed trades with a P&L take part. The function is pure and never
raises: malformed optional fields are treated as absent.
"""

from __future__ import annotations
import math
import re
from collections import defaultdict
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import List, Dict, Optional, Iterable, Tuple

from tradejournal.journal.models import Trade, TradeStatus

ANNUALIZATION_DAYS = 252
_MONTH_RE = re.compile(r"^\d{4}-\d{2}")


@dataclass(frozen=True)
class EquityPoint:
    date: str
    cumulative_pnl: float
    peak: float
    drawdown: float
    trade_id: str = ""


@dataclass(frozen=True)
class GroupStat:
    """Aggregate for one day / strategy / symbol."""
    key: str
    pnl: float
    trades: int
    wins: int


@dataclass(frozen=True)
class MonthlyStat:
    month: str          # YYYY-MM
    pnl: float
    trades: int
    win_rate: float     # percent


@dataclass(frozen=True)
class TradingStats:
    # ── Core performance ──
    total_pnl: float = 0.0
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0
    profit_factor: float = 0.0          # math.inf when there are wins and no losses

    # ── P&L analysis ──
    average_win: float = 0.0
    average_loss: float = 0.0           # positive magnitude
    largest_win: float = 0.0
    largest_loss: float = 0.0
    average_trade: float = 0.0

    # ── Risk ──
    max_drawdown: float = 0.0
    max_drawdown_percent: float = 0.0
    current_drawdown: float = 0.0
    sharpe_ratio: float = 0.0
    expectancy: float = 0.0

    # ── Streaks ──
    current_streak: int = 0             # +N winning, -N losing
    max_winning_streak: int = 0
    max_losing_streak: int = 0

    # ── Time ──
    average_hold_time: str = "0d 0h"
    best_trading_day: Optional[GroupStat] = None
    worst_trading_day: Optional[GroupStat] = None

    # ── Rollups ──
    top_strategy: Optional[GroupStat] = None
    worst_strategy: Optional[GroupStat] = None
    top_symbol: Optional[GroupStat] = None
    daily_pnl: List[GroupStat] = field(default_factory=list)
    strategy_stats: List[GroupStat] = field(default_factory=list)
    symbol_stats: List[GroupStat] = field(default_factory=list)
    monthly_stats: List[MonthlyStat] = field(default_factory=list)
    equity_curve: List[EquityPoint] = field(default_factory=list)

    @property
    def has_infinite_profit_factor(self) -> bool:
        return math.isinf(self.profit_factor)

    def to_dict(self) -> dict:
        return asdict(self)


def compute_trading_stats(trades: Iterable[Trade]) -> TradingStats:
    """Full performance report for a list of trades in any order."""
    closed = _closed_with_pnl(trades)
    if not closed:
        return TradingStats()

    ordered = sorted(closed, key=lambda tp: _sort_key(tp[0]))
    pnls = [p for _, p in ordered]

    core = _core_metrics(pnls)
    curve, max_dd, max_dd_pct = _equity_curve(ordered)
    streak, max_win_streak, max_loss_streak = _streaks(pnls)

    daily = _group(ordered, lambda t: t.close_date)
    strategies = _group(ordered, lambda t: t.strategy)
    symbols = _group(ordered, lambda t: t.symbol)

    return TradingStats(
        **core,
        max_drawdown=max_dd,
        max_drawdown_percent=max_dd_pct,
        current_drawdown=curve[-1].drawdown,
        sharpe_ratio=_sharpe(pnls),
        current_streak=streak,
        max_winning_streak=max_win_streak,
        max_losing_streak=max_loss_streak,
        average_hold_time=_average_hold_time([t for t, _ in ordered]),
        best_trading_day=_best(daily),
        worst_trading_day=_worst(daily),
        top_strategy=_best(strategies),
        worst_strategy=_worst(strategies),
        top_symbol=_best(symbols),
        daily_pnl=sorted(daily, key=lambda g: g.key),
        strategy_stats=strategies,
        symbol_stats=symbols,
        monthly_stats=_monthly_stats(ordered),
        equity_curve=curve,
    )


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# CORE METRICS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _core_metrics(pnls: List[float]) -> Dict:
    total = len(pnls)
    wins = [p for p in pnls if p > 0]
    losses = [p for p in pnls if p < 0]

    total_wins = sum(wins)
    total_losses = abs(sum(losses))
    win_rate = len(wins) / total * 100

    if total_losses > 0:
        profit_factor = total_wins / total_losses
    else:
        profit_factor = math.inf if total_wins > 0 else 0.0

    avg_win = total_wins / len(wins) if wins else 0.0
    avg_loss = total_losses / len(losses) if losses else 0.0

    return {
        "total_pnl": sum(pnls),
        "total_trades": total,
        "winning_trades": len(wins),
        "losing_trades": len(losses),
        "win_rate": win_rate,
        "profit_factor": profit_factor,
        "average_win": avg_win,
        "average_loss": avg_loss,
        "largest_win": max(wins) if wins else 0.0,
        "largest_loss": min(losses) if losses else 0.0,
        "average_trade": sum(pnls) / total,
        "expectancy": (win_rate / 100) * avg_win - ((100 - win_rate) / 100) * avg_loss,
    }


def _equity_curve(ordered: List[Tuple[Trade, float]]) -> Tuple[List[EquityPoint], float, float]:
    """Running equity; drawdown % is measured against the peak at the time."""
    curve = []
    cumulative = 0.0
    peak = 0.0
    max_dd = 0.0
    max_dd_pct = 0.0
    for trade, pnl in ordered:
        cumulative += pnl
        peak = max(peak, cumulative)
        dd = peak - cumulative
        if dd > max_dd:
            max_dd = dd
            max_dd_pct = dd / peak * 100 if peak > 0 else 0.0
        curve.append(EquityPoint(
            date=trade.close_date,
            cumulative_pnl=cumulative,
            peak=peak,
            drawdown=dd,
            trade_id=trade.id,
        ))
    return curve, max_dd, max_dd_pct


def _sharpe(pnls: List[float]) -> float:
    # Each trade is one return sample; population std, risk-free rate 0.
    mean = sum(pnls) / len(pnls)
    variance = sum((p - mean) ** 2 for p in pnls) / len(pnls)
    std = math.sqrt(variance)
    return mean / std * math.sqrt(ANNUALIZATION_DAYS) if std > 0 else 0.0


def _streaks(pnls: List[float]) -> Tuple[int, int, int]:
    current = 0
    max_win = 0
    max_loss = 0
    run_win = 0
    run_loss = 0
    for p in pnls:
        if p > 0:
            run_win += 1
            run_loss = 0
            max_win = max(max_win, run_win)
            current = run_win
        elif p < 0:
            run_loss += 1
            run_win = 0
            max_loss = max(max_loss, run_loss)
            current = -run_loss
    return current, max_win, max_loss


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TIME & ROLLUPS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _average_hold_time(trades: List[Trade]) -> str:
    hours = []
    for t in trades:
        entry = parse_date(t.entry_date)
        exit_ = parse_date(t.exit_date)
        if entry and exit_:
            hours.append((exit_ - entry).total_seconds() / 3600)
    if not hours:
        return "0d 0h"
    avg = sum(hours) / len(hours)
    return f"{math.floor(avg / 24)}d {math.floor(math.fmod(avg, 24))}h"


def _group(ordered: List[Tuple[Trade, float]], key_fn) -> List[GroupStat]:
    buckets: Dict[str, Dict] = defaultdict(lambda: {"pnl": 0.0, "trades": 0, "wins": 0})
    for trade, pnl in ordered:
        b = buckets[key_fn(trade) or ""]
        b["pnl"] += pnl
        b["trades"] += 1
        if pnl > 0:
            b["wins"] += 1
    return [GroupStat(key=k, **v) for k, v in buckets.items()]


def _best(groups: List[GroupStat]) -> Optional[GroupStat]:
    # Ties go to the lexicographically smallest key: max() keeps the first maximum.
    if not groups:
        return None
    return max(sorted(groups, key=lambda g: g.key), key=lambda g: g.pnl)


def _worst(groups: List[GroupStat]) -> Optional[GroupStat]:
    if not groups:
        return None
    return min(sorted(groups, key=lambda g: g.key), key=lambda g: g.pnl)


def _monthly_stats(ordered: List[Tuple[Trade, float]]) -> List[MonthlyStat]:
    months = _group(ordered, lambda t: _month_key(t.close_date))
    return [
        MonthlyStat(month=g.key, pnl=g.pnl, trades=g.trades,
                    win_rate=g.wins / g.trades * 100 if g.trades else 0.0)
        for g in sorted(months, key=lambda g: g.key)
        if g.key
    ]


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# HELPERS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def parse_date(value: Optional[str]) -> Optional[datetime]:
    """Parse a date or ISO timestamp; aware values are converted to naive UTC."""
    if not value or not isinstance(value, str):
        return None
    try:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _valid_pnl(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return float(value)


def _closed_with_pnl(trades: Iterable[Trade]) -> List[Tuple[Trade, float]]:
    closed = []
    for t in trades:
        if t.status != TradeStatus.CLOSED.value:
            continue
        pnl = _valid_pnl(t.pnl)
        if pnl is not None:
            closed.append((t, pnl))
    return closed


def _sort_key(trade: Trade) -> datetime:
    return parse_date(trade.exit_date) or parse_date(trade.entry_date) or datetime.min


def _month_key(date: str) -> str:
    dt = parse_date(date)
    if dt:
        return dt.strftime("%Y-%m")
    if date and _MONTH_RE.match(date):
        return date[:7]
    return ""
