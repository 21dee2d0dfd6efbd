import pytest

from tradejournal.journal.calendar_view import day_summary, week_overview
from tradejournal.utils.exceptions import ValidationError


class TestDaySummary:

    def test_aggregates_closed_trades(self, make_trade, make_open_trade):
        trades = [
            make_trade(pnl=40.0, notes="good"),
            make_trade(pnl=-15.0),
            make_open_trade(),
            make_trade(entry_date="2024-01-09", exit_date="2024-01-09"),
        ]
        day = day_summary(trades, "2024-01-02", {"2024-01-02": 70})
        assert day.trades == 3
        assert day.closed_pnl == 25
        assert day.wins == 1
        assert day.losses == 1
        assert day.journaled
        assert day.xp == 70

    def test_empty_day(self):
        day = day_summary([], "2024-01-02")
        assert day.trades == 0
        assert day.xp == 0
        assert not day.journaled


class TestWeekOverview:

    def test_monday_to_sunday(self, make_trade):
        days = week_overview([make_trade(entry_date="2024-01-07", exit_date="2024-01-07")], {}, "2024-01-07")
        assert [d.date for d in days] == [f"2024-01-0{n}" for n in range(1, 8)]
        assert days[-1].trades == 1

    def test_anchor_on_monday(self):
        days = week_overview([], {"2024-01-08": 30}, "2024-01-08")
        assert days[0].date == "2024-01-08"
        assert days[0].xp == 30

    def test_malformed_anchor(self):
        with pytest.raises(ValidationError):
            week_overview([], {}, "2024/01/02")
