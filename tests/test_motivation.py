import random

import pytest

from tradejournal.journal.motivation import (
    GENERAL_MESSAGES, RecentBehavior, candidate_messages, checkin_streak_message,
    motivational_message, recent_behavior, smart_nudges,
)
from tradejournal.journal.rule_adherence import CheckInScore
from tradejournal.utils.exceptions import ValidationError


def _score(tier, followed=(), new_streak=0):
    return CheckInScore(tier=tier, xp_awarded=0, new_streak=new_streak,
                        rules_followed=list(followed), rules_broken=[])


class TestMessages:

    def test_long_streak_message_comes_first(self):
        messages = candidate_messages(7, 0, RecentBehavior())
        assert messages[0] == "7 days of clarity. You're leveling up as a trader."

    def test_short_streak(self):
        assert candidate_messages(3, 0, RecentBehavior())[0].startswith("3 days strong!")

    def test_behaviour_messages(self):
        behavior = RecentBehavior(has_journaled_loss=True, backtested=True)
        messages = candidate_messages(0, 0, behavior)
        assert "You journaled a red day. That's what real growth looks like." in messages
        assert any(m.startswith("Backtesting") for m in messages)

    def test_xp_messages(self):
        messages = candidate_messages(0, 50, RecentBehavior())
        assert len(messages) == len(GENERAL_MESSAGES) + 2

    def test_seeded_choice_is_a_candidate(self):
        message = motivational_message(0, 0, RecentBehavior(), rng=random.Random(1))
        assert message in GENERAL_MESSAGES


class TestRecentBehavior:

    def test_looks_at_today_and_yesterday(self, make_trade, make_activity):
        trades = [make_trade(pnl=-10.0, notes="Moved my stop", entry_date="2024-01-01", exit_date="2024-01-01")]
        activities = [make_activity(activity_type="reengineer", date="2024-01-02")]
        behavior = recent_behavior(trades, activities, "2024-01-02")
        assert behavior.has_journaled_loss
        assert behavior.reengineered
        assert not behavior.backtested

    def test_older_history_ignored(self, make_trade):
        trades = [make_trade(pnl=-10.0, notes="old", entry_date="2023-12-01", exit_date="2023-12-01")]
        assert not recent_behavior(trades, [], "2024-01-02").has_journaled_loss


class TestCheckInMessage:

    def test_all_followed(self):
        assert checkin_streak_message(_score("all_rules_followed", ["a"], 5), 4, True) == \
            "Perfect discipline! Streak: 5 days"

    def test_partial(self):
        assert checkin_streak_message(_score("honesty_bonus", ["a"], 4), 4, True) == \
            "Good effort! Streak maintained: 4 days"

    def test_honest_nothing_followed(self):
        assert checkin_streak_message(_score("honesty_bonus"), 4, True) == \
            "Honesty counts! Working on improvement."

    def test_reset(self):
        assert checkin_streak_message(_score("none"), 4, False) == "Streak reset. Tomorrow is a fresh start!"


class TestNudges:

    def test_quiet_day_and_missing_journal(self, make_trade):
        trades = [make_trade(entry_date="2024-01-02", exit_date="2024-01-02")]
        nudges = {n.id: n for n in smart_nudges(trades, "2024-01-03")}
        assert "no-trades-today" in nudges
        assert "Yesterday's trade is missing" in nudges["missing-journal"].message

    def test_traded_today(self, make_trade):
        trades = [make_trade(entry_date="2024-01-03", exit_date="2024-01-03", notes="x")]
        ids = [n.id for n in smart_nudges(trades, "2024-01-03")]
        assert "no-trades-today" not in ids
        assert "missing-journal" not in ids

    def test_winning_momentum_and_habits(self, make_trade):
        notes = "Patient entry on the retest, sized correctly"
        trades = [
            make_trade(pnl=20.0, exit_date="2024-01-04", notes=notes),
            make_trade(pnl=15.0, exit_date="2024-01-05", notes=notes),
            make_trade(pnl=-5.0, exit_date="2024-01-06", notes="short"),
            make_trade(pnl=-50.0, exit_date="2024-01-01", notes=""),
        ]
        nudges = {n.id: n for n in smart_nudges(trades, "2024-01-06")}
        assert nudges["winning-streak"].kind == "success"
        assert "2 recent winners" in nudges["winning-streak"].message
        assert "good-habits" in nudges

    def test_only_last_three_closed_trades_count(self, make_trade):
        trades = [
            make_trade(pnl=20.0, exit_date="2024-01-01"),
            make_trade(pnl=20.0, exit_date="2024-01-02"),
            make_trade(pnl=-1.0, exit_date="2024-01-03"),
            make_trade(pnl=-1.0, exit_date="2024-01-04"),
            make_trade(pnl=5.0, exit_date="2024-01-05"),
        ]
        ids = [n.id for n in smart_nudges(trades, "2024-01-05")]
        assert "winning-streak" not in ids

    def test_malformed_day(self, make_trade):
        with pytest.raises(ValidationError):
            smart_nudges([make_trade()], "not-a-date")
        with pytest.raises(ValidationError):
            recent_behavior([make_trade()], [], "2024-13-01")
