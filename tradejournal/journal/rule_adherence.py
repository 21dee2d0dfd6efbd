"""
Rule-Adherence Engine — scores one end-of-session check-in.

Tiers are evaluated in priority order and the first match wins:
all rules followed, three or more followed, honesty confirmed, nothing.
The "three or more" tier is an absolute count, so a user with only one or
two configured rules can reach it only by following all of them.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Sequence

from tradejournal.journal.models import RuleAnswer, RuleCheckIn
from tradejournal.journal.xp_rules import RULE_TIER_XP, XP_RULES
from tradejournal.utils.exceptions import InvalidCheckInError


@dataclass(frozen=True)
class CheckInScore:
    tier: str               # RULE_TIER_XP key
    xp_awarded: int
    new_streak: int
    rules_followed: List[str]
    rules_broken: List[str]


def validate_answers(answers: Sequence[RuleAnswer], honesty_confirmed) -> None:
    unanswered = [a.rule for a in answers if not isinstance(a.followed, bool)]
    if unanswered:
        raise InvalidCheckInError(f"{len(unanswered)} rule(s) not answered")
    if not isinstance(honesty_confirmed, bool):
        raise InvalidCheckInError("Please complete the honesty check")


def _tier(followed: int, total: int, honesty_confirmed: bool) -> str:
    if total > 0 and followed == total:
        return "all_rules_followed"
    if followed >= XP_RULES.rules_followed_threshold:
        return "three_or_more_followed"
    if honesty_confirmed:
        return "honesty_bonus"
    return "none"


def score_rule_checkin(answers: Sequence[RuleAnswer], honesty_confirmed: bool,
                       prior_streak: int) -> CheckInScore:
    validate_answers(answers, honesty_confirmed)

    followed = [a.rule for a in answers if a.followed]
    broken = [a.rule for a in answers if not a.followed]
    tier = _tier(len(followed), len(answers), honesty_confirmed)

    if tier == "all_rules_followed":
        new_streak = prior_streak + 1
    elif not followed and not honesty_confirmed:
        new_streak = 0
    else:
        new_streak = prior_streak

    return CheckInScore(
        tier=tier,
        xp_awarded=RULE_TIER_XP[tier],
        new_streak=new_streak,
        rules_followed=followed,
        rules_broken=broken,
    )


def build_checkin(user_id: str, date: str, honesty_confirmed: bool, score: CheckInScore) -> RuleCheckIn:
    return RuleCheckIn(
        user_id=user_id,
        date=date,
        rules_followed=list(score.rules_followed),
        rules_broken=list(score.rules_broken),
        honesty_confirmed=honesty_confirmed,
        xp_awarded=score.xp_awarded,
    )
