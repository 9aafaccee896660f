"""
FinResolve score: a 0-100 financial health rating computed from a profile.

Four component scores, each 0-100, are blended into the overall score:

- Spending control (30%): budget adherence, or spending against income
  when no budgets exist
- Savings consistency (25%): this month's ``savings`` entries as a share
  of income
- Goal progress (25%): progress per goal, against the deadline schedule
  when one is set
- Risk alerts (20%): starts at 100 and loses points per alert

Income is read as the monthly figure regardless of its frequency. All
arithmetic is Decimal; rounding is half-up.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum

from finresolve.profile.models import Budget, FinancialProfile, SavingsGoal

WEIGHTS = {
    "spending_control": Decimal("0.30"),
    "savings_consistency": Decimal("0.25"),
    "goal_progress": Decimal("0.25"),
    "risk_alerts": Decimal("0.20"),
}

SAVINGS_CATEGORY = "savings"
NEUTRAL = 50
_ZERO = Decimal("0")


class ScoreLabel(StrEnum):
    CRITICAL = "Critical"
    NEEDS_WORK = "Needs Work"
    STABLE = "Stable"
    STRONG = "Strong"
    EXCELLENT = "Excellent"


@dataclass(frozen=True)
class ScoreBreakdown:
    overall: int
    label: ScoreLabel
    spending_control: int
    savings_consistency: int
    goal_progress: int
    risk_alerts: int
    alerts: tuple[str, ...] = ()

    def components(self) -> dict[str, int]:
        return {name: getattr(self, name) for name in WEIGHTS}


@dataclass(frozen=True)
class ScoreRecommendation:
    target_score: int
    actions: list[str] = field(default_factory=list)
    primary_action: str = ""


def _round(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _mean(scores: list[int]) -> int:
    return _round(Decimal(sum(scores)) / len(scores))


def _parse_time(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _monthly_income(profile: FinancialProfile) -> Decimal:
    return profile.income.amount if profile.income else _ZERO


def _total_spending(profile: FinancialProfile) -> Decimal:
    return sum((s.total for s in profile.spending_summary), _ZERO)


def _budget_ratio(budget: Budget) -> Decimal:
    if budget.limit == 0:
        return Decimal("Infinity") if budget.spent > 0 else _ZERO
    return budget.spent / budget.limit


def score_label(score: int) -> ScoreLabel:
    if score >= 85:
        return ScoreLabel.EXCELLENT
    if score >= 70:
        return ScoreLabel.STRONG
    if score >= 55:
        return ScoreLabel.STABLE
    if score >= 40:
        return ScoreLabel.NEEDS_WORK
    return ScoreLabel.CRITICAL


# === Component scores ===


def spending_control_score(profile: FinancialProfile) -> int:
    income = _monthly_income(profile)
    if income == 0:
        return NEUTRAL

    if profile.budgets:
        scores = []
        for budget in profile.budgets:
            if budget.limit == 0:
                scores.append(100)
                continue
            ratio = budget.spent / budget.limit
            if ratio <= Decimal("0.8"):
                scores.append(100)
            elif ratio <= 1:
                scores.append(85)
            elif ratio <= Decimal("1.2"):
                scores.append(60)
            else:
                scores.append(30)
        return _mean(scores)

    ratio = _total_spending(profile) / income
    if ratio <= Decimal("0.5"):
        return 100
    if ratio <= Decimal("0.7"):
        return 85
    if ratio <= Decimal("0.9"):
        return 70
    if ratio <= 1:
        return 50
    return 25


def savings_consistency_score(profile: FinancialProfile, now: datetime | None = None) -> int:
    """Score this calendar month's savings entries against income."""
    now = now or datetime.now(UTC)
    income = _monthly_income(profile)
    total_saved = sum((g.current for g in profile.goals), _ZERO)

    saved_this_month = _ZERO
    for entry in profile.spending_entries:
        if entry.category != SAVINGS_CATEGORY or not entry.date:
            continue
        when = _parse_time(entry.date)
        if when is not None and (when.year, when.month) == (now.year, now.month):
            saved_this_month += entry.amount

    if income == 0:
        return 60 if total_saved > 0 else 40

    rate = saved_this_month / income
    if rate >= Decimal("0.2"):
        return 100
    if rate >= Decimal("0.15"):
        return 90
    if rate >= Decimal("0.1"):
        return 80
    if rate >= Decimal("0.05"):
        return 65
    if rate > 0:
        return 50
    if total_saved > 0:
        return 45
    return 30


def _goal_score(goal: SavingsGoal, now: datetime) -> int:
    progress = Decimal(str(goal.progress)) * 100
    deadline = _parse_time(goal.deadline) if goal.deadline else None
    created = _parse_time(goal.created_at)

    if deadline is not None and created is not None:
        total = (deadline - created).total_seconds()
        elapsed = (now - created).total_seconds()
        expected = Decimal(str(elapsed / total * 100)) if total > 0 else Decimal("100")
        if progress >= expected + 10:
            return 100
        if progress >= expected - 10:
            return 80
        if progress > 0:
            return 60
        return 30

    if progress >= 100:
        return 100
    if progress >= 75:
        return 90
    if progress >= 50:
        return 75
    if progress >= 25:
        return 60
    if progress > 0:
        return 45
    return 30


def goal_progress_score(profile: FinancialProfile, now: datetime | None = None) -> int:
    if not profile.goals:
        return NEUTRAL
    now = now or datetime.now(UTC)
    return _mean([_goal_score(goal, now) for goal in profile.goals])


def risk_alerts(profile: FinancialProfile) -> tuple[int, list[str]]:
    """Return the risk score and the alerts that lowered it."""
    score = 100
    alerts: list[str] = []
    income = _monthly_income(profile)
    spending = _total_spending(profile)
    balance = sum((a.balance for a in profile.accounts), _ZERO)

    if income == 0:
        score -= 15
        alerts.append("No income set")

    over_budget = sum(1 for b in profile.budgets if b.spent > b.limit)
    if over_budget:
        score -= min(25, over_budget * 10)
        alerts.append(f"{over_budget} over-budget categories")

    if income > 0 and spending > income:
        score -= 20
        alerts.append("Spending exceeds income")

    # Less than one month of expenses on hand.
    monthly_expenses = spending if spending > 0 else income * Decimal("0.7")
    if monthly_expenses > 0 and balance < monthly_expenses:
        score -= 15
        alerts.append("Low emergency buffer")

    if not profile.goals:
        score -= 10
        alerts.append("No savings goals")

    recurring = sum((item.amount for item in profile.recurring_items), _ZERO)
    if income > 0 and recurring / income > Decimal("0.5"):
        score -= 10
        alerts.append("High fixed costs")

    return max(0, score), alerts


# === Overall ===


def calculate_score(profile: FinancialProfile, now: datetime | None = None) -> ScoreBreakdown:
    """Compute the weighted FinResolve score for *profile*.

    Args:
        profile: The profile to rate.
        now: Reference time for "this month" and goal schedules. Defaults
            to the current UTC time.
    """
    now = now or datetime.now(UTC)
    risk, alerts = risk_alerts(profile)
    components = {
        "spending_control": spending_control_score(profile),
        "savings_consistency": savings_consistency_score(profile, now),
        "goal_progress": goal_progress_score(profile, now),
        "risk_alerts": risk,
    }
    overall = _round(sum((WEIGHTS[name] * value for name, value in components.items()), _ZERO))
    return ScoreBreakdown(overall=overall, label=score_label(overall), alerts=tuple(alerts), **components)


def recommend(profile: FinancialProfile, score: ScoreBreakdown) -> ScoreRecommendation:
    """Suggest actions for the weakest component of *score*.

    Ties go to the component listed first in ``WEIGHTS``.
    """
    target = min(100, score.overall + 15)
    income = _monthly_income(profile)
    weakest = min(WEIGHTS, key=lambda name: getattr(score, name))
    actions: list[str] = []

    if weakest == "spending_control":
        if profile.spending_summary:
            top = max(profile.spending_summary, key=lambda s: s.total)
            reduction = _round(top.total * Decimal("0.15"))
            if reduction > 1000:
                actions.append(f"Reduce {top.category} spending by ₦{_round(Decimal(reduction) / 1000)}k/week")
        over = [b for b in profile.budgets if b.spent > b.limit]
        if over:
            worst = max(over, key=_budget_ratio)
            actions.append(f"Get {worst.category} spending under control")

    elif weakest == "savings_consistency":
        suggested = _round(income * Decimal("0.1"))
        if suggested > 0:
            actions.append(f"Automate ₦{_round(Decimal(suggested) / 1000)}k monthly savings")
        actions.append("Set up a recurring savings transfer")

    elif weakest == "goal_progress":
        if not profile.goals:
            actions.append("Create your first savings goal")
        else:
            behind = [g for g in profile.goals if g.progress < 0.5]
            if behind:
                actions.append(f"Boost your {behind[0].name} goal progress")

    else:
        if income == 0:
            actions.append("Set your monthly income")
        if not profile.budgets:
            actions.append("Create spending budgets")
        if not profile.goals:
            actions.append("Set up an emergency fund goal")

    if len(actions) >= 2:
        primary = f"To reach {target} this month, {actions[0].lower()} and {actions[1].lower()}."
    elif actions:
        primary = f"To reach {target} this month, {actions[0].lower()}."
    elif score.overall >= 85:
        primary = "You're doing great! Keep up the good habits."
    else:
        primary = "Keep tracking your spending to improve your score."

    return ScoreRecommendation(target_score=target, actions=actions, primary_action=primary)
