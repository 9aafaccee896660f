"""Tests for the FinResolve score."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from finresolve.profile.models import (
    Account,
    Budget,
    FinancialProfile,
    IncomeData,
    RecurringItem,
    SavingsGoal,
    SpendingEntry,
    SpendingSummary,
)
from finresolve.profile.score import (
    ScoreLabel,
    calculate_score,
    goal_progress_score,
    recommend,
    risk_alerts,
    savings_consistency_score,
    score_label,
    spending_control_score,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)
INCOME = IncomeData(amount=Decimal("100000"))


def _saving(amount, date="2026-10-05", entry_id="s1"):
    return SpendingEntry(id=entry_id, category="savings", amount=Decimal(amount), date=date)


def _goal(current, target="100", **kwargs):
    kwargs.setdefault("created_at", "2026-01-01T00:00:00+00:00")
    return SavingsGoal(id="g1", name="Emergency fund", target=Decimal(target), current=Decimal(current), **kwargs)


@pytest.fixture
def healthy():
    return FinancialProfile(
        id="p",
        income=INCOME,
        accounts=(Account(id="a1", name="GTBank", balance=Decimal("200000")),),
        budgets=(Budget(id="b1", category="food", limit=Decimal("50000"), spent=Decimal("30000")),),
        goals=(_goal("10000", target="10000"),),
        spending_entries=(_saving("25000"),),
        spending_summary=(SpendingSummary(category="food", total=Decimal("30000")),),
    )


class TestScoreLabel:
    @pytest.mark.parametrize(
        "score,label",
        [
            (100, ScoreLabel.EXCELLENT),
            (85, ScoreLabel.EXCELLENT),
            (84, ScoreLabel.STRONG),
            (70, ScoreLabel.STRONG),
            (69, ScoreLabel.STABLE),
            (55, ScoreLabel.STABLE),
            (54, ScoreLabel.NEEDS_WORK),
            (40, ScoreLabel.NEEDS_WORK),
            (39, ScoreLabel.CRITICAL),
            (0, ScoreLabel.CRITICAL),
        ],
    )
    def test_thresholds(self, score, label):
        assert score_label(score) is label


class TestSpendingControl:
    def test_neutral_without_income(self):
        assert spending_control_score(FinancialProfile(id="p")) == 50

    def test_budget_adherence_is_averaged(self):
        profile = FinancialProfile(
            id="p",
            income=INCOME,
            budgets=(
                Budget(id="b1", category="food", limit=Decimal("100"), spent=Decimal("200")),
                Budget(id="b2", category="transport", limit=Decimal("100"), spent=Decimal("110")),
            ),
        )
        # 30 and 60
        assert spending_control_score(profile) == 45

    def test_within_budget(self):
        profile = FinancialProfile(
            id="p",
            income=INCOME,
            budgets=(Budget(id="b1", category="food", limit=Decimal("100"), spent=Decimal("90")),),
        )
        assert spending_control_score(profile) == 85

    def test_zero_limit_budget_counts_as_met(self):
        profile = FinancialProfile(
            id="p", income=INCOME, budgets=(Budget(id="b1", category="food", limit=Decimal("0")),)
        )
        assert spending_control_score(profile) == 100

    @pytest.mark.parametrize(
        "spent,expected",
        [("40000", 100), ("60000", 85), ("80000", 70), ("100000", 50), ("150000", 25)],
    )
    def test_spending_against_income_without_budgets(self, spent, expected):
        profile = FinancialProfile(
            id="p",
            income=INCOME,
            spending_summary=(SpendingSummary(category="food", total=Decimal(spent)),),
        )
        assert spending_control_score(profile) == expected


class TestSavingsConsistency:
    def test_no_income(self):
        assert savings_consistency_score(FinancialProfile(id="p"), NOW) == 40
        assert savings_consistency_score(FinancialProfile(id="p", goals=(_goal("5"),)), NOW) == 60

    @pytest.mark.parametrize(
        "saved,expected",
        [("20000", 100), ("15000", 90), ("10000", 80), ("5000", 65), ("1000", 50)],
    )
    def test_rate_tiers(self, saved, expected):
        profile = FinancialProfile(id="p", income=INCOME, spending_entries=(_saving(saved),))
        assert savings_consistency_score(profile, NOW) == expected

    def test_only_this_month_counts(self):
        profile = FinancialProfile(
            id="p",
            income=INCOME,
            goals=(_goal("500"),),
            spending_entries=(_saving("25000", date="2026-09-30"),),
        )
        assert savings_consistency_score(profile, NOW) == 45

    def test_nothing_saved(self):
        assert savings_consistency_score(FinancialProfile(id="p", income=INCOME), NOW) == 30

    def test_undated_and_other_categories_ignored(self):
        profile = FinancialProfile(
            id="p",
            income=INCOME,
            spending_entries=(
                _saving("25000", date=None),
                SpendingEntry(id="e1", category="food", amount=Decimal("25000"), date="2026-10-01"),
            ),
        )
        assert savings_consistency_score(profile, NOW) == 30


class TestGoalProgress:
    def test_neutral_without_goals(self):
        assert goal_progress_score(FinancialProfile(id="p"), NOW) == 50

    @pytest.mark.parametrize(
        "current,expected",
        [("100", 100), ("75", 90), ("50", 75), ("25", 60), ("10", 45), ("0", 30)],
    )
    def test_without_deadline(self, current, expected):
        profile = FinancialProfile(id="p", goals=(_goal(current),))
        assert goal_progress_score(profile, NOW) == expected

    @pytest.mark.parametrize(
        "current,expected",
        [("80", 100), ("50", 80), ("20", 60), ("0", 30)],
    )
    def test_against_schedule(self, current, expected):
        # Half of the year has elapsed, so 50% is on schedule.
        now = datetime(2026, 7, 2, 12, 0, tzinfo=UTC)
        profile = FinancialProfile(id="p", goals=(_goal(current, deadline="2027-01-01"),))
        assert goal_progress_score(profile, now) == expected


class TestRiskAlerts:
    def test_empty_profile(self):
        score, alerts = risk_alerts(FinancialProfile(id="p"))
        assert score == 75
        assert alerts == ["No income set", "No savings goals"]

    def test_over_budget_and_low_buffer(self):
        profile = FinancialProfile(
            id="p",
            income=INCOME,
            budgets=(
                Budget(id="b1", category="food", limit=Decimal("100"), spent=Decimal("200")),
                Budget(id="b2", category="transport", limit=Decimal("100"), spent=Decimal("110")),
            ),
        )
        score, alerts = risk_alerts(profile)
        assert score == 55
        assert alerts == ["2 over-budget categories", "Low emergency buffer", "No savings goals"]

    def test_high_fixed_costs(self):
        profile = FinancialProfile(
            id="p",
            income=INCOME,
            accounts=(Account(id="a1", name="Cash", balance=Decimal("100000")),),
            goals=(_goal("10"),),
            recurring_items=(RecurringItem(id="r1", name="Rent", amount=Decimal("60000")),),
        )
        assert risk_alerts(profile) == (90, ["High fixed costs"])

    def test_spending_exceeds_income(self):
        profile = FinancialProfile(
            id="p",
            income=IncomeData(amount=Decimal("1000")),
            accounts=(Account(id="a1", name="Cash", balance=Decimal("5000")),),
            goals=(_goal("10"),),
            spending_summary=(SpendingSummary(category="food", total=Decimal("2000")),),
        )
        assert risk_alerts(profile) == (80, ["Spending exceeds income"])


class TestCalculateScore:
    def test_empty_profile(self):
        result = calculate_score(FinancialProfile(id="p"), NOW)
        assert result.components() == {
            "spending_control": 50,
            "savings_consistency": 40,
            "goal_progress": 50,
            "risk_alerts": 75,
        }
        # 52.5 rounds half-up
        assert result.overall == 53
        assert result.label is ScoreLabel.NEEDS_WORK
        assert result.alerts == ("No income set", "No savings goals")

    def test_healthy_profile(self, healthy):
        result = calculate_score(healthy, NOW)
        assert result.overall == 100
        assert result.label is ScoreLabel.EXCELLENT
        assert result.alerts == ()


class TestRecommend:
    def test_savings_is_weakest_on_empty_profile(self):
        profile = FinancialProfile(id="p")
        advice = recommend(profile, calculate_score(profile, NOW))
        assert advice.target_score == 68
        assert advice.actions == ["Set up a recurring savings transfer"]
        assert advice.primary_action == "To reach 68 this month, set up a recurring savings transfer."

    def test_savings_advice_names_an_amount(self):
        profile = FinancialProfile(id="p", income=INCOME, goals=(_goal("10"),))
        advice = recommend(profile, calculate_score(profile, NOW))
        assert advice.actions == ["Automate ₦10k monthly savings", "Set up a recurring savings transfer"]
        assert advice.primary_action.endswith(
            "automate ₦10k monthly savings and set up a recurring savings transfer."
        )

    def test_ties_go_to_spending_control(self, healthy):
        advice = recommend(healthy, calculate_score(healthy, NOW))
        assert advice.target_score == 100
        assert advice.actions == ["Reduce food spending by ₦5k/week"]
        assert advice.primary_action == "To reach 100 this month, reduce food spending by ₦5k/week."

    def test_lagging_goal(self):
        profile = FinancialProfile(
            id="p",
            income=INCOME,
            accounts=(Account(id="a1", name="Cash", balance=Decimal("100000")),),
            goals=(_goal("1000", target="10000"),),
            spending_entries=(_saving("25000"),),
        )
        score = calculate_score(profile, NOW)
        assert score.goal_progress == 45
        assert score.overall == 86
        assert recommend(profile, score).actions == ["Boost your Emergency fund goal progress"]

    def test_first_goal(self):
        profile = FinancialProfile(
            id="p",
            income=INCOME,
            accounts=(Account(id="a1", name="Cash", balance=Decimal("100000")),),
            spending_entries=(_saving("25000"),),
        )
        assert recommend(profile, calculate_score(profile, NOW)).actions == ["Create your first savings goal"]

    def test_risk_is_weakest(self):
        profile = FinancialProfile(
            id="p",
            income=INCOME,
            goals=(_goal("10000", target="10000"),),
            spending_entries=(_saving("25000"),),
            recurring_items=(RecurringItem(id="r1", name="Rent", amount=Decimal("60000")),),
        )
        score = calculate_score(profile, NOW)
        assert score.risk_alerts == 75
        advice = recommend(profile, score)
        assert advice.actions == ["Create spending budgets"]
        assert advice.primary_action == "To reach 100 this month, create spending budgets."

    def test_no_actions_for_strong_profile(self):
        profile = FinancialProfile(
            id="p",
            income=INCOME,
            accounts=(Account(id="a1", name="Cash", balance=Decimal("100000")),),
            goals=(_goal("10000", target="10000"),),
            spending_entries=(_saving("25000"),),
        )
        advice = recommend(profile, calculate_score(profile, NOW))
        assert advice.actions == []
        assert advice.primary_action == "You're doing great! Keep up the good habits."
