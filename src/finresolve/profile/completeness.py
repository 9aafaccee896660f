"""Data completeness score: how much of the profile the user has filled in."""

from __future__ import annotations

from finresolve.profile.models import FinancialProfile

WEIGHTS = {
    "income": 30,
    "spending": 40,
    "goals": 20,
    "name": 10,
}

# Number of categorised spending rollups that earns the full spending weight.
_FULL_SPENDING_CATEGORIES = 5


def calculate_data_completeness(profile: FinancialProfile) -> int:
    """Return a 0-100 score weighted across income, spending, goals and name."""
    score = 0.0
    if profile.income is not None:
        score += WEIGHTS["income"]
    if profile.spending_summary:
        score += min(
            WEIGHTS["spending"],
            len(profile.spending_summary) / _FULL_SPENDING_CATEGORIES * WEIGHTS["spending"],
        )
    if profile.goals:
        score += WEIGHTS["goals"]
    if profile.name:
        score += WEIGHTS["name"]
    return round(score)
